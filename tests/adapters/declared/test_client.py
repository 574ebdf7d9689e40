from __future__ import annotations

import json
from typing import TYPE_CHECKING

import httpx
import pytest

from osccpipe.adapters.declared import DeclaredLicenseClient, parse_declared
from osccpipe.config import HttpSourceConfig, RetryPolicy
from osccpipe.domain.errors import StageIOError
from osccpipe.domain.model import Identifier

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

URL = "https://ort.example.org/declared.json"
DOCUMENT = {
    "packages": [
        {
            "id": "NPM::left-pad:1.0.0",
            "declared_licenses": ["MIT", "Apache 2.0"],
            "declared_licenses_processed": {
                "spdx_expression": "MIT OR Apache-2.0",
                "mapped": {"Apache 2.0": "Apache-2.0"},
            },
        },
        {"id": "broken"},
    ]
}
LEFT_PAD = Identifier("NPM", "", "left-pad", "1.0.0")


def _client(handler: Callable[[httpx.Request], httpx.Response]) -> DeclaredLicenseClient:
    async def async_handler(request: httpx.Request) -> httpx.Response:
        return handler(request)

    config = HttpSourceConfig(retry=RetryPolicy(total=2, backoff_factor=0.0))
    return DeclaredLicenseClient(config=config, transport=httpx.MockTransport(async_handler))


def test_parse_maps_declared_licenses_and_skips_bad_ids() -> None:
    declared = parse_declared(json.dumps(DOCUMENT), "declared.json")

    assert list(declared) == [LEFT_PAD]
    entry = declared[LEFT_PAD]
    assert entry.processed == "MIT OR Apache-2.0"
    assert entry.mapped_licenses == ["Apache-2.0", "MIT"]


def test_local_yaml_document_is_loaded(tmp_path: Path) -> None:
    path = tmp_path / "declared.yml"
    path.write_text(
        "packages:\n  - id: 'npm::left-pad:1.0.0'\n    declared_licenses: [MIT]\n",
        encoding="utf-8",
    )
    client = DeclaredLicenseClient(config=HttpSourceConfig())

    declared = client.load(str(path))

    entry = declared[Identifier("npm", "", "left-pad", "1.0.0")]
    assert entry.declared == ("MIT",)
    assert entry.processed is None


def test_remote_document_is_fetched_with_retries() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if len(calls) == 1:
            return httpx.Response(503)
        return httpx.Response(200, json=DOCUMENT)

    declared = _client(handler).load(URL)

    assert len(calls) == 2
    assert calls[0].headers["User-Agent"] == "osccpipe"
    assert LEFT_PAD in declared


def test_http_errors_become_io_errors() -> None:
    client = _client(lambda _request: httpx.Response(404))

    with pytest.raises(StageIOError, match="Cannot fetch declared licenses"):
        client.load(URL)


@pytest.mark.parametrize("raw", ["packages: [unclosed", "packages: 3"])
def test_invalid_documents_raise(raw: str) -> None:
    with pytest.raises(StageIOError, match="is invalid"):
        parse_declared(raw, "declared.yml")


def test_missing_local_document(tmp_path: Path) -> None:
    client = DeclaredLicenseClient(config=HttpSourceConfig())

    with pytest.raises(StageIOError, match="Cannot read declared licenses"):
        client.load(str(tmp_path / "missing.yml"))
