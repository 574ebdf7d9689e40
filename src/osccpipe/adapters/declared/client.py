"""Load declared licenses from a local file or an HTTP(S) URL."""

from __future__ import annotations

import asyncio
from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING

import httpx
import yaml
from httpx_retries import RetryTransport
from pydantic import ValidationError

from osccpipe.domain.errors import StageIOError
from osccpipe.domain.model import Identifier
from osccpipe.domain.stages import DeclaredLicenses

from .schema import DeclaredDocument

if TYPE_CHECKING:
    from osccpipe.config import HttpSourceConfig

log = getLogger(__name__)


class DeclaredLicenseClient:
    """Fetch and parse the declared-license source document."""

    def __init__(
        self,
        *,
        config: HttpSourceConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._transport = transport

    def load(self, location: str) -> dict[Identifier, DeclaredLicenses]:
        if location.startswith(("http://", "https://")):
            raw = asyncio.run(self._fetch_async(location))
        else:
            raw = _read_local(Path(location))
        return parse_declared(raw, location)

    async def _fetch_async(self, url: str) -> str:
        transport = RetryTransport(transport=self._transport, retry=self._config.retry.build())
        async with httpx.AsyncClient(
            transport=transport,
            timeout=self._config.timeout_seconds,
            headers={"User-Agent": self._config.user_agent},
        ) as client:
            try:
                response = await client.get(url)
                response.raise_for_status()
            except httpx.HTTPError as exc:
                raise StageIOError(f"Cannot fetch declared licenses from {url}: {exc}") from exc
        log.debug("Fetched declared licenses from %s (%d bytes)", url, len(response.content))
        return response.text


def _read_local(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise StageIOError(f"Cannot read declared licenses {path}: {exc}") from exc


def parse_declared(raw: str, location: str) -> dict[Identifier, DeclaredLicenses]:
    """Parse a YAML or JSON declared-license document into per-package entries."""

    try:
        document = DeclaredDocument.model_validate(yaml.safe_load(raw) or {})
    except (yaml.YAMLError, ValidationError) as exc:
        raise StageIOError(f"Declared license document {location} is invalid: {exc}") from exc

    declared: dict[Identifier, DeclaredLicenses] = {}
    for package in document.packages:
        try:
            identifier = Identifier.parse(package.id)
        except ValueError as exc:
            log.warning("Declared licenses for %r ignored: %s", package.id, exc)
            continue
        processed = package.declared_licenses_processed
        declared[identifier] = DeclaredLicenses(
            declared=tuple(package.declared_licenses),
            processed=processed.spdx_expression,
            mapped=dict(processed.mapped),
        )
    log.info("Loaded declared licenses for %d package(s) from %s", len(declared), location)
    return declared
