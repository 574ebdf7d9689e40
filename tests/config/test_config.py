from __future__ import annotations

from pathlib import Path

import pytest

from osccpipe.config import (
    ConfigurationError,
    PipelineConfig,
    env_flag,
    env_list,
    get_http_source_config,
    get_pipeline_config,
    validate_issue_level,
    validate_merge_policy,
)


def test_defaults_without_environment() -> None:
    assert get_pipeline_config() == PipelineConfig()


def test_environment_overrides_stage_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OSCCPIPE_ISSUE_LEVEL", "0")
    monkeypatch.setenv("OSCCPIPE_LICENSE_SCOPE_PATTERNS", "license*, copying* ,")
    monkeypatch.setenv("OSCCPIPE_KEEP_EMPTY_SCOPES", "no")
    monkeypatch.setenv("OSCCPIPE_FILE_STORE", "/srv/licenses")
    monkeypatch.setenv("OSCCPIPE_DECLARED_SOURCE", "https://ort.example.org/declared.json")
    monkeypatch.setenv("OSCCPIPE_MERGE_POLICY", " Reject ")

    config = get_pipeline_config()

    assert config.issue_level == 0
    assert config.scopes.license_patterns == ("license*", "copying*")
    assert config.deduplication.keep_empty_scopes is False
    assert config.curation.file_store == Path("/srv/licenses")
    assert config.resolution.declared_source == "https://ort.example.org/declared.json"
    assert config.merge.policy == "reject"


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("OSCCPIPE_ISSUE_LEVEL", "3"),
        ("OSCCPIPE_ISSUE_LEVEL", "high"),
        ("OSCCPIPE_KEEP_EMPTY_SCOPES", "maybe"),
        ("OSCCPIPE_MERGE_POLICY", "last-wins"),
    ],
)
def test_invalid_values_raise(monkeypatch: pytest.MonkeyPatch, name: str, value: str) -> None:
    monkeypatch.setenv(name, value)

    with pytest.raises(ConfigurationError):
        get_pipeline_config()


def test_blank_values_fall_back_to_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_FLAG", "   ")
    monkeypatch.setenv("EXAMPLE_LIST", "")

    assert env_flag("EXAMPLE_FLAG", True) is True
    assert env_list("EXAMPLE_LIST", ["a"]) == ("a",)


def test_validators_accept_boundaries() -> None:
    assert validate_issue_level(-1) == -1
    assert validate_issue_level(2) == 2
    assert validate_merge_policy("FIRST-WINS") == "first-wins"


def test_http_source_config_reads_retries(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OSCCPIPE_DECLARED_SOURCE_RETRIES", "1")
    monkeypatch.setenv("OSCCPIPE_DECLARED_SOURCE_TIMEOUT", "2.5")

    config = get_http_source_config()

    assert config.retry.total == 1
    assert config.timeout_seconds == 2.5
    assert config.retry.build().total == 1
