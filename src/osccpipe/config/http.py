"""Configuration types for fetching remote declared-license documents."""

from __future__ import annotations

from dataclasses import dataclass, field

import httpx
from httpx_retries import Retry

from .env import env_float, env_int

DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_RETRY_TOTAL = 4


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    total: int = DEFAULT_RETRY_TOTAL
    backoff_factor: float = 0.5
    max_backoff_wait: float = 60.0
    respect_retry_after_header: bool = True
    status_forcelist: frozenset[int] = field(
        default_factory=lambda: frozenset({429, 500, 502, 503, 504})
    )
    retry_on_exceptions: tuple[type[httpx.HTTPError], ...] = (
        httpx.TimeoutException,
        httpx.NetworkError,
        httpx.RemoteProtocolError,
    )

    def build(self) -> Retry:
        return Retry(
            total=self.total,
            backoff_factor=self.backoff_factor,
            max_backoff_wait=self.max_backoff_wait,
            respect_retry_after_header=self.respect_retry_after_header,
            status_forcelist=tuple(self.status_forcelist),
            retry_on_exceptions=self.retry_on_exceptions,
        )


@dataclass(slots=True, frozen=True)
class HttpSourceConfig:
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    user_agent: str = "osccpipe"


def get_http_source_config() -> HttpSourceConfig:
    return HttpSourceConfig(
        timeout_seconds=env_float("OSCCPIPE_DECLARED_SOURCE_TIMEOUT", DEFAULT_TIMEOUT_SECONDS),
        retry=RetryPolicy(total=env_int("OSCCPIPE_DECLARED_SOURCE_RETRIES", DEFAULT_RETRY_TOTAL)),
    )
