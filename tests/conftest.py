"""Shared fixtures: a stub registry session that never touches the network."""

from __future__ import annotations

import threading
import time
from typing import Any
from urllib.parse import unquote

import pytest

REGISTRY_URL = "https://registry.test"


class StubResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, status_code: int) -> None:
        self.status_code = status_code
        self.closed = False

    def close(self) -> None:
        self.closed = True


class StubSession:
    """Registry stub answering by package name and counting invocations.

    Args:
        statuses: Mapping of package name to HTTP status code.
        default: Status for names not in ``statuses``.
        errors: Mapping of package name to an exception to raise.
        delay: Seconds to sleep inside each call.
    """

    def __init__(
        self,
        statuses: dict[str, int] | None = None,
        default: int = 404,
        errors: dict[str, Exception] | None = None,
        delay: float = 0.0,
    ) -> None:
        self.statuses = statuses or {}
        self.default = default
        self.errors = errors or {}
        self.delay = delay
        self.calls: list[str] = []
        self.kwargs: list[dict[str, Any]] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self._lock = threading.Lock()

    def get(self, url: str, **kwargs: Any) -> StubResponse:
        name = unquote(url.rsplit("/", 1)[1])
        with self._lock:
            self.calls.append(name)
            self.kwargs.append(kwargs)
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                time.sleep(self.delay)
            if name in self.errors:
                raise self.errors[name]
            return StubResponse(self.statuses.get(name, self.default))
        finally:
            with self._lock:
                self.in_flight -= 1

    def count(self, name: str) -> int:
        return self.calls.count(name)


@pytest.fixture
def stub_session() -> StubSession:
    """A stub where left-pad and express exist and everything else is missing."""
    return StubSession(statuses={"left-pad": 200, "express": 200})
