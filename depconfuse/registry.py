"""Public registry existence checks with per-scan memoization.

This module answers one question: does a package name exist on the public
npm registry? Each distinct name is queried at most once per resolver
instance, with a bounded number of queries in flight at any time.

Response policy (conservative by design of the tool):

- HTTP 200: the name exists
- HTTP 404: the name does not exist
- any other status, a network failure or a timeout: the name is treated
  as existing, so an uncertain answer never hides a confusion target

A resolver instance is the per-scan cache. Create a new one for every scan;
nothing is persisted across instances.

Public API:
    RegistryResolver: Thread-safe, memoizing existence resolver
    ResolverStats: Counters describing resolver activity
    create_session: Build a requests session sized for the resolver
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, replace
from typing import Any, Iterable
from urllib.parse import quote

import requests
from requests.adapters import HTTPAdapter

from depconfuse import __version__
from depconfuse.config import DEFAULT_CONCURRENCY, DEFAULT_REGISTRY_URL, DEFAULT_TIMEOUT
from depconfuse.errors import RegistryQueryError
from depconfuse.models import ExistenceResult, Provenance

logger = logging.getLogger(__name__)

USER_AGENT = f"depconfuse/{__version__}"

# Abbreviated packument; only the status code is used
_ABBREVIATED_METADATA = "application/vnd.npm.install-v1+json"


def create_session(pool_size: int = DEFAULT_CONCURRENCY) -> requests.Session:
    """Create an HTTP session for registry queries.

    The connection pool is sized to the query concurrency. Retries are
    disabled: a failed query falls back to the conservative answer instead.

    Args:
        pool_size: Maximum number of pooled connections per host.

    Returns:
        Configured requests.Session instance.
    """
    session = requests.Session()
    adapter = HTTPAdapter(pool_connections=1, pool_maxsize=pool_size, max_retries=0)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    session.headers.update({"User-Agent": USER_AGENT, "Accept": _ABBREVIATED_METADATA})
    return session


@dataclass
class ResolverStats:
    """Counters describing resolver activity.

    Attributes:
        live_queries: Registry queries actually issued
        cache_hits: Calls answered from the memo (including waits on an
            in-flight query for the same name)
        fallbacks: Queries resolved by the conservative policy
    """

    live_queries: int = 0
    cache_hits: int = 0
    fallbacks: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "live_queries": self.live_queries,
            "cache_hits": self.cache_hits,
            "fallbacks": self.fallbacks,
        }


class RegistryResolver:
    """Memoizing, concurrency-bounded registry existence resolver.

    ``exists`` and ``resolve`` are safe to call from many threads. Callers
    racing on a name that is not yet cached wait on a single in-flight query
    for that name. At most ``concurrency`` live queries run at once; excess
    callers queue on a semaphore.

    Attributes:
        base_url: Registry base URL; the URL-encoded name is appended
        timeout: Per-query timeout in seconds
        concurrency: Maximum number of simultaneous live queries
        stats: Activity counters

    Example::

        resolver = RegistryResolver()
        resolver.exists("left-pad")   # live query
        resolver.exists("left-pad")   # cached
    """

    def __init__(
        self,
        base_url: str = DEFAULT_REGISTRY_URL,
        timeout: float = DEFAULT_TIMEOUT,
        concurrency: int = DEFAULT_CONCURRENCY,
        session: Any | None = None,
    ) -> None:
        """Initialise the resolver.

        Args:
            base_url: Registry base URL. Defaults to the public npm registry.
            timeout: Per-query timeout in seconds. Defaults to 5.
            concurrency: Maximum simultaneous live queries. Defaults to 10.
            session: Object with a requests-compatible ``get(url, timeout=...)``
                method. When None a pooled requests session is created.

        Raises:
            ValueError: If timeout is not positive or concurrency is below 1.
        """
        if timeout <= 0:
            raise ValueError(f"timeout must be positive, got {timeout}")
        if concurrency < 1:
            raise ValueError(f"concurrency must be at least 1, got {concurrency}")
        self.base_url: str = base_url.rstrip("/")
        self.timeout: float = timeout
        self.concurrency: int = concurrency
        self.stats = ResolverStats()
        self._session = session if session is not None else create_session(concurrency)
        self._lock = threading.Lock()
        self._slots = threading.BoundedSemaphore(concurrency)
        self._cache: dict[str, ExistenceResult] = {}
        self._pending: dict[str, Future[ExistenceResult]] = {}

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def exists(self, name: str) -> bool:
        """Return whether ``name`` is treated as existing on the registry."""
        return self.resolve(name).exists

    def resolve(self, name: str) -> ExistenceResult:
        """Resolve a single name, querying the registry at most once per name.

        Args:
            name: Exact, case-sensitive package name.

        Returns:
            An ExistenceResult. Cached answers carry ``Provenance.CACHE``.

        Raises:
            ValueError: If ``name`` is empty.
        """
        if not name:
            raise ValueError("package name must not be empty")

        with self._lock:
            cached = self._cache.get(name)
            if cached is not None:
                self.stats.cache_hits += 1
                return replace(cached, provenance=Provenance.CACHE)
            pending = self._pending.get(name)
            if pending is None:
                pending = Future()
                self._pending[name] = pending
                owner = True
            else:
                self.stats.cache_hits += 1
                owner = False

        if not owner:
            return replace(pending.result(), provenance=Provenance.CACHE)

        try:
            result = self._query(name)
        except BaseException as exc:
            with self._lock:
                del self._pending[name]
            pending.set_exception(exc)
            raise
        with self._lock:
            self._cache[name] = result
            del self._pending[name]
        pending.set_result(result)
        return result

    def resolve_many(self, names: Iterable[str]) -> dict[str, ExistenceResult]:
        """Resolve many names concurrently.

        Args:
            names: Package names; duplicates and empty names are ignored.

        Returns:
            Mapping of each distinct name to its ExistenceResult.
        """
        unique = [n for n in dict.fromkeys(names) if n]
        if not unique:
            return {}
        with ThreadPoolExecutor(
            max_workers=min(self.concurrency, len(unique)),
            thread_name_prefix="depconfuse-registry",
        ) as pool:
            results = list(pool.map(self.resolve, unique))
        return dict(zip(unique, results))

    def cached(self, name: str) -> ExistenceResult | None:
        """Return the memoized result for ``name`` without querying."""
        with self._lock:
            return self._cache.get(name)

    @property
    def resolved_count(self) -> int:
        """Return the number of distinct names resolved so far."""
        with self._lock:
            return len(self._cache)

    def url_for(self, name: str) -> str:
        """Return the registry URL queried for ``name``."""
        return f"{self.base_url}/{quote(name, safe='')}"

    def close(self) -> None:
        close = getattr(self._session, "close", None)
        if callable(close):
            close()

    def __enter__(self) -> RegistryResolver:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Live queries
    # ------------------------------------------------------------------

    def _query(self, name: str) -> ExistenceResult:
        """Issue one live query, applying the conservative policy on failure."""
        with self._slots:
            with self._lock:
                self.stats.live_queries += 1
            try:
                status = self._fetch_status(name)
            except RegistryQueryError as exc:
                with self._lock:
                    self.stats.fallbacks += 1
                logger.warning("%s; assuming '%s' exists", exc, name)
                return ExistenceResult(
                    name=name,
                    exists=True,
                    provenance=Provenance.FALLBACK,
                    status_code=exc.status_code,
                    error=exc.reason,
                )

        exists = status == 200
        logger.debug("Registry answered %d for '%s'", status, name)
        return ExistenceResult(
            name=name,
            exists=exists,
            provenance=Provenance.LIVE,
            status_code=status,
        )

    def _fetch_status(self, name: str) -> int:
        """Return 200 or 404 for ``name``.

        Raises:
            RegistryQueryError: On any other status, or any transport failure.
        """
        url = self.url_for(name)
        try:
            response = self._session.get(url, timeout=self.timeout, stream=True)
        except requests.Timeout:
            raise RegistryQueryError(name, f"timed out after {self.timeout}s") from None
        except requests.RequestException as exc:
            raise RegistryQueryError(name, f"network error: {exc}") from None
        except Exception as exc:  # noqa: BLE001
            raise RegistryQueryError(name, f"unexpected error: {exc}") from None

        status = response.status_code
        close = getattr(response, "close", None)
        if callable(close):
            close()
        if status in (200, 404):
            return status
        raise RegistryQueryError(name, f"unexpected HTTP status {status}", status_code=status)
