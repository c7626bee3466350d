"""Parallel snippet fetching with per-attempt timeouts and retries.

Every search hit needs its source text. ``SnippetFetcher`` pulls those slices
through ``map_with_concurrency`` so at most ``max_concurrent`` requests hit
the REST service at once. A slice that cannot be fetched never fails the
search: its slot resolves to an empty placeholder carrying a warning.

Retry policy per request:

- each attempt gets a fresh ``request_timeout_ms`` timer
- a timed-out or failed attempt is retried up to ``retry_attempts`` times,
  sleeping ``backoff_base_ms * 2**attempt`` first
- the caller's cancel event is terminal: it is checked before every attempt,
  raced against the attempt in flight, and interrupts the backoff sleep
- ``deadline_ms`` (optional) stops new attempts once that much time has passed
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

import structlog

from dolphin_mcp.config.constants import (
    SNIPPET_BACKOFF_BASE_MS,
    SNIPPET_CONCURRENCY_DEFAULT,
    SNIPPET_FAILURE_WARNING,
    SNIPPET_RETRIES_DEFAULT,
    SNIPPET_TIMEOUT_MS_DEFAULT,
)
from dolphin_mcp.core.concurrency import map_with_concurrency

if TYPE_CHECKING:
    from dolphin_mcp.config.models import SnippetsConfig

log = structlog.get_logger(__name__)

PROGRESS_LOG_THRESHOLD = 10
"""Batches larger than this log a progress event per completed fetch."""


class FetchedSlice(Protocol):
    content: str

    @property
    def warnings(self) -> list[str] | None: ...


FetchSlice = Callable[[str, str, int, int], Awaitable[FetchedSlice]]


class HitLike(Protocol):
    repo: str
    path: str
    start_line: int
    end_line: int


class SnippetFetchCancelled(Exception):
    """The caller's cancel event fired; no further attempts are made."""


@dataclass(frozen=True, slots=True)
class SnippetFetchRequest:
    repo: str
    path: str
    start_line: int
    end_line: int
    context_lines_before: int = 0
    context_lines_after: int = 0

    def fetch_range(self) -> tuple[int, int]:
        """Line range to request, widened by the context margins."""
        start = max(1, self.start_line - self.context_lines_before)
        end = self.end_line + self.context_lines_after
        return start, end


@dataclass(frozen=True, slots=True)
class SnippetFetchResult:
    """Fetched text for one request.

    ``actual_*`` is the range that was fetched (with context); ``chunk_*`` is
    the range the hit matched. Failed fetches carry empty content and the
    ``Failed to load snippet`` warning, never ``None``.
    """

    content: str
    warnings: tuple[str, ...] | None = None
    actual_start_line: int | None = None
    actual_end_line: int | None = None
    chunk_start_line: int | None = None
    chunk_end_line: int | None = None

    @classmethod
    def placeholder(cls) -> SnippetFetchResult:
        return cls(content="", warnings=(SNIPPET_FAILURE_WARNING,))

    @property
    def failed(self) -> bool:
        return self.warnings is not None and SNIPPET_FAILURE_WARNING in self.warnings


@dataclass(frozen=True, slots=True)
class SnippetFetchOptions:
    max_concurrent: int = SNIPPET_CONCURRENCY_DEFAULT
    request_timeout_ms: int = SNIPPET_TIMEOUT_MS_DEFAULT
    retry_attempts: int = SNIPPET_RETRIES_DEFAULT
    backoff_base_ms: int = SNIPPET_BACKOFF_BASE_MS
    deadline_ms: int | None = None

    @classmethod
    def from_config(cls, config: SnippetsConfig) -> SnippetFetchOptions:
        return cls(
            max_concurrent=config.max_concurrent,
            request_timeout_ms=config.timeout_ms,
            retry_attempts=config.retry_attempts,
            deadline_ms=config.deadline_ms,
        )

    def as_log_fields(self) -> dict[str, Any]:
        return {
            "max_concurrent": self.max_concurrent,
            "timeout_ms": self.request_timeout_ms,
            "retry_attempts": self.retry_attempts,
        }


def requests_from_hits(
    hits: Iterable[HitLike],
    context_before: int = 0,
    context_after: int = 0,
) -> list[SnippetFetchRequest]:
    """One fetch request per hit, in hit order."""
    return [
        SnippetFetchRequest(
            repo=hit.repo.strip(),
            path=hit.path,
            start_line=hit.start_line,
            end_line=hit.end_line,
            context_lines_before=context_before,
            context_lines_after=context_after,
        )
        for hit in hits
    ]


class SnippetFetcher:
    """Fetches many snippets concurrently; never raises for a single failure."""

    def __init__(self, fetch_slice: FetchSlice, options: SnippetFetchOptions | None = None) -> None:
        self._fetch_slice = fetch_slice
        self.options = options or SnippetFetchOptions()

    async def fetch_all(
        self,
        requests: Sequence[SnippetFetchRequest],
        cancel_event: asyncio.Event | None = None,
    ) -> dict[int, SnippetFetchResult]:
        """Fetch every request. The result has an entry for every input position."""
        started = time.monotonic()
        log.info("snippet_fetch_start", count=len(requests), **self.options.as_log_fields())

        def on_progress(completed: int, total: int) -> None:
            if total > PROGRESS_LOG_THRESHOLD:
                log.info("snippet_fetch_progress", completed=completed, total=total)

        async def fetch(request: SnippetFetchRequest, _index: int) -> SnippetFetchResult:
            return await self._fetch_one(request, cancel_event)

        results = await map_with_concurrency(
            requests,
            fetch,
            max_concurrent=self.options.max_concurrent,
            on_progress=on_progress,
        )

        snippets: dict[int, SnippetFetchResult] = {}
        failed = 0
        for result in results:
            if result.success and result.data is not None:
                snippets[result.index] = result.data
                continue
            request = requests[result.index]
            log.warning(
                "snippet_fetch_failed",
                repo=request.repo,
                path=request.path,
                lines=f"{request.start_line}-{request.end_line}",
                error=str(result.error) or type(result.error).__name__,
                cancelled=isinstance(result.error, SnippetFetchCancelled),
            )
            snippets[result.index] = SnippetFetchResult.placeholder()
            failed += 1

        log.info(
            "snippet_fetch_complete",
            count=len(requests),
            successful=len(requests) - failed,
            failed=failed,
            duration_ms=int((time.monotonic() - started) * 1000),
        )
        return snippets

    async def _fetch_one(
        self, request: SnippetFetchRequest, cancel_event: asyncio.Event | None
    ) -> SnippetFetchResult:
        opts = self.options
        start, end = request.fetch_range()
        timeout_s = opts.request_timeout_ms / 1000
        deadline = None if opts.deadline_ms is None else time.monotonic() + opts.deadline_ms / 1000

        last_error: Exception | None = None
        for attempt in range(opts.retry_attempts + 1):
            if cancel_event is not None and cancel_event.is_set():
                raise SnippetFetchCancelled("cancelled before attempt")

            attempt_timeout = timeout_s
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise TimeoutError(f"deadline of {opts.deadline_ms}ms exceeded") from last_error
                attempt_timeout = min(timeout_s, remaining)

            try:
                fetched = await self._attempt(
                    request.repo, request.path, start, end, attempt_timeout, cancel_event
                )
            except SnippetFetchCancelled:
                raise
            except Exception as e:
                last_error = e
                will_retry = attempt < opts.retry_attempts
                log.debug(
                    "snippet_fetch_attempt_failed",
                    repo=request.repo,
                    path=request.path,
                    attempt=attempt + 1,
                    will_retry=will_retry,
                    error=str(e) or type(e).__name__,
                )
                if will_retry:
                    await self._backoff(attempt, cancel_event)
                continue

            warnings = fetched.warnings
            return SnippetFetchResult(
                content=fetched.content or "",
                warnings=tuple(warnings) if warnings else None,
                actual_start_line=start,
                actual_end_line=end,
                chunk_start_line=request.start_line,
                chunk_end_line=request.end_line,
            )

        assert last_error is not None
        raise last_error

    async def _attempt(
        self,
        repo: str,
        path: str,
        start: int,
        end: int,
        timeout_s: float,
        cancel_event: asyncio.Event | None,
    ) -> FetchedSlice:
        fetch = asyncio.ensure_future(self._fetch_slice(repo, path, start, end))
        waiters: set[asyncio.Future[Any]] = {fetch}
        cancelled: asyncio.Future[Any] | None = None
        if cancel_event is not None:
            cancelled = asyncio.ensure_future(cancel_event.wait())
            waiters.add(cancelled)

        try:
            done, _ = await asyncio.wait(
                waiters, timeout=timeout_s, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            pending = [w for w in waiters if not w.done()]
            for w in pending:
                w.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        if fetch in done:
            return fetch.result()
        if cancelled is not None and cancelled in done:
            raise SnippetFetchCancelled("cancelled during attempt")
        raise TimeoutError(f"attempt timed out after {int(timeout_s * 1000)}ms")

    async def _backoff(self, attempt: int, cancel_event: asyncio.Event | None) -> None:
        delay = self.options.backoff_base_ms * (2**attempt) / 1000
        if cancel_event is None:
            await asyncio.sleep(delay)
            return
        try:
            await asyncio.wait_for(cancel_event.wait(), timeout=delay)
        except TimeoutError:
            return
        raise SnippetFetchCancelled("cancelled during backoff")
