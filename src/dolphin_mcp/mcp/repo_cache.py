"""Time-bounded cache of the service's repository listing."""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from dolphin_mcp.rest.models import RepoInfo


def is_expired(fetched_at: float, now: float, ttl_sec: float) -> bool:
    """True once more than *ttl_sec* has passed since *fetched_at*."""
    return now - fetched_at > ttl_sec


@dataclass
class RepoCache:
    """Repository list plus the time it was fetched.

    Owned by the application context; nothing here is module-level state.
    ``clock`` is injectable so expiry can be tested without sleeping.
    """

    ttl_sec: float
    value: list[RepoInfo] | None = None
    fetched_at: float = 0.0
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)

    def is_expired(self, now: float | None = None) -> bool:
        if self.value is None:
            return True
        return is_expired(self.fetched_at, self.clock() if now is None else now, self.ttl_sec)

    def store(self, repos: list[RepoInfo]) -> None:
        self.value = repos
        self.fetched_at = self.clock()

    def invalidate(self) -> None:
        self.value = None
        self.fetched_at = 0.0

    async def get(self, load: Callable[[], Awaitable[list[RepoInfo]]]) -> list[RepoInfo]:
        """Cached repos, calling *load* first when empty or expired."""
        if self.value is None or self.is_expired():
            self.store(await load())
        assert self.value is not None
        return self.value

    def find(self, name: str) -> RepoInfo | None:
        for repo in self.value or []:
            if repo.name == name:
                return repo
        return None
