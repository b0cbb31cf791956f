from __future__ import annotations

from typing import Any, AsyncContextManager, Protocol


class PageSession(Protocol):
    """A browser page owned by exactly one job."""

    page: Any

    async def navigate(self, url: str, wait_until: str = "domcontentloaded") -> None: ...

    async def click(self, selector: str) -> None: ...

    async def scroll_until_stable(self) -> int: ...

    async def close(self) -> None: ...


class SessionFactory(Protocol):
    """Hands out page sessions; ``open()`` closes the session when the block exits."""

    def open(self) -> AsyncContextManager[PageSession]: ...
