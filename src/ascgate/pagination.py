"""Follow ``links.next`` cursors until a collection is complete.

Walks are strictly sequential and all-or-nothing: any failure on any page
propagates, and pages collected so far are dropped with it.
"""

import logging
from typing import Any, Union

from .types import Deadline

# Safety valve against runaway pagination, not an expected stopping point.
DEFAULT_MAX_PAGES = 10

logger = logging.getLogger("ascgate")


def _page_items(page: Any) -> list:
    if not isinstance(page, dict):
        return []
    data = page.get("data")
    if data is None:
        return []
    if isinstance(data, list):
        return data
    return [data]


def _next_cursor(page: Any) -> Union[str, None]:
    if not isinstance(page, dict):
        return None
    links = page.get("links") or {}
    return links.get("next") or None


class _Walk:
    def __init__(self, path: str, max_pages: int):
        if max_pages < 1:
            raise ValueError(f"max_pages must be >= 1, got {max_pages}")
        self.max_pages = max_pages
        self.items: list = []
        self.pages = 0
        self.cursor: Union[str, None] = path
        self._seen: set[str] = {path}

    def take(self, page: Any):
        self.items.extend(_page_items(page))
        self.pages += 1
        nxt = _next_cursor(page)
        if nxt is not None and nxt in self._seen:
            logger.warning(f"pagination cursor repeated; stopping at page {self.pages}: {nxt}")
            nxt = None
        if nxt is not None:
            self._seen.add(nxt)
        self.cursor = nxt

    @property
    def more(self) -> bool:
        return self.cursor is not None and self.pages < self.max_pages

    def done(self) -> list:
        if self.cursor is not None:
            logger.info(f"pagination stopped at page cap max_pages={self.max_pages}")
        return self.items


def collect_all(
    transport,
    path: str,
    params: Union[dict[str, Any], None] = None,
    max_pages: int = DEFAULT_MAX_PAGES,
    deadline: Union[Deadline, None] = None,
) -> list:
    """Fetch every page of a collection and return the items in arrival order.

    Only the first request carries ``params``; later ones use the server's
    ``next`` link verbatim. Stops when no cursor is returned or after
    ``max_pages`` pages, whichever comes first.
    """
    walk = _Walk(path, max_pages)
    first = True
    while walk.more:
        page = transport.send(
            walk.cursor, "GET", params=params if first else None, deadline=deadline
        )
        first = False
        walk.take(page)
    return walk.done()


async def acollect_all(
    transport,
    path: str,
    params: Union[dict[str, Any], None] = None,
    max_pages: int = DEFAULT_MAX_PAGES,
    deadline: Union[Deadline, None] = None,
) -> list:
    walk = _Walk(path, max_pages)
    first = True
    while walk.more:
        page = await transport.send(
            walk.cursor, "GET", params=params if first else None, deadline=deadline
        )
        first = False
        walk.take(page)
    return walk.done()
