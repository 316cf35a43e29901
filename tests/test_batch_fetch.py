import asyncio
from dataclasses import dataclass
from typing import List, Optional

import pytest

from notion_task_sync.services.batch_fetch import fetch_all_pages
from notion_task_sync.services.scheduler import RateLimitedScheduler


@dataclass
class Page:
    results: List[str]
    has_more: bool
    next_cursor: Optional[str]


class CountingScheduler(RateLimitedScheduler):
    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self.submitted = 0

    def submit(self, *args, **kwargs):
        self.submitted += 1
        return super().submit(*args, **kwargs)


PAGES = {
    None: Page(["a", "b"], True, "cursor-1"),
    "cursor-1": Page(["c", "d"], True, "cursor-2"),
    "cursor-2": Page(["e"], False, None),
}


def test_pages_are_concatenated_in_order():
    cursors = []

    async def fetch_page(cursor):
        cursors.append(cursor)
        return PAGES[cursor]

    async def main():
        scheduler = CountingScheduler(max_requests=10)
        items = await fetch_all_pages(scheduler, fetch_page, resource_id="ds-1")
        return scheduler, items

    scheduler, items = asyncio.run(main())

    assert items == ["a", "b", "c", "d", "e"]
    assert cursors == [None, "cursor-1", "cursor-2"]
    assert scheduler.submitted == 3


def test_page_failure_propagates():
    async def fetch_page(cursor):
        if cursor == "cursor-1":
            raise ConnectionError("reset")
        return PAGES[cursor]

    async def main():
        scheduler = RateLimitedScheduler(max_requests=10)
        await fetch_all_pages(scheduler, fetch_page)

    with pytest.raises(ConnectionError):
        asyncio.run(main())
