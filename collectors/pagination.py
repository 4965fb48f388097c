"""Cursor/offset pagination driven through the RequestExecutor."""

import logging
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Callable, Optional, Union

from collectors.adapter import ApiRequest
from collectors.executor import RateLimitObserver, RequestExecutor
from collectors.token_gate import CallAttemptState

logger = logging.getLogger(__name__)

PageCursor = Union[str, int]
RowSink = Callable[[list[dict]], None]


@dataclass
class Page:
    """One decoded page of results.

    Attributes:
        rows: Raw result rows.
        next_cursor: Continuation marker (page token, cursor, page number
            or offset); None when the provider reports no further pages.
    """

    rows: list[dict] = field(default_factory=list)
    next_cursor: Optional[PageCursor] = None


def _has_cursor(cursor: Optional[PageCursor]) -> bool:
    return cursor is not None and cursor != ""


class Paginator:
    """Repeats a request with an evolving cursor up to ``max_pages``.

    The loop always terminates: a page without a continuation marker, the
    page cap, or an exception out of the executor ends it. Pages beyond the
    cap are never requested.

    Example:
        >>> paginator = Paginator(executor, max_pages=8)
        >>> async for page in paginator.iterate(build, extract, state, operation="search"):
        ...     rows.extend(page.rows)
    """

    def __init__(self, executor: RequestExecutor, max_pages: int) -> None:
        if max_pages < 1:
            raise ValueError("max_pages must be >= 1")
        self.executor = executor
        self.max_pages = max_pages

    async def iterate(
        self,
        build_request: Callable[[Optional[PageCursor]], ApiRequest],
        extract_page: Callable[[Any], Page],
        state: CallAttemptState,
        *,
        operation: str,
        on_rate_limit: Optional[RateLimitObserver] = None,
    ) -> AsyncIterator[Page]:
        """Yield pages in order.

        Args:
            build_request: Builds the request for a cursor (None = first page).
            extract_page: Decodes rows and the next cursor from a payload.
            state: Chain state shared across every page.
            operation: Operation name for logs.
            on_rate_limit: Rate-limit observer forwarded to the executor.

        Yields:
            Each fully decoded Page.
        """
        cursor: Optional[PageCursor] = None

        for page_number in range(self.max_pages):
            payload = await self.executor.execute(
                build_request(cursor),
                state,
                operation=f"{operation}:page{page_number}",
                on_rate_limit=on_rate_limit,
            )
            page = extract_page(payload)
            yield page

            if not _has_cursor(page.next_cursor):
                return
            cursor = page.next_cursor

        logger.info(
            f"{operation}: stopped at max_pages={self.max_pages}, "
            "remaining pages not fetched"
        )

    async def collect(
        self,
        build_request: Callable[[Optional[PageCursor]], ApiRequest],
        extract_page: Callable[[Any], Page],
        state: CallAttemptState,
        sink: RowSink,
        *,
        operation: str,
        on_rate_limit: Optional[RateLimitObserver] = None,
    ) -> int:
        """Feed every page's rows into ``sink``.

        Returns:
            Number of pages fetched.
        """
        pages = 0
        async for page in self.iterate(
            build_request,
            extract_page,
            state,
            operation=operation,
            on_rate_limit=on_rate_limit,
        ):
            sink(page.rows)
            pages += 1
        return pages
