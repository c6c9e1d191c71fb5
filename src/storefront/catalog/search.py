"""Search-as-you-type over the product catalog."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from storefront.catalog.supabase import ProductSummary

logger = logging.getLogger(__name__)

SearchFn = Callable[[str], Awaitable[list[ProductSummary]]]

DEBOUNCE_SECONDS = 0.5
MIN_QUERY_LENGTH = 2
MAX_RESULTS = 10
EMPTY_MESSAGE = "No matching products found."


class SearchBox:
    """
    Debounced product search with last-query-wins semantics.

    Every keystroke restarts the debounce timer and abandons whatever the
    previous keystroke had scheduled or started, so at most one query per
    pause is issued and only the newest one can update ``results``.
    """

    def __init__(
        self,
        search_fn: SearchFn,
        delay: float = DEBOUNCE_SECONDS,
        min_length: int = MIN_QUERY_LENGTH,
        max_results: int = MAX_RESULTS,
    ):
        self.search_fn = search_fn
        self.delay = delay
        self.min_length = min_length
        self.max_results = max_results

        self.query = ""
        self.results: list[ProductSummary] = []
        self.loading = False
        self.dropdown_open = False
        self.error: Optional[str] = None
        self.issued: list[str] = []
        self._searched = False
        self._generation = 0
        self._task: Optional[asyncio.Task] = None

    # ── Input events ──

    def type(self, text: str) -> None:
        """Handle a change of the input value."""
        self.query = text
        self.dropdown_open = True
        self._cancel_pending()
        self._generation += 1
        self._task = asyncio.get_running_loop().create_task(
            self._debounced(text, self._generation)
        )

    def close(self) -> None:
        """Click outside the search box."""
        self.dropdown_open = False

    def select(self, product: ProductSummary) -> str:
        """Choose a result: clear the query and return its detail path."""
        self._cancel_pending()
        self._generation += 1
        self.query = ""
        self.results = []
        self.loading = False
        self._searched = False
        self.dropdown_open = False
        return product.detail_path

    async def wait_idle(self) -> None:
        if self._task is not None:
            try:
                await self._task
            except asyncio.CancelledError:
                pass

    # ── View state ──

    @property
    def visible(self) -> bool:
        return bool(self.query.strip()) and self.dropdown_open

    @property
    def empty_message(self) -> Optional[str]:
        if self._searched and not self.loading and not self.results and self.error is None:
            return EMPTY_MESSAGE
        return None

    # ── Internals ──

    def _cancel_pending(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
            self.loading = False
        self._task = None

    async def _debounced(self, text: str, generation: int) -> None:
        await asyncio.sleep(self.delay)
        term = text.strip()
        if len(term) < self.min_length:
            self.results = []
            self.loading = False
            self._searched = False
            return
        await self._run(term, generation)

    async def _run(self, term: str, generation: int) -> None:
        self.issued.append(term)
        self.loading = True
        self.error = None
        try:
            found = await self.search_fn(term)
        except Exception as e:
            if generation == self._generation:
                logger.warning("Product search for %r failed: %s", term, e)
                self.error = "search_failed"
                self.results = []
                self.loading = False
            return

        if generation != self._generation:
            return
        self.results = list(found)[: self.max_results]
        self._searched = True
        self.loading = False
