"""
Older History Page Loader
Fetches the page of readings just before the oldest buffered key and hands
it back to the event loop thread for prepending.

Only one fetch may be outstanding. Each request is tagged with the loader
generation; returning to live view bumps the generation so a response that
arrives afterwards is dropped instead of shifting the window.
"""

import logging
import queue
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional

from dashboard.data.history_store import HistoryStore
from dashboard.data.reading import Reading

logger = logging.getLogger(__name__)

FetchPage = Callable[[str, int], List[Reading]]

BUFFER_FULL_MESSAGE = "History buffer full, older data not loaded"


@dataclass
class PageResult:
    """Outcome of one background fetch"""
    generation: int
    readings: Optional[List[Reading]] = None
    error: Optional[Exception] = None


def run_in_thread(task: Callable[[], None]):
    threading.Thread(target=task, name="older-page-fetch", daemon=True).start()


class OlderPageLoader:
    """
    In-flight guarded loader for older history pages.

    The fetch runs off the loop thread; results are queued and applied by
    process_completed(), which must be called from the loop thread.
    """

    def __init__(self, store: HistoryStore, fetch_page: FetchPage,
                 run_task: Callable[[Callable[[], None]], None] = run_in_thread):
        """
        Args:
            store: History store receiving the pages
            fetch_page: fetch_page(cursor_key, page_size) -> readings with key < cursor
            run_task: Executes the fetch task (a new thread by default)
        """
        self.store = store
        self.fetch_page = fetch_page
        self.run_task = run_task

        self.is_loading = False
        self.generation = 0
        self._results: "queue.Queue[PageResult]" = queue.Queue()

    def request(self, page_size: Optional[int] = None) -> bool:
        """
        Start fetching the page before the oldest buffered reading.

        Args:
            page_size: Readings to fetch (defaults to the current window
                size, capped to the free buffer capacity)

        Returns:
            True if a fetch was started, False if refused (already loading,
            empty buffer, or no free capacity)
        """
        cursor = self.store.oldest_key()
        if self.is_loading or cursor is None:
            return False
        if self.store.is_full:
            logger.info("History buffer full, older page not requested")
            return False

        self.store.view.live_follow = False
        size = min(page_size or self.store.view.window_size, self.store.free_capacity)
        generation = self.generation
        self.is_loading = True
        logger.info(f"Loading {size} readings before {cursor}")

        def _task():
            try:
                page = self.fetch_page(cursor, size)
                self._results.put(PageResult(generation, readings=page))
            except Exception as exc:
                logger.exception("Older page fetch failed")
                self._results.put(PageResult(generation, error=exc))

        self.run_task(_task)
        return True

    def invalidate(self):
        """Mark any outstanding fetch as stale"""
        self.generation += 1

    def process_completed(self) -> Optional[str]:
        """
        Apply finished fetches to the store.

        Returns:
            Status message for the UI when a fetch failed, otherwise None
        """
        message = None
        while True:
            try:
                result = self._results.get_nowait()
            except queue.Empty:
                break

            self.is_loading = False

            if result.error is not None:
                message = f"Error loading older data: {result.error}"
                continue

            if result.generation != self.generation:
                logger.info("Discarding stale older page (view returned to live)")
                continue

            self.store.prepend_older_page(result.readings or [])

        return message
