"""Title-oriented page operations on top of a PageStore."""

import logging

from pagewiki.core.models import Page
from pagewiki.core.storage import PageStore

logger = logging.getLogger(__name__)


class PageService:
    """Loads and saves pages by title.

    Both operations go through get_or_create_by_title, so a page always
    exists for the title once either call returns. Titles are expected
    to be unique; when the table holds duplicates the oldest row wins.
    """

    def __init__(self, store: PageStore):
        self.store = store

    def _resolve(self, title: str) -> Page:
        pages = self.store.get_or_create_by_title(title)
        return self.store.find_by_id(pages[0].id)

    def load(self, title: str) -> Page:
        """Get the page for title, creating a placeholder if needed."""
        page = self._resolve(title)
        return Page(title=page.title, body=page.body)

    def save(self, title: str, body: str) -> None:
        """Replace the body of the page for title."""
        page = self._resolve(title)
        self.store.update(page.id, title, body)
        logger.info("Saved page %r (id=%d, %d chars)", title, page.id, len(body))
