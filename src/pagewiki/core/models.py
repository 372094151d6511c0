"""Data models for PageWiki."""

from pydantic import BaseModel


class Page(BaseModel):
    """Represents a wiki page.

    ``id`` is only set when the page comes straight from the store; the
    page service hands out pages by title alone.
    """

    title: str
    body: str = ""
    id: int | None = None
