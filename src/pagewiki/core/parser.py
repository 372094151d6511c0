"""Markdown rendering with wiki link support."""

import re
from typing import Callable
from xml.etree.ElementTree import Element

from markdown import Markdown
from markdown.extensions import Extension
from markdown.inlinepatterns import InlineProcessor, SimpleTagInlineProcessor


# Pattern for wiki links: [[Title]] or [[Title|Display Text]]
WIKI_LINK_PATTERN = r"\[\[([^\]|]+)(?:\|([^\]]+))?\]\]"

# Group 2 must contain the text (SimpleTagInlineProcessor expectation)
STRIKETHROUGH_PATTERN = r"(~~)(.*?)~~"


class StrikethroughExtension(Extension):
    """Markdown extension for ~~strikethrough~~ text."""

    def extendMarkdown(self, md: Markdown) -> None:
        md.inlinePatterns.register(
            SimpleTagInlineProcessor(STRIKETHROUGH_PATTERN, "del"),
            "strikethrough",
            50,
        )


class EscapeHtmlExtension(Extension):
    """Show raw HTML in a body as text instead of passing it through."""

    def extendMarkdown(self, md: Markdown) -> None:
        md.preprocessors.deregister("html_block")
        md.inlinePatterns.deregister("html")


class WikiLinkInlineProcessor(InlineProcessor):
    """Turns [[Title]] into a link to /view/Title."""

    def __init__(self, pattern: str, md: Markdown, page_exists: Callable[[str], bool]):
        super().__init__(pattern, md)
        self.page_exists = page_exists

    def handleMatch(self, m: re.Match, data: str) -> tuple[Element | None, int, int]:
        title = m.group(1).strip()
        display_text = m.group(2)
        display_text = display_text.strip() if display_text else title

        el = Element("a")
        el.text = display_text
        el.set("href", f"/view/{title}")
        if self.page_exists(title):
            el.set("class", "wiki-link")
        else:
            el.set("class", "wiki-link wiki-link-missing")

        return el, m.start(0), m.end(0)


class WikiLinkExtension(Extension):
    """Markdown extension for wiki links."""

    def __init__(self, page_exists: Callable[[str], bool] | None = None, **kwargs):
        self.page_exists = page_exists or (lambda x: True)
        super().__init__(**kwargs)

    def extendMarkdown(self, md: Markdown) -> None:
        md.inlinePatterns.register(
            WikiLinkInlineProcessor(WIKI_LINK_PATTERN, md, self.page_exists),
            "wiki_link",
            75,
        )


def create_parser(page_exists: Callable[[str], bool] | None = None) -> Markdown:
    """Create a configured Markdown parser instance.

    Args:
        page_exists: Callback telling whether a title has a page; used to
            mark links to missing pages.
    """
    return Markdown(
        extensions=[
            "fenced_code",
            "tables",
            "sane_lists",
            EscapeHtmlExtension(),
            StrikethroughExtension(),
            WikiLinkExtension(page_exists=page_exists),
        ],
    )


def render_body(body: str, page_exists: Callable[[str], bool] | None = None) -> str:
    """Render a page body to HTML."""
    return create_parser(page_exists).convert(body)

