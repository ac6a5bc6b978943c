"""
QConcursos (Folha) adapters for news and predicted postings.

Articles are anchors pointing at `/n/<slug>`; the title is the anchor's
`h2`/`h3` and a `<span>` reading "Atualizada em DD/MM/YYYY ..." carries the
publication date. The same article can be linked several times on a page, so
entries collapse by link.
"""

import logging
import re
from typing import Optional

from bs4 import BeautifulSoup, Tag

from ...common.text import normalize_whitespace
from ..base import ArticleListing, SourceAdapter

logger = logging.getLogger(__name__)

BASE_URL = "https://folha.qconcursos.com"
SOURCE_NAME = "QConcursos"

DATE_PATTERN = re.compile(r"\d{1,2}/\d{1,2}/\d{2,4}")


class QConcursosAdapter(SourceAdapter):
    """Adapter for a paginated QConcursos article list."""

    link_selector = 'a[href^="/n/"]'
    # Titles of navigation cards that are not articles
    ignored_titles: frozenset[str] = frozenset()

    def __init__(self):
        super().__init__(source_name=SOURCE_NAME, base_url=BASE_URL)

    def parse_document(self, soup: BeautifulSoup, page_url: str) -> list[ArticleListing]:
        items: dict[str, ArticleListing] = {}

        for link_element in soup.select(self.link_selector):
            try:
                item = self._parse_anchor(link_element, page_url)
            except Exception as e:
                logger.warning("Error parsing a QConcursos item, skipping", extra={"error": str(e)})
                continue
            if item is not None:
                items[item.link] = item

        return list(items.values())

    def _parse_anchor(self, link_element: Tag, page_url: str) -> Optional[ArticleListing]:
        href = link_element.get("href")
        title_element = link_element.select_one("h2, h3")
        if not href or title_element is None:
            return None

        title = normalize_whitespace(title_element.get_text())
        if not title or title.lower() in self.ignored_titles:
            return None

        return ArticleListing(
            title=title,
            link=self.resolve_link(href, page_url),
            source=SOURCE_NAME,
            raw_date_text=self._updated_date(link_element),
        )

    @staticmethod
    def _updated_date(link_element: Tag) -> Optional[str]:
        for span in link_element.find_all("span"):
            text = span.get_text()
            if "Atualizada em" in text:
                match = DATE_PATTERN.search(text)
                return match.group(0) if match else None
        return None


class QConcursosNewsAdapter(QConcursosAdapter):
    link_selector = 'main a[href^="/n/"]'

    def page_url(self, page_number: int) -> str:
        suffix = f"?page={page_number}" if page_number > 1 else ""
        return f"{BASE_URL}/noticias-de-concursos{suffix}"


class QConcursosPredictedAdapter(QConcursosAdapter):
    ignored_titles = frozenset({"concursos previstos"})

    def page_url(self, page_number: int) -> str:
        return f"{BASE_URL}/e/concursos-previstos?page={page_number}"
