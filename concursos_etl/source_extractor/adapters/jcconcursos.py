"""
JC Concursos adapter for news.

Each article is a `div.artigo_listing` holding an anchor, an `h2.h4` title
and a `span.autor-data-list` with author and publication date.
"""

import logging
from typing import Optional

from bs4 import BeautifulSoup, Tag

from ...common.text import normalize_whitespace
from ..base import ArticleListing, SourceAdapter

logger = logging.getLogger(__name__)

BASE_URL = "https://jcconcursos.com.br"
SOURCE_NAME = "JC Concursos"


class JCConcursosNewsAdapter(SourceAdapter):
    def __init__(self):
        super().__init__(source_name=SOURCE_NAME, base_url=BASE_URL)

    def page_url(self, page_number: int) -> str:
        return f"{BASE_URL}/noticia?page={page_number}"

    def parse_document(self, soup: BeautifulSoup, page_url: str) -> list[ArticleListing]:
        items = []
        for element in soup.select("div.artigo_listing"):
            try:
                item = self._parse_article(element, page_url)
            except Exception as e:
                logger.warning("Error parsing a JC Concursos item, skipping", extra={"error": str(e)})
                continue
            if item is not None:
                items.append(item)
        return items

    def _parse_article(self, element: Tag, page_url: str) -> Optional[ArticleListing]:
        link_element = element.find("a")
        title_element = element.select_one("h2.h4")
        date_element = element.select_one("span.autor-data-list")
        if link_element is None or title_element is None or date_element is None:
            return None

        href = link_element.get("href")
        title = normalize_whitespace(title_element.get_text())
        if not href or not title:
            return None

        return ArticleListing(
            title=title,
            link=self.resolve_link(href, page_url),
            source=SOURCE_NAME,
            raw_date_text=normalize_whitespace(date_element.get_text()) or None,
        )
