"""
PCI Concursos adapters for news and predicted postings.

Both sections share the same layout: a date header (`h2.principal`) followed
by a `<ul>` whose `li a` entries are the articles published on that date.

    /noticias/            -> page 1, /noticias/2/ -> page 2, ...
    /previstos/           -> page 1, /previstos/2/ -> page 2, ...
"""

import logging
import re

from bs4 import BeautifulSoup, Tag

from ...common.text import normalize_whitespace
from ..base import ArticleListing, SourceAdapter

logger = logging.getLogger(__name__)

BASE_URL = "https://www.pciconcursos.com.br"
SOURCE_NAME = "PCI Concursos"
UNTITLED = "Título não informado"

FULL_DATE_PATTERN = re.compile(r"^\d{2}/\d{2}/\d{4}$")


class PciArticleAdapter(SourceAdapter):
    """Adapter for a date-grouped PCI Concursos article section."""

    section = ""
    # News headers must be full dates; predicted headers may carry other text
    require_full_date = False

    def __init__(self):
        super().__init__(source_name=SOURCE_NAME, base_url=BASE_URL)

    def page_url(self, page_number: int) -> str:
        suffix = f"{page_number}/" if page_number > 1 else ""
        return f"{BASE_URL}/{self.section}/{suffix}"

    def parse_document(self, soup: BeautifulSoup, page_url: str) -> list[ArticleListing]:
        items: list[ArticleListing] = []

        for header in soup.select("h2.principal"):
            try:
                items.extend(self._parse_date_section(header, page_url))
            except Exception as e:
                logger.warning(
                    "Error parsing a PCI date section, skipping",
                    extra={"section": self.section, "error": str(e)},
                )

        return items

    def _parse_date_section(self, header: Tag, page_url: str) -> list[ArticleListing]:
        date_text = normalize_whitespace(header.get_text())
        if self.require_full_date and not FULL_DATE_PATTERN.match(date_text):
            return []

        sibling = header.find_next_sibling()
        if sibling is None or sibling.name != "ul":
            return []

        items = []
        for link_element in sibling.select("li a"):
            href = link_element.get("href")
            if not href:
                continue
            items.append(
                ArticleListing(
                    title=normalize_whitespace(link_element.get_text()) or UNTITLED,
                    link=self.resolve_link(href, page_url),
                    source=SOURCE_NAME,
                    raw_date_text=date_text or None,
                )
            )
        return items


class PciNewsAdapter(PciArticleAdapter):
    section = "noticias"
    require_full_date = True


class PciPredictedAdapter(PciArticleAdapter):
    section = "previstos"
