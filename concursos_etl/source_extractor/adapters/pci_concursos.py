"""
PCI Concursos adapter for open postings.

PCI publishes its open postings on one page per region
(https://www.pciconcursos.com.br/concursos/<region>/). Each posting is a
`div.da`, `div.na` or `div.ea` block:

    .ca a      link; text = organization, title attribute = posting title
    .cc        location ("SP", "Nacional", "Itaperuna - RJ"...)
    .cd        details; <span> children hold roles/education levels, the
               remaining text holds vacancies and salary
    .cb img    organization logo (lazy loaded, URL in data-src)
    .ce        application deadline
"""

import copy
import logging

from bs4 import BeautifulSoup, Tag

from ...common.text import normalize_whitespace
from ..base import RawListing, SourceAdapter

logger = logging.getLogger(__name__)

BASE_URL = "https://www.pciconcursos.com.br"
REGIONS = ("nacional", "sudeste", "sul", "norte", "nordeste", "centrooeste")

DEFAULT_ORGANIZATION = "Órgão não informado"
DEFAULT_LOCATION = "Nacional"
DEFAULT_EDUCATION = "Não informada"
DEFAULT_SALARY = "Não informado"


class PciConcursosAdapter(SourceAdapter):
    """Adapter for one PCI Concursos region page."""

    # Region pages are not paginated
    max_pages = 1

    def __init__(self, region: str = "nacional"):
        """
        Initialize the adapter.

        Args:
            region: One of REGIONS (default: "nacional")

        Raises:
            ValueError: If the region is unknown
        """
        if region not in REGIONS:
            raise ValueError(f"Unknown PCI region '{region}'. Expected one of: {', '.join(REGIONS)}")

        super().__init__(source_name="PCI Concursos", base_url=BASE_URL)
        self.region = region

    def page_url(self, page_number: int) -> str:
        return f"{BASE_URL}/concursos/{self.region}/"

    def parse_document(self, soup: BeautifulSoup, page_url: str) -> list[RawListing]:
        listings = []
        blocks = soup.select("div.da, div.na, div.ea")

        for block in blocks:
            try:
                listing = self._parse_block(block, page_url)
            except Exception as e:
                logger.warning(
                    "Error parsing a single posting, skipping",
                    extra={"region": self.region, "error": str(e), "error_type": type(e).__name__},
                )
                continue
            if listing is not None:
                listings.append(listing)

        logger.info(
            "Parsed PCI region page",
            extra={"region": self.region, "blocks": len(blocks), "listings": len(listings)},
        )
        return listings

    def _parse_block(self, block: Tag, page_url: str) -> RawListing | None:
        link_element = block.select_one(".ca a")
        details_element = block.select_one(".cd")
        if link_element is None or details_element is None:
            return None

        href = link_element.get("href")
        if not href:
            return None

        organization = normalize_whitespace(link_element.get_text()) or DEFAULT_ORGANIZATION
        title = normalize_whitespace(link_element.get("title")) or organization

        location_element = block.select_one(".cc")
        location = normalize_whitespace(location_element.get_text()) if location_element else ""

        spans = [normalize_whitespace(span.get_text()) for span in details_element.find_all("span")]
        spans = [text for text in spans if text]
        education = " / ".join(spans) if spans else DEFAULT_EDUCATION

        logo_element = block.select_one(".cb img")
        deadline_element = block.select_one(".ce")

        return RawListing(
            title=title,
            organization=organization,
            raw_location_text=location or DEFAULT_LOCATION,
            raw_details_text=self._salary_text(details_element),
            raw_education_text=education,
            link=self.resolve_link(href, page_url),
            source=self.source_name,
            logo_url=logo_element.get("data-src") if logo_element else None,
            raw_deadline_text=(
                normalize_whitespace(deadline_element.get_text()) or None
                if deadline_element else None
            ),
        )

    @staticmethod
    def _salary_text(details_element: Tag) -> str:
        """Return the details text with the role/education spans removed."""
        details = copy.copy(details_element)
        for span in details.find_all("span"):
            span.decompose()

        text = normalize_whitespace(details.get_text())
        for marker in ("/", "•"):
            if text.startswith(marker):
                text = text[1:].strip()
        return text or DEFAULT_SALARY
