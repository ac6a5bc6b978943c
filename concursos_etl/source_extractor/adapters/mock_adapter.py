"""Mock Adapter for Testing.

This adapter simulates a listing site for testing purposes. It parses no real
HTML: the listings of each page are generated from the page number, so the
orchestrator, reconciler and tests can exercise the full page loop offline.
"""

import re
from typing import Optional

from bs4 import BeautifulSoup

from ..base import ArticleListing, Listing, RawListing, SourceAdapter

MOCK_BASE_URL = "https://mock.concursos.local"


class MockAdapter(SourceAdapter):
    """Mock adapter that returns fake listings for testing.

    Example:
        adapter = MockAdapter(num_listings=25, listings_per_page=10)
        adapter.parse_page("<html></html>", 1)   # 10 listings
        adapter.parse_page("<html></html>", 3)   # 5 listings
        adapter.parse_page("<html></html>", 4)   # []
    """

    def __init__(
        self,
        num_listings: int = 100,
        listings_per_page: int = 20,
        articles: bool = False,
        link_prefix: str = "mock",
        fail_on_page: Optional[int] = None,
        source_name: str = "Mock Concursos",
    ):
        """Initialize the mock adapter.

        Args:
            num_listings: Total number of fake listings to generate
            listings_per_page: Number of listings per page
            articles: Produce ArticleListing instead of RawListing
            link_prefix: Path prefix of generated links (share it between two
                         adapters to simulate overlapping sources)
            fail_on_page: If set, parsing this page raises ValueError
            source_name: Source label stored on each listing
        """
        super().__init__(source_name=source_name, base_url=MOCK_BASE_URL)
        self.num_listings = num_listings
        self.listings_per_page = listings_per_page
        self.articles = articles
        self.link_prefix = link_prefix
        self.fail_on_page = fail_on_page

    def page_url(self, page_number: int) -> str:
        return f"{MOCK_BASE_URL}/{self.link_prefix}/page/{page_number}"

    def parse_document(self, soup: BeautifulSoup, page_url: str) -> list[Listing]:
        page_number = int(re.search(r"/page/(\d+)$", page_url).group(1))
        if self.fail_on_page == page_number:
            raise ValueError(f"Simulated markup change on page {page_number}")

        start = (page_number - 1) * self.listings_per_page
        end = min(start + self.listings_per_page, self.num_listings)
        return [self._generate_listing(i) for i in range(start, end)]

    def _generate_listing(self, index: int) -> Listing:
        link = f"{MOCK_BASE_URL}/{self.link_prefix}/{index}"
        if self.articles:
            return ArticleListing(
                title=f"Concurso {index} tem edital publicado em SP",
                link=link,
                source=self.source_name,
                raw_date_text="10/03/2025",
            )

        return RawListing(
            title=f"Prefeitura de Cidade {index} - SP",
            organization=f"Prefeitura Municipal de Cidade {index}",
            raw_location_text="SP",
            raw_details_text=f"{index % 7 + 1} vagas até R$ {3000 + index},00",
            raw_education_text="Nível Médio / Superior / Professor",
            link=link,
            source=self.source_name,
            logo_url=f"{MOCK_BASE_URL}/logos/{index}.png",
            raw_deadline_text="até 20/05/2025",
        )
