"""Source Adapter Base Class.

This module defines the abstract interface that all site adapters must implement.
Adapters are interchangeable from the orchestrator's point of view: each one knows
how to build the URL of a page and how to turn that page's HTML into listings.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union
from urllib.parse import urljoin

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)


class ContentType(str, Enum):
    """The three kinds of content the scrapers ingest."""

    OPEN_POSTINGS = "open_postings"
    PREDICTED_POSTINGS = "predicted_postings"
    NEWS = "news"


@dataclass
class RawListing:
    """Raw open posting scraped from a listing page.

    Ephemeral: produced by an adapter and normalized within the same run.
    """

    title: str
    organization: str
    raw_location_text: str
    raw_details_text: str  # Salary/vacancy free text
    link: str  # Natural key
    source: str
    raw_education_text: str = "Não informada"  # Slash-delimited roles/levels
    logo_url: Optional[str] = None
    raw_deadline_text: Optional[str] = None


@dataclass
class ArticleListing:
    """Raw news or predicted-posting entry scraped from a listing page."""

    title: str
    link: str  # Natural key
    source: str
    raw_date_text: Optional[str] = None


Listing = Union[RawListing, ArticleListing]


class SourceAdapter(ABC):
    """Abstract base class for listing-page adapters.

    Usage:
        class MySiteAdapter(SourceAdapter):
            def __init__(self):
                super().__init__(source_name="My Site", base_url="https://example.com")

            def page_url(self, page_number):
                return f"{self.base_url}/lista?page={page_number}"

            def parse_document(self, soup, page_url):
                return [ArticleListing(...) for item in soup.select("article")]
    """

    # Upper bound on pages this source exposes; None defers to the run setting
    max_pages: Optional[int] = None

    def __init__(self, source_name: str, base_url: str):
        """Initialize the adapter.

        Args:
            source_name: Human-readable source label stored with each row
                        (e.g., "PCI Concursos")
            base_url: Site root used to resolve relative links
        """
        self.source_name = source_name
        self.base_url = base_url

    @abstractmethod
    def page_url(self, page_number: int) -> str:
        """Return the URL of a 1-based listing page."""

    @abstractmethod
    def parse_document(self, soup: BeautifulSoup, page_url: str) -> list[Listing]:
        """Extract listings from a parsed page.

        Implementations skip (and log) individual malformed entries; an
        exception raised here means the whole page could not be parsed.
        """

    def parse_page(self, html: str, page_number: int) -> list[Listing]:
        """Parse the HTML body of a listing page into listings.

        Raises:
            ValueError: If the body is empty
        """
        if not html or not html.strip():
            raise ValueError(f"Empty document for page {page_number} of {self.source_name}")

        soup = BeautifulSoup(html, "html.parser")
        return self.parse_document(soup, self.page_url(page_number))

    def resolve_link(self, href: str, page_url: Optional[str] = None) -> str:
        """Resolve a possibly-relative href into an absolute link."""
        return urljoin(page_url or self.base_url, href)

    def __repr__(self) -> str:
        """String representation of the adapter."""
        return f"{self.__class__.__name__}(source='{self.source_name}')"
