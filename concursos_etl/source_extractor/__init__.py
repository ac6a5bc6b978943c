"""Source Extractor Service.

This service is responsible for fetching listing pages from the public
concursos sites and turning each page into raw listing records.

Main components:
- SourceAdapter: Abstract base class for all site adapters
- RawListing / ArticleListing: Data classes for raw listings
- Fetcher: HTTP GET with bounded exponential-backoff retry
- Adapters: Site-specific implementations (in adapters/ directory)
"""

from .base import ArticleListing, ContentType, RawListing, SourceAdapter
from .fetcher import FetchResult, FetchStatus, Fetcher
from .source_config import ProviderConfig, SourcesConfig, load_sources_config

__all__ = [
    "SourceAdapter",
    "RawListing",
    "ArticleListing",
    "ContentType",
    "Fetcher",
    "FetchResult",
    "FetchStatus",
    "ProviderConfig",
    "SourcesConfig",
    "load_sources_config",
]
__version__ = "0.1.0"
