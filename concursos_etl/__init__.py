"""Concursos-ETL Services Package.

This package contains the batch scrapers that feed the concursos search app:
- source_extractor: Fetches listing pages from the public sites and parses them
- normalizer: Extracts structured fields from free-form listing text
- images: Resolves organization logos into blob storage
- reconciler: Upserts listings and removes stale rows
- orchestrator: Drives one complete run per content type
- api: HTTP trigger for scheduled or on-demand runs
"""

__version__ = "0.1.0"
