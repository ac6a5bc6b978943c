"""HTTP trigger for the scrapers."""
