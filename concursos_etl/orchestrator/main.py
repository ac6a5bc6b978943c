"""
Scraper Orchestrator - Main Entry Point

This is the command-line interface for one scraping run.
It can be called directly from the terminal or from Airflow tasks.

Usage:
    python -m concursos_etl.orchestrator.main --content-type TYPE [OPTIONS]

Options:
    --content-type TEXT   open_postings, predicted_postings or news
    --config PATH         Sources configuration file (default: config/sources.yml)
    --dry-run             Scrape and normalize without writing anything
    --verbose             Enable debug logging
    --help                Show this message and exit

Examples:
    # Refresh the open postings table:
    python -m concursos_etl.orchestrator.main --content-type open_postings

    # See what the news scraper would write:
    python -m concursos_etl.orchestrator.main --content-type news --dry-run --verbose

Exit Codes:
    0: Success
    2: Fatal error (database, safety threshold, cancelled run, etc.)
    130: Interrupted by user
"""

import argparse
import logging
import sys
import threading
from typing import Optional

from dotenv import load_dotenv

from ..images.blob_storage import SupabaseBlobStorage
from ..images.resolver import ImageResolver
from ..reconciler.db_operations import DatabaseError, ListingDB
from ..reconciler.reconcile import Reconciler, SafetyThresholdError
from ..source_extractor.base import ContentType
from ..source_extractor.fetcher import Fetcher
from ..source_extractor.source_config import load_sources_config
from .runner import RunCancelledError, RunStats, new_run_id, run_content_type
from .seen_links import SeenLinks

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.INFO,
        format=LOG_FORMAT,
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.debug("Debug logging enabled")


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        description='Scrape one content type into its table',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )

    parser.add_argument(
        '--content-type',
        required=True,
        choices=[content_type.value for content_type in ContentType],
        dest='content_type',
        help='Which pipeline to run'
    )

    parser.add_argument(
        '--config',
        type=str,
        default=None,
        help='Path to the sources configuration file'
    )

    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Scrape and normalize without writing to the database or bucket',
        dest='dry_run'
    )

    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable debug logging'
    )

    return parser.parse_args(argv)


def run_pipeline(
    content_type: ContentType,
    config_path: Optional[str] = None,
    dry_run: bool = False,
    cancel_event: Optional[threading.Event] = None,
) -> RunStats:
    """
    Wire the production collaborators and run one content type.

    Raises:
        SafetyThresholdError, DatabaseError, RunCancelledError: Fatal run errors
        ValueError, FileNotFoundError: Invalid configuration or environment
    """
    config = load_sources_config(config_path)
    settings = config.pipeline.get(content_type)
    if settings is None:
        raise ValueError(f"No pipeline settings for content type '{content_type.value}'")

    fetcher = Fetcher(
        max_attempts=settings.max_retries,
        initial_delay=settings.initial_retry_delay_seconds,
        cancel_event=cancel_event,
    )
    run_id = new_run_id()

    store = None if dry_run else ListingDB()
    seen = SeenLinks()
    if store is not None and settings.preload_existing_links:
        seen = SeenLinks(store.fetch_existing_links(settings.table))

    image_resolver = None
    if store is not None and content_type is ContentType.OPEN_POSTINGS:
        image_resolver = ImageResolver(fetcher, SupabaseBlobStorage(), store, table=settings.table)

    reconciler = Reconciler(
        store=store,
        settings=settings,
        content_type=content_type,
        run_id=run_id,
        image_resolver=image_resolver,
        dry_run=dry_run,
    )
    return run_content_type(content_type, config, reconciler, fetcher, seen=seen)


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point for a scraping run.

    Returns:
        Exit code (0 = success, 2 = fatal error, 130 = interrupted)
    """
    args = parse_args(argv)
    configure_logging(args.verbose)

    try:
        stats = run_pipeline(
            ContentType(args.content_type),
            config_path=args.config,
            dry_run=args.dry_run,
        )
        logger.info(
            "Scraping run completed",
            extra={'content_type': args.content_type, 'run_id': stats.run_id, 'summary': stats.message}
        )
        print(stats.message)
        return 0  # Success

    except SafetyThresholdError as e:
        logger.error(f"Safety threshold violated: {e}")
        return 2  # Fatal error

    except DatabaseError as e:
        logger.error(f"Database error: {e}")
        return 2  # Fatal error

    except RunCancelledError as e:
        logger.error(f"Run cancelled: {e}")
        return 2  # Fatal error

    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        return 130  # Standard Unix exit code for SIGINT

    except Exception as e:
        logger.error(
            "Unexpected fatal error",
            extra={
                'error': str(e),
                'error_type': type(e).__name__,
            },
            exc_info=True
        )
        return 2  # Fatal error


if __name__ == '__main__':
    sys.exit(main())
