"""
Concursos Scraper DAGs

One DAG per content type, each running a single scraper task:
- concursos_open_postings: PCI Concursos regions -> job_openings
  (upsert, logo upload, stale deletion)
- concursos_predicted_postings: PCI + QConcursos -> predicted_openings
- concursos_news: PCI + QConcursos + JC Concursos -> news_articles

`max_active_runs=1` keeps runs against the same table from overlapping;
the scrapers themselves take no lock.

Schedule: America/Sao_Paulo time
"""
from datetime import datetime, timedelta

from airflow import DAG
from airflow.operators.python import PythonOperator
import pendulum


# -----------------------------------------------------------------------------
# Configuration
# -----------------------------------------------------------------------------

TZ = pendulum.timezone("America/Sao_Paulo")

default_args = {
    "owner": "concursos-etl",
    "depends_on_past": False,
    "email_on_failure": False,
    "email_on_retry": False,
    "retries": 1,
    "retry_delay": timedelta(minutes=15),
}

SCHEDULES = {
    "open_postings": "0 6 * * *",
    "predicted_postings": "30 6 * * *",
    "news": "0 */3 * * *",
}


# -----------------------------------------------------------------------------
# Task Callable Functions
# -----------------------------------------------------------------------------

def run_scraper(content_type: str, **context):
    """
    Run one scraping pass and push its summary to XCom.

    Any fatal error (safety threshold, database, cancellation) fails the task.
    """
    import sys

    # Add project root to path so we can import the package
    project_root = '/opt/airflow'
    if project_root not in sys.path:
        sys.path.insert(0, project_root)

    from concursos_etl.orchestrator.main import run_pipeline
    from concursos_etl.source_extractor.base import ContentType

    print("=" * 60)
    print(f"SCRAPER TASK - Starting {content_type}")
    print("=" * 60)

    stats = run_pipeline(ContentType(content_type))

    print("=" * 60)
    print(f"SCRAPER TASK - {content_type} completed")
    print(f"  - Run id: {stats.run_id}")
    print(f"  - Raw listings: {stats.raw_listing_count}")
    print(f"  - Upserted: {stats.result.upserted}")
    print(f"  - Logos uploaded: {stats.result.logos_uploaded}")
    print(f"  - Stale deleted: {stats.result.stale_deleted}")
    print("=" * 60)

    return {
        "run_id": stats.run_id,
        "message": stats.message,
        "raw_listings": stats.raw_listing_count,
    }


# -----------------------------------------------------------------------------
# DAG Definitions
# -----------------------------------------------------------------------------

for content_type, schedule in SCHEDULES.items():
    with DAG(
        dag_id=f"concursos_{content_type}",
        default_args=default_args,
        description=f"Scrape {content_type.replace('_', ' ')} into the concursos tables",
        schedule=schedule,
        start_date=datetime(2025, 1, 1, tzinfo=TZ),
        catchup=False,
        max_active_runs=1,  # Runs against the same table must never overlap
        tags=["concursos", "scraper", content_type],
    ) as dag:
        PythonOperator(
            task_id=f"scrape_{content_type}",
            python_callable=run_scraper,
            op_kwargs={"content_type": content_type},
            execution_timeout=timedelta(hours=1),
        )

    globals()[dag.dag_id] = dag
