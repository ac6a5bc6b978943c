"""
HTTP trigger for scraping runs.

Each content type is exposed at /scrape/{content_type} and accepts any
method, so schedulers and the web app can call it without a body. OPTIONS
answers the CORS preflight for any path without running anything.

Run locally with:
    uvicorn concursos_etl.api.main:app --port 8000
"""

import logging
import os

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from ..orchestrator.main import LOG_FORMAT, run_pipeline
from ..source_extractor.base import ContentType

load_dotenv()

logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}

app = FastAPI(title="Concursos ETL", version="0.1.0")


@app.get("/healthz")
def healthz():
    return {"status": "ok"}


@app.api_route(
    "/scrape/{content_type}",
    methods=["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
)
def scrape(content_type: str, request: Request):
    if request.method == "OPTIONS":
        return PlainTextResponse("ok", headers=CORS_HEADERS)

    try:
        selected = ContentType(content_type)
    except ValueError:
        return JSONResponse(
            status_code=404,
            content={"error": f"Unknown content type '{content_type}'"},
            headers=CORS_HEADERS,
        )

    logger.info("Scrape triggered", extra={"content_type": selected.value, "method": request.method})
    try:
        stats = run_pipeline(selected, config_path=os.getenv("CONCURSOS_SOURCES_CONFIG"))
    except Exception as e:
        logger.error(
            "Scrape run failed",
            extra={"content_type": selected.value, "error": str(e), "error_type": type(e).__name__},
            exc_info=True,
        )
        return JSONResponse(status_code=500, content={"error": str(e)}, headers=CORS_HEADERS)

    return JSONResponse(status_code=200, content={"message": stats.message}, headers=CORS_HEADERS)
