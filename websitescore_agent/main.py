from __future__ import annotations

import logging
import os
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from dotenv import load_dotenv

from .analyzer import analyze, validate_url
from .errors import AnalysisError
from .models import AnalysisResult, AnalyzeRequest, ErrorResponse, SSLReport
from .security import inspect_ssl

logger = logging.getLogger(__name__)

# Load environment variables from the project root .env for local dev.
_HERE = Path(__file__).resolve()
load_dotenv(_HERE.parents[1] / ".env", override=False)

app = FastAPI(title="WebsiteScore API", version="0.1.0")

_ERROR_RESPONSES = {400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}


def _cors_allow_origins() -> list[str]:
    raw = os.getenv("WEBSITESCORE_CORS_ORIGINS", "").strip()
    if not raw:
        return ["http://localhost:3000"]
    return [o.strip() for o in raw.split(",") if o.strip()]


# Set WEBSITESCORE_CORS_ORIGINS to the deployed frontend origins in production.
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_allow_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AnalysisError)
async def _analysis_error_handler(request: Request, exc: AnalysisError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(RequestValidationError)
async def _request_validation_handler(request: Request, exc: RequestValidationError):
    missing_url = any(
        err.get("loc", ())[-1:] == ("url",) or err.get("type") in ("missing", "model_attributes_type")
        for err in exc.errors()
    )
    if missing_url:
        return JSONResponse(status_code=400, content={"error": "URL is required"})
    return JSONResponse(status_code=400, content={"error": "Invalid request", "details": str(exc.errors())})


@app.get("/health")
def health():
    return {"status": "OK", "message": "WebsiteScore API is running"}


@app.get("/healthz")
def healthz():
    return {"ok": True}


@app.post("/api/analyze", response_model=AnalysisResult, responses=_ERROR_RESPONSES)
def analyze_endpoint(req: AnalyzeRequest):
    try:
        return analyze(req)
    except AnalysisError:
        raise
    except Exception as e:
        logger.exception("Analysis error for %s", req.url)
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to analyze the website", "details": str(e)},
        )


@app.post("/api/analyze/ssl", response_model=SSLReport, responses=_ERROR_RESPONSES)
def ssl_endpoint(req: AnalyzeRequest):
    url = validate_url(req.url)
    try:
        return inspect_ssl(url)
    except Exception as e:
        logger.exception("SSL inspection error for %s", url)
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to inspect the SSL certificate", "details": str(e)},
        )
