from __future__ import annotations

from contextlib import asynccontextmanager
import json
import logging
import os
import time
import uuid

from fastapi import Depends, FastAPI, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
import polars as pl

from yearbook.core.config import settings
from yearbook.core.errors import SchoolNotFoundError, UnknownPresetError
from yearbook.schemas.schools import (
    Currency,
    FilterMetadata,
    PriceListResponse,
    SchoolRecord,
    SchoolSearchMeta,
    SchoolSearchRequest,
    SchoolSearchResponse,
    VerificationIssued,
    VerificationRequest,
    VerificationResultOut,
)
from yearbook.services.currency import CurrencyConfig, build_price_list
from yearbook.services.email_sender import EmailSender, build_email_sender
from yearbook.services.exchange_rates import ExchangeRateProvider
from yearbook.services.filtering_engine import DisplayLimits, get_preset, search_schools
from yearbook.services.meta_service import get_filter_metadata
from yearbook.services.school_loader import get_schools_index
from yearbook.services.verification import EmailVerifier, build_verifier

from yearbook.reliability.health_check import run_readiness_check, ReadinessResponse
from yearbook.reliability.logger import service_logger

logging.basicConfig(level=logging.INFO, format="%(levelname)s  %(name)s  %(message)s")

# Strategies are picked once from configuration; misconfigured email fails here.
email_sender: EmailSender = build_email_sender(settings)
email_verifier: EmailVerifier = build_verifier(settings, email_sender)
exchange_rate_provider = ExchangeRateProvider()


def get_email_verifier() -> EmailVerifier:
    return email_verifier


def get_exchange_rate_provider() -> ExchangeRateProvider:
    return exchange_rate_provider


@asynccontextmanager
async def lifespan(_app: FastAPI):
    index = get_schools_index()
    service_logger.logger.info(
        f"Yearbook API starting with {index.height} schools; email sender: {email_sender.name}"
    )
    yield
    await exchange_rate_provider.aclose()


app = FastAPI(title="Yearbook School Service", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_api_requests(request: Request, call_next):
    start_time = time.perf_counter()
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id

    try:
        response: Response = await call_next(request)
    except Exception as exc:
        service_logger.log_error(
            "Unhandled error",
            error=exc,
            request_id=request_id,
            extra={"path": request.url.path},
        )
        response = JSONResponse(status_code=500, content={"message": "Internal Server Error"})
    process_time = time.perf_counter() - start_time

    if request.url.path.startswith("/api"):
        body = None
        if response.headers.get("content-type", "").startswith("application/json"):
            # Buffer the streamed body so it can be logged and re-sent.
            raw = b"".join([chunk async for chunk in response.body_iterator])
            try:
                body = json.loads(raw) if raw else None
            except ValueError:
                body = None
            buffered = Response(content=raw, status_code=response.status_code)
            # Keep repeated headers (e.g. set-cookie) intact.
            buffered.raw_headers = list(response.headers.raw)
            response = buffered
        service_logger.log_request(
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=process_time * 1000,
            request_id=request_id,
            body=body,
        )

    response.headers["X-Process-Time"] = str(process_time)
    response.headers["X-Request-ID"] = request_id
    return response


@app.exception_handler(UnknownPresetError)
async def unknown_preset_handler(_request: Request, exc: UnknownPresetError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"message": str(exc)})


@app.exception_handler(SchoolNotFoundError)
async def school_not_found_handler(_request: Request, exc: SchoolNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"message": str(exc)})


@app.get("/health", tags=["meta"])
def health() -> dict:
    return {"status": "ok"}


@app.get("/health/live", tags=["meta"])
def health_live() -> dict:
    return {"status": "ok"}


@app.get("/health/ready", response_model=ReadinessResponse, tags=["meta"])
def health_ready() -> ReadinessResponse:
    return run_readiness_check()


@app.get("/api/v1/meta/filters", response_model=FilterMetadata, tags=["meta"])
def meta_filters() -> dict:
    """Returns filter options (countries, founding decades, presets)."""
    return get_filter_metadata()


def _to_records(df: pl.DataFrame) -> list[SchoolRecord]:
    return [SchoolRecord.model_validate(row) for row in df.to_dicts()]


@app.get("/api/v1/schools", response_model=list[SchoolRecord], tags=["schools"])
def list_schools() -> list[SchoolRecord]:
    return _to_records(get_schools_index())


@app.post("/api/v1/schools/reload", tags=["schools"])
def reload_schools() -> dict:
    index = get_schools_index(force_reload=True)
    return {"schools": index.height}


@app.get("/api/v1/schools/{school_id}", response_model=SchoolRecord, tags=["schools"])
def get_school(school_id: str) -> SchoolRecord:
    match = get_schools_index().filter(pl.col("id") == school_id)
    if match.is_empty():
        raise SchoolNotFoundError(school_id)
    return _to_records(match.head(1))[0]


@app.post("/api/v1/schools/search", response_model=SchoolSearchResponse, tags=["schools"])
def search(body: SchoolSearchRequest) -> SchoolSearchResponse:
    preset = get_preset(body.preset)
    limits = None
    if body.limits is not None:
        limits = DisplayLimits(
            no_query_limit=body.limits.no_query_limit,
            query_limit=body.limits.query_limit,
        )

    shown, total = search_schools(get_schools_index(), body.criteria, preset, limits)
    schools = _to_records(shown)
    return SchoolSearchResponse(
        criteria=body.criteria,
        preset=preset.name,
        meta=SchoolSearchMeta(total_matches=total, returned=len(schools)),
        schools=schools,
    )


@app.get("/api/v1/pricing", response_model=PriceListResponse, tags=["pricing"])
async def pricing(
    currency: Currency = Query(default=settings.DEFAULT_CURRENCY),
    provider: ExchangeRateProvider = Depends(get_exchange_rate_provider),
) -> PriceListResponse:
    rate = await provider.get_usd_to_ngn() if currency == "NGN" else 1.0
    config = CurrencyConfig(currency=currency, exchange_rate=rate)
    return PriceListResponse(
        currency=currency,
        exchange_rate=rate,
        prices=build_price_list(config),
    )


@app.post("/api/v1/auth/verification", response_model=VerificationIssued, tags=["auth"])
async def request_verification(
    body: VerificationRequest,
    verifier: EmailVerifier = Depends(get_email_verifier),
) -> VerificationIssued:
    issued = await verifier.issue(body.email)
    if issued.token is None:
        message = "Email verification is disabled; the account is already verified."
    elif issued.email_sent:
        message = "Verification email sent."
    else:
        message = "Verification email could not be sent. Please try again later."
    return VerificationIssued(email=body.email, email_sent=issued.email_sent, message=message)


@app.get("/api/verify-email/{token}", response_model=VerificationResultOut, tags=["auth"])
def verify_email(
    token: str,
    verifier: EmailVerifier = Depends(get_email_verifier),
):
    result = verifier.verify(token)
    payload = VerificationResultOut(success=result.success, message=result.message)
    if not result.success:
        return JSONResponse(status_code=400, content=payload.model_dump())
    return payload


# Serve the built front-end last so it never shadows the API routes.
frontend_path = os.path.join(os.getcwd(), "frontend", "dist")
if os.path.exists(frontend_path):
    app.mount("/", StaticFiles(directory=frontend_path, html=True), name="static")
