from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from nefes_backend.core.context import AppContext, get_context
from nefes_backend.core.logger import get_logger
from nefes_backend.models.quote import NewQuote, QuoteSubmission
from nefes_backend.models.response import (
    BannerResponse,
    HealthResponse,
    StatusCheckResponse,
    QuoteSubmissionResponse,
)
from nefes_backend.services.quote_number import generate_quote_number
from nefes_backend.services.validator import validate_submission

public_router = APIRouter(tags=["Public"])
logger = get_logger(__name__)

ENDPOINTS = {
    "home": "GET /",
    "test": "GET /api/test",
    "quoteRequest": "POST /api/quote-request",
    "adminLogin": "POST /api/admin/login",
    "adminStats": "GET /api/admin/stats",
    "adminQuotes": "GET /api/admin/quotes",
    "adminQuote": "GET /api/admin/quotes/{id}",
    "adminQuoteUpdate": "PUT /api/admin/quotes/{id}",
    "health": "GET /health",
}


def _database_label(connected: bool) -> str:
    return "connected" if connected else "disconnected"


@public_router.get("/", response_model=BannerResponse)
async def banner(context: AppContext = Depends(get_context)):
    settings = context.settings
    return BannerResponse(
        message=f"{settings.APP_NAME} is running",
        version=settings.APP_VERSION,
        database=_database_label(await context.database_connected()),
        endpoints=ENDPOINTS,
        timestamp=datetime.now(timezone.utc),
    )


@public_router.get("/api/test", response_model=StatusCheckResponse)
async def status_check(context: AppContext = Depends(get_context)):
    return StatusCheckResponse(
        message=f"{context.settings.APP_NAME} is running",
        database=_database_label(await context.database_connected()),
        timestamp=datetime.now(timezone.utc),
    )


@public_router.get("/health", response_model=HealthResponse)
async def health(context: AppContext = Depends(get_context)):
    return HealthResponse(
        database=_database_label(await context.database_connected()),
        uptime=round(context.uptime, 3),
        timestamp=datetime.now(timezone.utc),
    )


@public_router.post("/api/quote-request", response_model=QuoteSubmissionResponse)
async def submit_quote_request(
    payload: QuoteSubmission, context: AppContext = Depends(get_context)
):
    """
    Validate and store a quote request, then email a confirmation.

    Nothing is written when validation fails. The confirmation email is
    best-effort: its failure is logged and the request still succeeds.
    """
    logger.info("New quote request received")
    draft = validate_submission(payload)

    new_quote = NewQuote(quote_number=generate_quote_number(), **draft.model_dump())
    quote = await context.store.insert(new_quote)
    logger.info(f"Quote saved: {quote.quote_number}")

    await context.notifier.send_confirmation(quote)

    return QuoteSubmissionResponse(
        message="Your request has been received!",
        quote_number=quote.quote_number,
        estimated_response=context.settings.ESTIMATED_RESPONSE,
    )
