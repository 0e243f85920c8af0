from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query

from nefes_backend.core.context import AppContext, get_context
from nefes_backend.core.errors import AdminUnauthorizedError
from nefes_backend.core.logger import get_logger
from nefes_backend.core.security import ADMIN_TOKEN, check_admin_password, require_admin
from nefes_backend.models.response import (
    LoginResponse,
    QuoteDetailResponse,
    QuoteListResponse,
    StatsResponse,
    StatusUpdateRequest,
    StatusUpdateResponse,
)
from nefes_backend.services.quote_store import QuoteFilter
from nefes_backend.services.stats_service import collect_stats
from nefes_backend.services.validator import parse_status

admin_router = APIRouter(prefix="/api/admin", tags=["Admin"])
logger = get_logger(__name__)

MAX_PAGE_SIZE = 500


def _submitted_password(payload: Any) -> Optional[str]:
    if isinstance(payload, dict) and isinstance(payload.get("password"), str):
        return payload["password"]
    return None


@admin_router.post("/login", response_model=LoginResponse)
async def login(payload: Any = Body(None), context: AppContext = Depends(get_context)):
    """
    Exchange the admin password for a static acknowledgement token.
    The token grants nothing; every admin call still sends the password.
    """
    if not check_admin_password(_submitted_password(payload), context.settings.ADMIN_PASSWORD):
        logger.warning("Admin login failed")
        raise AdminUnauthorizedError("Wrong password")
    logger.info("Admin login succeeded")
    return LoginResponse(message="Login successful", token=ADMIN_TOKEN)


@admin_router.get("/stats", response_model=StatsResponse, dependencies=[Depends(require_admin)])
async def stats(context: AppContext = Depends(get_context)):
    return StatsResponse(stats=await collect_stats(context.store))


@admin_router.get("/quotes", response_model=QuoteListResponse, dependencies=[Depends(require_admin)])
async def list_quotes(
    status: Optional[str] = Query(None, description="Exact status, or 'all'"),
    search: Optional[str] = Query(None, description="Matches name, phone or quote number"),
    limit: int = Query(100, ge=1, description=f"Capped at {MAX_PAGE_SIZE}"),
    skip: int = Query(0, ge=0),
    context: AppContext = Depends(get_context),
):
    limit = min(limit, MAX_PAGE_SIZE)
    quote_filter = QuoteFilter(status=status, search=search)
    quotes = await context.store.find(quote_filter, limit=limit, skip=skip)
    total = await context.store.count(quote_filter)
    logger.info(f"Returning {len(quotes)} of {total} quotes")
    return QuoteListResponse(quotes=quotes, total=total, count=len(quotes))


@admin_router.get(
    "/quotes/{quote_id}", response_model=QuoteDetailResponse, dependencies=[Depends(require_admin)]
)
async def get_quote(quote_id: str, context: AppContext = Depends(get_context)):
    return QuoteDetailResponse(quote=await context.store.get(quote_id))


@admin_router.put(
    "/quotes/{quote_id}", response_model=StatusUpdateResponse, dependencies=[Depends(require_admin)]
)
async def update_quote_status(
    quote_id: str, payload: StatusUpdateRequest, context: AppContext = Depends(get_context)
):
    status = parse_status(payload.status)
    quote = await context.store.update_status(quote_id, status)
    logger.info(f"Quote {quote.quote_number} moved to {status.value}")
    return StatusUpdateResponse(message="Status updated", quote=quote)
