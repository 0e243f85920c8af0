from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from nefes_backend.models.quote import Quote


class BannerResponse(BaseModel):
    status: str = "success"
    message: str
    version: str
    database: str
    endpoints: Dict[str, str]
    timestamp: datetime


class StatusCheckResponse(BaseModel):
    status: str = "success"
    message: str
    database: str
    timestamp: datetime


class HealthResponse(BaseModel):
    status: str = "healthy"
    database: str
    uptime: float
    timestamp: datetime


class QuoteSubmissionResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: str = "success"
    message: str
    quote_number: str = Field(..., alias="quoteNumber")
    estimated_response: str = Field(..., alias="estimatedResponse")


class LoginResponse(BaseModel):
    status: str = "success"
    message: str
    token: str


class QuoteStats(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total: int
    pending: int
    contacted: int
    quoted: int
    completed: int
    cancelled: int
    this_month: int = Field(..., alias="thisMonth")


class StatsResponse(BaseModel):
    status: str = "success"
    stats: QuoteStats


class QuoteListResponse(BaseModel):
    status: str = "success"
    quotes: List[Quote]
    total: int
    count: int


class QuoteDetailResponse(BaseModel):
    status: str = "success"
    quote: Quote


class StatusUpdateRequest(BaseModel):
    status: Optional[str] = None


class StatusUpdateResponse(BaseModel):
    status: str = "success"
    message: str
    quote: Quote
