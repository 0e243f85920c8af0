from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class QuoteStatus(str, Enum):
    PENDING = "pending"
    CONTACTED = "contacted"
    QUOTED = "quoted"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class QuoteSubmission(BaseModel):
    """Raw body of the public form. Everything is optional here; the validator decides."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    service: Optional[str] = None
    origin: Optional[str] = Field(None, alias="from")
    destination: Optional[str] = Field(None, alias="to")
    message: Optional[str] = None


class QuoteDraft(BaseModel):
    """A submission that passed validation, phone already normalized."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    phone: str
    email: Optional[str] = None
    service: str
    origin: str = Field(..., alias="from")
    destination: str = Field(..., alias="to")
    message: Optional[str] = None


class NewQuote(QuoteDraft):
    quote_number: str = Field(..., alias="quoteNumber")


class Quote(NewQuote):
    id: str
    status: QuoteStatus = QuoteStatus.PENDING
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: datetime = Field(..., alias="updatedAt")
