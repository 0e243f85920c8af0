from datetime import datetime, timezone
from typing import Optional

from nefes_backend.models.quote import QuoteStatus
from nefes_backend.models.response import QuoteStats
from nefes_backend.services.quote_store import QuoteFilter, QuoteStore


def start_of_month(now: datetime) -> datetime:
    now = now.astimezone(timezone.utc)
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


async def collect_stats(store: QuoteStore, now: Optional[datetime] = None) -> QuoteStats:
    """Dashboard counters: overall total, one per status, and this calendar month (UTC)."""
    per_status = {
        status.value: await store.count(QuoteFilter(status=status.value))
        for status in QuoteStatus
    }
    this_month = await store.count(QuoteFilter(created_since=start_of_month(now or store.now())))
    return QuoteStats(total=await store.count(), this_month=this_month, **per_status)
