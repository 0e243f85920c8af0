import time
from dataclasses import dataclass, field

from fastapi import Request

from nefes_backend.core.config import Settings
from nefes_backend.core.logger import get_logger
from nefes_backend.services.email_service import Notifier
from nefes_backend.services.quote_store import InMemoryQuoteStore, MongoQuoteStore, QuoteStore

logger = get_logger(__name__)


@dataclass
class AppContext:
    """Everything a request handler needs; built at startup, closed at shutdown."""

    settings: Settings
    store: QuoteStore
    notifier: Notifier
    started_at: float = field(default_factory=time.monotonic)

    async def start(self) -> None:
        await self.store.connect()

    async def aclose(self) -> None:
        await self.notifier.aclose()
        await self.store.close()

    @property
    def uptime(self) -> float:
        return time.monotonic() - self.started_at

    async def database_connected(self) -> bool:
        return await self.store.ping()


def build_store(settings: Settings) -> QuoteStore:
    if not settings.MONGODB_URI:
        logger.warning("MONGODB_URI not set; quotes are kept in memory and lost on restart")
        return InMemoryQuoteStore()
    return MongoQuoteStore(
        settings.MONGODB_URI,
        database=settings.MONGODB_DATABASE,
        collection=settings.MONGODB_COLLECTION,
    )


def build_context(settings: Settings) -> AppContext:
    return AppContext(
        settings=settings,
        store=build_store(settings),
        notifier=Notifier.from_settings(settings),
    )


def get_context(request: Request) -> AppContext:
    return request.app.state.context
