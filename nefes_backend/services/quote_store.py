import re
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING, AsyncMongoClient, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from nefes_backend.core.errors import DuplicateQuoteNumberError, QuoteNotFoundError, QuoteStoreError
from nefes_backend.core.logger import get_logger
from nefes_backend.models.quote import NewQuote, Quote, QuoteStatus

logger = get_logger(__name__)

ALL_STATUSES = "all"
SEARCH_FIELDS = ("name", "phone", "quoteNumber")


def utcnow() -> datetime:
    """Current UTC time at millisecond precision, the resolution BSON dates keep."""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def next_updated_at(previous: datetime, now: datetime) -> datetime:
    return max(now, previous + timedelta(milliseconds=1))


@dataclass
class QuoteFilter:
    status: Optional[str] = None
    search: Optional[str] = None
    created_since: Optional[datetime] = None

    @property
    def status_value(self) -> Optional[str]:
        if not self.status or self.status == ALL_STATUSES:
            return None
        return self.status

    @property
    def search_value(self) -> Optional[str]:
        return self.search or None


def build_mongo_filter(quote_filter: QuoteFilter) -> dict:
    query: dict = {}
    if quote_filter.status_value:
        query["status"] = quote_filter.status_value
    if quote_filter.search_value:
        # Literal substring, not a user-supplied regex
        pattern = re.escape(quote_filter.search_value)
        query["$or"] = [
            {field: {"$regex": pattern, "$options": "i"}} for field in SEARCH_FIELDS
        ]
    if quote_filter.created_since is not None:
        query["createdAt"] = {"$gte": quote_filter.created_since}
    return query


class QuoteStore(ABC):
    """Persistence for quote records. Records are inserted and updated, never deleted."""

    async def connect(self) -> None:
        pass

    async def close(self) -> None:
        pass

    def now(self) -> datetime:
        return utcnow()

    @abstractmethod
    async def ping(self) -> bool: ...

    @abstractmethod
    async def insert(self, new_quote: NewQuote) -> Quote: ...

    @abstractmethod
    async def count(self, quote_filter: Optional[QuoteFilter] = None) -> int: ...

    @abstractmethod
    async def find(
        self, quote_filter: Optional[QuoteFilter] = None, limit: int = 100, skip: int = 0
    ) -> List[Quote]: ...

    @abstractmethod
    async def get(self, quote_id: str) -> Quote: ...

    @abstractmethod
    async def update_status(self, quote_id: str, status: QuoteStatus) -> Quote: ...


class InMemoryQuoteStore(QuoteStore):
    """Dict-backed store for local development and tests."""

    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self._clock = clock
        self._quotes: Dict[str, Quote] = {}

    def now(self) -> datetime:
        return self._clock()

    async def ping(self) -> bool:
        return True

    async def insert(self, new_quote: NewQuote) -> Quote:
        if any(q.quote_number == new_quote.quote_number for q in self._quotes.values()):
            raise DuplicateQuoteNumberError(new_quote.quote_number)
        now = self.now()
        quote = Quote(
            **new_quote.model_dump(),
            id=str(ObjectId()),
            status=QuoteStatus.PENDING,
            created_at=now,
            updated_at=now,
        )
        self._quotes[quote.id] = quote
        return quote.model_copy()

    def _matches(self, quote: Quote, quote_filter: QuoteFilter) -> bool:
        if quote_filter.status_value and quote.status.value != quote_filter.status_value:
            return False
        if quote_filter.search_value:
            needle = quote_filter.search_value.casefold()
            haystack = (quote.name, quote.phone, quote.quote_number)
            if not any(needle in value.casefold() for value in haystack):
                return False
        if quote_filter.created_since is not None and quote.created_at < quote_filter.created_since:
            return False
        return True

    async def count(self, quote_filter: Optional[QuoteFilter] = None) -> int:
        quote_filter = quote_filter or QuoteFilter()
        return sum(1 for q in self._quotes.values() if self._matches(q, quote_filter))

    async def find(
        self, quote_filter: Optional[QuoteFilter] = None, limit: int = 100, skip: int = 0
    ) -> List[Quote]:
        quote_filter = quote_filter or QuoteFilter()
        # Newest first; among equal timestamps the later insert wins
        matching = [q for q in reversed(list(self._quotes.values())) if self._matches(q, quote_filter)]
        matching.sort(key=lambda q: q.created_at, reverse=True)
        return [q.model_copy() for q in matching[skip:skip + limit]]

    def _lookup(self, quote_id: str) -> Quote:
        quote = self._quotes.get(quote_id)
        if quote is None:
            quote = next((q for q in self._quotes.values() if q.quote_number == quote_id), None)
        if quote is None:
            raise QuoteNotFoundError()
        return quote

    async def get(self, quote_id: str) -> Quote:
        return self._lookup(quote_id).model_copy()

    async def update_status(self, quote_id: str, status: QuoteStatus) -> Quote:
        quote = self._lookup(quote_id)
        updated = quote.model_copy(
            update={"status": status, "updated_at": next_updated_at(quote.updated_at, self.now())}
        )
        self._quotes[quote.id] = updated
        return updated.model_copy()


@contextmanager
def _storage_errors(action: str):
    try:
        yield
    except PyMongoError as e:
        logger.error(f"MongoDB error while trying to {action}: {e}")
        raise QuoteStoreError() from e


class MongoQuoteStore(QuoteStore):
    def __init__(
        self,
        uri: str,
        database: str,
        collection: str = "quotes",
        client: Optional[AsyncMongoClient] = None,
    ):
        self._client = client or AsyncMongoClient(
            uri, tz_aware=True, serverSelectionTimeoutMS=5000
        )
        self._collection = self._client[database][collection]

    async def connect(self) -> None:
        try:
            await self._collection.create_index([("quoteNumber", ASCENDING)], unique=True)
            await self._collection.create_index([("createdAt", DESCENDING)])
            logger.info("MongoDB connection established, quote indexes ready")
        except PyMongoError as e:
            # Keep serving; /health reports the database as disconnected
            logger.error(f"MongoDB connection failed: {e}")

    async def close(self) -> None:
        await self._client.close()

    async def ping(self) -> bool:
        try:
            await self._client.admin.command("ping")
            return True
        except PyMongoError:
            return False

    @staticmethod
    def _to_quote(document: dict) -> Quote:
        document = dict(document)
        document["id"] = str(document.pop("_id"))
        return Quote.model_validate(document)

    @staticmethod
    def _id_filter(quote_id: str) -> dict:
        if ObjectId.is_valid(quote_id):
            return {"$or": [{"_id": ObjectId(quote_id)}, {"quoteNumber": quote_id}]}
        return {"quoteNumber": quote_id}

    async def insert(self, new_quote: NewQuote) -> Quote:
        now = utcnow()
        document = {
            **new_quote.model_dump(by_alias=True),
            "status": QuoteStatus.PENDING.value,
            "createdAt": now,
            "updatedAt": now,
        }
        try:
            result = await self._collection.insert_one(document)
        except DuplicateKeyError as e:
            logger.error(f"Quote number collision for {new_quote.quote_number}")
            raise DuplicateQuoteNumberError(new_quote.quote_number) from e
        except PyMongoError as e:
            logger.error(f"MongoDB error while trying to insert a quote: {e}")
            raise QuoteStoreError() from e
        document["_id"] = result.inserted_id
        return self._to_quote(document)

    async def count(self, quote_filter: Optional[QuoteFilter] = None) -> int:
        with _storage_errors("count quotes"):
            return await self._collection.count_documents(build_mongo_filter(quote_filter or QuoteFilter()))

    async def find(
        self, quote_filter: Optional[QuoteFilter] = None, limit: int = 100, skip: int = 0
    ) -> List[Quote]:
        query = build_mongo_filter(quote_filter or QuoteFilter())
        with _storage_errors("list quotes"):
            cursor = self._collection.find(query).sort("createdAt", DESCENDING).skip(skip).limit(limit)
            documents = await cursor.to_list(length=None)
        return [self._to_quote(doc) for doc in documents]

    async def get(self, quote_id: str) -> Quote:
        with _storage_errors("load a quote"):
            document = await self._collection.find_one(self._id_filter(quote_id))
        if document is None:
            raise QuoteNotFoundError()
        return self._to_quote(document)

    async def update_status(self, quote_id: str, status: QuoteStatus) -> Quote:
        # Pipeline update so updatedAt moves forward even on clock skew
        update = [
            {
                "$set": {
                    "status": status.value,
                    "updatedAt": {"$max": [utcnow(), {"$add": ["$updatedAt", 1]}]},
                }
            }
        ]
        with _storage_errors("update a quote"):
            document = await self._collection.find_one_and_update(
                self._id_filter(quote_id), update, return_document=ReturnDocument.AFTER
            )
        if document is None:
            raise QuoteNotFoundError()
        return self._to_quote(document)
