from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError, ServerSelectionTimeoutError

from nefes_backend.core.errors import (
    DuplicateQuoteNumberError,
    QuoteNotFoundError,
    QuoteStoreError,
)
from nefes_backend.models.quote import NewQuote, QuoteStatus
from nefes_backend.services.quote_store import MongoQuoteStore, QuoteFilter

CREATED = datetime(2026, 10, 15, 9, 30, tzinfo=timezone.utc)


def stored_document(**overrides) -> dict:
    document = {
        "_id": ObjectId(),
        "quoteNumber": "NF00000001",
        "name": "Ayşe Yılmaz",
        "phone": "05321234567",
        "email": None,
        "service": "evden-eve",
        "from": "Kadıköy",
        "to": "Çankaya",
        "message": None,
        "status": "pending",
        "createdAt": CREATED,
        "updatedAt": CREATED,
    }
    document.update(overrides)
    return document


class FakeCursor:
    def __init__(self, documents, error=None):
        self.documents = documents
        self.error = error
        self.calls = []

    def sort(self, *args):
        self.calls.append(("sort", args))
        return self

    def skip(self, value):
        self.calls.append(("skip", value))
        return self

    def limit(self, value):
        self.calls.append(("limit", value))
        return self

    async def to_list(self, length=None):
        if self.error:
            raise self.error
        return list(self.documents)


class FakeCollection:
    """Records the calls the store makes; raises `error` from every operation when set."""

    def __init__(self, error=None, found=None):
        self.error = error
        self.found = found
        self.calls = []
        self.cursor = FakeCursor([] if found is None else [found], error)

    def _record(self, name, *args, **kwargs):
        self.calls.append((name, args, kwargs))
        if self.error:
            raise self.error

    async def create_index(self, keys, **kwargs):
        self._record("create_index", keys, **kwargs)

    async def insert_one(self, document):
        self._record("insert_one", document)
        return SimpleNamespace(inserted_id=ObjectId())

    async def count_documents(self, query):
        self._record("count_documents", query)
        return 7

    def find(self, query):
        self.calls.append(("find", (query,), {}))
        return self.cursor

    async def find_one(self, query):
        self._record("find_one", query)
        return self.found

    async def find_one_and_update(self, query, update, **kwargs):
        self._record("find_one_and_update", query, update, **kwargs)
        return self.found


class FakeClient:
    def __init__(self, collection):
        self.collection = collection
        self.closed = False
        self.admin = SimpleNamespace(command=self._command)

    async def _command(self, name):
        if self.collection.error:
            raise self.collection.error
        return {"ok": 1}

    def __getitem__(self, database):
        return {"quotes": self.collection}

    async def close(self):
        self.closed = True


def make_store(collection: FakeCollection) -> MongoQuoteStore:
    return MongoQuoteStore("mongodb://unused", "nefes", client=FakeClient(collection))


def new_quote() -> NewQuote:
    return NewQuote(
        quote_number="NF00000001",
        name="Ayşe Yılmaz",
        phone="05321234567",
        service="evden-eve",
        origin="Kadıköy",
        destination="Çankaya",
    )


@pytest.mark.asyncio
async def test_insert_writes_wire_document_with_pending_status():
    collection = FakeCollection()

    quote = await make_store(collection).insert(new_quote())

    name, (document,), _ = collection.calls[0]
    assert name == "insert_one"
    assert document["quoteNumber"] == "NF00000001"
    assert document["from"] == "Kadıköy"
    assert document["status"] == "pending"
    assert document["createdAt"] == document["updatedAt"]
    assert quote.status is QuoteStatus.PENDING
    assert quote.id == str(document["_id"])


@pytest.mark.asyncio
async def test_insert_duplicate_key_becomes_duplicate_quote_number_error():
    store = make_store(FakeCollection(error=DuplicateKeyError("E11000 duplicate key error")))

    with pytest.raises(DuplicateQuoteNumberError) as excinfo:
        await store.insert(new_quote())

    assert excinfo.value.quote_number == "NF00000001"
    assert excinfo.value.status_code == 500


@pytest.mark.asyncio
async def test_insert_storage_failure_becomes_store_error():
    store = make_store(FakeCollection(error=PyMongoError("connection reset")))

    with pytest.raises(QuoteStoreError) as excinfo:
        await store.insert(new_quote())

    assert not isinstance(excinfo.value, DuplicateQuoteNumberError)
    assert excinfo.value.status_code == 500


@pytest.mark.asyncio
async def test_update_status_sends_monotonic_pipeline_update():
    updated = stored_document(status="completed", updatedAt=CREATED.replace(minute=31))
    collection = FakeCollection(found=updated)

    quote = await make_store(collection).update_status("NF00000001", QuoteStatus.COMPLETED)

    name, (query, update), kwargs = collection.calls[0]
    assert name == "find_one_and_update"
    assert query == {"quoteNumber": "NF00000001"}
    assert kwargs == {"return_document": ReturnDocument.AFTER}
    stage = update[0]["$set"]
    assert len(update) == 1
    assert stage["status"] == "completed"
    now, bumped = stage["updatedAt"]["$max"]
    assert isinstance(now, datetime) and now.tzinfo is not None
    assert bumped == {"$add": ["$updatedAt", 1]}
    assert quote.status is QuoteStatus.COMPLETED
    assert quote.updated_at == updated["updatedAt"]


@pytest.mark.asyncio
async def test_update_status_of_unknown_quote_is_not_found():
    store = make_store(FakeCollection(found=None))

    with pytest.raises(QuoteNotFoundError) as excinfo:
        await store.update_status("NF00000000", QuoteStatus.CONTACTED)

    assert excinfo.value.status_code == 404


@pytest.mark.asyncio
async def test_update_status_storage_failure_becomes_store_error():
    store = make_store(FakeCollection(error=PyMongoError("not primary")))

    with pytest.raises(QuoteStoreError) as excinfo:
        await store.update_status("NF00000001", QuoteStatus.QUOTED)

    assert excinfo.value.status_code == 500


@pytest.mark.asyncio
async def test_get_by_storage_id_and_missing_quote():
    document = stored_document()
    found = make_store(FakeCollection(found=document))
    missing = make_store(FakeCollection(found=None))

    quote = await found.get(str(document["_id"]))

    assert quote.quote_number == "NF00000001"
    assert quote.origin == "Kadıköy"
    with pytest.raises(QuoteNotFoundError):
        await missing.get("NF00000000")


@pytest.mark.asyncio
async def test_count_and_find_pass_filter_and_paging():
    collection = FakeCollection(found=stored_document())
    store = make_store(collection)
    quote_filter = QuoteFilter(status="pending")

    total = await store.count(quote_filter)
    quotes = await store.find(quote_filter, limit=20, skip=40)

    assert total == 7
    assert [q.quote_number for q in quotes] == ["NF00000001"]
    assert collection.calls[0] == ("count_documents", ({"status": "pending"},), {})
    assert collection.calls[1] == ("find", ({"status": "pending"},), {})
    assert collection.cursor.calls == [("sort", ("createdAt", -1)), ("skip", 40), ("limit", 20)]


@pytest.mark.asyncio
@pytest.mark.parametrize("operation", ["count", "find"])
async def test_read_storage_failures_become_store_errors(operation):
    store = make_store(FakeCollection(error=PyMongoError("timed out")))

    with pytest.raises(QuoteStoreError):
        await getattr(store, operation)(QuoteFilter())


@pytest.mark.asyncio
async def test_connect_failure_is_logged_and_ping_reports_down():
    collection = FakeCollection(error=ServerSelectionTimeoutError("no servers"))
    store = make_store(collection)

    await store.connect()

    assert collection.calls[0][0] == "create_index"
    assert await store.ping() is False


@pytest.mark.asyncio
async def test_connect_creates_indexes_and_close_closes_client():
    collection = FakeCollection()
    client = FakeClient(collection)
    store = MongoQuoteStore("mongodb://unused", "nefes", client=client)

    await store.connect()
    await store.close()

    assert [call[2] for call in collection.calls] == [{"unique": True}, {}]
    assert await store.ping() is True
    assert client.closed is True
