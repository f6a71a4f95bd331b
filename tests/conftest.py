"""
Shared pytest fixtures: in-memory SQLite, FastAPI TestClient and a fake
document-analysis vendor built on ``httpx.MockTransport``.
"""
import os
import tempfile

_DATA_DIR = tempfile.mkdtemp(prefix="receipt-tracker-tests-")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("DATA_DIR", _DATA_DIR)
os.environ.setdefault("UPLOAD_DIR", os.path.join(_DATA_DIR, "uploads"))

import httpx  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from receipt_tracker.database import Base, get_db  # noqa: E402
from receipt_tracker.dependencies import get_blob_store, get_workflow  # noqa: E402
from receipt_tracker.main import app  # noqa: E402
from receipt_tracker.models import ReceiptModel  # noqa: E402,F401  register model
from receipt_tracker.pipeline import build_workflow  # noqa: E402
from receipt_tracker.pipeline.storage import LocalBlobStore  # noqa: E402
from receipt_tracker.schemas import AnalysisConfig  # noqa: E402

# StaticPool ensures all connections share the same in-memory database
_ENGINE = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
_Session = sessionmaker(autocommit=False, autoflush=False, bind=_ENGINE)

VENDOR_ENDPOINT = "https://vendor.test"
OPERATION_URL = f"{VENDOR_ENDPOINT}/formrecognizer/documentModels/prebuilt-receipt/analyzeResults/op-1"
PUBLIC_BASE_URL = "https://receipts.test"
USER = {"X-User-Id": "user-1"}


def make_config(**overrides) -> AnalysisConfig:
    values = dict(
        endpoint=VENDOR_ENDPOINT,
        api_key="test-key",
        poll_interval_seconds=0,
        poll_max_attempts=30,
    )
    values.update(overrides)
    return AnalysisConfig(**values)


def receipt_payload(fields: dict | None = None) -> dict:
    documents = [] if fields is None else [{"docType": "receipt", "fields": fields}]
    return {"status": "succeeded", "analyzeResult": {"documents": documents}}


SAMPLE_FIELDS = {
    "MerchantName": {"type": "string", "valueString": "Starbucks", "content": "STARBUCKS"},
    "Total": {
        "type": "currency",
        "valueCurrency": {"amount": 5500, "currencySymbol": "₩"},
        "content": "₩5,500",
    },
    "TransactionDate": {"type": "date", "valueDate": "2024-05-12", "content": "2024.05.12 14:03"},
}


class FakeVendor:
    """Scripted analysis service.

    ``polls`` items are consumed one per GET: a dict is a 200 JSON body, an
    int is a bare status code, an exception is raised from the transport.
    Once exhausted every GET answers ``running``.
    """

    def __init__(self, polls=None, submit_status=202, operation_location=OPERATION_URL):
        self.polls = list(polls or [])
        self.submit_status = submit_status
        self.operation_location = operation_location
        self.requests: list[httpx.Request] = []

    @property
    def poll_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == "GET"]

    @property
    def submit_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == "POST"]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "POST":
            headers = {}
            if self.operation_location:
                headers["operation-location"] = self.operation_location
            return httpx.Response(self.submit_status, headers=headers, text="")

        item = self.polls.pop(0) if self.polls else {"status": "running"}
        if isinstance(item, httpx.RequestError):
            item.request = request
        if isinstance(item, Exception):
            raise item
        if isinstance(item, int):
            return httpx.Response(item, text="vendor error")
        return httpx.Response(200, json=item)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture(autouse=True)
def _reset_tables():
    Base.metadata.create_all(bind=_ENGINE)
    yield
    Base.metadata.drop_all(bind=_ENGINE)


@pytest.fixture()
def db():
    session = _Session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def blob_store(tmp_path):
    return LocalBlobStore(tmp_path / "blobs", PUBLIC_BASE_URL, "test-signing-key")


@pytest.fixture()
def vendor():
    return FakeVendor()


@pytest.fixture()
def client(db, blob_store, vendor):
    def _override():
        try:
            yield db
        finally:
            pass

    async def _workflow():
        async with vendor.client() as http:
            yield build_workflow(blob_store, http, make_config(), ttl_seconds=900)

    app.dependency_overrides[get_db] = _override
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    app.dependency_overrides[get_workflow] = _workflow
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
