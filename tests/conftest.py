import os
from datetime import date, datetime, time, timedelta, timezone

import pytest
from sqlalchemy.pool import StaticPool

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')
os.environ.setdefault('JWT_SECRET_KEY', 'test-jwt-secret-that-is-long-enough-for-hs256')

from vaccine_booking.database import Base, build_engine, build_session_factory  # noqa: E402
from vaccine_booking.models import appointment, slot, user, vaccine  # noqa: E402,F401
from vaccine_booking.services.booking_service import BookingService  # noqa: E402
from vaccine_booking.services.catalog_service import CatalogService  # noqa: E402
from vaccine_booking.services.credential_codec import CredentialCodec  # noqa: E402
from vaccine_booking.services.document_store import DocumentStore  # noqa: E402
from vaccine_booking.services.inventory_ledger import InventoryLedger  # noqa: E402
from vaccine_booking.services.verification_service import VerificationService  # noqa: E402

SIGNING_KEY = 'test-signing-key'
VERIFICATION_BASE_URL = 'https://clinic.example.org'


class TickingClock:
    """Returns a later instant on every call so booking order is deterministic."""

    def __init__(self, start: datetime | None = None):
        self.current = start or datetime(2026, 3, 1, 8, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.current += timedelta(minutes=1)
        return self.current


@pytest.fixture
def engine():
    engine = build_engine('sqlite://', poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def store(engine) -> DocumentStore:
    return DocumentStore(build_session_factory(engine))


@pytest.fixture
def ledger(store) -> InventoryLedger:
    return InventoryLedger(store, max_attempts=3, backoff_seconds=0)


@pytest.fixture
def codec() -> CredentialCodec:
    return CredentialCodec(verification_base_url=VERIFICATION_BASE_URL, signing_key=SIGNING_KEY)


@pytest.fixture
def booking(store, ledger, codec) -> BookingService:
    return BookingService(store, ledger, codec, clock=TickingClock())


@pytest.fixture
def verification(store, codec, booking) -> VerificationService:
    return VerificationService(store, codec, booking)


@pytest.fixture
def catalog(store) -> CatalogService:
    return CatalogService(store)


@pytest.fixture
def make_vaccine(catalog):
    def _make_vaccine(name: str = 'Influenza', doses_available: int = 50):
        return catalog.create_vaccine(name=name, manufacturer='Acme Biologics', doses_available=doses_available)

    return _make_vaccine


@pytest.fixture
def make_slot(catalog, make_vaccine):
    def _make_slot(
        max_appointments: int = 3,
        vaccine=None,
        slot_date: date = date(2026, 3, 2),
        start_time: time = time(9, 0),
        end_time: time = time(9, 30),
    ):
        vaccine = vaccine or make_vaccine()
        return catalog.create_slot(vaccine.id, slot_date, start_time, end_time, max_appointments)

    return _make_slot
