"""Process-wide service instances, exposed as FastAPI dependencies."""

from functools import lru_cache

from vaccine_booking.database import SessionLocal
from vaccine_booking.services.booking_service import BookingService
from vaccine_booking.services.catalog_service import CatalogService
from vaccine_booking.services.credential_codec import CredentialCodec
from vaccine_booking.services.document_store import DocumentStore
from vaccine_booking.services.inventory_ledger import InventoryLedger
from vaccine_booking.services.verification_service import VerificationService


@lru_cache
def get_document_store() -> DocumentStore:
    return DocumentStore(SessionLocal)


@lru_cache
def get_credential_codec() -> CredentialCodec:
    return CredentialCodec()


@lru_cache
def get_booking_service() -> BookingService:
    store = get_document_store()
    return BookingService(store, InventoryLedger(store), get_credential_codec())


@lru_cache
def get_verification_service() -> VerificationService:
    return VerificationService(get_document_store(), get_credential_codec(), get_booking_service())


@lru_cache
def get_catalog_service() -> CatalogService:
    return CatalogService(get_document_store())
