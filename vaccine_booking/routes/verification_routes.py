from fastapi import APIRouter, Depends
from pydantic import BaseModel, field_validator

from vaccine_booking.auth.dependencies import require_admin
from vaccine_booking.auth.identity import CallerContext
from vaccine_booking.core.errors import BookingError, to_http_exception
from vaccine_booking.routes.booking_routes import UpdateStatusRequest
from vaccine_booking.schemas import AppointmentResponse, AppointmentView
from vaccine_booking.services.providers import get_verification_service
from vaccine_booking.services.verification_service import VerificationService

router = APIRouter(tags=['verification'])

MAX_SCAN_LENGTH = 4096


class ResolveCredentialRequest(BaseModel):
    raw_scan: str

    @field_validator('raw_scan')
    @classmethod
    def validate_raw_scan(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Scanned credential is empty.')
        if len(normalized) > MAX_SCAN_LENGTH:
            raise ValueError('Scanned credential is too long.')
        return normalized


@router.post('/resolve', response_model=AppointmentView)
def resolve_credential(
    data: ResolveCredentialRequest,
    admin: CallerContext = Depends(require_admin),
    verification: VerificationService = Depends(get_verification_service),
):
    del admin
    try:
        return verification.resolve(data.raw_scan)
    except BookingError as exc:
        raise to_http_exception(exc) from exc


@router.post('/appointments/{appointment_id}/status', response_model=AppointmentResponse)
def apply_scanned_status(
    appointment_id: str,
    data: UpdateStatusRequest,
    admin: CallerContext = Depends(require_admin),
    verification: VerificationService = Depends(get_verification_service),
):
    del admin
    try:
        appointment = verification.apply_status(appointment_id, data.status)
    except BookingError as exc:
        raise to_http_exception(exc) from exc

    return AppointmentResponse.model_validate(appointment)
