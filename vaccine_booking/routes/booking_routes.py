from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator

from vaccine_booking.auth.dependencies import get_current_user, require_admin
from vaccine_booking.auth.identity import CallerContext
from vaccine_booking.core.errors import AppointmentNotFound, BookingError, Forbidden, to_http_exception
from vaccine_booking.models.appointment import Appointment
from vaccine_booking.schemas import AppointmentResponse, AppointmentView, CredentialResponse
from vaccine_booking.services.booking_service import BookingService
from vaccine_booking.services.credential_codec import CredentialCodec
from vaccine_booking.services.providers import get_booking_service, get_credential_codec

router = APIRouter(tags=['appointments'])


class BookAppointmentRequest(BaseModel):
    slot_id: str

    @field_validator('slot_id')
    @classmethod
    def validate_slot_id(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Slot id is required.')
        return normalized


class UpdateStatusRequest(BaseModel):
    status: str

    @field_validator('status')
    @classmethod
    def validate_status(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Status is required.')
        return normalized


def load_owned_appointment(
    appointment_id: str,
    current_user: CallerContext,
    booking: BookingService,
    action: str,
) -> Appointment:
    appointment = booking.get_appointment(appointment_id)
    if not current_user.is_admin and appointment.user_id != current_user.user_id:
        raise Forbidden(f'Only the patient who booked this appointment can {action} it.')
    return appointment


@router.post('', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def book_appointment(
    data: BookAppointmentRequest,
    current_user: CallerContext = Depends(get_current_user),
    booking: BookingService = Depends(get_booking_service),
):
    if current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail='Only patients can book appointments.',
        )

    try:
        appointment = booking.book(current_user.user_id, current_user.email, data.slot_id)
    except BookingError as exc:
        raise to_http_exception(exc) from exc

    return AppointmentResponse.model_validate(appointment)


@router.get('', response_model=list[AppointmentView])
def list_appointments(
    status_filter: str | None = Query(default=None, alias='status'),
    slot_id: str | None = Query(default=None),
    admin: CallerContext = Depends(require_admin),
    booking: BookingService = Depends(get_booking_service),
):
    del admin
    try:
        return booking.list_appointments(status=status_filter, slot_id=slot_id)
    except BookingError as exc:
        raise to_http_exception(exc) from exc


@router.get('/mine', response_model=list[AppointmentView])
def list_my_appointments(
    current_user: CallerContext = Depends(get_current_user),
    booking: BookingService = Depends(get_booking_service),
):
    try:
        return booking.list_appointments_for(current_user.user_id)
    except BookingError as exc:
        raise to_http_exception(exc) from exc


@router.get('/{appointment_id}/credential', response_model=CredentialResponse)
def get_appointment_credential(
    appointment_id: str,
    current_user: CallerContext = Depends(get_current_user),
    booking: BookingService = Depends(get_booking_service),
    codec: CredentialCodec = Depends(get_credential_codec),
):
    try:
        appointment = load_owned_appointment(appointment_id, current_user, booking, 'view')
        if not appointment.credential_token:
            raise AppointmentNotFound('No credential has been issued for this appointment.')
        token = codec.decode(appointment.credential_token)
    except BookingError as exc:
        raise to_http_exception(exc) from exc

    return CredentialResponse(
        appointment_id=appointment.id,
        token=appointment.credential_token,
        qr_code=codec.render_qr_data_url(token),
    )


@router.delete('/{appointment_id}', status_code=status.HTTP_204_NO_CONTENT)
def cancel_appointment(
    appointment_id: str,
    current_user: CallerContext = Depends(get_current_user),
    booking: BookingService = Depends(get_booking_service),
):
    try:
        load_owned_appointment(appointment_id, current_user, booking, 'cancel')
        booking.cancel(appointment_id)
    except BookingError as exc:
        raise to_http_exception(exc) from exc


@router.patch('/{appointment_id}/status', response_model=AppointmentResponse)
def update_appointment_status(
    appointment_id: str,
    data: UpdateStatusRequest,
    admin: CallerContext = Depends(require_admin),
    booking: BookingService = Depends(get_booking_service),
):
    del admin
    try:
        appointment = booking.update_status(appointment_id, data.status)
    except BookingError as exc:
        raise to_http_exception(exc) from exc

    return AppointmentResponse.model_validate(appointment)
