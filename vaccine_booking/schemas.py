"""Read models handed to the presentation layer."""

from datetime import date, datetime, time

from pydantic import BaseModel

from vaccine_booking.models.appointment import AppointmentStatus


class VaccineResponse(BaseModel):
    id: str
    name: str
    manufacturer: str | None = None
    doses_available: int
    description: str | None = None

    class Config:
        from_attributes = True


class SlotResponse(BaseModel):
    id: str
    vaccine_id: str
    date: date
    start_time: time
    end_time: time
    max_appointments: int
    booked_count: int
    remaining_capacity: int

    class Config:
        from_attributes = True


class AvailableSlotResponse(SlotResponse):
    vaccine: VaccineResponse | None = None


class AppointmentResponse(BaseModel):
    id: str
    user_id: str
    user_email: str
    slot_id: str
    vaccine_id: str
    booked_at: datetime
    status: AppointmentStatus
    credential_token: str | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


class AppointmentView(AppointmentResponse):
    """An appointment joined with its slot and vaccine.

    ``credential_matches`` and ``token_is_stale`` are only meaningful for views
    produced from a scanned credential.
    """

    slot: SlotResponse | None = None
    vaccine: VaccineResponse | None = None
    credential_matches: bool | None = None
    token_is_stale: bool | None = None


class CredentialResponse(BaseModel):
    appointment_id: str
    token: str
    qr_code: str
