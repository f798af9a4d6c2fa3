"""Booking, cancellation and status changes for appointments.

A booking touches three documents (slot, appointment, vaccine) that the store
cannot update together, so ``book`` runs as an ordered sequence of steps and
undoes the completed ones when a later step fails:

1. reserve a seat on the slot (undo: release it)
2. insert the appointment (undo: delete it)
3. issue and store the credential

Cancellation deletes the appointment before releasing the seat. A crash in
between leaves the slot charged for a seat nobody holds, which under-books
instead of over-booking.
"""

import logging
from datetime import datetime, timezone
from typing import Callable

from vaccine_booking.core.errors import (
    AlreadyBooked,
    AppointmentNotFound,
    InvalidTransition,
    SlotNotFound,
)
from vaccine_booking.database import generate_id
from vaccine_booking.models.appointment import Appointment, AppointmentStatus
from vaccine_booking.models.slot import Slot
from vaccine_booking.models.vaccine import Vaccine
from vaccine_booking.schemas import AppointmentView, SlotResponse, VaccineResponse
from vaccine_booking.services.credential_codec import CredentialCodec
from vaccine_booking.services.document_store import DocumentConflict, DocumentStore
from vaccine_booking.services.inventory_ledger import InventoryLedger, Reservation

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_status(value) -> AppointmentStatus:
    if isinstance(value, AppointmentStatus):
        return value
    try:
        return AppointmentStatus(str(value).strip())
    except ValueError as exc:
        raise InvalidTransition(f'Unknown appointment status: {value!r}.') from exc


class BookingService:
    def __init__(
        self,
        store: DocumentStore,
        ledger: InventoryLedger,
        codec: CredentialCodec,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.ledger = ledger
        self.codec = codec
        self._now = clock

    def book(self, user_id: str, user_email: str, slot_id: str) -> Appointment:
        # Best effort only; the unique (user_id, slot_id) constraint re-checks on insert.
        if self.store.exists(Appointment, user_id=user_id, slot_id=slot_id):
            raise AlreadyBooked()

        reservation = self.ledger.reserve(slot_id)

        appointment = Appointment(
            id=generate_id(),
            user_id=user_id,
            user_email=user_email,
            slot_id=slot_id,
            vaccine_id=reservation.vaccine_id,
            booked_at=self._now(),
            status=AppointmentStatus.SCHEDULED.value,
        )

        try:
            self.store.insert(appointment)
        except DocumentConflict as exc:
            self._compensate(reservation)
            if self.store.exists(Appointment, user_id=user_id, slot_id=slot_id):
                raise AlreadyBooked() from exc
            raise SlotNotFound() from exc
        except Exception:
            self._compensate(reservation)
            raise

        try:
            self._issue_credential(appointment, reservation)
        except Exception:
            self._compensate(reservation, appointment)
            raise

        logger.info(
            'Booked appointment %s for user %s on slot %s (%s/%s seats taken).',
            appointment.id,
            user_id,
            slot_id,
            reservation.booked_count,
            reservation.max_appointments,
        )
        return appointment

    def cancel(self, appointment_id: str) -> None:
        deleted = self.store.delete(
            Appointment,
            appointment_id,
            Appointment.status == AppointmentStatus.SCHEDULED.value,
            returning=(Appointment.slot_id,),
        )
        if deleted is None:
            appointment = self.store.get(Appointment, appointment_id)
            if appointment is None:
                raise AppointmentNotFound()
            raise InvalidTransition(
                f'Only scheduled appointments can be cancelled (current status: {appointment.status}).'
            )

        self.ledger.release(deleted.slot_id)
        logger.info('Cancelled appointment %s and released a seat on slot %s.', appointment_id, deleted.slot_id)

    def update_status(self, appointment_id: str, new_status) -> Appointment:
        status = parse_status(new_status)

        # Entering CANCELLED_BY_PROVIDER keeps the seat charged; only patient
        # cancellation releases inventory.
        updated = self.store.update(
            Appointment,
            appointment_id,
            status=status.value,
            updated_at=self._now(),
        )
        if not updated:
            raise AppointmentNotFound()

        logger.info('Appointment %s moved to status %r.', appointment_id, status.value)
        return self.get_appointment(appointment_id)

    def get_appointment(self, appointment_id: str) -> Appointment:
        appointment = self.store.get(Appointment, appointment_id)
        if appointment is None:
            raise AppointmentNotFound()
        return appointment

    def list_appointments_for(self, user_id: str) -> list[AppointmentView]:
        appointments = self.store.find(
            Appointment,
            order_by=(Appointment.booked_at.desc(),),
            user_id=user_id,
        )
        return self._build_views(appointments)

    def list_appointments(self, status=None, slot_id: str | None = None) -> list[AppointmentView]:
        """Every appointment, newest first, for the admin dashboard."""
        filters = {}
        if status is not None:
            filters['status'] = parse_status(status).value
        if slot_id:
            filters['slot_id'] = slot_id

        appointments = self.store.find(
            Appointment,
            order_by=(Appointment.booked_at.desc(),),
            **filters,
        )
        return self._build_views(appointments)

    def hydrate(self, appointment: Appointment, **extra) -> AppointmentView:
        slot = self.store.get(Slot, appointment.slot_id)
        vaccine = self.store.get(Vaccine, slot.vaccine_id) if slot else None
        return build_view(appointment, slot, vaccine, **extra)

    def _build_views(self, appointments: list[Appointment]) -> list[AppointmentView]:
        if not appointments:
            return []

        slot_ids = {appointment.slot_id for appointment in appointments}
        slots = {slot.id: slot for slot in self.store.find(Slot, Slot.id.in_(list(slot_ids)))}
        vaccine_ids = {slot.vaccine_id for slot in slots.values()}
        vaccines = {
            vaccine.id: vaccine
            for vaccine in self.store.find(Vaccine, Vaccine.id.in_(list(vaccine_ids)))
        } if vaccine_ids else {}

        views = []
        for appointment in appointments:
            slot = slots.get(appointment.slot_id)
            vaccine = vaccines.get(slot.vaccine_id) if slot else None
            views.append(build_view(appointment, slot, vaccine))
        return views

    def _issue_credential(self, appointment: Appointment, reservation: Reservation) -> None:
        vaccine = self.store.get(Vaccine, reservation.vaccine_id)
        token = self.codec.encode(appointment, reservation, vaccine)
        credential = token.to_wire()

        if not self.store.update(
            Appointment,
            appointment.id,
            credential_token=credential,
            credential_hash=token.content_hash,
        ):
            raise AppointmentNotFound()

        appointment.credential_token = credential
        appointment.credential_hash = token.content_hash

    def _compensate(self, reservation: Reservation, appointment: Appointment | None = None) -> None:
        logger.warning('Rolling back booking on slot %s.', reservation.slot_id)
        try:
            if appointment is not None:
                deleted = self.store.delete(Appointment, appointment.id)
                if deleted is None:
                    # Removed by a concurrent cancellation, which already released the seat.
                    return
            self.ledger.release(reservation.slot_id)
        except Exception:
            logger.exception('Rollback of booking on slot %s failed.', reservation.slot_id)


def build_view(appointment: Appointment, slot: Slot | None, vaccine: Vaccine | None, **extra) -> AppointmentView:
    view = AppointmentView.model_validate(appointment)
    return view.model_copy(
        update={
            'slot': SlotResponse.model_validate(slot) if slot else None,
            'vaccine': VaccineResponse.model_validate(vaccine) if vaccine else None,
            **extra,
        }
    )
