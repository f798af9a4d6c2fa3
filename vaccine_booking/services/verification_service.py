"""Check-in side of the credential: turn a scanned QR payload into the live appointment."""

import logging

from vaccine_booking.core.errors import AppointmentNotFound
from vaccine_booking.models.appointment import Appointment
from vaccine_booking.schemas import AppointmentView
from vaccine_booking.services.booking_service import BookingService
from vaccine_booking.services.credential_codec import CredentialCodec
from vaccine_booking.services.document_store import DocumentStore

logger = logging.getLogger(__name__)


class VerificationService:
    def __init__(self, store: DocumentStore, codec: CredentialCodec, booking: BookingService):
        self.store = store
        self.codec = codec
        self.booking = booking

    def resolve(self, raw_scan: str | bytes) -> AppointmentView:
        """Decode a scan and load the appointment it names.

        The token's own fields are a snapshot from booking time; the returned
        view always carries the stored record. A hash that differs from the one
        recorded at issuance, or a status the record no longer has, is reported
        on the view rather than rejected.
        """
        token = self.codec.decode(raw_scan)

        appointment = self.store.get(Appointment, token.appointment_id)
        if appointment is None:
            raise AppointmentNotFound()

        credential_matches = self.codec.matches(token, appointment.credential_hash)
        token_is_stale = token.status is None or token.status.value != appointment.status
        if not credential_matches:
            logger.warning('Credential for appointment %s does not match the issued hash.', appointment.id)

        return self.booking.hydrate(
            appointment,
            credential_matches=credential_matches,
            token_is_stale=token_is_stale,
        )

    def apply_status(self, appointment_id: str, new_status) -> Appointment:
        return self.booking.update_status(appointment_id, new_status)
