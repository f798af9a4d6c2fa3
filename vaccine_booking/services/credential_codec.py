"""Appointment credentials: the text behind the QR code a patient shows on site.

The token is a JSON object. Besides the display fields it embeds a digest of
the appointment document as it was at issuance. Without a signing key the
digest is a plain SHA-256 and only catches accidental corruption; with
``CREDENTIAL_SIGNING_KEY`` set it is an HMAC-SHA256, which a forger cannot
recompute.
"""

import base64
import hashlib
import hmac
import io
import json

import qrcode
from pydantic import BaseModel, Field, ValidationError

from vaccine_booking.core import config
from vaccine_booking.core.errors import MalformedToken
from vaccine_booking.models.appointment import Appointment, AppointmentStatus

UNKNOWN = 'Unknown'


class CredentialToken(BaseModel):
    appointment_id: str = Field(alias='appointmentId', min_length=1)
    user_id: str | None = Field(default=None, alias='userId')
    patient_email: str | None = Field(default=None, alias='patientEmail')
    vaccine_id: str | None = Field(default=None, alias='vaccineId')
    vaccine: str | None = None
    date: str | None = None
    time: str | None = None
    status: AppointmentStatus | None = None
    content_hash: str | None = Field(default=None, alias='hash')
    verification_url: str | None = Field(default=None, alias='verificationUrl')

    class Config:
        populate_by_name = True

    def to_wire(self) -> str:
        payload = self.model_dump(mode='json', by_alias=True, exclude_none=True)
        return json.dumps(payload, sort_keys=True, separators=(',', ':'))


def _canonical_document(appointment: Appointment) -> bytes:
    booked_at = appointment.booked_at.isoformat() if appointment.booked_at else None
    document = {
        'id': appointment.id,
        'userId': appointment.user_id,
        'userEmail': appointment.user_email,
        'slotId': appointment.slot_id,
        'vaccineId': appointment.vaccine_id,
        'bookedAt': booked_at,
        'status': AppointmentStatus(appointment.status).value,
    }
    return json.dumps(document, sort_keys=True, separators=(',', ':')).encode('utf-8')


class CredentialCodec:
    def __init__(
        self,
        verification_base_url: str = config.VERIFICATION_BASE_URL,
        signing_key: str = config.CREDENTIAL_SIGNING_KEY,
    ):
        self.verification_base_url = verification_base_url.rstrip('/')
        self._signing_key = signing_key.encode('utf-8') if signing_key else None

    @property
    def is_signed(self) -> bool:
        return self._signing_key is not None

    def content_hash(self, appointment: Appointment) -> str:
        document = _canonical_document(appointment)
        if self._signing_key:
            return hmac.new(self._signing_key, document, hashlib.sha256).hexdigest()
        return hashlib.sha256(document).hexdigest()

    def verification_url(self, appointment_id: str) -> str:
        return f'{self.verification_base_url}/verify/{appointment_id}'

    def encode(self, appointment: Appointment, slot=None, vaccine=None) -> CredentialToken:
        """Build the credential for ``appointment``.

        ``slot`` is anything with ``date``, ``start_time`` and ``end_time`` (a
        ``Slot`` or a ``Reservation``); ``vaccine`` anything with a ``name``.
        Missing snapshots render as ``Unknown``.
        """
        if slot is not None:
            slot_date = slot.date.isoformat()
            slot_time = f'{slot.start_time:%H:%M} - {slot.end_time:%H:%M}'
        else:
            slot_date = UNKNOWN
            slot_time = f'{UNKNOWN} - {UNKNOWN}'

        return CredentialToken(
            appointment_id=appointment.id,
            user_id=appointment.user_id,
            patient_email=appointment.user_email,
            vaccine_id=appointment.vaccine_id,
            vaccine=getattr(vaccine, 'name', None) or UNKNOWN,
            date=slot_date,
            time=slot_time,
            status=AppointmentStatus(appointment.status),
            content_hash=self.content_hash(appointment),
            verification_url=self.verification_url(appointment.id),
        )

    def decode(self, raw_scan: str | bytes) -> CredentialToken:
        if isinstance(raw_scan, bytes):
            try:
                raw_scan = raw_scan.decode('utf-8')
            except UnicodeDecodeError as exc:
                raise MalformedToken() from exc

        try:
            payload = json.loads(raw_scan)
        except (TypeError, ValueError) as exc:
            raise MalformedToken() from exc

        if not isinstance(payload, dict):
            raise MalformedToken()
        if not payload.get('appointmentId'):
            raise MalformedToken('Credential is missing the appointment id.')

        try:
            return CredentialToken.model_validate(payload)
        except ValidationError as exc:
            raise MalformedToken() from exc

    def matches(self, token: CredentialToken, expected_hash: str | None) -> bool:
        if not token.content_hash or not expected_hash:
            return False
        return hmac.compare_digest(token.content_hash.encode('utf-8'), expected_hash.encode('utf-8'))

    def render_qr_data_url(self, token: CredentialToken) -> str:
        qr = qrcode.QRCode(error_correction=qrcode.constants.ERROR_CORRECT_H, box_size=10, border=2)
        qr.add_data(token.to_wire())
        qr.make(fit=True)

        img = qr.make_image(fill_color='black', back_color='white')
        buffer = io.BytesIO()
        img.save(buffer, format='PNG')
        encoded = base64.b64encode(buffer.getvalue()).decode()
        return f'data:image/png;base64,{encoded}'
