"""Slot capacity bookkeeping.

``reserve`` and ``release`` each change ``Slot.booked_count`` with one
conditional ``UPDATE`` scoped to a single slot row, so the capacity check and
the increment cannot be separated by another request. Slots are never locked
as a group; different slots book in parallel.
"""

import logging
from dataclasses import dataclass
from datetime import date, time

from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from vaccine_booking.core import config
from vaccine_booking.core.errors import Contention, SlotFull, SlotNotFound
from vaccine_booking.models.slot import Slot
from vaccine_booking.services.document_store import DocumentStore, WriteConflict

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Reservation:
    """One claimed seat, bound to the slot version it replaced."""

    slot_id: str
    version: int
    booked_count: int
    max_appointments: int
    vaccine_id: str
    date: date
    start_time: time
    end_time: time


class InventoryLedger:
    def __init__(
        self,
        store: DocumentStore,
        max_attempts: int = config.LEDGER_MAX_ATTEMPTS,
        backoff_seconds: float = config.LEDGER_BACKOFF_SECONDS,
        max_backoff_seconds: float = config.LEDGER_MAX_BACKOFF_SECONDS,
    ):
        self.store = store
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        self.max_backoff_seconds = max_backoff_seconds

    def _retrying(self) -> Retrying:
        return Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.backoff_seconds, max=self.max_backoff_seconds),
            retry=retry_if_exception_type(WriteConflict),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

    def reserve(self, slot_id: str) -> Reservation:
        try:
            for attempt in self._retrying():
                with attempt:
                    return self._try_reserve(slot_id)
        except WriteConflict as exc:
            logger.warning('Reservation on slot %s gave up after %s attempts.', slot_id, self.max_attempts)
            raise Contention() from exc

    def release(self, slot_id: str) -> bool:
        """Give one seat back. Returns False when there was nothing to release."""
        try:
            for attempt in self._retrying():
                with attempt:
                    return self._try_release(slot_id)
        except WriteConflict as exc:
            logger.warning('Release on slot %s gave up after %s attempts.', slot_id, self.max_attempts)
            raise Contention() from exc

    def _try_reserve(self, slot_id: str) -> Reservation:
        row = self.store.compare_and_set(
            Slot,
            slot_id,
            Slot.booked_count < Slot.max_appointments,
            returning=(
                Slot.version,
                Slot.booked_count,
                Slot.max_appointments,
                Slot.vaccine_id,
                Slot.date,
                Slot.start_time,
                Slot.end_time,
            ),
            booked_count=Slot.booked_count + 1,
            version=Slot.version + 1,
        )
        if row is not None:
            return Reservation(
                slot_id=slot_id,
                version=row.version - 1,
                booked_count=row.booked_count,
                max_appointments=row.max_appointments,
                vaccine_id=row.vaccine_id,
                date=row.date,
                start_time=row.start_time,
                end_time=row.end_time,
            )

        slot = self.store.get(Slot, slot_id)
        if slot is None:
            raise SlotNotFound()
        if slot.booked_count >= slot.max_appointments:
            raise SlotFull()

        # A release or capacity edit landed between the update and the read.
        raise WriteConflict(f'Slot {slot_id} changed during reservation.')

    def _try_release(self, slot_id: str) -> bool:
        row = self.store.compare_and_set(
            Slot,
            slot_id,
            Slot.booked_count > 0,
            booked_count=Slot.booked_count - 1,
            version=Slot.version + 1,
        )
        if row is not None:
            return True

        if self.store.exists(Slot, id=slot_id):
            logger.warning('Release on slot %s ignored: booked count is already 0.', slot_id)
        else:
            logger.warning('Release on slot %s ignored: slot no longer exists.', slot_id)
        return False
