import logging
from datetime import date, time

from vaccine_booking.core.errors import InvalidSlot, SlotNotFound, VaccineNotFound
from vaccine_booking.database import generate_id
from vaccine_booking.models.slot import Slot
from vaccine_booking.models.vaccine import Vaccine
from vaccine_booking.schemas import AvailableSlotResponse, VaccineResponse
from vaccine_booking.services.document_store import DocumentStore

logger = logging.getLogger(__name__)


def validate_slot_window(start_time: time, end_time: time, max_appointments: int, vaccine: Vaccine) -> None:
    if end_time <= start_time:
        raise InvalidSlot('Slots must end after they start.')

    if max_appointments < 1:
        raise InvalidSlot('Slots need room for at least one appointment.')

    if max_appointments > (vaccine.doses_available or 0):
        raise InvalidSlot(
            f'Only {vaccine.doses_available or 0} doses of {vaccine.name} are available for this slot.'
        )


class CatalogService:
    """Vaccine and slot administration, plus the patient-facing slot listing."""

    def __init__(self, store: DocumentStore):
        self.store = store

    def create_vaccine(
        self,
        name: str,
        manufacturer: str | None = None,
        doses_available: int = 0,
        description: str | None = None,
    ) -> Vaccine:
        vaccine = Vaccine(
            id=generate_id(),
            name=name,
            manufacturer=manufacturer,
            doses_available=doses_available,
            description=description,
        )
        self.store.insert(vaccine)
        logger.info('Added vaccine %s (%s).', vaccine.id, name)
        return vaccine

    def update_vaccine(self, vaccine_id: str, **changes) -> Vaccine:
        values = {key: value for key, value in changes.items() if value is not None}
        if values and not self.store.update(Vaccine, vaccine_id, **values):
            raise VaccineNotFound()
        return self.get_vaccine(vaccine_id)

    def get_vaccine(self, vaccine_id: str) -> Vaccine:
        vaccine = self.store.get(Vaccine, vaccine_id)
        if vaccine is None:
            raise VaccineNotFound()
        return vaccine

    def list_vaccines(self) -> list[Vaccine]:
        return self.store.find(Vaccine, order_by=(Vaccine.name.asc(),))

    def create_slot(
        self,
        vaccine_id: str,
        slot_date: date,
        start_time: time,
        end_time: time,
        max_appointments: int,
    ) -> Slot:
        vaccine = self.get_vaccine(vaccine_id)
        validate_slot_window(start_time, end_time, max_appointments, vaccine)

        slot = Slot(
            id=generate_id(),
            vaccine_id=vaccine_id,
            date=slot_date,
            start_time=start_time,
            end_time=end_time,
            max_appointments=max_appointments,
            booked_count=0,
            version=0,
        )
        self.store.insert(slot)
        logger.info('Added slot %s for vaccine %s on %s.', slot.id, vaccine_id, slot_date)
        return slot

    def update_slot(
        self,
        slot_id: str,
        vaccine_id: str | None = None,
        slot_date: date | None = None,
        start_time: time | None = None,
        end_time: time | None = None,
        max_appointments: int | None = None,
    ) -> Slot:
        slot = self.get_slot(slot_id)

        target_vaccine_id = vaccine_id or slot.vaccine_id
        vaccine = self.get_vaccine(target_vaccine_id)
        target_max = max_appointments if max_appointments is not None else slot.max_appointments
        validate_slot_window(start_time or slot.start_time, end_time or slot.end_time, target_max, vaccine)

        values = {
            'vaccine_id': target_vaccine_id,
            'date': slot_date or slot.date,
            'start_time': start_time or slot.start_time,
            'end_time': end_time or slot.end_time,
            'max_appointments': target_max,
            'version': Slot.version + 1,
        }
        # Capacity may shrink only down to the seats already taken, and booked
        # appointments pin the vaccine they were booked for.
        expected = [Slot.booked_count <= target_max]
        if target_vaccine_id != slot.vaccine_id:
            expected.append(Slot.booked_count == 0)

        if self.store.compare_and_set(Slot, slot_id, *expected, **values) is None:
            current = self.get_slot(slot_id)
            if target_vaccine_id != current.vaccine_id and current.booked_count > 0:
                raise InvalidSlot('The vaccine of a slot with booked appointments cannot change.')
            raise InvalidSlot(
                f'Capacity cannot drop below the {current.booked_count} appointments already booked.'
            )

        return self.get_slot(slot_id)

    def delete_slot(self, slot_id: str) -> None:
        if self.store.delete(Slot, slot_id, Slot.booked_count == 0) is None:
            if not self.store.exists(Slot, id=slot_id):
                raise SlotNotFound()
            raise InvalidSlot('Slots with booked appointments cannot be deleted.')
        logger.info('Deleted slot %s.', slot_id)

    def get_slot(self, slot_id: str) -> Slot:
        slot = self.store.get(Slot, slot_id)
        if slot is None:
            raise SlotNotFound()
        return slot

    def list_available_slots(
        self,
        vaccine_id: str | None = None,
        slot_date: date | None = None,
    ) -> list[AvailableSlotResponse]:
        return self._list_slots(vaccine_id, slot_date, Slot.booked_count < Slot.max_appointments)

    def list_slots(
        self,
        vaccine_id: str | None = None,
        slot_date: date | None = None,
    ) -> list[AvailableSlotResponse]:
        """Every slot, full ones included, for slot administration."""
        return self._list_slots(vaccine_id, slot_date)

    def _list_slots(self, vaccine_id: str | None, slot_date: date | None, *criteria) -> list[AvailableSlotResponse]:
        filters = {}
        if vaccine_id:
            filters['vaccine_id'] = vaccine_id
        if slot_date:
            filters['date'] = slot_date

        slots = self.store.find(
            Slot,
            *criteria,
            order_by=(Slot.date.asc(), Slot.start_time.asc()),
            **filters,
        )
        if not slots:
            return []

        vaccine_ids = {slot.vaccine_id for slot in slots}
        vaccines = {
            vaccine.id: vaccine
            for vaccine in self.store.find(Vaccine, Vaccine.id.in_(list(vaccine_ids)))
        }

        slot_views = []
        for slot in slots:
            vaccine = vaccines.get(slot.vaccine_id)
            slot_view = AvailableSlotResponse.model_validate(slot)
            if vaccine is not None:
                slot_view.vaccine = VaccineResponse.model_validate(vaccine)
            slot_views.append(slot_view)
        return slot_views
