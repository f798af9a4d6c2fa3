from datetime import date, time

import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from vaccine_booking.auth.identity import CallerContext, Role
from vaccine_booking.routes.catalog_routes import (
    CreateSlotRequest,
    CreateVaccineRequest,
    UpdateSlotRequest,
    UpdateVaccineRequest,
    create_slot,
    create_vaccine,
    delete_slot,
    list_all_slots,
    list_available_slots,
    list_vaccines,
    update_slot,
    update_vaccine,
)

PATIENT = CallerContext(user_id='user-1', email='pat@example.org', role=Role.PATIENT)
ADMIN = CallerContext(user_id='admin-1', email='nurse@example.org', role=Role.ADMIN)


def test_create_vaccine_request_normalizes_fields() -> None:
    request = CreateVaccineRequest(name='  Influenza ', manufacturer='   ', doses_available=10, description=' Seasonal ')

    assert request.name == 'Influenza'
    assert request.manufacturer is None
    assert request.description == 'Seasonal'


def test_create_vaccine_request_rejects_negative_doses() -> None:
    with pytest.raises(ValidationError):
        CreateVaccineRequest(name='Influenza', doses_available=-1)


def test_create_slot_request_rejects_inverted_window() -> None:
    with pytest.raises(ValidationError):
        CreateSlotRequest(
            vaccine_id='vaccine-1',
            date=date(2026, 3, 2),
            start_time=time(10, 0),
            end_time=time(9, 0),
        )


def test_update_slot_request_reads_date_alias() -> None:
    request = UpdateSlotRequest.model_validate({'date': '2026-03-04'})

    assert request.slot_date == date(2026, 3, 4)


def test_create_and_list_vaccines(catalog) -> None:
    created = create_vaccine(
        CreateVaccineRequest(name='Influenza', manufacturer='Acme Biologics', doses_available=20),
        admin=ADMIN,
        catalog=catalog,
    )

    listed = list_vaccines(current_user=PATIENT, catalog=catalog)

    assert [vaccine.id for vaccine in listed] == [created.id]
    assert listed[0].doses_available == 20


def test_update_vaccine_returns_not_found_when_missing(catalog) -> None:
    with pytest.raises(HTTPException) as exception_info:
        update_vaccine('missing-vaccine', UpdateVaccineRequest(doses_available=3), admin=ADMIN, catalog=catalog)

    assert exception_info.value.status_code == 404
    assert exception_info.value.detail == 'Vaccine not found.'


def test_create_slot_rejects_capacity_above_available_doses(catalog, make_vaccine) -> None:
    vaccine = make_vaccine(doses_available=2)

    with pytest.raises(HTTPException) as exception_info:
        create_slot(
            CreateSlotRequest(
                vaccine_id=vaccine.id,
                date=date(2026, 3, 2),
                start_time=time(9, 0),
                end_time=time(9, 30),
                max_appointments=5,
            ),
            admin=ADMIN,
            catalog=catalog,
        )

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == 'Only 2 doses of Influenza are available for this slot.'


def test_create_slot_then_list_as_patient(catalog, make_vaccine) -> None:
    vaccine = make_vaccine()
    created = create_slot(
        CreateSlotRequest(
            vaccine_id=vaccine.id,
            date=date(2026, 3, 2),
            start_time=time(9, 0),
            end_time=time(9, 30),
            max_appointments=4,
        ),
        admin=ADMIN,
        catalog=catalog,
    )

    listed = list_available_slots(vaccine_id=vaccine.id, slot_date=None, current_user=PATIENT, catalog=catalog)

    assert created.remaining_capacity == 4
    assert [slot.id for slot in listed] == [created.id]
    assert listed[0].vaccine.name == 'Influenza'


def test_update_slot_rejects_inverted_window(catalog, make_slot) -> None:
    slot = make_slot()

    with pytest.raises(HTTPException) as exception_info:
        update_slot(
            slot.id,
            UpdateSlotRequest(start_time=time(11, 0), end_time=time(10, 0)),
            admin=ADMIN,
            catalog=catalog,
        )

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == 'Slots must end after they start.'


def test_update_slot_moves_date(catalog, make_slot) -> None:
    slot = make_slot()

    updated = update_slot(slot.id, UpdateSlotRequest(date=date(2026, 3, 9)), admin=ADMIN, catalog=catalog)

    assert updated.date == date(2026, 3, 9)


def test_delete_slot_returns_not_found_when_missing(catalog) -> None:
    with pytest.raises(HTTPException) as exception_info:
        delete_slot('missing-slot', admin=ADMIN, catalog=catalog)

    assert exception_info.value.status_code == 404
    assert exception_info.value.detail == 'Slot not found.'


def test_list_all_slots_includes_full_slots_for_admin(catalog, booking, make_slot) -> None:
    full = make_slot(max_appointments=1)
    booking.book('user-1', 'pat@example.org', full.id)

    listed = list_all_slots(vaccine_id=None, slot_date=None, admin=ADMIN, catalog=catalog)
    available = list_available_slots(vaccine_id=None, slot_date=None, current_user=PATIENT, catalog=catalog)

    assert [slot.id for slot in listed] == [full.id]
    assert listed[0].remaining_capacity == 0
    assert available == []
