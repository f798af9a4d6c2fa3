from datetime import date, time

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field, field_validator, model_validator

from vaccine_booking.auth.dependencies import get_current_user, require_admin
from vaccine_booking.auth.identity import CallerContext
from vaccine_booking.core.errors import BookingError, to_http_exception
from vaccine_booking.schemas import AvailableSlotResponse, SlotResponse, VaccineResponse
from vaccine_booking.services.catalog_service import CatalogService
from vaccine_booking.services.providers import get_catalog_service

router = APIRouter(tags=['catalog'])

MAX_VACCINE_DESCRIPTION_LENGTH = 2000


def _normalize_text(value: str | None) -> str | None:
    if value is None:
        return None
    normalized = value.strip()
    return normalized or None


class CreateVaccineRequest(BaseModel):
    name: str
    manufacturer: str | None = None
    doses_available: int = 0
    description: str | None = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Vaccine name is required.')
        return normalized

    @field_validator('manufacturer')
    @classmethod
    def validate_manufacturer(cls, value: str | None) -> str | None:
        return _normalize_text(value)

    @field_validator('doses_available')
    @classmethod
    def validate_doses_available(cls, value: int) -> int:
        if value < 0:
            raise ValueError('Available doses cannot be negative.')
        return value

    @field_validator('description')
    @classmethod
    def validate_description(cls, value: str | None) -> str | None:
        normalized = _normalize_text(value)
        if normalized and len(normalized) > MAX_VACCINE_DESCRIPTION_LENGTH:
            raise ValueError(f'Descriptions must be {MAX_VACCINE_DESCRIPTION_LENGTH} characters or fewer.')
        return normalized


class UpdateVaccineRequest(BaseModel):
    name: str | None = None
    manufacturer: str | None = None
    doses_available: int | None = None
    description: str | None = None

    @field_validator('name', 'manufacturer', 'description')
    @classmethod
    def normalize_text_fields(cls, value: str | None) -> str | None:
        return _normalize_text(value)

    @field_validator('doses_available')
    @classmethod
    def validate_doses_available(cls, value: int | None) -> int | None:
        if value is not None and value < 0:
            raise ValueError('Available doses cannot be negative.')
        return value


class CreateSlotRequest(BaseModel):
    vaccine_id: str
    date: date
    start_time: time
    end_time: time
    max_appointments: int = 10

    @field_validator('max_appointments')
    @classmethod
    def validate_max_appointments(cls, value: int) -> int:
        if value < 1:
            raise ValueError('Slots need room for at least one appointment.')
        return value

    @model_validator(mode='after')
    def validate_window(self) -> 'CreateSlotRequest':
        if self.end_time <= self.start_time:
            raise ValueError('Slots must end after they start.')
        return self


class UpdateSlotRequest(BaseModel):
    vaccine_id: str | None = None
    slot_date: date | None = Field(default=None, alias='date')
    start_time: time | None = None
    end_time: time | None = None
    max_appointments: int | None = None

    class Config:
        populate_by_name = True

    @field_validator('max_appointments')
    @classmethod
    def validate_max_appointments(cls, value: int | None) -> int | None:
        if value is not None and value < 1:
            raise ValueError('Slots need room for at least one appointment.')
        return value


@router.get('/vaccines', response_model=list[VaccineResponse])
def list_vaccines(
    current_user: CallerContext = Depends(get_current_user),
    catalog: CatalogService = Depends(get_catalog_service),
):
    del current_user
    try:
        return [VaccineResponse.model_validate(vaccine) for vaccine in catalog.list_vaccines()]
    except BookingError as exc:
        raise to_http_exception(exc) from exc


@router.post('/vaccines', response_model=VaccineResponse, status_code=status.HTTP_201_CREATED)
def create_vaccine(
    data: CreateVaccineRequest,
    admin: CallerContext = Depends(require_admin),
    catalog: CatalogService = Depends(get_catalog_service),
):
    del admin
    try:
        vaccine = catalog.create_vaccine(
            name=data.name,
            manufacturer=data.manufacturer,
            doses_available=data.doses_available,
            description=data.description,
        )
    except BookingError as exc:
        raise to_http_exception(exc) from exc
    return VaccineResponse.model_validate(vaccine)


@router.patch('/vaccines/{vaccine_id}', response_model=VaccineResponse)
def update_vaccine(
    vaccine_id: str,
    data: UpdateVaccineRequest,
    admin: CallerContext = Depends(require_admin),
    catalog: CatalogService = Depends(get_catalog_service),
):
    del admin
    try:
        vaccine = catalog.update_vaccine(vaccine_id, **data.model_dump())
    except BookingError as exc:
        raise to_http_exception(exc) from exc
    return VaccineResponse.model_validate(vaccine)


@router.get('/slots', response_model=list[AvailableSlotResponse])
def list_available_slots(
    vaccine_id: str | None = Query(default=None),
    slot_date: date | None = Query(default=None, alias='date'),
    current_user: CallerContext = Depends(get_current_user),
    catalog: CatalogService = Depends(get_catalog_service),
):
    del current_user
    try:
        return catalog.list_available_slots(vaccine_id=vaccine_id, slot_date=slot_date)
    except BookingError as exc:
        raise to_http_exception(exc) from exc


@router.get('/slots/all', response_model=list[AvailableSlotResponse])
def list_all_slots(
    vaccine_id: str | None = Query(default=None),
    slot_date: date | None = Query(default=None, alias='date'),
    admin: CallerContext = Depends(require_admin),
    catalog: CatalogService = Depends(get_catalog_service),
):
    del admin
    try:
        return catalog.list_slots(vaccine_id=vaccine_id, slot_date=slot_date)
    except BookingError as exc:
        raise to_http_exception(exc) from exc


@router.post('/slots', response_model=SlotResponse, status_code=status.HTTP_201_CREATED)
def create_slot(
    data: CreateSlotRequest,
    admin: CallerContext = Depends(require_admin),
    catalog: CatalogService = Depends(get_catalog_service),
):
    del admin
    try:
        slot = catalog.create_slot(
            vaccine_id=data.vaccine_id,
            slot_date=data.date,
            start_time=data.start_time,
            end_time=data.end_time,
            max_appointments=data.max_appointments,
        )
    except BookingError as exc:
        raise to_http_exception(exc) from exc
    return SlotResponse.model_validate(slot)


@router.patch('/slots/{slot_id}', response_model=SlotResponse)
def update_slot(
    slot_id: str,
    data: UpdateSlotRequest,
    admin: CallerContext = Depends(require_admin),
    catalog: CatalogService = Depends(get_catalog_service),
):
    del admin
    if data.start_time and data.end_time and data.end_time <= data.start_time:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Slots must end after they start.',
        )

    try:
        slot = catalog.update_slot(
            slot_id,
            vaccine_id=data.vaccine_id,
            slot_date=data.slot_date,
            start_time=data.start_time,
            end_time=data.end_time,
            max_appointments=data.max_appointments,
        )
    except BookingError as exc:
        raise to_http_exception(exc) from exc
    return SlotResponse.model_validate(slot)


@router.delete('/slots/{slot_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_slot(
    slot_id: str,
    admin: CallerContext = Depends(require_admin),
    catalog: CatalogService = Depends(get_catalog_service),
):
    del admin
    try:
        catalog.delete_slot(slot_id)
    except BookingError as exc:
        raise to_http_exception(exc) from exc
