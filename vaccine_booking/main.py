import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from vaccine_booking.core import config
from vaccine_booking.database import Base, engine, ensure_booking_schema
from vaccine_booking.models import appointment, slot, user, vaccine  # noqa: F401
from vaccine_booking.routes import auth_routes, booking_routes, catalog_routes, verification_routes

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
)

app = FastAPI(title='Vaccine Booking API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

logger = logging.getLogger(__name__)


@app.on_event('startup')
def initialize_database() -> None:
    config.validate_runtime_config()
    try:
        Base.metadata.create_all(bind=engine)
        ensure_booking_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@app.get('/')
def root():
    return {'status': 'Vaccine Booking API Running'}


app.include_router(auth_routes.router, prefix='/auth')
app.include_router(catalog_routes.router, prefix='/catalog')
app.include_router(booking_routes.router, prefix='/appointments')
app.include_router(verification_routes.router, prefix='/verification')
