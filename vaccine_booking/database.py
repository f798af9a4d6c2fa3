from dotenv import load_dotenv
from threading import Lock
from uuid import uuid4

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker


load_dotenv()

from vaccine_booking.core import config  # noqa: E402


def build_engine(database_url: str, **kwargs) -> Engine:
    if database_url.startswith('sqlite'):
        connect_args = kwargs.pop('connect_args', {})
        connect_args.setdefault('check_same_thread', False)
        kwargs['connect_args'] = connect_args
    return create_engine(database_url, echo=config.SQL_ECHO, **kwargs)


def build_session_factory(bind: Engine) -> sessionmaker:
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=bind,
    )


engine = build_engine(config.DATABASE_URL)

SessionLocal = build_session_factory(engine)

Base = declarative_base()


def generate_id() -> str:
    return str(uuid4())


_schema_lock = Lock()
_booking_schema_checked = False


def ensure_booking_schema(bind: Engine | None = None) -> None:
    """Back-fill columns and lookup indexes on tables created by older releases."""
    global _booking_schema_checked

    if _booking_schema_checked:
        return

    bind = bind or engine

    with _schema_lock:
        if _booking_schema_checked:
            return

        inspector = inspect(bind)
        table_names = set(inspector.get_table_names())

        with bind.begin() as connection:
            if 'slots' in table_names:
                existing_columns = {column['name'] for column in inspector.get_columns('slots')}
                migration_steps = [
                    ('booked_count', 'ALTER TABLE slots ADD COLUMN booked_count INTEGER NOT NULL DEFAULT 0'),
                    ('version', 'ALTER TABLE slots ADD COLUMN version INTEGER NOT NULL DEFAULT 0'),
                ]
                for column_name, statement in migration_steps:
                    if column_name not in existing_columns:
                        connection.execute(text(statement))
                connection.execute(
                    text('CREATE INDEX IF NOT EXISTS idx_slots_vaccine_date ON slots(vaccine_id, date)')
                )

            if 'appointments' in table_names:
                existing_columns = {column['name'] for column in inspector.get_columns('appointments')}
                migration_steps = [
                    ('credential_hash', 'ALTER TABLE appointments ADD COLUMN credential_hash VARCHAR(64)'),
                    ('updated_at', 'ALTER TABLE appointments ADD COLUMN updated_at TIMESTAMP'),
                ]
                for column_name, statement in migration_steps:
                    if column_name not in existing_columns:
                        connection.execute(text(statement))
                connection.execute(
                    text('CREATE INDEX IF NOT EXISTS idx_appointments_user ON appointments(user_id)')
                )

        _booking_schema_checked = True
