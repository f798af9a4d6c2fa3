"""Document-style persistence over SQLAlchemy.

Every call opens its own short session and commits before it returns, so no
operation spans more than one document. Multi-step workflows compensate
explicitly instead of relying on a surrounding transaction.
"""

import logging
from contextlib import contextmanager
from typing import Any, Iterator

from sqlalchemy import delete, select, update
from sqlalchemy.engine import Row
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from vaccine_booking.core.errors import Contention, StoreUnavailable

logger = logging.getLogger(__name__)

_CONFLICT_SQLSTATES = {'40001', '40P01'}
_CONFLICT_MARKERS = ('database is locked', 'could not serialize', 'deadlock detected')


class DocumentConflict(Exception):
    """A write violated a uniqueness or check constraint."""


class WriteConflict(Contention):
    """A write lost against a concurrent transaction and may be retried.

    The inventory ledger retries these. Anywhere else the conflict reaches the
    caller as plain contention, with the driver error kept on ``detail``.
    """

    def __init__(self, detail: str | None = None):
        super().__init__()
        self.detail = detail


def is_write_conflict(exc: OperationalError) -> bool:
    sqlstate = getattr(exc.orig, 'pgcode', None) or getattr(exc.orig, 'sqlstate', None)
    if sqlstate in _CONFLICT_SQLSTATES:
        return True

    message = str(exc.orig).lower()
    return any(marker in message for marker in _CONFLICT_MARKERS)


class DocumentStore:
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    @contextmanager
    def session(self) -> Iterator[Session]:
        db = self._session_factory()
        try:
            yield db
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            raise DocumentConflict(str(exc.orig)) from exc
        except OperationalError as exc:
            db.rollback()
            if is_write_conflict(exc):
                raise WriteConflict(str(exc.orig)) from exc
            logger.exception('Document store operation failed.')
            raise StoreUnavailable() from exc
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception('Document store operation failed.')
            raise StoreUnavailable() from exc
        finally:
            db.close()

    def get(self, model, doc_id: str):
        with self.session() as db:
            return db.get(model, doc_id)

    def find(self, model, *criteria, order_by: tuple = (), **equals) -> list:
        statement = select(model).filter_by(**equals)
        if criteria:
            statement = statement.where(*criteria)
        if order_by:
            statement = statement.order_by(*order_by)

        with self.session() as db:
            return list(db.scalars(statement).all())

    def exists(self, model, **equals) -> bool:
        statement = select(model.id).filter_by(**equals).limit(1)
        with self.session() as db:
            return db.scalar(statement) is not None

    def insert(self, document):
        with self.session() as db:
            db.add(document)
        return document

    def compare_and_set(self, model, doc_id: str, *expected, returning: tuple = (), **values: Any) -> Row | None:
        """Update one document only while every ``expected`` clause still holds.

        The check and the write are a single ``UPDATE ... WHERE`` statement.
        Returns the ``returning`` columns (the id by default) of the updated
        document, or ``None`` when the document is missing or a clause failed.
        """
        statement = (
            update(model)
            .where(model.id == doc_id, *expected)
            .values(**values)
            .returning(*(returning or (model.id,)))
            .execution_options(synchronize_session=False)
        )
        with self.session() as db:
            return db.execute(statement).first()

    def update(self, model, doc_id: str, **values: Any) -> bool:
        return self.compare_and_set(model, doc_id, **values) is not None

    def delete(self, model, doc_id: str, *expected, returning: tuple = ()) -> Row | None:
        statement = (
            delete(model)
            .where(model.id == doc_id, *expected)
            .returning(*(returning or (model.id,)))
            .execution_options(synchronize_session=False)
        )
        with self.session() as db:
            return db.execute(statement).first()
