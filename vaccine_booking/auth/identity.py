"""Who is calling: bearer-token authentication and role lookup.

Every service call receives the resulting ``CallerContext`` explicitly; nothing
in the core reads an ambient "current user".
"""

import enum
from dataclasses import dataclass

import jwt

from vaccine_booking.auth import jwt_handler
from vaccine_booking.core.errors import Unauthenticated
from vaccine_booking.models.user import User
from vaccine_booking.services.document_store import DocumentStore


class Role(str, enum.Enum):
    ADMIN = "admin"
    PATIENT = "patient"


@dataclass(frozen=True)
class CallerContext:
    user_id: str
    email: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN


class IdentityProvider:
    def __init__(self, store: DocumentStore):
        self.store = store

    def authenticate(self, token: str) -> tuple[str, str]:
        """Return ``(user_id, email)`` for a valid access token."""
        try:
            payload = jwt_handler.decode_access_token(token)
        except jwt.PyJWTError as exc:
            raise Unauthenticated("Invalid token") from exc

        user_id = payload.get("sub")
        if not user_id:
            raise Unauthenticated("Invalid token subject")

        return user_id, payload.get("email") or ""

    def role_of(self, user_id: str) -> Role:
        return self._role(self._load_user(user_id))

    def caller(self, token: str) -> CallerContext:
        user_id, email = self.authenticate(token)
        user = self._load_user(user_id)
        return CallerContext(user_id=user_id, email=user.email or email, role=self._role(user))

    def _load_user(self, user_id: str) -> User:
        user = self.store.get(User, user_id)
        if user is None:
            raise Unauthenticated("User not found")
        return user

    @staticmethod
    def _role(user: User) -> Role:
        try:
            return Role(user.role)
        except ValueError as exc:
            raise Unauthenticated("User has no valid role") from exc
