from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from vaccine_booking.auth.identity import CallerContext, IdentityProvider
from vaccine_booking.core.errors import BookingError, Forbidden, Unauthenticated, to_http_exception
from vaccine_booking.services.providers import get_document_store

security = HTTPBearer(auto_error=False)


def get_identity_provider() -> IdentityProvider:
    return IdentityProvider(get_document_store())


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    identity: IdentityProvider = Depends(get_identity_provider),
) -> CallerContext:
    if credentials is None:
        raise to_http_exception(Unauthenticated())
    try:
        return identity.caller(credentials.credentials)
    except BookingError as exc:
        raise to_http_exception(exc) from exc


def require_admin(current_user: CallerContext = Depends(get_current_user)) -> CallerContext:
    if not current_user.is_admin:
        raise to_http_exception(Forbidden("Only admins can perform this action."))
    return current_user
