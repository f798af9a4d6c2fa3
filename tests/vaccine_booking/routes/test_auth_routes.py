from vaccine_booking.auth.identity import CallerContext, Role
from vaccine_booking.routes.auth_routes import me


def test_me_echoes_caller_identity() -> None:
    caller = CallerContext(user_id='admin-1', email='nurse@example.org', role=Role.ADMIN)

    assert me(current_user=caller) == {'user_id': 'admin-1', 'email': 'nurse@example.org', 'role': 'admin'}
