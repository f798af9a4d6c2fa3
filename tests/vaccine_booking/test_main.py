from vaccine_booking import main


def test_root_reports_health() -> None:
    assert main.root() == {'status': 'Vaccine Booking API Running'}


def test_app_mounts_every_router() -> None:
    paths = main.app.openapi()['paths']

    assert {
        '/auth/me',
        '/catalog/vaccines',
        '/catalog/slots',
        '/catalog/slots/all',
        '/catalog/slots/{slot_id}',
        '/appointments',
        '/appointments/mine',
        '/appointments/{appointment_id}/credential',
        '/appointments/{appointment_id}/status',
        '/verification/resolve',
        '/verification/appointments/{appointment_id}/status',
    } <= set(paths)
    assert {'get', 'post'} <= set(paths['/appointments'])
