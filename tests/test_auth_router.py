"""
Tests for login, logout and the navigation guard.
"""
from radcenter.client.storage import BACKEND_URL_KEY, SESSION_KEY
from radcenter.core.permissions import Page


def test_staff_login_opens_landing_page(ctx, ui):
    page = ctx.auth.login_staff("USR-3", "2222")

    assert page is Page.TECHNICIAN
    assert ctx.state.current_view == "technician"
    assert ui.current_page == "technician"
    saved = ctx.storage.get(SESSION_KEY)
    assert saved["id"] == "USR-3"
    assert "pin" not in saved


def test_wrong_pin_is_refused(ctx, ui):
    assert ctx.auth.login_staff("USR-3", "9999") is None

    assert ui.alerts == ["Invalid PIN. Please try again."]
    assert ctx.state.user is None
    assert ctx.storage.get(SESSION_KEY) is None


def test_login_needs_a_user(ctx, ui):
    assert ctx.auth.login_staff("", "1234") is None
    assert ui.alerts == ["Select a user"]


def test_patient_login(ctx, ui):
    page = ctx.auth.login_patient("0599123456", "AHM0599123456")

    assert page is Page.PATIENT_PORTAL
    assert ctx.state.user == {
        "id": "PT-101", "full_name": "Ahmed Khaled", "role": "Patient", "phone": "0599123456"
    }
    assert ui.current_page == "patient-portal"


def test_patient_wrong_passcode(ctx, ui):
    assert ctx.auth.login_patient("0599123456", "XYZ0599123456") is None

    assert ui.alerts == ["Invalid Passcode"]
    assert ctx.state.user is None


def test_patient_unknown_phone(ctx, ui):
    assert ctx.auth.login_patient("0500000000", "AHM0500000000") is None
    assert ui.alerts == ["Patient not found with this phone number."]


def test_patient_login_needs_both_fields(ctx, ui):
    assert ctx.auth.login_patient("0599123456", "") is None
    assert ui.alerts == ["Enter Phone and Passcode"]


def test_init_offers_relogin_for_remembered_user(ctx, ui, login_as):
    login_as(ctx, "USR-4", "3333")
    ctx.state.user = None

    ctx.init()

    mode, remembered = ui.login_shown
    assert mode == "staff"
    assert remembered["id"] == "USR-4"


def test_init_without_session_shows_login(ctx, ui):
    ctx.init()
    assert ui.login_shown == ("staff", None)


def test_logout_keeps_backend_url(ctx, ui, login_as):
    ctx.storage.set(BACKEND_URL_KEY, "http://backend/exec")
    login_as(ctx, "USR-1", "1234")

    ctx.auth.logout()

    assert ctx.state.user is None
    assert ctx.storage.get(SESSION_KEY) is None
    assert ctx.storage.get(BACKEND_URL_KEY) == "http://backend/exec"
    assert ui.reloads == 1


def test_guard_redirects_to_landing_page(ctx, ui, login_as):
    login_as(ctx, "USR-3", "2222")

    assert ctx.router.navigate("admin") is Page.TECHNICIAN
    assert ui.current_page == "technician"
    assert ctx.state.current_view == "technician"


def test_guard_allows_secondary_pages(ctx, ui, login_as):
    login_as(ctx, "USR-4", "3333")

    assert ctx.router.navigate(Page.RECEPTION) is Page.RECEPTION
    assert ui.current_page == "reception"


def test_staff_never_reach_patient_portal(ctx, ui, login_as):
    login_as(ctx, "USR-1", "1234")

    assert ctx.router.navigate(Page.PATIENT_PORTAL) is Page.ADMIN


def test_navigation_without_session_shows_login(ctx, ui):
    assert ctx.router.navigate(Page.ADMIN) is None
    assert ui.current_page == "login"


def test_unknown_role_sees_no_page(ctx, ui):
    ctx.state.user = {"id": "USR-9", "role": "Janitor"}

    assert ctx.router.navigate(Page.RECEPTION) is None
    assert ui.current_page == "login"


def test_portal_ends_a_staff_session_that_reaches_it(ctx, ui, login_as):
    login_as(ctx, "USR-1", "1234")

    assert ctx.views[Page.PATIENT_PORTAL].render() is None
    assert ctx.state.user is None
    assert ui.login_shown == ("patient", None)


def test_reload_failure_alerts(ui):
    from radcenter.client.api import ApiClient
    from radcenter.client.context import AppContext
    from radcenter.client.mock import MockBackend

    class BrokenBackend(MockBackend):
        def dispatch(self, action, payload):
            raise KeyError("everything")

    context = AppContext(api=ApiClient(mock=BrokenBackend()), ui=ui)

    assert not context.load_data()
    assert ui.alerts == ["Failed to sync. Check connection."]
    assert not ui.loading
    assert not context.load_data(silent=True)
    assert len(ui.alerts) == 1
