"""
Tests for the page controllers against the mock backend and the real
endpoint.
"""
from radcenter.client import helpers
from radcenter.client.state import SyncStatus
from radcenter.client.storage import BACKEND_URL_KEY
from radcenter.core.ids import is_placeholder
from radcenter.core.permissions import Page

DEMO_DAY = "2023-10-27"


def _new_visit(view, *studies):
    view.open_new_visit()
    for modality, region, name in studies:
        view.add_study_to_queue(modality, region, name)


# Reception

def test_save_visit_is_optimistic(deferred_ctx, ui, mock_backend, login_as):
    ctx = deferred_ctx
    login_as(ctx, "USR-2", "1111")
    view = ctx.views[Page.RECEPTION]
    _new_visit(view, ("US", "Abdomen", "US Abdomen Complete"), ("CT", "Chest", "CT Chest"))

    visit_id = view.save_visit("PT-102", "USR-5")

    # Nothing has reached the backend yet
    assert [action for action, _ in mock_backend.calls] == ["getAllData"]
    assert is_placeholder(visit_id)
    assert len(ctx.state.visits) == 2
    studies = [s for s in ctx.state.studies if s["visit_id"] == visit_id]
    assert len(studies) == 2
    assert {s["status"] for s in studies} == {"Waiting"}
    assert len({s["id"] for s in ctx.state.studies}) == len(ctx.state.studies)
    assert all(ctx.state.sync_status(s["id"]) is SyncStatus.PENDING for s in studies)
    assert ui.notifications == ["Saving in background..."]
    assert ui.current_page == "reception"
    assert [card["id"] for card in ui.current_model["waiting"]] == [s["id"] for s in studies]
    assert view.queue == []

    ctx.sync.executor.run_all()

    actions = [action for action, _ in mock_backend.calls]
    assert actions == ["getAllData", "createVisit", "createStudy", "createStudy"]
    visit_payload = mock_backend.calls[1][1]
    assert "id" not in visit_payload
    server_visit = ctx.state.resolve_id(visit_id)
    assert server_visit.startswith("VS-MOCK-")
    assert all(payload["visit_id"] == server_visit for action, payload in mock_backend.calls[2:])
    assert all(s["visit_id"] == server_visit for s in studies)
    assert all(ctx.state.sync_status(s["id"]) is SyncStatus.COMMITTED for s in studies)


def test_reload_before_sync_keeps_queued_creates(deferred_ctx, ui, mock_backend, login_as):
    ctx = deferred_ctx
    login_as(ctx, "USR-2", "1111")
    view = ctx.views[Page.RECEPTION]
    patient_id = view.save_patient("Lina Haddad", "2000-01-01")
    _new_visit(view, ("US", "Abdomen", "US Abdomen Complete"))
    visit_id = view.save_visit(patient_id, "USR-4")

    # A silent poll lands before the queued writes run
    assert ctx.load_data(silent=True)
    assert ctx.state.find("visits", visit_id) is not None
    assert ctx.state.sync_status(visit_id) is SyncStatus.PENDING

    ctx.sync.executor.run_all()

    actions = [action for action, _ in mock_backend.calls]
    assert actions == ["getAllData", "getAllData", "createPatient", "createVisit", "createStudy"]
    server_patient = ctx.state.resolve_id(patient_id)
    server_visit = ctx.state.resolve_id(visit_id)
    assert mock_backend.calls[3][1]["patient_id"] == server_patient
    assert mock_backend.calls[4][1]["visit_id"] == server_visit
    assert [v["id"] for v in ctx.state.visits] == ["VS-501", server_visit]

    assert ctx.load_data(silent=True)
    assert len(ctx.state.visits) == 2
    assert len([s for s in ctx.state.studies if s["visit_id"] == server_visit]) == 1


def test_save_visit_validation(ctx, ui, login_as):
    login_as(ctx, "USR-2", "1111")
    view = ctx.views[Page.RECEPTION]
    view.open_new_visit()

    assert view.save_visit("", "USR-4") is None
    assert view.save_visit("PT-101", "") is None
    assert view.save_visit("PT-101", "USR-4") is None
    assert view.add_study_to_queue("US", "", "") is None
    assert ui.alerts == [
        "Select a patient",
        "Select a doctor",
        "Add at least one study",
        "Please enter region and study name",
    ]
    assert len(ctx.state.visits) == 1


def test_technician_cannot_create_visits(ctx, ui, login_as):
    login_as(ctx, "USR-3", "2222")
    view = ctx.views[Page.RECEPTION]
    _new_visit(view, ("US", "Abdomen", "US Abdomen"))

    assert view.save_visit("PT-101", "USR-4") is None
    assert ui.alerts == ["Access Denied: You don't have permission to create visits."]
    assert len(ctx.state.visits) == 1


def test_save_patient(ctx, mock_backend, login_as):
    login_as(ctx, "USR-2", "1111")
    view = ctx.views[Page.RECEPTION]

    local_id = view.save_patient("Lina Haddad", "2000-01-01", phone="0599000111")

    server_id = ctx.state.resolve_id(local_id)
    assert server_id.startswith("PT-MOCK-")
    patient = ctx.state.find("patients", local_id)
    assert patient["id"] == server_id
    assert patient["age"] != ""
    assert mock_backend.calls[-1][0] == "createPatient"
    assert view.search_patients("lina")[0]["id"] == server_id


def test_save_patient_requires_name_and_dob(ctx, ui, login_as):
    login_as(ctx, "USR-2", "1111")
    assert ctx.views[Page.RECEPTION].save_patient("", "2000-01-01") is None
    assert ui.alerts == ["Fill required fields"]


def test_failed_create_is_marked(ctx, mock_backend, login_as):
    login_as(ctx, "USR-2", "1111")
    view = ctx.views[Page.RECEPTION]

    def refuse(action, payload, original=mock_backend.dispatch):
        if action == "createPatient":
            raise ValueError("Sheet not found: patients")
        return original(action, payload)

    mock_backend.dispatch = refuse
    local_id = view.save_patient("Lina Haddad", "2000-01-01")

    assert ctx.state.find("patients", local_id) is not None
    assert ctx.state.sync_status(local_id) is SyncStatus.FAILED


def test_search_and_patient_file(ctx, ui, login_as):
    login_as(ctx, "USR-2", "1111")
    view = ctx.views[Page.RECEPTION]

    assert view.search_patients("a") == []
    assert [p["id"] for p in view.search_patients("ahm")] == ["PT-101"]
    assert [p["id"] for p in view.search_patients("654")] == ["PT-102"]

    model = view.open_patient_file("PT-101")
    assert ui.modals[-1][0] == "patient-file"
    assert [v["id"] for v in model["visits"]] == ["VS-501"]
    assert [s["id"] for s in model["visits"][0]["studies"]] == ["ST-901", "ST-902"]


def test_reception_day_list_and_calendar(ctx, ui, login_as):
    login_as(ctx, "USR-2", "1111")
    view = ctx.views[Page.RECEPTION]

    model = view.change_date(DEMO_DAY)
    assert [card["id"] for card in model["waiting"]] == ["ST-902"]
    assert model["waiting"][0]["patient_name"] == "Ahmed Khaled"
    assert model["prev_date"] == "2023-10-26"

    model = view.toggle_calendar()
    assert model["mode"] == "calendar"
    assert len(model["days"]) == 7

    model = view.view_day_details(DEMO_DAY)
    assert model["mode"] == "list"


def test_reception_report_modal(ctx, ui, login_as):
    login_as(ctx, "USR-2", "1111")
    model = ctx.views[Page.RECEPTION].view_report("ST-901")

    assert ui.modals[-1] == ("report", model)
    assert model["patient"]["full_name"] == "Ahmed Khaled"
    assert model["doctor"] == "Dr. Layla Hassan"


# Technician

def test_scan_flow(ctx, ui, mock_backend, login_as):
    login_as(ctx, "USR-3", "2222")
    view = ctx.views[Page.TECHNICIAN]
    model = view.change_date(DEMO_DAY)
    assert [card["id"] for card in model["studies"]] == ["ST-902"]

    assert view.start_scan("ST-902")
    assert ctx.state.find("studies", "ST-902")["status"] == "Scanning"
    assert view.complete_scan("ST-902")
    assert ctx.state.find("studies", "ST-902")["status"] == "Reporting"
    assert ui.confirmations == ["Start Scanning patient?", "Complete scan and send to Radiologist?"]
    assert mock_backend.data["studies"][1]["status"] == "Reporting"
    assert ctx.state.sync_status("ST-902") is SyncStatus.COMMITTED
    assert ui.current_model["studies"] == []


def test_scan_move_must_follow_workflow(ctx, ui, mock_backend, login_as):
    login_as(ctx, "USR-3", "2222")
    view = ctx.views[Page.TECHNICIAN]

    assert view.complete_scan("ST-902") is None
    assert ui.alerts == ["Cannot move study from Waiting to Reporting"]
    assert ctx.state.find("studies", "ST-902")["status"] == "Waiting"
    assert [action for action, _ in mock_backend.calls] == ["getAllData"]


def test_declined_confirmation_changes_nothing(ctx, ui, login_as):
    login_as(ctx, "USR-3", "2222")
    ui.auto_confirm = False

    assert ctx.views[Page.TECHNICIAN].start_scan("ST-902") is False
    assert ctx.state.find("studies", "ST-902")["status"] == "Waiting"


def test_reception_cannot_start_scans(ctx, ui, login_as):
    login_as(ctx, "USR-2", "1111")

    assert ctx.views[Page.TECHNICIAN].start_scan("ST-902") is None
    assert ui.alerts == ["Access Denied: You don't have permission to start scans."]


def test_image_links(ctx, ui, mock_backend, login_as):
    login_as(ctx, "USR-3", "2222")
    view = ctx.views[Page.TECHNICIAN]

    assert view.add_image_link("ST-901", "ftp://pacs/1") is None
    assert view.add_image_link("ST-901", "  ") is None
    assert ui.alerts == ["Link must start with http:// or https://", "Please enter a valid link"]

    assert view.add_image_link("ST-901", "https://pacs.local/view/1") == ["https://pacs.local/view/1"]
    assert view.add_image_link("ST-901", "https://pacs.local/view/2") == [
        "https://pacs.local/view/1", "https://pacs.local/view/2"
    ]
    assert view.remove_image_link("ST-901", 0) == ["https://pacs.local/view/2"]
    assert ui.modals[-1][0] == "image-links"
    assert ui.modals[-1][1]["links"] == ["https://pacs.local/view/2"]
    assert mock_backend.calls[-1] == ("updateImageLinks", {"study_id": "ST-901", "image_links": ["https://pacs.local/view/2"]})


# Radiologist

def test_radiologist_worklist(ctx, ui, login_as):
    login_as(ctx, "USR-5", "4444")
    view = ctx.views[Page.RADIOLOGIST]

    model = view.change_date(DEMO_DAY)
    assert model["counts"] == {"reporting": 1, "completed": 0}
    assert [card["id"] for card in model["studies"]] == ["ST-901"]

    model = view.toggle_my_list()
    assert model["studies"] == []

    assert view.switch_tab("archive") is None
    assert ui.alerts == ["Unknown tab: archive"]


def test_editor_is_read_only_for_other_radiologists(ctx, ui, login_as):
    login_as(ctx, "USR-5", "4444")
    view = ctx.views[Page.RADIOLOGIST]

    model = view.open_editor("ST-901")
    assert model["read_only"]
    assert not model["can_print"]

    assert view.set_content("<p>changed</p>") is None
    assert view.print_report() is None
    assert ui.alerts == ["Report is read-only for this user", "Only the assigned radiologist can sign this report"]


def test_template_and_clinical_import(ctx, ui, login_as):
    login_as(ctx, "USR-4", "3333")
    view = ctx.views[Page.RADIOLOGIST]
    view.open_editor("ST-901")

    model = view.toggle_templates()
    assert [t["name"] for t in model["templates"]] == ["Normal", "Fatty Liver"]

    model = view.apply_template("Fatty Liver")
    assert ui.prompts == [("Enter Grade (fatty_grade):", "I")]
    assert "Grade I" in model["content"]
    assert model["templates"] == []

    model = view.toggle_import("complaint", True)
    assert model["content"].startswith("<p><b>Chief Complaint: </b>Abdominal pain</p>")
    model = view.toggle_import("diagnosis", True)
    assert "Clinical Diagnosis" not in model["content"]


def test_sign_and_print(ctx, ui, mock_backend, login_as):
    login_as(ctx, "USR-4", "3333")
    view = ctx.views[Page.RADIOLOGIST]
    view.open_editor("ST-901")
    view.set_content("<p>Normal liver.</p>")

    model = view.print_report()

    assert model["content"] == "<p>Normal liver.</p>"
    assert ui.printed == [model]
    assert ctx.state.find("studies", "ST-901")["status"] == "Reported"
    assert mock_backend.data["studies"][0]["status"] == "Reported"
    assert mock_backend.data["studies"][0]["report_content"] == "<p>Normal liver.</p>"
    assert not ui.loading


def test_mark_complete(ctx, ui, mock_backend, login_as):
    login_as(ctx, "USR-4", "3333")
    view = ctx.views[Page.RADIOLOGIST]
    view.open_editor("ST-901")
    view.set_content("<p>Final.</p>")

    assert view.mark_complete()

    study = ctx.state.find("studies", "ST-901")
    assert study["status"] == "Completed"
    assert study["report_content"] == "<p>Final.</p>"
    assert view.active_tab == "completed"
    assert view.editor is None
    assert [action for action, _ in mock_backend.calls[-2:]] == ["saveReport", "markComplete"]
    assert mock_backend.data["studies"][0]["status"] == "Completed"


def test_technician_cannot_mark_complete(ctx, ui, login_as):
    login_as(ctx, "USR-3", "2222")

    assert ctx.views[Page.RADIOLOGIST].mark_complete("ST-901") is None
    assert ui.alerts == ["Access Denied: You don't have permission to mark cases as complete."]


def test_waiting_study_cannot_be_completed(ctx, ui, login_as):
    login_as(ctx, "USR-4", "3333")

    assert ctx.views[Page.RADIOLOGIST].mark_complete("ST-902") is None
    assert ui.alerts == ["Cannot move study from Waiting to Completed"]


def test_print_failure_keeps_status(ctx, ui, mock_backend, login_as):
    login_as(ctx, "USR-4", "3333")
    view = ctx.views[Page.RADIOLOGIST]
    view.open_editor("ST-901")
    mock_backend.data["studies"].pop(0)

    assert view.print_report() is None
    assert ui.alerts == ["Save failed: ID not found: ST-901"]
    assert ctx.state.find("studies", "ST-901")["status"] == "Reporting"
    assert ctx.state.sync_status("ST-901") is SyncStatus.FAILED


# Admin

def test_create_user(ctx, ui, mock_backend, login_as):
    login_as(ctx, "USR-1", "1234")
    view = ctx.views[Page.ADMIN]

    user_id = view.create_user("Hana Ali", "hana@radcenter.local", "Technician", "5678")

    assert user_id.startswith("USR-MOCK-")
    assert ui.alerts == ["User Created Successfully"]
    sent = mock_backend.calls[-1][1]
    assert "id" not in sent
    assert sent["pin"] != "5678"
    row = ui.current_model["users"][-1]
    assert row["pin"] == "****"
    assert row["sync_status"] == "committed"

    ctx.auth.logout()
    assert ctx.auth.login_staff(user_id, "5678") is Page.TECHNICIAN


def test_create_user_validation(ctx, ui, login_as):
    login_as(ctx, "USR-1", "1234")
    view = ctx.views[Page.ADMIN]

    assert view.create_user("Hana Ali", "hana@radcenter.local", "Technician", "12") is None
    assert view.create_user("Hana Ali", "hana@radcenter.local", "Patient", "1234") is None
    assert ui.alerts == ["Please fill all fields (PIN must be 4 digits)", "Unknown role: Patient"]


def test_only_admin_manages_users(ctx, ui, login_as):
    login_as(ctx, "USR-4", "3333")

    assert ctx.views[Page.ADMIN].create_user("Hana Ali", "hana@radcenter.local", "Technician", "5678") is None
    assert ui.alerts == ["Access Denied: You don't have permission to manage users."]


def test_save_settings(ctx, ui, login_as):
    login_as(ctx, "USR-1", "1234")
    view = ctx.views[Page.ADMIN]

    assert view.save_settings("") is None
    assert view.save_settings("http://backend.local/exec")
    assert ctx.storage.get(BACKEND_URL_KEY) == "http://backend.local/exec"
    assert ui.alerts == ["URL cannot be empty", "Settings Saved. Reloading..."]
    assert ui.reloads == 1


# Patient portal

def test_patient_portal(ctx, ui):
    ctx.state.find("studies", "ST-901")["status"] = "Reported"
    ctx.auth.login_patient("0599123456", "AHM0599123456")

    model = ui.current_model
    studies = model["visits"][0]["studies"]
    assert [(s["id"], s["label"]) for s in studies] == [("ST-901", "View Report"), ("ST-902", "Not Reported")]

    view = ctx.views[Page.PATIENT_PORTAL]
    assert view.view_report("ST-901")["study"]["id"] == "ST-901"
    assert view.view_report("ST-902") is None
    assert ui.alerts == ["Not Reported"]


def test_patient_cannot_read_other_reports(ctx, ui):
    ctx.auth.login_patient("0599654321", "SAR0599654321")

    assert ui.current_model["visits"] == []
    assert ctx.views[Page.PATIENT_PORTAL].view_report("ST-901") is None
    assert ui.alerts == ["Access Denied"]


# End to end

def test_patient_journey_against_backend(backend_ctx, ui, login_as):
    ctx = backend_ctx
    admin_id = ctx.state.users[0]["id"]
    login_as(ctx, admin_id, "1234")

    reception = ctx.views[Page.RECEPTION]
    patient_id = reception.save_patient(
        "Ahmed Khaled", "1985-04-12", gender="Male", phone="0599123456", complaint="Abdominal pain"
    )
    assert not is_placeholder(ctx.state.resolve_id(patient_id))
    doctor_id = ctx.views[Page.ADMIN].create_user("Dr. Layla Hassan", "layla@radcenter.local", "Radiologist", "3333")
    assert doctor_id is not None

    _new_visit(reception, ("US", "Abdomen", "US Abdomen Complete"))
    visit_id = reception.save_visit(patient_id, doctor_id)
    study_id = [s["id"] for s in ctx.state.studies if s["visit_id"] == ctx.state.resolve_id(visit_id)][0]
    assert not is_placeholder(study_id)

    technician = ctx.views[Page.TECHNICIAN]
    worklist = technician.change_date(helpers.today())["studies"]
    assert [(card["id"], card["status"]) for card in worklist] == [(study_id, "Waiting")]
    assert technician.start_scan(study_id)
    assert technician.complete_scan(study_id)

    ctx.auth.logout()
    assert ctx.auth.login_staff(doctor_id, "3333") is Page.RADIOLOGIST
    radiologist = ctx.views[Page.RADIOLOGIST]
    mine = radiologist.toggle_my_list()
    assert mine["tab"] == "reporting"
    assert [card["id"] for card in mine["studies"]] == [study_id]
    assert not radiologist.open_editor(study_id)["read_only"]
    radiologist.apply_template("Normal")
    assert radiologist.print_report() is not None
    assert radiologist.mark_complete()
    assert ui.alerts == ["User Created Successfully"]

    assert ctx.load_data()
    study = ctx.state.find("studies", study_id)
    assert study["status"] == "Completed"
    assert "Liver:" in study["report_content"]
    assert study["completed_at"]

    ctx.auth.logout()
    assert ctx.auth.login_patient("0599123456", "AHM0599123456") is Page.PATIENT_PORTAL
    [visit] = ui.current_model["visits"]
    assert visit["doctor"] == "Dr. Layla Hassan"
    assert visit["studies"][0]["label"] == "View Report"
