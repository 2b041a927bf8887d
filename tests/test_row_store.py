"""
Tests for the row store service.
"""
import pytest

from radcenter.exceptions import DuplicateIdException, RecordNotFoundException, UnknownCollectionException
from radcenter.store import service as store
from radcenter.store.models import Patient, headers


def test_create_row_generates_prefixed_id(db):
    record_id = store.create_row(db, "patients", {"full_name": "Ahmed Khaled", "dob": "1985-04-12"})

    assert record_id.startswith("PT-")
    number = int(record_id.split("-", 1)[1])
    assert 0 <= number <= 99999


def test_create_row_keeps_given_id_and_fills_blanks(db):
    store.create_row(db, "patients", {"id": "PT-7", "full_name": "Sara Nour", "nickname": "ignored"})

    rows = store.get_all_rows(db, "patients")
    assert len(rows) == 1
    row = rows[0]
    assert row["id"] == "PT-7"
    assert row["phone"] == ""
    assert row["created_at"] != ""
    assert "nickname" not in row
    assert list(row) == headers(Patient)


def test_create_row_stores_lists_as_json(db):
    store.create_row(db, "studies", {"visit_id": "VS-1", "image_links": ["http://a", "http://b"]})

    study = store.get_all_rows(db, "studies")[0]
    assert study["image_links"] == '["http://a", "http://b"]'


def test_update_row_only_touches_named_columns(db):
    record_id = store.create_row(db, "patients", {"full_name": "Ahmed Khaled", "phone": "0599123456"})

    updated = store.update_row(db, "patients", record_id, {"phone": "0599000000", "id": "PT-HIJACK"})

    assert updated["id"] == record_id
    assert updated["phone"] == "0599000000"
    assert updated["full_name"] == "Ahmed Khaled"


def test_update_missing_row_raises(db):
    with pytest.raises(RecordNotFoundException) as exc:
        store.update_row(db, "studies", "ST-404", {"status": "Scanning"})
    assert exc.value.status_code == 404
    assert "ST-404" in exc.value.detail


def test_delete_row(db):
    record_id = store.create_row(db, "templates", {"modality": "US", "region": "Abdomen", "name": "Normal"})

    store.delete_row(db, "templates", record_id)

    assert store.get_all_rows(db, "templates") == []
    with pytest.raises(RecordNotFoundException):
        store.delete_row(db, "templates", record_id)


def test_unknown_collection(db):
    with pytest.raises(UnknownCollectionException):
        store.get_all_rows(db, "invoices")


def test_get_all_data_lists_every_collection(db):
    data = store.get_all_data(db)

    assert set(data) == {"patients", "visits", "studies", "templates", "users"}
    # The seeded administrator
    assert len(data["users"]) == 1
    assert data["users"][0]["role"] == "Admin"


def test_generated_ids_are_unique(db):
    created = {store.create_row(db, "visits", {"patient_id": "PT-1"}) for _ in range(30)}
    assert len(created) == 30


def test_create_row_refuses_taken_id(db):
    store.create_row(db, "visits", {"id": "VS-1", "patient_id": "PT-1"})

    with pytest.raises(DuplicateIdException) as exc:
        store.create_row(db, "visits", {"id": "VS-1", "patient_id": "PT-2"})

    assert exc.value.status_code == 409
    assert store.find_row(db, "visits", "VS-1").patient_id == "PT-1"
