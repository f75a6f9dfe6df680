# tests/test_users_settings.py
from __future__ import annotations

import pytest

from vetclinic.database.errors import NotFoundError, ValidationError
from vetclinic.database.models import ClinicSettings
from vetclinic.utils.auth import hash_password, needs_rehash, verify_password


def test_seeded_users_can_log_in(db):
    admin = db.authenticate("admin", "admin")
    assert admin is not None
    assert admin.role == "admin"
    assert admin.password is None
    assert db.authenticate("staff", "wrong") is None
    assert db.authenticate("nobody", "x") is None


def test_reads_never_expose_password(db):
    assert all(u.password is None for u in db.get_users())
    assert db.get_user_by_username("ADMIN").username == "admin"


def test_create_user_and_sync_payload_is_masked(db):
    uid = db.save_user(username="vet1", role="staff", password="s3cret")

    assert db.authenticate("vet1", "s3cret").id == uid
    op = db.get_sync_queue()[-1]
    assert (op.collection, op.action) == ("users", "create")
    assert op.payload.password == "***"


def test_username_must_be_unique(db):
    with pytest.raises(ValidationError, match="already taken"):
        db.save_user(username="Admin", password="x")


def test_new_user_needs_password(db):
    with pytest.raises(ValidationError, match="Password is required"):
        db.save_user(username="vet2")


def test_edit_without_password_keeps_hash(db):
    uid = db.save_user(username="vet1", password="first")
    db.save_user(username="vet1", role="admin", password="", user_id=uid)

    assert db.authenticate("vet1", "first").role == "admin"
    db.save_user(username="vet1", role="admin", password="second", user_id=uid)
    assert db.authenticate("vet1", "first") is None
    assert db.authenticate("vet1", "second") is not None


def test_delete_user(db):
    uid = db.save_user(username="temp", password="pw")
    db.delete_user(uid)
    assert db.get_user_by_username("temp") is None
    with pytest.raises(NotFoundError):
        db.delete_user(uid)


def test_legacy_plaintext_password_is_upgraded(db):
    db.store.data.users[0].password = "admin"
    assert needs_rehash(db.store.data.users[0].password)

    assert db.authenticate("admin", "admin") is not None
    stored = db.store.data.users[0].password
    assert stored.startswith("$2")
    assert verify_password("admin", stored)


def test_hash_helpers():
    h = hash_password("pw", rounds=4)
    assert verify_password("pw", h)
    assert not verify_password("other", h)
    assert not verify_password("pw", None)
    assert needs_rehash(h, min_rounds=10)


def test_settings_round_trip(db, changes):
    settings = db.get_clinic_settings()
    assert settings.name == "VetClinic"

    db.save_clinic_settings(ClinicSettings(name="Happy Paws", phone="555-1000"))
    saved = db.get_clinic_settings()
    assert (saved.name, saved.phone) == ("Happy Paws", "555-1000")
    assert changes == ["clinicSettings"]

    with pytest.raises(ValidationError):
        db.save_clinic_settings(ClinicSettings(name=""))
