import pytest

from expense_tracker.exceptions import NotFoundError, ValidationError
from expense_tracker.main import bootstrap
from expense_tracker.models.users import Role, User
from expense_tracker.services import users as user_service


def test_upsert_creates_basic_user(db):
    user = user_service.upsert_user(db, "sub-123", email="New@Example.com", first_name="Nowy")

    assert user.role == "user"
    assert user.email == "new@example.com"


def test_upsert_never_changes_role(db, approver):
    user = user_service.upsert_user(db, approver.id, email=approver.email, first_name="Renamed")

    assert user.role == "approver"
    assert user.first_name == "Renamed"


def test_create_user_rejects_duplicate_email(db, basic_user):
    with pytest.raises(ValidationError):
        user_service.create_user(db, email="BASIA@example.com", first_name="B", last_name="T")


def test_create_user_with_role(db):
    user = user_service.create_user(db, email="a@b.com", first_name="A", last_name="B", role=Role.APPROVER)

    assert user.id.startswith("manual_")
    assert user.role == "approver"


def test_update_user_email_must_be_unique(db, basic_user, other_user):
    with pytest.raises(ValidationError):
        user_service.update_user(db, other_user.id, {"email": basic_user.email})


def test_role_change(db, basic_user, admin):
    user = user_service.update_user_role(db, basic_user.id, "approver")
    assert user.role == "approver"


def test_invalid_role(db, basic_user):
    with pytest.raises(ValidationError):
        user_service.update_user_role(db, basic_user.id, "owner")


def test_last_admin_cannot_be_demoted(db, admin):
    with pytest.raises(ValidationError) as exc:
        user_service.update_user_role(db, admin.id, Role.USER)
    assert exc.value.message == "Cannot remove the last admin user"
    db.refresh(admin)
    assert admin.role == "admin"


def test_admin_demoted_when_another_remains(db, admin):
    db.add(User(id="admin-2", email="second@example.com", role="admin"))
    db.commit()

    user = user_service.update_user_role(db, admin.id, Role.APPROVER)
    assert user.role == "approver"


def test_unknown_user(db):
    with pytest.raises(NotFoundError):
        user_service.get_user(db, "nobody")


# =========================
# DEFAULT ADMIN
# =========================

def _admin_count(db):
    return db.query(User).filter(User.role == "admin").count()


def test_fresh_database_gets_one_admin_across_restarts(db):
    bootstrap(db)
    bootstrap(db)

    assert _admin_count(db) == 1
    admin = db.query(User).filter(User.role == "admin").one()
    assert admin.id == "local-admin"
    assert admin.email == "admin@example.com"


def test_default_admin_skipped_while_an_admin_exists(db, admin):
    assert user_service.ensure_default_admin(db, "local-admin", email="root@example.com") is None
    assert _admin_count(db) == 1
    assert db.query(User).filter(User.id == "local-admin").first() is None


def test_default_admin_promotes_existing_account(db, basic_user):
    user = user_service.ensure_default_admin(db, "local-admin", email=basic_user.email)

    assert user.id == basic_user.id
    assert user.role == "admin"
    assert db.query(User).count() == 1


def test_first_login_after_bootstrap_keeps_admin_role(db):
    user_service.ensure_default_admin(db, "local-admin", email="admin@example.com")

    user = user_service.upsert_user(db, "local-admin", email="admin@example.com", first_name="Local")

    assert user.role == "admin"
