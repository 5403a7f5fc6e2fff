from datetime import date, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import delete, update

from worklog.acl import acting_as, can_delete_record, can_edit_record, privileged
from worklog.errors import AuthorizationDenied
from worklog.extensions import db
from worklog.models import EmployeeTypeSetting, Identity, Profile, ProjectPreset, WorkRecord

from conftest import make_record


def _denied(fn):
    with pytest.raises(AuthorizationDenied):
        fn()
    db.session.rollback()


def _new_record(profile, **kw):
    return WorkRecord(
        user_id=profile.id, user_name=profile.name, project_name="Монтаж",
        workload=Decimal("1"), overtime=Decimal("0"),
        unit_price_snapshot=Decimal("80"), overtime_rate_snapshot=Decimal("9"), **kw,
    )


# ---------- work_record: insert ----------
def test_insert_own_record_allowed(ctx, users):
    alice = users["alice"]
    with acting_as(alice.id):
        db.session.add(_new_record(alice))
        db.session.commit()
    assert WorkRecord.query.filter_by(user_id=alice.id).count() == 1


def test_insert_for_someone_else_denied_even_for_admin(ctx, users):
    with acting_as(users["root"].id):
        db.session.add(_new_record(users["alice"]))
        _denied(db.session.commit)
    assert WorkRecord.query.count() == 0


def test_anonymous_cannot_write(ctx, users):
    with acting_as(None):
        db.session.add(_new_record(users["alice"]))
        _denied(db.session.commit)


def test_failed_batch_leaves_nothing(ctx, users):
    alice, bob = users["alice"], users["bob"]
    with acting_as(alice.id):
        db.session.add_all([_new_record(alice), _new_record(bob)])
        _denied(db.session.commit)
    assert WorkRecord.query.count() == 0


# ---------- work_record: update ----------
def test_owner_updates_todays_record(ctx, users):
    alice = users["alice"]
    r = make_record(alice)
    with acting_as(alice.id):
        r.workload = Decimal("3")
        db.session.commit()
    assert db.session.get(WorkRecord, r.id).workload == Decimal("3")


def test_owner_cannot_update_past_record(ctx, users):
    alice = users["alice"]
    r = make_record(alice, record_date=date.today() - timedelta(days=1))
    with acting_as(alice.id):
        r.workload = Decimal("3")
        _denied(db.session.commit)
    assert db.session.get(WorkRecord, r.id).workload == Decimal("1")


def test_owner_cannot_move_past_record_to_today(ctx, users):
    alice = users["alice"]
    r = make_record(alice, record_date=date.today() - timedelta(days=3))
    with acting_as(alice.id):
        r.record_date = date.today()
        _denied(db.session.commit)


def test_owner_cannot_reassign_record(ctx, users):
    alice, bob = users["alice"], users["bob"]
    r = make_record(alice)
    with acting_as(alice.id):
        r.user_id = bob.id
        _denied(db.session.commit)


def test_other_user_cannot_update(ctx, users):
    r = make_record(users["alice"])
    with acting_as(users["bob"].id):
        r.notes = "чужое"
        _denied(db.session.commit)


def test_admin_updates_any_record_any_date(ctx, users):
    r = make_record(users["alice"], record_date=date(2020, 1, 15))
    with acting_as(users["root"].id):
        r.workload = Decimal("7")
        db.session.commit()
    assert db.session.get(WorkRecord, r.id).workload == Decimal("7")


# ---------- work_record: delete ----------
def test_admin_deletes_others_record(ctx, users):
    r = make_record(users["alice"])
    with acting_as(users["root"].id):
        db.session.delete(r)
        db.session.commit()
    assert WorkRecord.query.count() == 0


def test_admin_cannot_delete_own_record(ctx, users):
    root = users["root"]
    r = make_record(root)
    with acting_as(root.id):
        db.session.delete(r)
        _denied(db.session.commit)
    assert WorkRecord.query.count() == 1


def test_owner_cannot_delete_own_record(ctx, users):
    alice = users["alice"]
    r = make_record(alice)
    with acting_as(alice.id):
        db.session.delete(r)
        _denied(db.session.commit)


def test_user_cannot_delete_someone_elses_record(ctx, users):
    r = make_record(users["alice"])
    with acting_as(users["bob"].id):
        db.session.delete(r)
        _denied(db.session.commit)
    assert WorkRecord.query.count() == 1


def test_bulk_delete_statement_refused(ctx, users):
    make_record(users["alice"])
    with acting_as(users["root"].id):
        with pytest.raises(AuthorizationDenied):
            db.session.execute(delete(WorkRecord))
        with pytest.raises(AuthorizationDenied):
            db.session.execute(update(WorkRecord).values(workload=0))
    assert WorkRecord.query.count() == 1


# ---------- profile ----------
def test_owner_renames_self(ctx, users):
    alice = users["alice"]
    with acting_as(alice.id):
        alice.name = "alice2"
        db.session.commit()
    assert db.session.get(Profile, alice.id).name == "alice2"


def test_owner_cannot_promote_self(ctx, users):
    alice = users["alice"]
    with acting_as(alice.id):
        alice.role = "admin"
        _denied(db.session.commit)
    assert db.session.get(Profile, alice.id).role == "user"


def test_owner_cannot_change_employee_type(ctx, users):
    bob = users["bob"]
    with acting_as(bob.id):
        bob.employee_type = "regular"
        _denied(db.session.commit)


def test_user_cannot_rename_someone_else(ctx, users):
    with acting_as(users["bob"].id):
        users["alice"].name = "hacked"
        _denied(db.session.commit)


def test_admin_updates_any_profile(ctx, users):
    alice = users["alice"]
    with acting_as(users["root"].id):
        alice.role = "admin"
        alice.employee_type = "intern"
        db.session.commit()
    assert db.session.get(Profile, alice.id).is_admin


def test_profile_delete_denied(ctx, users):
    with acting_as(users["root"].id):
        db.session.delete(users["alice"])
        _denied(db.session.commit)


def test_admin_moves_login_of_another_user(ctx, users):
    ident = db.session.get(Identity, users["alice"].id)
    with acting_as(users["root"].id):
        ident.email = "u00@work.local"
        ident.display_name = "x"
        db.session.commit()
    assert db.session.get(Identity, ident.id).email == "u00@work.local"


def test_admin_cannot_change_someone_elses_password(ctx, users):
    ident = db.session.get(Identity, users["alice"].id)
    with acting_as(users["root"].id):
        ident.set_password("hijacked1")
        _denied(db.session.commit)
    assert db.session.get(Identity, ident.id).check_password("secret123")


def test_user_cannot_move_someone_elses_login(ctx, users):
    ident = db.session.get(Identity, users["alice"].id)
    with acting_as(users["bob"].id):
        ident.email = "u00@work.local"
        _denied(db.session.commit)


def test_identity_delete_denied(ctx, users):
    with acting_as(users["root"].id):
        db.session.delete(db.session.get(Identity, users["alice"].id))
        _denied(db.session.commit)


def test_privileged_cascade_removes_profile_and_records(ctx, users):
    alice = users["alice"]
    aid = alice.id
    make_record(alice)
    with privileged():
        db.session.delete(db.session.get(Identity, aid))
        db.session.commit()
    db.session.expunge_all()
    assert db.session.get(Profile, aid) is None
    assert WorkRecord.query.count() == 0


# ---------- catalog ----------
def test_non_admin_cannot_touch_employee_types(ctx, users):
    s = EmployeeTypeSetting.query.filter_by(type_name="regular").first()
    with acting_as(users["alice"].id):
        s.daily_wage = Decimal("100000")
        _denied(db.session.commit)
    assert db.session.get(EmployeeTypeSetting, s.id).daily_wage == Decimal("150")


def test_non_admin_cannot_delete_employee_type(ctx, users):
    s = EmployeeTypeSetting.query.filter_by(type_name="intern").first()
    with acting_as(users["alice"].id):
        db.session.delete(s)
        _denied(db.session.commit)
    assert EmployeeTypeSetting.query.filter_by(type_name="intern").count() == 1


def test_admin_adds_and_deletes_employee_type(ctx, users):
    with acting_as(users["root"].id):
        s = EmployeeTypeSetting(type_name="senior", type_label="Старший", daily_wage=200, overtime_rate=15)
        db.session.add(s)
        db.session.commit()
        assert EmployeeTypeSetting.query.filter_by(type_name="senior").count() == 1
        db.session.delete(s)
        db.session.commit()
    assert EmployeeTypeSetting.query.filter_by(type_name="senior").count() == 0


def test_non_admin_cannot_update_preset(ctx, users):
    p = ProjectPreset.query.filter_by(project_name="Монтаж").first()
    with acting_as(users["bob"].id):
        p.unit_price = Decimal("9999")
        _denied(db.session.commit)
    assert db.session.get(ProjectPreset, p.id).unit_price == Decimal("80")


def test_non_admin_cannot_delete_preset(ctx, users):
    p = ProjectPreset.query.filter_by(project_name="Генерация").first()
    with acting_as(users["alice"].id):
        db.session.delete(p)
        _denied(db.session.commit)
    assert ProjectPreset.query.filter_by(project_name="Генерация").count() == 1


# ---------- ui hints agree with the policy ----------
def test_ui_hints(ctx, users):
    alice, root = users["alice"], users["root"]
    today = make_record(alice)
    old = make_record(alice, record_date=date.today() - timedelta(days=1))
    own = make_record(root)
    assert can_edit_record(alice, today)
    assert not can_edit_record(alice, old)
    assert not can_edit_record(users["bob"], today)
    assert not can_edit_record(None, today)
    assert can_edit_record(root, old)
    assert can_delete_record(root, today)
    assert not can_delete_record(root, own)
    assert not can_delete_record(alice, today)
