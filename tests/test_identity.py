import pytest
from sqlalchemy import false

from worklog.acl import acting_as
from worklog.auth.identity import (
    SessionContext, authenticate, name_to_email, register, resolve_profile, update_profile, verify_password,
)
from worklog.errors import AuthorizationDenied, ProfileUnavailable, ValidationError
from worklog.extensions import db
from worklog.models import Identity, Profile


def test_name_to_email_is_deterministic_hex():
    assert name_to_email("bob") == "u626f62@work.local"
    assert name_to_email("  bob ") == name_to_email("bob")
    assert name_to_email("Иван") == "u" + "Иван".encode("utf-8").hex() + "@work.local"
    assert name_to_email("Bob") != name_to_email("bob")


def test_register_materializes_profile(ctx):
    ident = register("Иван", "password1", "password1")
    prof = db.session.get(Profile, ident.id)
    assert prof is not None
    assert prof.name == "Иван"
    assert prof.role == "user"
    assert prof.employee_type == "regular"
    assert ident.email == name_to_email("Иван")


def test_register_name_collision(ctx):
    register("Мария", "password1")
    with pytest.raises(ValidationError) as e:
        register("Мария", "password2")
    assert e.value.field == "name"
    assert Identity.query.count() == 1


def test_register_collision_with_renamed_profile(ctx):
    ident = register("first", "password1")
    with acting_as(ident.id):
        update_profile(db.session.get(Profile, ident.id), name="taken")
    # логин переехал вслед за именем
    with pytest.raises(ValidationError):
        register("taken", "password1")


def test_rename_moves_login(ctx):
    ident = register("first", "password1")
    with acting_as(ident.id):
        update_profile(db.session.get(Profile, ident.id), name="second")
    assert authenticate("second", "password1").id == ident.id
    assert authenticate("first", "password1") is None
    assert db.session.get(Identity, ident.id).display_name == "second"
    # старое имя освободилось целиком
    again = register("first", "password2")
    assert again.id != ident.id


def test_admin_rename_moves_login(ctx, users):
    alice = users["alice"]
    with acting_as(users["root"].id):
        update_profile(alice, name="alicia")
    ident = authenticate("alicia", "secret123")
    assert ident is not None and ident.id == alice.id
    assert authenticate("alice", "secret123") is None


def test_same_name_keeps_login(ctx, users):
    alice = users["alice"]
    with acting_as(alice.id):
        update_profile(alice, name=" alice ")
    assert authenticate("alice", "secret123") is not None


@pytest.mark.parametrize("password,confirm", [
    ("short1", None),
    ("onlyletters", None),
    ("12345678", None),
    ("password1", "password2"),
])
def test_register_password_rules(ctx, password, confirm):
    with pytest.raises(ValidationError):
        register("someone", password, confirm)


def test_register_requires_name(ctx):
    with pytest.raises(ValidationError):
        register("   ", "password1")


def test_authenticate(ctx):
    ident = register("petya", "password1")
    assert authenticate("petya", "password1").id == ident.id
    assert authenticate(" petya ", "password1").id == ident.id
    assert authenticate("petya", "wrong-pass1") is None
    assert authenticate("nobody", "password1") is None
    assert authenticate("", "") is None
    assert verify_password(ident.id, "password1")
    assert not verify_password(ident.id, "nope")


def test_resolve_profile_found_immediately(ctx, users):
    sleeps = []
    prof = resolve_profile(users["alice"].id, sleep=sleeps.append)
    assert prof.name == "alice"
    assert sleeps == []


def test_resolve_profile_gives_up_with_backoff(ctx):
    sleeps = []
    assert resolve_profile(9999, attempts=5, base_delay=0.2, timeout=6, sleep=sleeps.append) is None
    assert sleeps == [0.2, 0.4, 0.8, 1.6]


def test_resolve_profile_respects_timeout(ctx):
    sleeps = []
    assert resolve_profile(9999, attempts=10, base_delay=1, timeout=4, sleep=sleeps.append) is None
    assert sum(sleeps) <= 4
    assert sleeps == [1, 2]


def test_resolve_profile_retries_until_visible(ctx, monkeypatch):
    ident = register("late", "password1")
    real_query = Profile.query
    calls = {"n": 0}

    class _Lagging:
        def filter_by(self, **kw):
            calls["n"] += 1
            q = real_query.filter_by(**kw)
            return q if calls["n"] >= 3 else q.filter(false())

    monkeypatch.setattr(Profile, "query", _Lagging())
    sleeps = []
    prof = resolve_profile(ident.id, attempts=5, base_delay=0.1, timeout=6, sleep=sleeps.append)
    assert prof is not None and prof.id == ident.id
    assert sleeps == [0.1, 0.2]


def test_session_context_states(ctx, users):
    anon = SessionContext()
    assert not anon.is_authenticated and not anon.profile_unavailable and not anon.is_admin

    degraded = SessionContext(42, None)
    assert degraded.is_authenticated and degraded.profile_unavailable
    with pytest.raises(ProfileUnavailable):
        degraded.require_profile()

    admin = SessionContext(users["root"].id, users["root"])
    assert admin.is_admin
    assert admin.require_profile() is users["root"]


def test_update_profile_rename_collision(ctx, users):
    alice = users["alice"]
    with acting_as(alice.id):
        with pytest.raises(ValidationError):
            update_profile(alice, name="bob")
    assert db.session.get(Profile, alice.id).name == "alice"
    assert authenticate("alice", "secret123") is not None


def test_update_profile_role_needs_admin(ctx, users):
    alice = users["alice"]
    with acting_as(alice.id):
        with pytest.raises(AuthorizationDenied):
            update_profile(alice, role="admin")
    with acting_as(users["root"].id):
        update_profile(alice, role="admin", employee_type="intern")
    prof = db.session.get(Profile, alice.id)
    assert prof.role == "admin" and prof.employee_type == "intern"


def test_update_profile_unknown_role(ctx, users):
    with acting_as(users["root"].id):
        with pytest.raises(ValidationError):
            update_profile(users["alice"], role="owner")
