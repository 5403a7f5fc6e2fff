from datetime import date
from decimal import Decimal

import pytest

from worklog import create_app
from worklog.acl import privileged
from worklog.extensions import db
from worklog.models import EmployeeTypeSetting, Identity, Profile, ProjectPreset, WorkRecord
from worklog.auth.identity import name_to_email


# Each test gets a completely fresh app instance with its own in-memory database
@pytest.fixture
def app():
    app = create_app({
        "TESTING": True,
        "SECRET_KEY": "test",
        "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
        "PROFILE_RESOLVE_BASE_DELAY": 0,
    })
    with app.app_context():
        db.create_all()
        with privileged():
            db.session.add_all([
                EmployeeTypeSetting(type_name="intern", type_label="Стажёр", daily_wage=100, overtime_rate=9),
                EmployeeTypeSetting(type_name="regular", type_label="Штатный", daily_wage=150, overtime_rate=12),
                ProjectPreset(project_name="Монтаж", unit_price=80, unit_label="серия", sort_order=1),
                ProjectPreset(project_name="Генерация", unit_price=30, unit_label="серия", sort_order=2),
                ProjectPreset(project_name="Рабочий день", unit_price=0, unit_label="день", sort_order=3),
            ])
            db.session.commit()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def ctx(app):
    """App context for service-level tests."""
    with app.app_context():
        yield app
        db.session.rollback()


@pytest.fixture
def client(app):
    return app.test_client()


def make_user(name, password="secret123", role="user", employee_type="regular"):
    """Create an identity (profile comes from the insert hook) bypassing the policy."""
    with privileged():
        ident = Identity(email=name_to_email(name), display_name=name)
        ident.set_password(password)
        db.session.add(ident)
        db.session.commit()
        prof = db.session.get(Profile, ident.id)
        prof.role = role
        prof.employee_type = employee_type
        db.session.commit()
    return prof


def make_record(profile, project_name="Монтаж", workload=1, overtime=0,
                unit_price=80, overtime_rate=9, record_date=None):
    with privileged():
        r = WorkRecord(
            user_id=profile.id,
            user_name=profile.name,
            project_name=project_name,
            workload=Decimal(str(workload)),
            overtime=Decimal(str(overtime)),
            unit_price_snapshot=Decimal(str(unit_price)),
            overtime_rate_snapshot=Decimal(str(overtime_rate)),
            record_date=record_date or date.today(),
        )
        db.session.add(r)
        db.session.commit()
    return r


@pytest.fixture
def users(ctx):
    """alice (regular), bob (intern), root (admin)."""
    return {
        "alice": make_user("alice"),
        "bob": make_user("bob", employee_type="intern"),
        "root": make_user("root", role="admin"),
    }


def login(client, name, password="secret123"):
    return client.post("/login", data={"name": name, "password": password}, follow_redirects=False)
