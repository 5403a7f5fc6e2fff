from decimal import Decimal

import pytest

from worklog.acl import acting_as
from worklog.errors import AuthorizationDenied, ValidationError
from worklog.extensions import db
from worklog.models import ProjectPreset
from worklog.rates import (
    active_presets, create_preset, delete_preset, resolve_snapshots, save_employee_type,
    set_preset_active, update_preset,
)


def test_attendance_uses_daily_wage_of_employee_type(ctx):
    assert resolve_snapshots("Рабочий день", "regular") == (Decimal("150"), Decimal("12"))
    assert resolve_snapshots("Рабочий день", "intern") == (Decimal("100"), Decimal("9"))


def test_preset_price_and_type_overtime(ctx):
    assert resolve_snapshots("Монтаж", "regular") == (Decimal("80"), Decimal("12"))


def test_custom_project_is_zero_priced(ctx):
    price, rate = resolve_snapshots("Что-то своё", "intern")
    assert price == Decimal("0")
    assert rate == Decimal("9")


def test_unknown_employee_type_falls_back_to_default_overtime(ctx):
    assert resolve_snapshots("Рабочий день", "contractor") == (Decimal("0"), Decimal("9"))
    assert resolve_snapshots("Монтаж", None) == (Decimal("80"), Decimal("9"))


def test_attendance_project_name_is_configurable(app):
    app.config["ATTENDANCE_PROJECT"] = "Монтаж"
    with app.app_context():
        # теперь «Монтаж» оплачивается по дневной ставке, а не по цене пресета
        assert resolve_snapshots("Монтаж", "regular") == (Decimal("150"), Decimal("12"))


def test_inactive_presets_hidden_from_picker(ctx, users):
    p = ProjectPreset.query.filter_by(project_name="Генерация").first()
    with acting_as(users["root"].id):
        set_preset_active(p.id, False)
    names = [x.project_name for x in active_presets()]
    assert "Генерация" not in names
    # цена по-прежнему действует для записей с этим именем
    assert resolve_snapshots("Генерация", "regular")[0] == Decimal("30")


def test_admin_manages_catalog(ctx, users):
    with acting_as(users["root"].id):
        p = create_preset({"project_name": "Озвучка", "unit_price": "45,5", "unit_label": "мин"})
        assert p.unit_price == Decimal("45.5")
        update_preset(p.id, {"unit_price": "50"})
        assert db.session.get(ProjectPreset, p.id).unit_price == Decimal("50")
        s = save_employee_type({"type_name": "intern", "daily_wage": "120"})
        assert s.daily_wage == Decimal("120")
        assert s.overtime_rate == Decimal("9")
        delete_preset(p.id)
    assert db.session.get(ProjectPreset, p.id) is None


def test_duplicate_preset_name_is_validation_error(ctx, users):
    with acting_as(users["root"].id):
        with pytest.raises(ValidationError):
            create_preset({"project_name": "Монтаж", "unit_price": "1"})


def test_non_admin_catalog_write_denied(ctx, users):
    with acting_as(users["alice"].id):
        with pytest.raises(AuthorizationDenied):
            create_preset({"project_name": "Халтура", "unit_price": "1000"})
        with pytest.raises(AuthorizationDenied):
            save_employee_type({"type_name": "regular", "daily_wage": "9999"})
    assert ProjectPreset.query.filter_by(project_name="Халтура").first() is None


def test_negative_price_rejected(ctx, users):
    with acting_as(users["root"].id):
        with pytest.raises(ValidationError):
            create_preset({"project_name": "Минус", "unit_price": "-1"})
