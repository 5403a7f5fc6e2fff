# -*- coding: utf-8 -*-
"""Справочник ставок: проекты и типы сотрудников.

Читают все; пишет только админ (проверяется политикой при flush).
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from flask import current_app, has_app_context
from sqlalchemy.exc import IntegrityError

from .errors import ValidationError
from .extensions import db
from .models import EmployeeTypeSetting, ProjectPreset
from .salary import D
from .validation import parse_decimal

log = logging.getLogger(__name__)

DEFAULT_ATTENDANCE_PROJECT = "Рабочий день"
DEFAULT_OVERTIME_RATE = Decimal("9")

# начальное наполнение справочника (scripts/recreate_db.py)
DEFAULT_PRESETS = [
    # project_name, unit_price, unit_label, sort_order
    ("Генерация AI-комиксов", 30, "серия", 1),
    ("Генерация AI-комиксов с актёрами", 30, "серия", 2),
    ("Монтаж AI-комиксов", 80, "серия", 3),
    ("Монтаж AI-комиксов с актёрами", 80, "серия", 4),
    ("Пробное задание", 200, "раз", 5),
    (DEFAULT_ATTENDANCE_PROJECT, 0, "день", 6),
    ("Обучение AI-комиксам", 200, "день", 7),
]
DEFAULT_EMPLOYEE_TYPES = [
    # type_name, type_label, daily_wage, overtime_rate
    ("intern", "Стажёр", 0, 9),
    ("regular", "Штатный", 0, 9),
    ("manager", "Руководитель", 0, 9),
]


def attendance_project() -> str:
    if has_app_context():
        return current_app.config.get("ATTENDANCE_PROJECT", DEFAULT_ATTENDANCE_PROJECT)
    return DEFAULT_ATTENDANCE_PROJECT


def default_overtime_rate() -> Decimal:
    if has_app_context():
        return D(current_app.config.get("DEFAULT_OVERTIME_RATE", DEFAULT_OVERTIME_RATE))
    return DEFAULT_OVERTIME_RATE


# ---------- чтение ----------
def active_presets() -> List[ProjectPreset]:
    return (
        ProjectPreset.query.filter(ProjectPreset.is_active.is_(True))
        .order_by(ProjectPreset.sort_order.asc(), ProjectPreset.project_name.asc())
        .all()
    )


def all_presets() -> List[ProjectPreset]:
    return ProjectPreset.query.order_by(ProjectPreset.sort_order.asc(), ProjectPreset.project_name.asc()).all()


def employee_types() -> List[EmployeeTypeSetting]:
    return EmployeeTypeSetting.query.order_by(EmployeeTypeSetting.type_name.asc()).all()


def employee_type_map() -> Dict[str, EmployeeTypeSetting]:
    return {s.type_name: s for s in employee_types()}


def find_preset(project_name: str) -> Optional[ProjectPreset]:
    return ProjectPreset.query.filter_by(project_name=project_name).first()


def find_employee_type(type_name: Optional[str]) -> Optional[EmployeeTypeSetting]:
    if not type_name:
        return None
    return EmployeeTypeSetting.query.filter_by(type_name=type_name).first()


# ---------- ставки на момент записи ----------
def resolve_snapshots(project_name: str, employee_type: Optional[str]) -> Tuple[Decimal, Decimal]:
    """(unit_price_snapshot, overtime_rate_snapshot) по текущему справочнику.

    «Рабочий день» -> дневная ставка типа сотрудника; иначе цена пресета
    с таким же именем; нет пресета (свой проект) -> 0. Переработка всегда
    по ставке типа сотрудника, без типа -> ставка по умолчанию.
    """
    setting = find_employee_type(employee_type)
    if project_name == attendance_project():
        unit_price = D(setting.daily_wage) if setting else Decimal("0")
    else:
        preset = find_preset(project_name)
        unit_price = D(preset.unit_price) if preset else Decimal("0")
    overtime_rate = D(setting.overtime_rate) if setting else default_overtime_rate()
    return unit_price, overtime_rate


# ---------- запись (только админ) ----------
def _commit(what: str) -> None:
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ValidationError(f"{what}: такое имя уже существует")
    except Exception:
        db.session.rollback()
        raise


def _preset_fields(form: dict, preset: Optional[ProjectPreset] = None) -> dict:
    name = (form.get("project_name") or (preset.project_name if preset else "")).strip()
    if not name:
        raise ValidationError("Укажите название проекта", field="project_name")
    unit_label = (form.get("unit_label") or (preset.unit_label if preset else "") or "шт").strip()
    raw_sort = form.get("sort_order")
    if raw_sort in (None, ""):
        sort_order = preset.sort_order if preset else 0
    else:
        try:
            sort_order = int(raw_sort)
        except (TypeError, ValueError):
            raise ValidationError("Порядок должен быть целым числом", field="sort_order")
    return {
        "project_name": name,
        "unit_price": parse_decimal(form.get("unit_price"), "unit_price",
                                    default=D(preset.unit_price) if preset else Decimal("0")),
        "unit_label": unit_label,
        "sort_order": sort_order,
    }


def create_preset(form: dict) -> ProjectPreset:
    fields = _preset_fields(form)
    p = ProjectPreset(is_active=form.get("is_active", "1") in ("1", "on", True), **fields)
    db.session.add(p)
    _commit("Проект")
    log.info("preset created: %s price=%s", p.project_name, p.unit_price)
    return p


def update_preset(preset_id: int, form: dict) -> ProjectPreset:
    p = db.session.get(ProjectPreset, preset_id)
    if not p:
        raise ValidationError("Проект не найден")
    for k, v in _preset_fields(form, p).items():
        setattr(p, k, v)
    if "is_active" in form:
        p.is_active = form.get("is_active") in ("1", "on", True)
    _commit("Проект")
    log.info("preset updated: %s price=%s active=%s", p.project_name, p.unit_price, p.is_active)
    return p


def set_preset_active(preset_id: int, active: bool) -> ProjectPreset:
    p = db.session.get(ProjectPreset, preset_id)
    if not p:
        raise ValidationError("Проект не найден")
    p.is_active = bool(active)
    _commit("Проект")
    log.info("preset %s active=%s", p.project_name, p.is_active)
    return p


def delete_preset(preset_id: int) -> None:
    p = db.session.get(ProjectPreset, preset_id)
    if not p:
        raise ValidationError("Проект не найден")
    name = p.project_name
    db.session.delete(p)
    _commit("Проект")
    log.info("preset deleted: %s", name)


def save_employee_type(form: dict) -> EmployeeTypeSetting:
    """Создать или обновить тип сотрудника по type_name."""
    type_name = (form.get("type_name") or "").strip()
    if not type_name:
        raise ValidationError("Укажите код типа", field="type_name")
    s = EmployeeTypeSetting.query.filter_by(type_name=type_name).first()
    if s is None:
        s = EmployeeTypeSetting(type_name=type_name)
        db.session.add(s)
    s.type_label = (form.get("type_label") or s.type_label or type_name).strip()
    s.daily_wage = parse_decimal(form.get("daily_wage"), "daily_wage",
                                 default=D(s.daily_wage) if s.daily_wage is not None else Decimal("0"))
    s.overtime_rate = parse_decimal(form.get("overtime_rate"), "overtime_rate",
                                    default=D(s.overtime_rate) if s.overtime_rate is not None else default_overtime_rate())
    _commit("Тип сотрудника")
    log.info("employee type saved: %s wage=%s overtime=%s", s.type_name, s.daily_wage, s.overtime_rate)
    return s


def delete_employee_type(type_id: int) -> None:
    s = db.session.get(EmployeeTypeSetting, type_id)
    if not s:
        raise ValidationError("Тип сотрудника не найден")
    name = s.type_name
    db.session.delete(s)
    _commit("Тип сотрудника")
    log.info("employee type deleted: %s", name)
