# -*- coding: utf-8 -*-
"""Записи учёта: добавление, правка, выборки по месяцу, массовое удаление."""
from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional

from .auth.identity import verify_password
from .errors import ValidationError
from .extensions import db
from .models import Profile, WorkRecord
from .rates import resolve_snapshots
from .validation import parse_date, parse_decimal

log = logging.getLogger(__name__)


def _clean_row(row: dict) -> dict:
    project_name = (row.get("project_name") or "").strip()
    if not project_name:
        raise ValidationError("Укажите проект", field="project_name")
    return {
        "project_name": project_name,
        "workload": parse_decimal(row.get("workload"), "workload"),
        "overtime": parse_decimal(row.get("overtime"), "overtime", default=Decimal("0")),
        "notes": (row.get("notes") or "").strip(),
        "record_date": parse_date(row.get("record_date"), default=date.today()),
    }


def _commit() -> None:
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise


def add_records(profile: Profile, rows: Iterable[dict]) -> List[WorkRecord]:
    """Сохранить пачку записей от имени владельца профиля.

    Сначала валидируем всё, потом пишем одной транзакцией: либо все строки,
    либо ни одной.
    """
    cleaned = [_clean_row(r) for r in rows]
    if not cleaned:
        raise ValidationError("Нет записей для сохранения")

    created = []
    for c in cleaned:
        unit_price, overtime_rate = resolve_snapshots(c["project_name"], profile.employee_type)
        created.append(WorkRecord(
            user_id=profile.id,
            user_name=profile.name,
            unit_price_snapshot=unit_price,
            overtime_rate_snapshot=overtime_rate,
            **c,
        ))
    db.session.add_all(created)
    _commit()
    log.info("records added: user=%s count=%d", profile.id, len(created))
    return created


def edit_record(record: WorkRecord, form: dict) -> WorkRecord:
    """Правка записи; ставки пересчитываются по справочнику на момент правки."""
    c = _clean_row(form)
    owner = db.session.get(Profile, record.user_id)
    unit_price, overtime_rate = resolve_snapshots(c["project_name"], owner.employee_type if owner else None)
    for k, v in c.items():
        setattr(record, k, v)
    record.unit_price_snapshot = unit_price
    record.overtime_rate_snapshot = overtime_rate
    _commit()
    log.info("record %s edited: project=%r price=%s", record.id, record.project_name, unit_price)
    return record


def month_records(user_id: Optional[int], first: date, last: date) -> List[WorkRecord]:
    q = WorkRecord.query.filter(WorkRecord.record_date >= first, WorkRecord.record_date <= last)
    if user_id is not None:
        q = q.filter(WorkRecord.user_id == user_id)
    return q.order_by(WorkRecord.record_date.desc(), WorkRecord.created_at.desc(), WorkRecord.id.desc()).all()


def delete_records(ids: Iterable[int], actor_identity_id: int, password: str) -> int:
    """Массовое удаление (админ): сначала повторный ввод пароля.

    Пароль лишь подтверждение; право на каждую строку решает политика,
    и при отказе хоть на одной не удаляется ничего.
    """
    if not verify_password(actor_identity_id, password):
        log.warning("bulk delete: password check failed for actor=%s", actor_identity_id)
        raise ValidationError("Неверный пароль", field="password")
    ids = sorted({int(i) for i in ids})
    if not ids:
        raise ValidationError("Не выбраны записи")
    rows = WorkRecord.query.filter(WorkRecord.id.in_(ids)).all()
    for r in rows:
        db.session.delete(r)
    _commit()
    log.info("bulk delete: actor=%s deleted=%d", actor_identity_id, len(rows))
    return len(rows)
