# -*- coding: utf-8 -*-
"""Расчёт оплаты по записям учёта.

Одна формула на все проекты: ставка × объём + часы переработки × ставка за час.
Для «рабочего дня» дневная ставка уже лежит в unit_price_snapshot, поэтому
проект здесь не различается. Округляем только при выводе.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Iterable, List

ZERO = Decimal("0")


def D(v) -> Decimal:
    if v is None or v == "":
        return ZERO
    if isinstance(v, Decimal):
        return v
    return Decimal(str(v))


def _field(r, name: str):
    if isinstance(r, dict):
        return r.get(name)
    return getattr(r, name, None)


def base_pay(r) -> Decimal:
    return D(_field(r, "unit_price_snapshot")) * D(_field(r, "workload"))


def overtime_pay(r) -> Decimal:
    return D(_field(r, "overtime")) * D(_field(r, "overtime_rate_snapshot"))


def record_pay(r) -> Decimal:
    return base_pay(r) + overtime_pay(r)


def total_pay(records: Iterable[Any]) -> Decimal:
    return sum((record_pay(r) for r in records), ZERO)


def salary_breakdown(records: Iterable[Any]) -> List[Dict[str, Any]]:
    """Итоги по проектам (точное совпадение имени), в порядке первого появления."""
    groups: Dict[str, Dict[str, Any]] = {}
    for r in records:
        name = _field(r, "project_name")
        g = groups.get(name)
        if g is None:
            g = groups[name] = {
                "project_name": name,
                "record_count": 0,
                "workload": ZERO,
                "overtime": ZERO,
                "base_pay": ZERO,
                "overtime_pay": ZERO,
                "subtotal": ZERO,
            }
        bp, op = base_pay(r), overtime_pay(r)
        g["record_count"] += 1
        g["workload"] += D(_field(r, "workload"))
        g["overtime"] += D(_field(r, "overtime"))
        g["base_pay"] += bp
        g["overtime_pay"] += op
        g["subtotal"] += bp + op
    return list(groups.values())


def breakdown_totals(breakdown: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    """Строка «Итого» по результату salary_breakdown."""
    total = {
        "record_count": 0,
        "workload": ZERO,
        "overtime": ZERO,
        "base_pay": ZERO,
        "overtime_pay": ZERO,
        "subtotal": ZERO,
    }
    for g in breakdown:
        for k in total:
            total[k] += g[k]
    return total


def totals_by_user(records: Iterable[Any]) -> List[Dict[str, Any]]:
    """Сводка по сотрудникам (ключ: имя, сохранённое в записи)."""
    users: Dict[str, Dict[str, Any]] = {}
    for r in records:
        name = _field(r, "user_name")
        u = users.setdefault(name, {
            "user_name": name,
            "record_count": 0,
            "workload": ZERO,
            "overtime": ZERO,
            "total_pay": ZERO,
            "records": [],
        })
        u["record_count"] += 1
        u["workload"] += D(_field(r, "workload"))
        u["overtime"] += D(_field(r, "overtime"))
        u["total_pay"] += record_pay(r)
        u["records"].append(r)
    return list(users.values())
