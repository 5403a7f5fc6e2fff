# -*- coding: utf-8 -*-
"""Выгрузка записей и итогов в .xlsx (openpyxl).

Только представление: все суммы берутся из salary.*, здесь ничего не
считается заново.
"""
from __future__ import annotations

import io
from typing import Any, Iterable, List, Sequence

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from .salary import breakdown_totals, record_pay, salary_breakdown, total_pay, totals_by_user

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

DETAIL_HEADERS = ["Дата", "Имя", "Проект", "Объём", "Переработка (ч)", "Ставка", "Ставка переработки (за час)", "Оплата", "Примечание"]
DETAIL_WIDTHS = [12, 14, 20, 8, 14, 10, 24, 12, 30]

SUMMARY_HEADERS = ["Проект", "Записей", "Объём", "Переработка (ч)", "Сдельно", "За переработку", "Итого"]
SUMMARY_WIDTHS = [20, 10, 10, 14, 12, 14, 12]

OVERVIEW_HEADERS = ["Имя", "Записей", "Объём", "Переработка (ч)", "Оплата за месяц"]
OVERVIEW_WIDTHS = [16, 10, 10, 14, 16]

TOTAL_LABEL = "Итого"
SHEET_TITLE_MAX = 28
_BAD_TITLE_CHARS = set('[]:*?/\\')


def _num(v):
    # Decimal -> float, иначе Excel видит строку
    return float(v) if v is not None else 0.0


def _fill(ws, headers: Sequence[str], widths: Sequence[int], rows: Iterable[Sequence[Any]]) -> None:
    ws.append(list(headers))
    for cell in ws[1]:
        cell.font = Font(bold=True)
    for row in rows:
        ws.append(list(row))
    for i, w in enumerate(widths, start=1):
        ws.column_dimensions[get_column_letter(i)].width = w


def _detail_rows(records, with_name: bool = True) -> List[list]:
    out = []
    for r in records:
        row = [r.record_date, r.user_name, r.project_name, _num(r.workload), _num(r.overtime),
               _num(r.unit_price_snapshot), _num(r.overtime_rate_snapshot), _num(record_pay(r)), r.notes or ""]
        if not with_name:
            del row[1]
        out.append(row)
    return out


def _summary_rows(records) -> List[list]:
    breakdown = salary_breakdown(records)
    rows = [[g["project_name"], g["record_count"], _num(g["workload"]), _num(g["overtime"]),
             _num(g["base_pay"]), _num(g["overtime_pay"]), _num(g["subtotal"])] for g in breakdown]
    t = breakdown_totals(breakdown)
    rows.append([TOTAL_LABEL, t["record_count"], _num(t["workload"]), _num(t["overtime"]),
                 _num(t["base_pay"]), _num(t["overtime_pay"]), _num(total_pay(records))])
    return rows


def _save(wb: Workbook) -> io.BytesIO:
    buf = io.BytesIO()
    wb.save(buf)
    buf.seek(0)
    return buf


def records_workbook(records: Sequence[Any]) -> Workbook:
    """Один сотрудник (или любая выборка): детализация + итоги по проектам."""
    wb = Workbook()
    ws = wb.active
    ws.title = "Записи"
    _fill(ws, DETAIL_HEADERS, DETAIL_WIDTHS, _detail_rows(records))
    _fill(wb.create_sheet("Итоги"), SUMMARY_HEADERS, SUMMARY_WIDTHS, _summary_rows(records))
    return wb


def _sheet_title(name: str, used: set) -> str:
    base = "".join("_" if ch in _BAD_TITLE_CHARS else ch for ch in (name or "-"))[:SHEET_TITLE_MAX] or "-"
    title, n = base, 2
    while title.lower() in used:
        suffix = f"~{n}"
        title = base[:SHEET_TITLE_MAX - len(suffix)] + suffix
        n += 1
    used.add(title.lower())
    return title


def payroll_workbook(records: Sequence[Any]) -> Workbook:
    """Все сотрудники: сводный лист первым, дальше лист на каждого."""
    wb = Workbook()
    overview = wb.active
    overview.title = "Сводка"
    users = totals_by_user(records)
    _fill(overview, OVERVIEW_HEADERS, OVERVIEW_WIDTHS,
          [[u["user_name"], u["record_count"], _num(u["workload"]), _num(u["overtime"]), _num(u["total_pay"])]
           for u in users])

    used = {overview.title.lower()}
    detail_headers = [h for h in DETAIL_HEADERS if h != "Имя"]
    detail_widths = [w for h, w in zip(DETAIL_HEADERS, DETAIL_WIDTHS) if h != "Имя"]
    for u in users:
        ws = wb.create_sheet(_sheet_title(u["user_name"], used))
        _fill(ws, detail_headers, detail_widths, _detail_rows(u["records"], with_name=False))
    return wb


def records_xlsx(records: Sequence[Any]) -> io.BytesIO:
    return _save(records_workbook(records))


def payroll_xlsx(records: Sequence[Any]) -> io.BytesIO:
    return _save(payroll_workbook(records))
