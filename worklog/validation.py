# -*- coding: utf-8 -*-
from __future__ import annotations

import re
from calendar import monthrange
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from .errors import ValidationError

PASSWORD_MIN_LEN = 8
_PASSWORD_RE = re.compile(r"^(?=.*[A-Za-zА-Яа-яЁё])(?=.*\d)")
NAME_MAX_LEN = 128


def validate_name(name: str | None) -> str:
    """Имя пользователя: обязательно, обрезаем пробелы."""
    name = (name or "").strip()
    if not name:
        raise ValidationError("Введите имя", field="name")
    if len(name) > NAME_MAX_LEN:
        raise ValidationError("Слишком длинное имя", field="name")
    return name


def validate_password(password: str | None, confirm: str | None = None) -> str:
    password = password or ""
    if len(password) < PASSWORD_MIN_LEN:
        raise ValidationError(f"Пароль не короче {PASSWORD_MIN_LEN} символов", field="password")
    if not _PASSWORD_RE.match(password):
        raise ValidationError("Пароль должен содержать буквы и цифры", field="password")
    if confirm is not None and confirm != password:
        raise ValidationError("Пароли не совпадают", field="confirm_password")
    return password


def parse_decimal(value, field: str, default: Decimal | None = None) -> Decimal:
    """Неотрицательное число из формы; запятая допускается как разделитель."""
    s = str(value if value is not None else "").strip().replace(",", ".")
    if not s:
        if default is not None:
            return default
        raise ValidationError("Заполните поле", field=field)
    try:
        v = Decimal(s)
    except InvalidOperation:
        raise ValidationError(f"Некорректное число: {value}", field=field)
    if not v.is_finite():
        raise ValidationError(f"Некорректное число: {value}", field=field)
    if v < 0:
        raise ValidationError("Значение не может быть отрицательным", field=field)
    return v


def parse_date(value, field: str = "record_date", default: date | None = None) -> date:
    if isinstance(value, date):
        return value
    s = (value or "").strip()
    if not s:
        if default is not None:
            return default
        raise ValidationError("Укажите дату", field=field)
    try:
        return datetime.strptime(s[:10], "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError(f"Некорректная дата: {s}. Ожидается ГГГГ-ММ-ДД", field=field)


def month_bounds(m: str | None) -> tuple[date, date, str]:
    """'YYYY-MM' -> (первый день, последний день, 'YYYY-MM'); мусор -> текущий месяц."""
    today = date.today()
    y, mm = today.year, today.month
    if m:
        try:
            y, mm = map(int, m.split("-"))
            date(y, mm, 1)
        except (ValueError, TypeError):
            y, mm = today.year, today.month
    first = date(y, mm, 1)
    last = date(y, mm, monthrange(y, mm)[1])
    return first, last, f"{y:04d}-{mm:02d}"


def shift_month(m: str, delta: int) -> str:
    y, mm = map(int, m.split("-"))
    idx = y * 12 + (mm - 1) + delta
    return f"{idx // 12:04d}-{idx % 12 + 1:02d}"
