# -*- coding: utf-8 -*-
"""Учётки и профили.

Пользователь знает только своё имя; под капотом учётка заводится на
синтетический email (hex от байтов имени в зарезервированном домене).
Профиль создаётся «триггером» при вставке учётки, но читать его сразу после
регистрации не гарантированно получится, поэтому resolve_profile() ждёт
с экспоненциальной паузой и ограниченным числом попыток.
"""
from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from flask import current_app, g, has_app_context
from flask_login import current_user, login_user, logout_user
from sqlalchemy.exc import IntegrityError

from ..errors import ProfileUnavailable, ValidationError
from ..extensions import db
from ..models import Identity, Profile, ROLE_ADMIN, ROLE_USER
from ..validation import validate_name, validate_password

log = logging.getLogger(__name__)

EMAIL_DOMAIN = "work.local"


def name_to_email(name: str) -> str:
    return f"u{name.strip().encode('utf-8').hex()}@{EMAIL_DOMAIN}"


def name_taken(name: str) -> bool:
    return db.session.query(Profile.id).filter(Profile.name == name).first() is not None


def register(name: str, password: str, confirm: Optional[str] = None) -> Identity:
    name = validate_name(name)
    password = validate_password(password, confirm)

    # предварительная проверка; гонку закрывает UNIQUE на profile.name
    if name_taken(name):
        raise ValidationError("Это имя уже занято, выберите другое", field="name")

    ident = Identity(email=name_to_email(name), display_name=name)
    ident.set_password(password)
    db.session.add(ident)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        log.info("register: name conflict on insert for %r", name)
        raise ValidationError("Это имя уже занято, выберите другое", field="name")
    log.info("register: identity=%s name=%r", ident.id, name)
    return ident


def authenticate(name: str, password: str) -> Optional[Identity]:
    name = (name or "").strip()
    if not name or not password:
        return None
    ident = Identity.query.filter_by(email=name_to_email(name)).first()
    if not ident or not ident.check_password(password):
        return None
    return ident


def verify_password(identity_id: int, password: str) -> bool:
    """Повторный ввод пароля перед опасной операцией."""
    ident = db.session.get(Identity, identity_id)
    return bool(ident and password and ident.check_password(password))


def _cfg(key: str, default):
    if has_app_context():
        return current_app.config.get(key, default)
    return default


def resolve_profile(
    identity_id: int,
    attempts: Optional[int] = None,
    base_delay: Optional[float] = None,
    timeout: Optional[float] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> Optional[Profile]:
    """Профиль учётки с повторами; None, если так и не появился."""
    attempts = attempts if attempts is not None else _cfg("PROFILE_RESOLVE_ATTEMPTS", 5)
    delay = base_delay if base_delay is not None else _cfg("PROFILE_RESOLVE_BASE_DELAY", 0.2)
    timeout = timeout if timeout is not None else _cfg("PROFILE_RESOLVE_TIMEOUT", 6.0)

    waited = 0.0
    for attempt in range(1, max(attempts, 1) + 1):
        prof = Profile.query.filter_by(id=identity_id).first()
        if prof is not None:
            return prof
        if attempt >= attempts or waited + delay > timeout:
            break
        log.info("profile %s not visible yet, retry %d in %.2fs", identity_id, attempt, delay)
        sleep(delay)
        waited += delay
        delay *= 2
    log.warning("profile %s unavailable after %d attempt(s)", identity_id, attempt)
    return None


def update_profile(profile: Profile, name: Optional[str] = None, role: Optional[str] = None,
                   employee_type: Optional[str] = None) -> Profile:
    """Правка профиля. Кто что может менять, решает acl при сохранении.

    Имя и есть логин: при переименовании синтетический email учётки
    пересчитывается в той же транзакции.
    """
    if name is not None:
        name = validate_name(name)
        if name != profile.name:
            ident = db.session.get(Identity, profile.id)
            profile.name = name
            if ident is not None:
                ident.email = name_to_email(name)
                ident.display_name = name
    if role is not None:
        if role not in (ROLE_USER, ROLE_ADMIN):
            raise ValidationError("Неизвестная роль", field="role")
        profile.role = role
    if employee_type is not None:
        employee_type = employee_type.strip()
        if not employee_type:
            raise ValidationError("Укажите тип сотрудника", field="employee_type")
        profile.employee_type = employee_type
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ValidationError("Это имя уже занято, выберите другое", field="name")
    except Exception:
        db.session.rollback()
        raise
    log.info("profile %s updated: name=%r role=%s type=%s", profile.id, profile.name, profile.role, profile.employee_type)
    return profile


# ---------- контекст сессии ----------
class SessionContext:
    """Кто сейчас работает: учётка и (если удалось прочитать) её профиль."""

    def __init__(self, identity_id: Optional[int] = None, profile: Optional[Profile] = None):
        self.identity_id = identity_id
        self.profile = profile

    @property
    def is_authenticated(self) -> bool:
        return self.identity_id is not None

    @property
    def profile_unavailable(self) -> bool:
        return self.identity_id is not None and self.profile is None

    @property
    def is_admin(self) -> bool:
        return bool(self.profile and self.profile.is_admin)

    def require_profile(self) -> Profile:
        if self.profile is None:
            raise ProfileUnavailable(self.identity_id)
        return self.profile


def bootstrap(ident: Identity, remember: bool = True) -> SessionContext:
    """Вход: логиним учётку и с повторами дожидаемся профиля."""
    login_user(ident, remember=remember)
    ctx = SessionContext(ident.id, resolve_profile(ident.id))
    g.worklog_ctx = ctx
    return ctx


def current_context() -> SessionContext:
    """Контекст на запрос: одно чтение, без повторов."""
    if not current_user.is_authenticated:
        return SessionContext()
    prof = Profile.query.filter_by(id=current_user.id).first()
    return SessionContext(current_user.id, prof)


def teardown() -> None:
    logout_user()
    g.pop("worklog_ctx", None)


def get_context() -> SessionContext:
    ctx = g.get("worklog_ctx")
    if ctx is None:
        ctx = g.worklog_ctx = current_context()
    return ctx
