# -*- coding: utf-8 -*-
"""Построчная политика доступа.

Проверяется в Session.before_flush, то есть на границе хранилища: любой
ORM-путь записи (вьюха, скрипт, тест) проходит через одни и те же правила,
независимо от того, что нарисовано в интерфейсе. Отказ бросает
AuthorizationDenied до отправки SQL; вызывающий делает rollback, частичных
записей не бывает.

Проверка «я админ?» идёт сырым запросом по соединению flush'а, а не через
ORM-запрос: иначе получаем autoflush внутри flush и рекурсию в эту же политику.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import date
from typing import Any, Callable, Dict, Optional

from flask import g, has_app_context
from sqlalchemy import event, inspect, select, text
from sqlalchemy.orm import Session

from .errors import AuthorizationDenied
from .extensions import db
from .models import EmployeeTypeSetting, Identity, Profile, ProjectPreset, WorkRecord

log = logging.getLogger(__name__)

INSERT, UPDATE, DELETE = "insert", "update", "delete"

_ACTOR_KEY = "acl_actor_id"
_PRIVILEGED_KEY = "acl_privileged"


# ---------- привилегированный предикат ----------
def is_admin(connection, identity_id: Optional[int]) -> bool:
    if not identity_id:
        return False
    row = connection.execute(
        text('SELECT 1 FROM "profile" WHERE id=:u AND role=\'admin\''),
        {"u": identity_id},
    ).first()
    return row is not None


# ---------- кто действует ----------
@contextmanager
def acting_as(identity_id: Optional[int], session: Optional[Session] = None):
    """Явно задать действующую учётку (скрипты, тесты)."""
    s = session or db.session
    had, prev = _ACTOR_KEY in s.info, s.info.get(_ACTOR_KEY)
    s.info[_ACTOR_KEY] = identity_id
    try:
        yield
    finally:
        if had:
            s.info[_ACTOR_KEY] = prev
        else:
            s.info.pop(_ACTOR_KEY, None)


@contextmanager
def privileged(session: Optional[Session] = None):
    """Обход политики: сиды, обслуживание БД."""
    s = session or db.session
    s.info[_PRIVILEGED_KEY] = s.info.get(_PRIVILEGED_KEY, 0) + 1
    try:
        yield
    finally:
        s.info[_PRIVILEGED_KEY] -= 1


def actor_id(session: Session) -> Optional[int]:
    if _ACTOR_KEY in session.info:
        return session.info[_ACTOR_KEY]
    if has_app_context():
        ctx = g.get("worklog_ctx")
        if ctx is not None:
            return ctx.identity_id
    return None


class _Check:
    """Состояние одной проверки: актор и ленивый is_admin."""

    def __init__(self, session: Session):
        self.session = session
        self.actor_id = actor_id(session)
        self._admin: Optional[bool] = None

    @property
    def admin(self) -> bool:
        if self._admin is None:
            self._admin = is_admin(self.session.connection(), self.actor_id)
        return self._admin


def _changed(obj) -> set[str]:
    state = inspect(obj)
    return {c.key for c in state.mapper.column_attrs if state.attrs[c.key].history.has_changes()}


def _original(obj, key: str):
    """Значение поля до правки (как лежит в БД)."""
    state = inspect(obj)
    hist = state.attrs[key].history
    if hist.deleted:
        return hist.deleted[0]
    if hist.unchanged:
        return hist.unchanged[0]
    if not hist.added or state.identity is None:
        return getattr(obj, key)
    # поле было expired и старое значение не загружалось: читаем строку
    mapper = state.mapper
    where = [c == v for c, v in zip(mapper.primary_key, state.identity)]
    return state.session.connection().execute(
        select(mapper.columns[key]).where(*where)
    ).scalar()


# ---------- правила по таблицам ----------
def _admin_only(chk: _Check, obj) -> bool:
    return chk.admin


def _never(chk: _Check, obj) -> bool:
    return False


def _identity_insert(chk: _Check, obj) -> bool:
    # регистрация открыта
    return True


IDENTITY_ADMIN_FIELDS = {"email", "display_name"}


def _identity_update(chk: _Check, obj) -> bool:
    if chk.actor_id is None:
        return False
    if chk.actor_id == _original(obj, "id"):
        return True
    # админ переименовывает пользователя: логин идёт вслед за именем, пароль не трогаем
    return chk.admin and _changed(obj) <= IDENTITY_ADMIN_FIELDS


def _profile_insert(chk: _Check, obj) -> bool:
    return chk.actor_id is not None and chk.actor_id == obj.id


PROFILE_OWNER_FIELDS = {"name"}


def _profile_update(chk: _Check, obj) -> bool:
    if chk.actor_id is None:
        return False
    if chk.admin:
        return True
    if chk.actor_id != _original(obj, "id"):
        return False
    # роль и тип сотрудника меняет только админ
    return _changed(obj) <= PROFILE_OWNER_FIELDS


def _profile_delete(chk: _Check, obj) -> bool:
    # только каскадом вместе с учёткой
    return any(isinstance(o, Identity) and o.id == obj.id for o in chk.session.deleted)


def _record_insert(chk: _Check, obj) -> bool:
    return chk.actor_id is not None and chk.actor_id == obj.user_id


def _record_update(chk: _Check, obj) -> bool:
    if chk.actor_id is None:
        return False
    if chk.admin:
        return True
    owner = _original(obj, "user_id")
    if owner != chk.actor_id or obj.user_id != owner:
        return False
    return _original(obj, "record_date") == date.today()


def _record_delete(chk: _Check, obj) -> bool:
    # админ, и не свою запись
    return chk.admin and obj.user_id != chk.actor_id


RULES: Dict[type, Dict[str, Callable[[_Check, Any], bool]]] = {
    Identity: {INSERT: _identity_insert, UPDATE: _identity_update, DELETE: _never},
    Profile: {INSERT: _profile_insert, UPDATE: _profile_update, DELETE: _profile_delete},
    ProjectPreset: {INSERT: _admin_only, UPDATE: _admin_only, DELETE: _admin_only},
    EmployeeTypeSetting: {INSERT: _admin_only, UPDATE: _admin_only, DELETE: _admin_only},
    WorkRecord: {INSERT: _record_insert, UPDATE: _record_update, DELETE: _record_delete},
}


def _deny(chk: _Check, obj, op: str):
    table = obj.__table__.name
    log.warning("acl: %s on %s denied for actor=%s", op, table, chk.actor_id)
    raise AuthorizationDenied(table, op, chk.actor_id)


def check_session(session: Session) -> None:
    if session.info.get(_PRIVILEGED_KEY):
        return
    chk = _Check(session)
    for op, objs in (
        (INSERT, list(session.new)),
        (UPDATE, [o for o in session.dirty if session.is_modified(o)]),
        (DELETE, list(session.deleted)),
    ):
        for obj in objs:
            rules = RULES.get(type(obj))
            if rules is None:
                continue
            if not rules[op](chk, obj):
                _deny(chk, obj, op)


def _before_flush(session, flush_context, instances):
    with session.no_autoflush:
        check_session(session)


def _guard_bulk(orm_execute_state):
    # массовые UPDATE/DELETE мимо flush'а не пускаем: только построчно
    if not (orm_execute_state.is_update or orm_execute_state.is_delete):
        return
    session = orm_execute_state.session
    if session.info.get(_PRIVILEGED_KEY):
        return
    mapper = orm_execute_state.bind_mapper
    if mapper is not None and mapper.class_ in RULES:
        op = UPDATE if orm_execute_state.is_update else DELETE
        aid = actor_id(session)
        log.warning("acl: bulk %s on %s refused for actor=%s", op, mapper.local_table.name, aid)
        raise AuthorizationDenied(mapper.local_table.name, op, aid)


def install_policy() -> None:
    if not event.contains(Session, "before_flush", _before_flush):
        event.listen(Session, "before_flush", _before_flush)
    if not event.contains(Session, "do_orm_execute", _guard_bulk):
        event.listen(Session, "do_orm_execute", _guard_bulk)


# ---------- подсказки для интерфейса (те же правила) ----------
def can_edit_record(profile: Optional[Profile], record: WorkRecord) -> bool:
    if profile is None:
        return False
    if profile.is_admin:
        return True
    return record.user_id == profile.id and record.record_date == date.today()


def can_delete_record(profile: Optional[Profile], record: WorkRecord) -> bool:
    return bool(profile and profile.is_admin and record.user_id != profile.id)
