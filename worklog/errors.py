# -*- coding: utf-8 -*-
"""Типизированные ошибки приложения.

Вьюхи ловят их по типу: AuthorizationDenied -> общий «Недостаточно прав»,
ValidationError -> текст ошибки рядом с формой, ProfileUnavailable ->
мягкая деградация вместо падения страницы.
"""
from __future__ import annotations


class WorklogError(Exception):
    """Базовая ошибка приложения."""


class AuthorizationDenied(WorklogError):
    def __init__(self, table: str, operation: str, actor_id: int | None = None):
        self.table = table
        self.operation = operation
        self.actor_id = actor_id
        super().__init__(f"{operation} on {table} denied for actor {actor_id}")


class ValidationError(WorklogError):
    def __init__(self, message: str, field: str | None = None):
        self.message = message
        self.field = field
        super().__init__(message)


class ProfileUnavailable(WorklogError):
    def __init__(self, identity_id: int | None):
        self.identity_id = identity_id
        super().__init__(f"profile for identity {identity_id} is not available")
