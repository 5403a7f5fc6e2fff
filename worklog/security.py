# -*- coding: utf-8 -*-
from functools import wraps
from flask import redirect, url_for, flash
from flask_login import current_user

from .auth.identity import get_context

def _safe(url_name: str, default: str = "/"):
    try:
        return url_for(url_name)
    except Exception:
        return default

def roles_required(*roles):
    """
    Если не залогинен -> редирект на /login (или auth.login).
    Если профиля нет или его роли нет в списке -> редирект на главную и флэш "Недостаточно прав".
    Это только удобство интерфейса: запись всё равно проверяет acl при flush.
    """
    def decorator(f):
        @wraps(f)
        def wrapper(*args, **kwargs):
            if not current_user.is_authenticated:
                return redirect(_safe("auth.login", "/login"))
            ctx = get_context()
            if ctx.profile is None or ctx.profile.role not in roles:
                flash("Недостаточно прав для доступа.", "warning")
                return redirect(_safe("records.index", "/"))
            return f(*args, **kwargs)
        return wrapper
    return decorator

admin_required = roles_required("admin")
