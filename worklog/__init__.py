# -*- coding: utf-8 -*-
import logging
from datetime import datetime, date
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from flask import Flask, g, jsonify, redirect, render_template, url_for
from flask_login import login_required
from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError

from .config import Config, ensure_instance
from .extensions import db, migrate, login_manager
from .errors import AuthorizationDenied, ProfileUnavailable

log = logging.getLogger(__name__)


@event.listens_for(Engine, "connect")
def _sqlite_fk(dbapi_connection, connection_record):
    # без этого SQLite игнорирует ON DELETE CASCADE
    if dbapi_connection.__class__.__module__.startswith("sqlite3"):
        cur = dbapi_connection.cursor()
        cur.execute("PRAGMA foreign_keys=ON")
        cur.close()


def create_app(overrides=None):
    app = Flask(
        __name__,
        instance_relative_config=True,
        template_folder="templates",
    )
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)
    ensure_instance(app)

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)

    from . import models  # noqa: F401
    from .acl import install_policy
    install_policy()

    # --- jinja-фильтры ---
    @app.template_filter("fmt_date")
    def fmt_date(value, fmt="%d.%m.%Y"):
        if value in (None, ""):
            return ""
        if isinstance(value, (datetime, date)):
            return value.strftime(fmt)
        try:
            return date.fromisoformat(str(value)[:10]).strftime(fmt)
        except ValueError:
            return str(value)

    @app.template_filter("fmt_money")
    def fmt_money(v):
        try:
            x = Decimal(str(v)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
        except (InvalidOperation, TypeError, ValueError):
            return str(v)
        # без копеек (половина вверх), с пробелами как разделителями тысяч
        return f"{int(x):,}".replace(",", " ")

    @app.template_filter("fmt_num")
    def fmt_num(v):
        try:
            x = float(v)
        except (TypeError, ValueError):
            return str(v)
        if x.is_integer():
            return str(int(x))
        return f"{x:.2f}".rstrip("0")

    # --- контекст запроса ---
    from .auth.identity import current_context

    @app.before_request
    def load_ctx():
        g.worklog_ctx = current_context()

    @app.context_processor
    def inject_ctx():
        ctx = g.get("worklog_ctx")
        return {"ctx": ctx, "me": ctx.profile if ctx else None}

    # --- ошибки ---
    @app.errorhandler(AuthorizationDenied)
    def on_denied(e):
        db.session.rollback()
        return render_template("error.html", title="Недостаточно прав",
                               message="Недостаточно прав для действия."), 403

    @app.errorhandler(ProfileUnavailable)
    def on_no_profile(e):
        return render_template("error.html", title="Профиль недоступен",
                               message="Профиль пока недоступен. Попробуйте войти ещё раз."), 503

    @app.errorhandler(OperationalError)
    def on_db_error(e):
        db.session.rollback()
        log.exception("database error")
        return render_template("error.html", title="Ошибка базы данных",
                               message="Сервис временно недоступен, повторите попытку позже."), 503

    # --- блюпринты ---
    from .auth import auth_bp
    from .modules.records import bp as records_bp
    from .admin_mgmt import bp as admin_mgmt_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(records_bp)
    app.register_blueprint(admin_mgmt_bp)

    # --- главная ---
    @app.route("/")
    @login_required
    def home():
        return redirect(url_for("records.index"))

    @app.get("/healthz")
    def healthz():
        return jsonify(ok=True)

    return app
