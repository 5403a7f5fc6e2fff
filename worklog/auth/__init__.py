# -*- coding: utf-8 -*-

from flask import Blueprint, render_template, request, redirect, url_for, flash, current_app
from flask_login import login_required, current_user

from ..errors import AuthorizationDenied, ValidationError
from .identity import authenticate, bootstrap, get_context, register as register_identity, teardown, update_profile

auth_bp = Blueprint("auth", __name__, template_folder="../templates/auth")


def _after_login(ctx):
    if ctx.profile_unavailable:
        flash("Профиль пока недоступен, часть функций может не работать.", "warning")
    return redirect(url_for("records.index"))


@auth_bp.route("/login", methods=["GET", "POST"])
def login():
    if current_user.is_authenticated:
        return redirect(url_for("records.index"))
    if request.method == "POST":
        name = request.form.get("name", "").strip()
        password = request.form.get("password", "")
        ident = authenticate(name, password)
        if not ident:
            flash("Неверное имя или пароль", "danger")
        else:
            return _after_login(bootstrap(ident))
    return render_template("auth/login.html", tab="login")


@auth_bp.route("/register", methods=["POST"])
def register():
    name = request.form.get("name", "")
    try:
        ident = register_identity(name, request.form.get("password", ""), request.form.get("confirm_password"))
    except ValidationError as e:
        flash(e.message, "danger")
        return render_template("auth/login.html", tab="register", name=name.strip()), 400
    current_app.logger.info("registered %s", ident.id)
    flash("Регистрация прошла успешно", "success")
    return _after_login(bootstrap(ident))


@auth_bp.route("/logout")
@login_required
def logout():
    teardown()
    return redirect(url_for("auth.login"))


@auth_bp.post("/profile")
@login_required
def profile():
    ctx = get_context()
    if ctx.profile is None:
        flash("Профиль недоступен.", "warning")
        return redirect(url_for("records.index"))
    try:
        update_profile(ctx.profile, name=request.form.get("name"))
        flash("Имя обновлено", "success")
    except ValidationError as e:
        flash(e.message, "danger")
    except AuthorizationDenied:
        flash("Недостаточно прав для действия.", "warning")
    return redirect(url_for("records.index"))
