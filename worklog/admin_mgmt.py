# -*- coding: utf-8 -*-
from __future__ import annotations

from flask import Blueprint, render_template, request, redirect, url_for, flash, abort, send_file, current_app

from .acl import can_delete_record, can_edit_record
from .auth.identity import get_context, update_profile
from .errors import AuthorizationDenied, ValidationError
from .export import XLSX_MIMETYPE, payroll_xlsx, records_xlsx
from .extensions import db
from .models import Profile, ROLE_ADMIN, ROLE_USER
from .rates import (
    all_presets, create_preset, delete_employee_type, delete_preset, employee_type_map,
    employee_types, set_preset_active, update_preset, save_employee_type,
)
from .records import delete_records, month_records
from .salary import breakdown_totals, record_pay, salary_breakdown, total_pay, totals_by_user
from .security import admin_required
from .validation import month_bounds, shift_month

bp = Blueprint("admin_mgmt", __name__, url_prefix="/admin")

DENIED = "Недостаточно прав для действия."

# ---------- helpers ----------
def _int(v, default: int = 0) -> int:
    try:
        return int(v or default)
    except (TypeError, ValueError):
        return default

def _run(fn, ok_msg: str):
    """Выполнить операцию справочника и показать результат флэшем."""
    try:
        fn()
        flash(ok_msg, "primary")
    except ValidationError as e:
        flash(e.message, "warning")
    except AuthorizationDenied:
        flash(DENIED, "warning")

# ---------- users ----------
@bp.route("/users", methods=["GET","POST"])
@admin_required
def users():
    if request.method == "POST":
        op = request.form.get("op")
        if op == "update":
            p = db.session.get(Profile, _int(request.form.get("profile_id")))
            if not p:
                flash("Пользователь не найден","warning")
                return redirect(url_for("admin_mgmt.users"))
            _run(lambda: update_profile(
                p,
                name=request.form.get("name") or None,
                role=request.form.get("role") or None,
                employee_type=request.form.get("employee_type") or None,
            ), "Пользователь обновлён")
        return redirect(url_for("admin_mgmt.users"))

    profiles = Profile.query.order_by(Profile.created_at, Profile.id).all()
    type_map = employee_type_map()
    return render_template("admin/users.html", profiles=profiles, types=list(type_map.values()),
                           type_map=type_map, roles=(ROLE_USER, ROLE_ADMIN))

# ---------- records of one user ----------
@bp.route("/records", methods=["GET"])
@admin_required
def records():
    ctx = get_context()
    profiles = Profile.query.order_by(Profile.name).all()
    who = db.session.get(Profile, _int(request.args.get("user_id"))) if request.args.get("user_id") else None
    first, last, m_str = month_bounds(request.args.get("m"))
    rows = month_records(who.id, first, last) if who else []
    breakdown = salary_breakdown(rows)
    return render_template(
        "admin/records.html",
        profiles=profiles, who=who, records=rows,
        pay={r.id: record_pay(r) for r in rows},
        can_edit={r.id: can_edit_record(ctx.profile, r) for r in rows},
        can_delete={r.id: can_delete_record(ctx.profile, r) for r in rows},
        breakdown=breakdown, breakdown_total=breakdown_totals(breakdown), total=total_pay(rows),
        month_str=m_str, prev_month=shift_month(m_str, -1), next_month=shift_month(m_str, 1),
    )

@bp.post("/records/bulk-delete")
@admin_required
def bulk_delete():
    ctx = get_context()
    user_id = request.form.get("user_id")
    m = request.form.get("m")
    back = url_for("admin_mgmt.records", user_id=user_id, m=m)
    ids = [_int(x) for x in request.form.getlist("record_id") if _int(x)]
    if not ids:
        flash("Сначала выберите записи","warning")
        return redirect(back)
    try:
        n = delete_records(ids, ctx.identity_id, request.form.get("password", ""))
    except ValidationError as e:
        flash(e.message, "danger")
        return redirect(back)
    except AuthorizationDenied:
        flash(DENIED, "warning")
        return redirect(back)
    current_app.logger.info("admin %s bulk-deleted %d record(s)", ctx.identity_id, n)
    flash(f"Удалено записей: {n}", "primary")
    return redirect(back)

@bp.get("/records/export")
@admin_required
def export_user():
    who = db.session.get(Profile, _int(request.args.get("user_id")))
    if not who:
        abort(404)
    first, last, m_str = month_bounds(request.args.get("m"))
    rows = month_records(who.id, first, last)
    if not rows:
        flash("Нет данных для выгрузки","warning")
        return redirect(url_for("admin_mgmt.records", user_id=who.id, m=m_str))
    return send_file(records_xlsx(rows), mimetype=XLSX_MIMETYPE, as_attachment=True,
                     download_name=f"{who.name}_записи_{m_str}.xlsx")

# ---------- payroll (все сотрудники) ----------
@bp.get("/payroll")
@admin_required
def payroll():
    first, last, m_str = month_bounds(request.args.get("m"))
    rows = month_records(None, first, last)
    return render_template("admin/payroll.html", users=totals_by_user(rows), total=total_pay(rows),
                           month_str=m_str, prev_month=shift_month(m_str, -1), next_month=shift_month(m_str, 1))

@bp.get("/payroll/export")
@admin_required
def export_payroll():
    first, last, m_str = month_bounds(request.args.get("m"))
    rows = month_records(None, first, last)
    if not rows:
        flash("За этот месяц нет данных","warning")
        return redirect(url_for("admin_mgmt.payroll", m=m_str))
    return send_file(payroll_xlsx(rows), mimetype=XLSX_MIMETYPE, as_attachment=True,
                     download_name=f"зарплата_{m_str}.xlsx")

# ---------- presets ----------
@bp.route("/presets", methods=["GET","POST"])
@admin_required
def presets():
    if request.method == "POST":
        op = request.form.get("op")
        pid = _int(request.form.get("id"))
        form = request.form.to_dict()
        if op == "create":
            _run(lambda: create_preset(form), "Проект добавлен")
        elif op == "update":
            _run(lambda: update_preset(pid, form), "Проект обновлён")
        elif op in ("activate", "deactivate"):
            _run(lambda: set_preset_active(pid, op == "activate"),
                 "Проект включён" if op == "activate" else "Проект скрыт")
        elif op == "delete":
            _run(lambda: delete_preset(pid), "Проект удалён")
        return redirect(url_for("admin_mgmt.presets"))

    return render_template("admin/presets.html", presets=all_presets())

# ---------- employee types ----------
@bp.route("/employee-types", methods=["GET","POST"])
@admin_required
def employee_type_settings():
    if request.method == "POST":
        op = request.form.get("op")
        form = request.form.to_dict()
        if op == "save":
            _run(lambda: save_employee_type(form), "Ставки сохранены")
        elif op == "delete":
            _run(lambda: delete_employee_type(_int(request.form.get("id"))), "Тип удалён")
        return redirect(url_for("admin_mgmt.employee_type_settings"))

    return render_template("admin/employee_types.html", types=employee_types())
