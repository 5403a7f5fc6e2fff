# -*- coding: utf-8 -*-
from __future__ import annotations

from flask import Blueprint, render_template, request, redirect, url_for, abort, flash, send_file, current_app
from flask_login import login_required

from ...acl import can_edit_record
from ...auth.identity import get_context
from ...errors import AuthorizationDenied, ValidationError
from ...export import XLSX_MIMETYPE, records_xlsx
from ...extensions import db
from ...models import Profile, WorkRecord
from ...rates import active_presets, attendance_project
from ...records import add_records, edit_record, month_records
from ...salary import breakdown_totals, record_pay, salary_breakdown, total_pay
from ...validation import month_bounds, shift_month

bp = Blueprint("records", __name__, url_prefix="/records", template_folder="../../templates/records")

MONTHS_RU = [
    "Январь","Февраль","Март","Апрель","Май","Июнь",
    "Июль","Август","Сентябрь","Октябрь","Ноябрь","Декабрь"
]


# ------------ helpers ---------------------------------------------------------
def _month_ctx(m: str | None) -> dict:
    first, last, m_str = month_bounds(m)
    return {
        "first": first,
        "last": last,
        "month_str": m_str,
        "month_label": f"{MONTHS_RU[first.month - 1]} {first.year}",
        "prev_month": shift_month(m_str, -1),
        "next_month": shift_month(m_str, 1),
    }


def _month_payload(records) -> dict:
    breakdown = salary_breakdown(records)
    return {
        "records": records,
        "pay": {r.id: record_pay(r) for r in records},
        "total": total_pay(records),
        "breakdown": breakdown,
        "breakdown_total": breakdown_totals(breakdown),
    }


def _rows_from_form(form) -> list[dict]:
    names = form.getlist("project_name")
    workloads = form.getlist("workload")
    overtimes = form.getlist("overtime")
    notes = form.getlist("notes")
    dates = form.getlist("record_date")

    def at(seq, i):
        return seq[i] if i < len(seq) else ""

    rows = []
    for i, name in enumerate(names):
        # полностью пустые строки формы пропускаем
        if not (name or "").strip() and not (at(workloads, i) or "").strip():
            continue
        rows.append({
            "project_name": name,
            "workload": at(workloads, i),
            "overtime": at(overtimes, i),
            "notes": at(notes, i),
            "record_date": at(dates, i),
        })
    return rows


# ------------ list ------------------------------------------------------------
@bp.route("/", methods=["GET"])
@login_required
def index():
    ctx = get_context()
    mc = _month_ctx(request.args.get("m"))
    if ctx.profile is None:
        return render_template("records/index.html", profile=None, colleagues=[],
                               can_edit={}, **mc, **_month_payload([]))

    records = month_records(ctx.profile.id, mc["first"], mc["last"])
    colleagues = Profile.query.order_by(Profile.name).all()
    return render_template(
        "records/index.html",
        profile=ctx.profile,
        colleagues=colleagues,
        can_edit={r.id: can_edit_record(ctx.profile, r) for r in records},
        **mc,
        **_month_payload(records),
    )


# ------------ someone's month (чтение открыто всем) ---------------------------
@bp.route("/user/<int:profile_id>", methods=["GET"])
@login_required
def user(profile_id: int):
    who = db.session.get(Profile, profile_id)
    if not who:
        abort(404)
    mc = _month_ctx(request.args.get("m"))
    records = month_records(who.id, mc["first"], mc["last"])
    return render_template("records/user.html", who=who, **mc, **_month_payload(records))


# ------------ create ----------------------------------------------------------
@bp.route("/new", methods=["GET", "POST"])
@login_required
def new():
    ctx = get_context()
    if ctx.profile is None:
        flash("Профиль недоступен, добавить записи нельзя.", "warning")
        return redirect(url_for("records.index"))

    limit = current_app.config.get("MAX_RECORDS_PER_SUBMIT", 10)
    presets = active_presets()
    if request.method == "GET":
        try:
            count = max(1, min(int(request.args.get("count") or 1), limit))
        except ValueError:
            count = 1
        return render_template("records/form.html", item=None, count=count, limit=limit,
                               presets=presets, attendance=attendance_project())

    rows = _rows_from_form(request.form)
    if len(rows) > limit:
        flash(f"Не больше {limit} записей за раз", "warning")
        return render_template("records/form.html", item=None, count=limit, limit=limit,
                               presets=presets, attendance=attendance_project()), 400
    try:
        created = add_records(ctx.profile, rows)
    except ValidationError as e:
        flash(e.message, "danger")
        return render_template("records/form.html", item=None, count=max(len(rows), 1), limit=limit,
                               presets=presets, attendance=attendance_project()), 400
    except AuthorizationDenied:
        flash("Недостаточно прав для действия.", "warning")
        return redirect(url_for("records.index"))
    flash(f"Добавлено записей: {len(created)}", "success")
    return redirect(url_for("records.index", m=created[0].record_date.strftime("%Y-%m")))


# ------------ edit ------------------------------------------------------------
@bp.route("/<int:record_id>/edit", methods=["GET", "POST"])
@login_required
def edit(record_id: int):
    ctx = get_context()
    r = db.session.get(WorkRecord, record_id)
    if not r:
        abort(404)
    if not can_edit_record(ctx.profile, r):
        abort(403)

    back = url_for("admin_mgmt.records", user_id=r.user_id, m=r.record_date.strftime("%Y-%m")) \
        if r.user_id != ctx.profile.id else url_for("records.index", m=r.record_date.strftime("%Y-%m"))

    if request.method == "GET":
        return render_template("records/form.html", item=r, count=1, limit=1,
                               presets=active_presets(), attendance=attendance_project(), back=back)

    try:
        edit_record(r, request.form)
    except ValidationError as e:
        flash(e.message, "danger")
        return redirect(url_for("records.edit", record_id=record_id))
    except AuthorizationDenied:
        flash("Недостаточно прав для действия.", "warning")
        return redirect(back)
    flash("Запись обновлена", "success")
    return redirect(back)


# ------------ export ----------------------------------------------------------
@bp.route("/export", methods=["GET"])
@login_required
def export():
    ctx = get_context()
    profile = ctx.require_profile()
    mc = _month_ctx(request.args.get("m"))
    records = month_records(profile.id, mc["first"], mc["last"])
    if not records:
        flash("За этот месяц нет данных для выгрузки", "warning")
        return redirect(url_for("records.index", m=mc["month_str"]))
    return send_file(
        records_xlsx(records),
        mimetype=XLSX_MIMETYPE,
        as_attachment=True,
        download_name=f"{profile.name}_записи_{mc['month_str']}.xlsx",
    )
