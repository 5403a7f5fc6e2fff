# -*- coding: utf-8 -*-
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from sqlalchemy import func
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import validates

from ..errors import ValidationError
from ..extensions import db


D = lambda v: Decimal(str(v)) if v is not None else Decimal("0")


class WorkRecord(db.Model):
    __tablename__ = "work_record"

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("profile.id", ondelete="CASCADE"), nullable=False, index=True)
    # имя на момент записи; при переименовании профиля не меняется
    user_name = db.Column(db.String(128), nullable=False)

    project_name = db.Column(db.String(128), nullable=False)
    workload = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    overtime = db.Column(db.Numeric(10, 2), nullable=False, default=0)  # часы

    # ставки фиксируются при сохранении и дальше не пересчитываются
    unit_price_snapshot = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    overtime_rate_snapshot = db.Column(db.Numeric(10, 2), nullable=False, default=0)

    notes = db.Column(db.Text, default="")
    record_date = db.Column(db.Date, nullable=False, default=date.today, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    profile = db.relationship("Profile", backref=db.backref("records", passive_deletes=True))

    __table_args__ = (
        db.Index("ix_work_record_user_date", "user_id", "record_date"),
        db.CheckConstraint("workload >= 0", name="ck_record_workload"),
        db.CheckConstraint("overtime >= 0", name="ck_record_overtime"),
    )

    @validates("workload", "overtime")
    def _non_negative(self, key, value):
        try:
            v = D(value)
        except InvalidOperation:
            raise ValidationError(f"Некорректное число: {value!r}", field=key)
        if v < 0:
            raise ValidationError("Значение не может быть отрицательным", field=key)
        return v

    @validates("project_name")
    def _project_name(self, key, value):
        name = (value or "").strip()
        if not name:
            raise ValidationError("Укажите проект", field=key)
        return name

    # --- вычисляемые поля ---

    @hybrid_property
    def base_pay(self) -> Decimal:
        """Сдельная часть = ставка × объём"""
        return D(self.unit_price_snapshot) * D(self.workload)

    @base_pay.expression
    def base_pay(cls):
        return func.coalesce(cls.unit_price_snapshot, 0) * func.coalesce(cls.workload, 0)

    @hybrid_property
    def overtime_pay(self) -> Decimal:
        """Переработка = часы × ставка за час"""
        return D(self.overtime) * D(self.overtime_rate_snapshot)

    @overtime_pay.expression
    def overtime_pay(cls):
        return func.coalesce(cls.overtime, 0) * func.coalesce(cls.overtime_rate_snapshot, 0)

    @hybrid_property
    def pay(self) -> Decimal:
        return self.base_pay + self.overtime_pay

    @pay.expression
    def pay(cls):
        return (func.coalesce(cls.unit_price_snapshot, 0) * func.coalesce(cls.workload, 0)
                + func.coalesce(cls.overtime, 0) * func.coalesce(cls.overtime_rate_snapshot, 0))

    def __repr__(self):
        return f"<WorkRecord {self.id} {self.user_name} {self.record_date} {self.project_name!r}>"
