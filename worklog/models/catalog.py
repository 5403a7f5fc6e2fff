from datetime import datetime
from ..extensions import db


class ProjectPreset(db.Model):
    __tablename__ = "project_preset"

    id = db.Column(db.Integer, primary_key=True)
    project_name = db.Column(db.String(128), nullable=False, unique=True)
    unit_price = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    unit_label = db.Column(db.String(32), nullable=False, default="шт")
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    sort_order = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (
        db.CheckConstraint("unit_price >= 0", name="ck_preset_price"),
    )

    def __repr__(self):
        return f"<ProjectPreset {self.project_name!r} {self.unit_price}/{self.unit_label}>"


class EmployeeTypeSetting(db.Model):
    __tablename__ = "employee_type_setting"

    id = db.Column(db.Integer, primary_key=True)
    type_name = db.Column(db.String(64), nullable=False, unique=True)
    type_label = db.Column(db.String(128), nullable=False, default="")
    daily_wage = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    overtime_rate = db.Column(db.Numeric(10, 2), nullable=False, default=9)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (
        db.CheckConstraint("daily_wage >= 0", name="ck_ets_wage"),
        db.CheckConstraint("overtime_rate >= 0", name="ck_ets_overtime"),
    )

    def __repr__(self):
        return f"<EmployeeTypeSetting {self.type_name!r} {self.daily_wage}+{self.overtime_rate}/h>"
