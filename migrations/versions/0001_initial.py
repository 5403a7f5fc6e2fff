"""учётки, профили, справочник ставок, записи

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 10:00:00

"""
from datetime import datetime

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


PRESETS = [
    ("Генерация AI-комиксов", 30, "серия", 1),
    ("Генерация AI-комиксов с актёрами", 30, "серия", 2),
    ("Монтаж AI-комиксов", 80, "серия", 3),
    ("Монтаж AI-комиксов с актёрами", 80, "серия", 4),
    ("Пробное задание", 200, "раз", 5),
    ("Рабочий день", 0, "день", 6),
    ("Обучение AI-комиксам", 200, "день", 7),
]

EMPLOYEE_TYPES = [
    ("intern", "Стажёр", 0, 9),
    ("regular", "Штатный", 0, 9),
    ("manager", "Руководитель", 0, 9),
]


def upgrade():
    op.create_table(
        "identity",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("password_hash", sa.String(length=256), nullable=False),
        sa.Column("display_name", sa.String(length=128), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_identity_email", "identity", ["email"], unique=True)

    op.create_table(
        "profile",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("role", sa.String(length=16), nullable=False),
        sa.Column("employee_type", sa.String(length=64), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.CheckConstraint("role IN ('user','admin')", name="ck_profile_role"),
        sa.ForeignKeyConstraint(["id"], ["identity.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_profile_name", "profile", ["name"], unique=True)

    preset = op.create_table(
        "project_preset",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("project_name", sa.String(length=128), nullable=False),
        sa.Column("unit_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("unit_label", sa.String(length=32), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.CheckConstraint("unit_price >= 0", name="ck_preset_price"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("project_name"),
    )

    ets = op.create_table(
        "employee_type_setting",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("type_name", sa.String(length=64), nullable=False),
        sa.Column("type_label", sa.String(length=128), nullable=False),
        sa.Column("daily_wage", sa.Numeric(10, 2), nullable=False),
        sa.Column("overtime_rate", sa.Numeric(10, 2), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.CheckConstraint("daily_wage >= 0", name="ck_ets_wage"),
        sa.CheckConstraint("overtime_rate >= 0", name="ck_ets_overtime"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("type_name"),
    )

    op.create_table(
        "work_record",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("user_name", sa.String(length=128), nullable=False),
        sa.Column("project_name", sa.String(length=128), nullable=False),
        sa.Column("workload", sa.Numeric(10, 2), nullable=False),
        sa.Column("overtime", sa.Numeric(10, 2), nullable=False),
        sa.Column("unit_price_snapshot", sa.Numeric(10, 2), nullable=False),
        sa.Column("overtime_rate_snapshot", sa.Numeric(10, 2), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("record_date", sa.Date(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.CheckConstraint("workload >= 0", name="ck_record_workload"),
        sa.CheckConstraint("overtime >= 0", name="ck_record_overtime"),
        sa.ForeignKeyConstraint(["user_id"], ["profile.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_work_record_user_id", "work_record", ["user_id"])
    op.create_index("ix_work_record_record_date", "work_record", ["record_date"])
    op.create_index("ix_work_record_user_date", "work_record", ["user_id", "record_date"])

    now = datetime.utcnow()
    op.bulk_insert(preset, [
        {"project_name": n, "unit_price": p, "unit_label": u, "is_active": True, "sort_order": s, "created_at": now}
        for n, p, u, s in PRESETS
    ])
    op.bulk_insert(ets, [
        {"type_name": n, "type_label": l, "daily_wage": w, "overtime_rate": o, "created_at": now}
        for n, l, w, o in EMPLOYEE_TYPES
    ])


def downgrade():
    op.drop_index("ix_work_record_user_date", table_name="work_record")
    op.drop_index("ix_work_record_record_date", table_name="work_record")
    op.drop_index("ix_work_record_user_id", table_name="work_record")
    op.drop_table("work_record")
    op.drop_table("employee_type_setting")
    op.drop_table("project_preset")
    op.drop_index("ix_profile_name", table_name="profile")
    op.drop_table("profile")
    op.drop_index("ix_identity_email", table_name="identity")
    op.drop_table("identity")
