"""
Актуализация схемы БД (без удаления данных).

Создаёт недостающие таблицы, объявленные в моделях, не трогая существующие
данные. Полезно, если instance/worklog.db создавался старой версией и
миграции на нём не запускались.

Запуск:
  python scripts/ensure_schema.py
"""

from __future__ import annotations

import sys
from pathlib import Path

from sqlalchemy import inspect

# Гарантируем, что корень проекта есть в sys.path
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from worklog import create_app  # type: ignore
from worklog.extensions import db  # type: ignore

EXPECTED = ["identity", "profile", "project_preset", "employee_type_setting", "work_record"]


def _tables() -> set[str]:
    return set(inspect(db.engine).get_table_names())


def main() -> int:
    print("[ensure] Загружаю приложение...")
    app = create_app()
    with app.app_context():
        uri = app.config.get("SQLALCHEMY_DATABASE_URI", "")
        print(f"[ensure] SQLALCHEMY_DATABASE_URI = {uri}")

        before = _tables()
        print(f"[ensure] Таблиц до: {len(before)}")

        print("[ensure] Создание недостающих таблиц (если есть)...")
        db.create_all()

        after = _tables()
        created = sorted(after - before)
        if created:
            print(f"[ensure] Созданы таблицы: {', '.join(created)}")
        else:
            print("[ensure] Новых таблиц не потребовалось.")

        missing = [t for t in EXPECTED if t not in after]
        if missing:
            print(f"[ensure] ВНИМАНИЕ, нет таблиц: {', '.join(missing)}")
            return 1
        print("[ensure] Готово.")
        return 0


if __name__ == "__main__":
    sys.exit(main())
