# -*- coding: utf-8 -*-
"""
Полный ресет SQLite-БД и базовое наполнение с подробными логами.

Запуск из корня проекта:
  python scripts/recreate_db.py [имя_админа] [пароль]
"""

from __future__ import annotations
import sys, traceback
from pathlib import Path
from typing import Optional
from sqlalchemy import text

# --- путь к проекту ---
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

print(f"[recreate] ROOT={ROOT}")
if not (ROOT / "worklog" / "__init__.py").exists():
    raise SystemExit("[recreate] ошибка: пакет worklog не найден рядом со scripts/")

print("[recreate] импорт приложения…")
from worklog import create_app  # type: ignore
from worklog.extensions import db  # type: ignore
from worklog.acl import privileged  # type: ignore
from worklog.auth.identity import name_to_email  # type: ignore
from worklog.models import EmployeeTypeSetting, Identity, Profile, ProjectPreset, ROLE_ADMIN  # type: ignore
from worklog.rates import DEFAULT_EMPLOYEE_TYPES, DEFAULT_PRESETS  # type: ignore

ADMIN_NAME = "admin"
ADMIN_PASSWORD = "admin12345"


def _db_path_from_uri(uri: str) -> Optional[Path]:
    if uri.startswith("sqlite:///"):
        return Path(uri.replace("sqlite:///", "")).resolve()
    return None


def _cnt(table: str) -> int:
    return int(db.session.execute(text(f'SELECT COUNT(*) FROM "{table}"')).scalar() or 0)


def main(argv: list[str]) -> int:
    admin_name = argv[0] if len(argv) > 0 else ADMIN_NAME
    admin_password = argv[1] if len(argv) > 1 else ADMIN_PASSWORD

    print("[recreate] create_app()…")
    app = create_app()
    with app.app_context():
        uri = app.config.get("SQLALCHEMY_DATABASE_URI", "")
        print(f"[recreate] SQLALCHEMY_DATABASE_URI = {uri}")

        db_path = _db_path_from_uri(uri)
        if db_path:
            db_path.parent.mkdir(parents=True, exist_ok=True)
            if db_path.exists():
                print(f"[recreate] удаляю файл БД: {db_path}")
                db.engine.dispose()
                db_path.unlink()
            else:
                print(f"[recreate] файл БД ещё не существует: {db_path}")
        else:
            print("[recreate] БД не sqlite, удаляю таблицы…")
            db.drop_all()

        print("[recreate] создаю таблицы по моделям…")
        db.create_all()
        print("[recreate] готово")

        # сиды пишутся мимо политики доступа: действующего пользователя ещё нет
        with privileged():
            print("[recreate] справочник типов сотрудников…")
            db.session.add_all([
                EmployeeTypeSetting(type_name=n, type_label=l, daily_wage=w, overtime_rate=o)
                for n, l, w, o in DEFAULT_EMPLOYEE_TYPES
            ])
            print("[recreate] справочник проектов…")
            db.session.add_all([
                ProjectPreset(project_name=n, unit_price=p, unit_label=u, sort_order=s, is_active=True)
                for n, p, u, s in DEFAULT_PRESETS
            ])
            db.session.commit()
            print(f"[recreate] employee_type_setting rows={_cnt('employee_type_setting')}, "
                  f"project_preset rows={_cnt('project_preset')}")

            print("[recreate] создаю администратора…")
            admin = Identity(email=name_to_email(admin_name), display_name=admin_name)
            admin.set_password(admin_password)
            db.session.add(admin)
            db.session.commit()
            profile = db.session.get(Profile, admin.id)
            profile.role = ROLE_ADMIN
            db.session.commit()
            print(f"[recreate] admin id={admin.id} role={profile.role}")

        print("\n[recreate] Готово.")
        print("Логин:")
        print(f"  {admin_name} / {admin_password}")
        if db_path:
            print(f"\nФайл БД: {db_path}")
        return 0


if __name__ == "__main__":
    try:
        sys.exit(main(sys.argv[1:]))
    except Exception:
        print("\n[recreate] ОШИБКА:")
        traceback.print_exc()
        sys.exit(1)
