import os
from pathlib import Path
from dotenv import load_dotenv
load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent  # <project>
INSTANCE_DIR = BASE_DIR / "instance"

def _default_sqlite_uri():
    return f"sqlite:///{(INSTANCE_DIR / 'worklog.db').as_posix()}"

class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret")
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL") or _default_sqlite_uri()
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # проект «выход на работу»: оплачивается по дневной ставке типа сотрудника
    ATTENDANCE_PROJECT = os.getenv("ATTENDANCE_PROJECT", "Рабочий день")
    DEFAULT_OVERTIME_RATE = os.getenv("DEFAULT_OVERTIME_RATE", "9")

    # профиль может появиться не сразу после регистрации
    PROFILE_RESOLVE_ATTEMPTS = int(os.getenv("PROFILE_RESOLVE_ATTEMPTS", "5"))
    PROFILE_RESOLVE_BASE_DELAY = float(os.getenv("PROFILE_RESOLVE_BASE_DELAY", "0.2"))
    PROFILE_RESOLVE_TIMEOUT = float(os.getenv("PROFILE_RESOLVE_TIMEOUT", "6"))

    MAX_RECORDS_PER_SUBMIT = 10

def ensure_instance(app):
    # Flask instance path
    os.makedirs(app.instance_path, exist_ok=True)
    INSTANCE_DIR.mkdir(parents=True, exist_ok=True)
