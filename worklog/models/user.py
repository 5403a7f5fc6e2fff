from datetime import datetime
from flask_login import UserMixin
from sqlalchemy import event
from werkzeug.security import check_password_hash, generate_password_hash
from ..extensions import db, login_manager

ROLE_USER = "user"
ROLE_ADMIN = "admin"
DEFAULT_EMPLOYEE_TYPE = "regular"
UNNAMED = "unnamed"


class Identity(db.Model, UserMixin):
    """Учётка для входа. Email синтетический, пользователь видит только имя."""
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(320), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)
    display_name = db.Column(db.String(128), default="")
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    profile = db.relationship("Profile", uselist=False, back_populates="identity",
                              cascade="all, delete-orphan", passive_deletes=True)

    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)


class Profile(db.Model):
    id = db.Column(db.Integer, db.ForeignKey("identity.id", ondelete="CASCADE"), primary_key=True)
    name = db.Column(db.String(128), unique=True, nullable=False, index=True)
    role = db.Column(db.String(16), nullable=False, default=ROLE_USER)  # user|admin
    employee_type = db.Column(db.String(64), nullable=False, default=DEFAULT_EMPLOYEE_TYPE)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    identity = db.relationship("Identity", back_populates="profile")

    __table_args__ = (
        db.CheckConstraint("role IN ('user','admin')", name="ck_profile_role"),
    )

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def __repr__(self):
        return f"<Profile {self.id} {self.name!r} {self.role}/{self.employee_type}>"


# «триггер» на новую учётку: сразу заводим профиль
# Пишем прямо в соединение flush'а, мимо сессии: политика доступа сюда не попадает,
# как у definer-функции в БД.
@event.listens_for(Identity, "after_insert")
def _materialize_profile(mapper, connection, target):
    name = (target.display_name or "").strip() or UNNAMED
    connection.execute(
        Profile.__table__.insert().values(
            id=target.id,
            name=name,
            role=ROLE_USER,
            employee_type=DEFAULT_EMPLOYEE_TYPE,
            created_at=datetime.utcnow(),
        )
    )


@login_manager.user_loader
def load_user(user_id):
    try:
        return db.session.get(Identity, int(user_id))
    except (TypeError, ValueError):
        return None
