from datetime import timezone

from flask_sqlalchemy import SQLAlchemy

from domain import Task, User, format_instant

# SQLAlchemy instance is created here and initialized in app.create_app()
db = SQLAlchemy()


def _naive_utc(dt):
    """SQLite has no timezone support, so instants are stored as naive UTC."""
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def _instant_or_none(dt):
    return format_instant(dt) if dt is not None else None


class UserModel(db.Model):
    """
    Registered user.

    Passwords are stored as typed (no hashing). See DESIGN.md.
    The `seq` column keeps the collection in insertion order.
    """

    __tablename__ = "user"

    id = db.Column(db.String(64), primary_key=True)
    seq = db.Column(db.Integer, nullable=False, default=0, index=True)
    username = db.Column(db.String(80), unique=True, nullable=False)
    email = db.Column(db.String(255), nullable=False, default="")
    password = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False)

    tasks = db.relationship("TaskModel", backref="user", lazy=True)

    def fill_from(self, user: User, seq: int) -> None:
        self.seq = seq
        self.username = user.username
        self.email = user.email
        self.password = user.password
        self.created_at = _naive_utc(user.created_at)

    def to_record(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "password": self.password,
            "createdAt": _instant_or_none(self.created_at),
        }


class TaskModel(db.Model):
    """
    Task row.

    Fields mirror domain.Task:
    - status: TODO / IN_PROGRESS / DONE (string)
    - is_urgent: urgency flag, independent of status
    - created_at: set once at creation (UTC)
    - due_date: mutable due instant (UTC)
    - user_id: owner, set once

    days_remaining is never stored; it is computed on every read.
    """

    __tablename__ = "task"

    id = db.Column(db.String(64), primary_key=True)
    seq = db.Column(db.Integer, nullable=False, default=0, index=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=False, default="")
    status = db.Column(db.String(20), nullable=False, default="TODO")
    is_urgent = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, nullable=False)
    due_date = db.Column(db.DateTime, nullable=False)

    # Foreign key to User (each task belongs to a user)
    user_id = db.Column(db.String(64), db.ForeignKey("user.id"), nullable=False, index=True)

    def fill_from(self, task: Task, seq: int) -> None:
        self.seq = seq
        self.title = task.title
        self.description = task.description
        self.status = task.status.value
        self.is_urgent = task.is_urgent
        self.created_at = _naive_utc(task.created_at)
        self.due_date = _naive_utc(task.due_date)
        self.user_id = task.user_id

    def to_record(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description if self.description is not None else "",
            "status": self.status,
            "isUrgent": bool(self.is_urgent),
            "createdAt": _instant_or_none(self.created_at),
            "dueDate": _instant_or_none(self.due_date),
            "userId": self.user_id,
        }


class ActiveSessionModel(db.Model):
    """
    The single active session.

    At most one row (id=1). The payload is the JSON session record, so a
    corrupt payload is detected and discarded on load like any other record.
    """

    __tablename__ = "active_session"

    SINGLETON_ID = 1

    id = db.Column(db.Integer, primary_key=True)
    payload = db.Column(db.Text, nullable=False)
