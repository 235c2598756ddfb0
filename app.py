import logging
import time
from functools import wraps

from flask import Flask, g, jsonify, request

from auth_store import AuthStore
from config import Settings, get_settings
from demo_data import seed_demo_data
from errors import InvalidCredentials, NotAuthenticated, NotFound, UsernameTaken
from forms import LoginForm, RegistrationForm, TaskForm, TaskQueryForm, TaskUpdateForm
from logging_setup import setup_logging
from models import db
from storage import SqlStorage
from task_store import TaskStore

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> Flask:
    """
    Application factory to create and configure the Flask app.

    The app is a personal task manager: one active session per process,
    persisted in the database next to the users and tasks. Every request
    gets a fresh AuthStore (the session object) and TaskStore built over
    the same SqlStorage.
    """
    settings = settings or get_settings()

    app = Flask(__name__)
    app.config["SECRET_KEY"] = settings.secret_key
    app.config["SQLALCHEMY_DATABASE_URI"] = settings.database_uri
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    app.config["TASKFLOW_SETTINGS"] = settings

    settings.data_dir.mkdir(parents=True, exist_ok=True)
    db.init_app(app)
    storage = SqlStorage()

    with app.app_context():
        db.create_all()
        if settings.seed_demo:
            seed_demo_data(storage)

    # -----------------------------
    # Session helpers
    # -----------------------------

    def login_required(view_func):
        """Reject the request with 401 unless a session is active."""

        @wraps(view_func)
        def wrapped_view(*args, **kwargs):
            g.user = g.auth.require_user()
            return view_func(*args, **kwargs)

        return wrapped_view

    @app.before_request
    def load_stores():
        """
        Runs before every request.

        Restores the persisted session into `g.auth` and makes the task
        store available as `g.tasks`.
        """
        g.auth = AuthStore(storage)
        g.tasks = TaskStore(storage)
        g.user = g.auth.current_user

    def validation_failed(form):
        return jsonify(error="validation_failed", fields=form.errors), 400

    def owned_task(task_id):
        """Fetch a task of the logged-in user. Other users' tasks look missing."""
        task = g.tasks.get(task_id)
        if task is None or task.user_id != g.user.id:
            raise NotFound(task_id)
        return task

    # -----------------------------
    # Auth routes
    # -----------------------------

    @app.route("/")
    def index():
        user = g.auth.current_user
        return jsonify(authenticated=user is not None, user=user.to_dict() if user else None)

    @app.route("/api/auth/register", methods=["POST"])
    def register():
        """Create an account and log straight into it."""
        form = RegistrationForm()
        if not form.validate_on_submit():
            return validation_failed(form)

        user = g.auth.register(form.username.data, form.email.data, form.password.data)
        return jsonify(user.to_dict()), 201

    @app.route("/api/auth/login", methods=["POST"])
    def login():
        form = LoginForm()
        if not form.validate_on_submit():
            return validation_failed(form)

        user = g.auth.login(form.username.data, form.password.data)
        return jsonify(user.to_dict())

    @app.route("/api/auth/logout", methods=["POST"])
    def logout():
        """Clears the session, whether or not anyone was logged in."""
        g.auth.logout()
        return "", 204

    @app.route("/api/auth/me")
    @login_required
    def me():
        return jsonify(g.user.to_dict())

    # -----------------------------
    # Task routes
    # -----------------------------

    @app.route("/api/tasks")
    @login_required
    def list_tasks():
        """
        Task list for the logged-in user.

        Supports filters (status, is_urgent, search), sorting (sort_by,
        sort_order) and pagination (page, limit).
        """
        form = TaskQueryForm(request.args)
        if not form.validate():
            return validation_failed(form)

        params = form.to_params(default_limit=settings.page_size, max_limit=settings.max_page_size)
        if settings.query_delay_ms:
            time.sleep(settings.query_delay_ms / 1000)

        page = g.tasks.list_tasks(g.user.id, params)
        return jsonify(page.to_dict())

    @app.route("/api/tasks/stats")
    @login_required
    def task_stats():
        return jsonify(g.tasks.task_stats(g.user.id).to_dict())

    @app.route("/api/tasks", methods=["POST"])
    @login_required
    def create_task():
        form = TaskForm()
        if not form.validate_on_submit():
            return validation_failed(form)

        task = g.tasks.create(g.user.id, **form.task_fields())
        return jsonify(task.to_dict()), 201

    @app.route("/api/tasks/<task_id>")
    @login_required
    def get_task(task_id):
        return jsonify(owned_task(task_id).to_dict())

    @app.route("/api/tasks/<task_id>", methods=["PATCH"])
    @login_required
    def update_task(task_id):
        """Update only the fields present in the request body."""
        owned_task(task_id)
        form = TaskUpdateForm()
        if not form.validate_on_submit():
            return validation_failed(form)

        task = g.tasks.update(task_id, **form.changes())
        return jsonify(task.to_dict())

    @app.route("/api/tasks/<task_id>", methods=["DELETE"])
    @login_required
    def delete_task(task_id):
        """
        Delete a task.

        Deleting an id that no longer exists is fine (204 again), but a task
        owned by someone else is reported as missing.
        """
        task = g.tasks.get(task_id)
        if task is not None and task.user_id != g.user.id:
            raise NotFound(task_id)
        g.tasks.delete(task_id)
        return "", 204

    # -----------------------------
    # Error handlers
    # -----------------------------

    @app.errorhandler(UsernameTaken)
    def username_taken(error):
        return jsonify(error="username_taken", message=str(error)), 409

    @app.errorhandler(InvalidCredentials)
    def invalid_credentials(error):
        return jsonify(error="invalid_credentials", message=str(error)), 401

    @app.errorhandler(NotAuthenticated)
    def unauthorized(error):
        return jsonify(error="not_authenticated", message=str(error)), 401

    @app.errorhandler(NotFound)
    def task_not_found(error):
        return jsonify(error="not_found", message=str(error)), 404

    @app.errorhandler(404)
    def not_found(error):
        return jsonify(error="not_found", message="Resource not found."), 404

    return app


def main() -> None:
    """Run the development server with logging configured."""
    settings = get_settings()
    setup_logging(level=settings.log_level, log_dir=settings.data_dir)
    app = create_app(settings)
    logger.info("TaskFlow starting db=%s", settings.database_uri)
    app.run()


if __name__ == "__main__":
    main()
