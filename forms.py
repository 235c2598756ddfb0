from flask_wtf import FlaskForm
from wtforms import (
    BooleanField,
    Field,
    IntegerField,
    PasswordField,
    StringField,
    TextAreaField,
)
from wtforms.validators import (
    AnyOf,
    DataRequired,
    Email,
    Length,
    NumberRange,
    Optional,
    StopValidation,
    ValidationError,
)

from domain import TaskFilters, TaskListParams, TaskStatus, parse_instant

STATUS_VALUES = [s.value for s in TaskStatus]

# JSON null and false both mean "not urgent".
FALSE_VALUES = (False, "false", "", None)


def text_only(form, field):
    """JSON bodies can carry numbers, lists or objects where a string belongs."""
    if field.data is not None and not isinstance(field.data, str):
        raise StopValidation("Must be a string.")


class IsoDateTimeField(Field):
    """
    Accepts an ISO-8601 instant such as "2025-03-01T12:00:00.000Z".

    A plain date ("2025-03-01") is read as midnight UTC.
    """

    def _value(self):
        return self.data.isoformat() if self.data else ""

    def process_formdata(self, valuelist):
        if not valuelist or valuelist[0] in (None, ""):
            self.data = None
            return
        try:
            self.data = parse_instant(str(valuelist[0]))
        except ValueError:
            self.data = None
            raise ValueError(self.gettext("Not a valid ISO-8601 date."))


class ApiForm(FlaskForm):
    """
    Base form for the JSON API.

    Flask-WTF reads JSON request bodies into the form on POST/PATCH. There is
    no HTML page to carry a CSRF token, so CSRF is off for these forms.
    """

    class Meta:
        csrf = False

    def provided_data(self) -> dict:
        """Only the fields that were actually present in the request."""
        return {field.name: field.data for field in self if field.raw_data}


class RegistrationForm(ApiForm):
    """Registration form for new users: username, email and password."""

    username = StringField(
        "Username",
        validators=[
            text_only,
            DataRequired(message="Username is required"),
        ],
    )
    email = StringField(
        "Email",
        validators=[text_only, DataRequired(), Email(message="Please provide a valid email address.")],
    )
    password = PasswordField("Password", validators=[text_only, DataRequired()])


class LoginForm(ApiForm):
    """Login form for existing users."""

    username = StringField("Username", validators=[text_only, DataRequired()])
    password = PasswordField("Password", validators=[text_only, DataRequired()])


class TaskForm(ApiForm):
    """
    Form for creating tasks.

    New tasks are TODO and not urgent unless the request says otherwise.
    The title must contain something other than whitespace.
    """

    title = StringField(
        "Title",
        validators=[
            text_only,
            DataRequired(message="Task title is required"),
            Length(max=200),
        ],
    )
    description = TextAreaField("Description (optional)", validators=[text_only, Length(max=5000)])
    status = StringField(
        "Status",
        default=TaskStatus.TODO.value,
        validators=[text_only, Optional(), AnyOf(STATUS_VALUES, message="Not a valid status.")],
    )
    is_urgent = BooleanField("Urgent", false_values=FALSE_VALUES)
    due_date = IsoDateTimeField("Due Date", validators=[DataRequired(message="Due date is required")])

    def task_fields(self) -> dict:
        return {
            "title": self.title.data.strip(),
            "description": self.description.data or "",
            "status": TaskStatus(self.status.data or TaskStatus.TODO.value),
            "is_urgent": self.is_urgent.data,
            "due_date": self.due_date.data,
        }


class TaskUpdateForm(ApiForm):
    """
    Partial update: every field is optional, but a field that is sent must be valid.

    A null description clears it. A null or empty status is rejected.
    """

    title = StringField("Title", validators=[text_only, Length(max=200)])
    description = TextAreaField("Description", validators=[text_only, Length(max=5000)])
    status = StringField("Status", validators=[text_only])
    is_urgent = BooleanField("Urgent", false_values=FALSE_VALUES)
    due_date = IsoDateTimeField("Due Date")

    def validate_title(self, field):
        if field.raw_data and not (field.data or "").strip():
            raise ValidationError("Task title is required")

    def validate_status(self, field):
        if field.raw_data and field.data not in STATUS_VALUES:
            raise ValidationError("Not a valid status.")

    def validate_due_date(self, field):
        if field.raw_data and field.data is None and not field.errors:
            raise ValidationError("Due date cannot be empty")

    def changes(self) -> dict:
        data = self.provided_data()
        if "title" in data:
            data["title"] = data["title"].strip()
        if "description" in data:
            data["description"] = data["description"] or ""
        return data


class TaskQueryForm(ApiForm):
    """
    Query-string parameters for the task list (GET, so pass request.args).

    sort_by and sort_order are not validated here: the query engine falls
    back to its defaults for anything it does not recognise.
    """

    status = StringField(
        "Status",
        validators=[Optional(), AnyOf(STATUS_VALUES, message="Not a valid status.")],
    )
    is_urgent = StringField(
        "Urgent",
        validators=[Optional(), AnyOf(["true", "false"], message="Use true or false.")],
    )
    search = StringField("Search by title or description")
    sort_by = StringField("Sort by", default="dueDate")
    sort_order = StringField("Sort order", default="asc")
    page = IntegerField("Page", default=1, validators=[NumberRange(min=1)])
    limit = IntegerField("Per page", validators=[Optional(), NumberRange(min=1)])

    def to_params(self, *, default_limit: int, max_limit: int) -> TaskListParams:
        urgent = self.is_urgent.data
        limit = min(self.limit.data or default_limit, max_limit)
        return TaskListParams(
            page=self.page.data or 1,
            limit=limit,
            filters=TaskFilters(
                status=TaskStatus(self.status.data) if self.status.data else None,
                is_urgent=None if not urgent else urgent == "true",
                search=self.search.data or None,
            ),
            sort_by=self.sort_by.data or "dueDate",
            sort_order=self.sort_order.data or "asc",
        )
