"""
Error types raised by the task and auth stores.

The Flask layer in app.py maps each of these to a JSON response, so the
core never needs to know about HTTP status codes.
"""


class TaskflowError(Exception):
    """Base class for all expected, recoverable application errors."""


class UsernameTaken(TaskflowError):
    def __init__(self, username: str) -> None:
        super().__init__(f"Username already taken: {username}")
        self.username = username


class InvalidCredentials(TaskflowError):
    """
    Raised by login.

    The message is the same for an unknown username and a wrong password.
    """

    def __init__(self) -> None:
        super().__init__("Invalid username or password.")


class NotAuthenticated(TaskflowError):
    def __init__(self) -> None:
        super().__init__("Please log in to access this resource.")


class NotFound(TaskflowError):
    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task not found: {task_id}")
        self.task_id = task_id


class MalformedStoredData(TaskflowError):
    """A stored record could not be parsed. Storage drops the record."""
