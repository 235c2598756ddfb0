"""First-run demo account with a spread of tasks (overdue, upcoming, all statuses)."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from domain import Task, TaskStatus, User, utcnow
from storage import Storage

logger = logging.getLogger(__name__)

DEMO_USER_ID = "demo-user-1"
DEMO_USERNAME = "demo"

# (id, title, description, status, is_urgent, created days ago, due in days)
DEMO_TASKS = [
    (
        "task-1",
        "Design System Implementation",
        "Create a comprehensive design system with reusable components, color schemes, "
        "and typography guidelines.",
        TaskStatus.IN_PROGRESS,
        True,
        5,
        2,
    ),
    (
        "task-2",
        "API Documentation",
        "Write comprehensive API documentation using Swagger/OpenAPI specification.",
        TaskStatus.TODO,
        False,
        3,
        7,
    ),
    (
        "task-3",
        "User Authentication Flow",
        "Implement secure user authentication with login, registration, and session management.",
        TaskStatus.DONE,
        False,
        10,
        -2,
    ),
    (
        "task-4",
        "Performance Optimization",
        "Optimize application performance by implementing lazy loading, code splitting, "
        "and caching strategies.",
        TaskStatus.TODO,
        True,
        1,
        5,
    ),
    (
        "task-5",
        "Mobile Responsiveness",
        "Ensure the application works seamlessly across all device sizes and orientations.",
        TaskStatus.IN_PROGRESS,
        False,
        7,
        3,
    ),
    (
        "task-6",
        "Testing Suite Setup",
        "Set up comprehensive testing including unit tests, integration tests, and end-to-end tests.",
        TaskStatus.TODO,
        False,
        2,
        10,
    ),
    (
        "task-7",
        "Database Migration",
        "Plan and execute database schema migration for the new features.",
        TaskStatus.DONE,
        True,
        15,
        -5,
    ),
    (
        "task-8",
        "Code Review Process",
        "Establish code review guidelines and implement peer review process for all changes.",
        TaskStatus.TODO,
        False,
        0,
        14,
    ),
]


def seed_demo_data(storage: Storage, now: datetime | None = None) -> bool:
    """
    Add the demo user and its tasks unless a user named "demo" already exists.

    Returns True if anything was seeded. Existing tasks are kept.
    """
    users = storage.load_users()
    if any(u.username == DEMO_USERNAME for u in users):
        return False

    now = now or utcnow()
    users.append(
        User(
            id=DEMO_USER_ID,
            username=DEMO_USERNAME,
            email="demo@taskflow.com",
            password="demo",
            created_at=now,
        )
    )
    storage.save_users(users)

    tasks = storage.load_tasks()
    for task_id, title, description, status, is_urgent, created_ago, due_in in DEMO_TASKS:
        tasks.append(
            Task(
                id=task_id,
                title=title,
                description=description,
                status=status,
                is_urgent=is_urgent,
                created_at=now - timedelta(days=created_ago),
                due_date=now + timedelta(days=due_in),
                user_id=DEMO_USER_ID,
            )
        )
    storage.save_tasks(tasks)

    logger.info("Seeded demo user %r with %d tasks", DEMO_USERNAME, len(DEMO_TASKS))
    return True
