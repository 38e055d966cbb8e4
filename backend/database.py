import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from enum import Enum
from typing import Iterable, Optional

import config
from dates import now, parse_date_field, resolve_optional, resolve_or_now, to_storage
from errors import StoreOperationError
from models import Category, Label, Priority, Subtask, Task, User

logger = logging.getLogger(__name__)

DATABASE_PATH = config.DATABASE_PATH

TASK_COLUMNS = (
    "title",
    "description",
    "due_date",
    "category",
    "priority",
    "is_completed",
    "is_trashed",
    "trashed_at",
    "reminder_at",
    "subtasks",
    "label_id",
)


def describe_store_error(exc: sqlite3.Error) -> str:
    """Turn a sqlite error into the message shown to the user."""
    text = str(exc).lower()
    if "readonly" in text or "permission" in text or "unable to open" in text:
        return "You don't have permission to access the task database."
    if "no such table" in text or "no such column" in text:
        return "The task database schema is missing or out of date. Run 'alembic upgrade head'."
    if "locked" in text or "busy" in text:
        return "The task database is busy. Please try again."
    return f"Task database error: {exc}"


@contextmanager
def get_db():
    """Context manager for database connections. sqlite errors leave as StoreOperationError."""
    try:
        conn = sqlite3.connect(DATABASE_PATH)
    except sqlite3.Error as e:
        logger.error("Could not open database %s: %s", DATABASE_PATH, e)
        raise StoreOperationError(describe_store_error(e)) from e
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    try:
        yield conn
    except sqlite3.Error as e:
        conn.rollback()
        logger.error("Database operation failed: %s", e)
        raise StoreOperationError(describe_store_error(e)) from e
    finally:
        conn.close()


def init_db():
    """Initialize database by running Alembic migrations."""
    import subprocess
    import os

    # Run alembic upgrade from the backend directory
    backend_dir = os.path.dirname(os.path.abspath(__file__))
    subprocess.run(
        ["alembic", "upgrade", "head"],
        cwd=backend_dir,
        check=True
    )


def _to_column(value):
    """Convert a Python value to what the tasks table stores."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, datetime):
        return to_storage(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (list, tuple)):
        return json.dumps([
            item.model_dump() if isinstance(item, Subtask) else dict(item)
            for item in value
        ])
    return value


def _parse_enum(enum_cls, raw, default):
    try:
        return enum_cls(raw)
    except ValueError:
        logger.warning("Unknown %s value %r, using %s", enum_cls.__name__, raw, default.value)
        return default


def _parse_subtasks(raw) -> tuple[Subtask, ...]:
    if not raw:
        return ()
    try:
        items = json.loads(raw)
        return tuple(Subtask(**item) for item in items)
    except (ValueError, TypeError) as e:
        logger.warning("Ignoring malformed subtasks %r: %s", raw, e)
        return ()


def _row_to_task(row) -> Task:
    """
    Convert a database row to a Task model.
    All date columns go through parse_date_field; a trashed task whose
    trashed_at is unreadable gets the current time, a live task never has one.
    """
    keys = row.keys()
    is_trashed = bool(row["is_trashed"])
    trashed_at = resolve_or_now(parse_date_field(row["trashed_at"])) if is_trashed else None
    # resolved_label_id comes from the LEFT JOIN on labels; a deleted label reads as None
    label_id = row["resolved_label_id"] if "resolved_label_id" in keys else row["label_id"]
    return Task(
        id=row["id"],
        owner_id=row["owner_id"],
        title=row["title"] or "",
        description=row["description"] or "",
        due_date=resolve_optional(parse_date_field(row["due_date"])),
        category=_parse_enum(Category, row["category"], Category.GENERAL),
        priority=_parse_enum(Priority, row["priority"], Priority.NONE),
        is_completed=bool(row["is_completed"]),
        created_at=resolve_or_now(parse_date_field(row["created_at"])),
        is_trashed=is_trashed,
        trashed_at=trashed_at,
        reminder_at=resolve_optional(parse_date_field(row["reminder_at"])),
        subtasks=_parse_subtasks(row["subtasks"]),
        label_id=label_id,
    )


_TASK_SELECT = """
    SELECT tasks.*, labels.id AS resolved_label_id
    FROM tasks
    LEFT JOIN labels ON labels.id = tasks.label_id AND labels.owner_id = tasks.owner_id
"""


def get_all_tasks(owner_id: str) -> list[Task]:
    """Every stored task of one user, trashed ones included, oldest first."""
    with get_db() as conn:
        rows = conn.execute(
            _TASK_SELECT + " WHERE tasks.owner_id = ? ORDER BY tasks.created_at, tasks.rowid",
            (owner_id,)
        ).fetchall()
        return [_row_to_task(row) for row in rows]


def get_task_db(task_id: str, owner_id: str) -> Optional[Task]:
    with get_db() as conn:
        row = conn.execute(
            _TASK_SELECT + " WHERE tasks.id = ? AND tasks.owner_id = ?",
            (task_id, owner_id)
        ).fetchone()
        return _row_to_task(row) if row else None


def create_task_db(
    task_id: str,
    owner_id: str,
    title: str = "",
    description: str = "",
    due_date: Optional[datetime] = None,
    category: Category = Category.GENERAL,
    priority: Priority = Priority.NONE,
    reminder_at: Optional[datetime] = None,
    subtasks: Iterable[Subtask] = (),
    label_id: Optional[str] = None,
    created_at: Optional[datetime] = None,
) -> Task:
    """Insert a new task. New tasks are never completed or trashed."""
    created_at = created_at or now()
    subtasks = tuple(subtasks)
    with get_db() as conn:
        conn.execute(
            """INSERT INTO tasks
               (id, owner_id, title, description, due_date, category, priority, is_completed,
                created_at, is_trashed, trashed_at, reminder_at, subtasks, label_id)
               VALUES (?, ?, ?, ?, ?, ?, ?, 0, ?, 0, NULL, ?, ?, ?)""",
            (
                task_id,
                owner_id,
                title,
                description,
                to_storage(due_date),
                category.value,
                priority.value,
                to_storage(created_at),
                to_storage(reminder_at),
                _to_column(subtasks),
                label_id,
            )
        )
        conn.commit()
    logger.info("Created task %s for user %s", task_id, owner_id)
    return get_task_db(task_id, owner_id)


def update_task_db(task_id: str, owner_id: str, **updates) -> Optional[Task]:
    """
    Update a task with any fields provided.
    Only updates fields that differ from current values; id, owner_id and
    created_at are not writable.

    Args:
        task_id: Task ID to update
        owner_id: Owner the task must belong to
        **updates: Column names from TASK_COLUMNS and their new values
    """
    with get_db() as conn:
        row = conn.execute(
            "SELECT * FROM tasks WHERE id = ? AND owner_id = ?", (task_id, owner_id)
        ).fetchone()
        if not row:
            return None

        # Filter updates: only include fields that differ from current values
        changes = {}
        for field, new_value in updates.items():
            if field not in TASK_COLUMNS:
                continue
            stored = _to_column(new_value)
            if stored != row[field]:
                changes[field] = stored

        # Execute UPDATE only if there are actual changes
        if changes:
            set_clause = ", ".join(f"{field} = ?" for field in changes.keys())
            values = list(changes.values()) + [task_id, owner_id]
            conn.execute(f"UPDATE tasks SET {set_clause} WHERE id = ? AND owner_id = ?", values)
            conn.commit()
            logger.debug("Updated task %s fields %s", task_id, sorted(changes))

    return get_task_db(task_id, owner_id)


def delete_task_db(task_id: str, owner_id: str) -> bool:
    with get_db() as conn:
        cursor = conn.execute(
            "DELETE FROM tasks WHERE id = ? AND owner_id = ?", (task_id, owner_id)
        )
        conn.commit()
        return cursor.rowcount > 0


def purge_trashed_tasks_db(owner_id: str) -> list[str]:
    """Permanently delete every trashed task of a user in one transaction. Returns the deleted ids."""
    with get_db() as conn:
        rows = conn.execute(
            "SELECT id FROM tasks WHERE owner_id = ? AND is_trashed = 1", (owner_id,)
        ).fetchall()
        ids = [row["id"] for row in rows]
        if ids:
            conn.executemany(
                "DELETE FROM tasks WHERE id = ? AND owner_id = ?",
                [(task_id, owner_id) for task_id in ids]
            )
        conn.commit()
    logger.info("Purged %d trashed tasks for user %s", len(ids), owner_id)
    return ids


# Label operations
def _row_to_label(row) -> Label:
    return Label(
        id=row["id"],
        owner_id=row["owner_id"],
        name=row["name"],
        color=row["color"],
        created_at=resolve_or_now(parse_date_field(row["created_at"])),
    )


def get_labels_db(owner_id: str) -> list[Label]:
    with get_db() as conn:
        rows = conn.execute(
            "SELECT * FROM labels WHERE owner_id = ? ORDER BY created_at, rowid", (owner_id,)
        ).fetchall()
        return [_row_to_label(row) for row in rows]


def get_label_db(label_id: str, owner_id: str) -> Optional[Label]:
    with get_db() as conn:
        row = conn.execute(
            "SELECT * FROM labels WHERE id = ? AND owner_id = ?", (label_id, owner_id)
        ).fetchone()
        return _row_to_label(row) if row else None


def create_label_db(label_id: str, owner_id: str, name: str, color: str) -> Label:
    created_at = to_storage(now())
    with get_db() as conn:
        conn.execute(
            "INSERT INTO labels (id, owner_id, name, color, created_at) VALUES (?, ?, ?, ?, ?)",
            (label_id, owner_id, name, color, created_at)
        )
        conn.commit()
    return get_label_db(label_id, owner_id)


def delete_label_db(label_id: str, owner_id: str) -> bool:
    """Delete a label. Tasks keep their label_id and read it back as None."""
    with get_db() as conn:
        cursor = conn.execute(
            "DELETE FROM labels WHERE id = ? AND owner_id = ?", (label_id, owner_id)
        )
        conn.commit()
        return cursor.rowcount > 0


# User and session operations
def _row_to_user(row) -> User:
    return User(
        id=row["id"],
        email=row["email"],
        created_at=resolve_or_now(parse_date_field(row["created_at"])),
    )


def create_user_db(user_id: str, email: str, password_hash: str) -> Optional[User]:
    """Insert a user. Returns None when the email is already registered."""
    with get_db() as conn:
        try:
            conn.execute(
                "INSERT INTO users (id, email, password_hash, created_at) VALUES (?, ?, ?, ?)",
                (user_id, email, password_hash, to_storage(now()))
            )
        except sqlite3.IntegrityError:
            return None
        conn.commit()
        row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        return _row_to_user(row)


def find_user_by_email_db(email: str) -> Optional[tuple[User, str]]:
    """Return (user, password_hash) for an email, or None."""
    with get_db() as conn:
        row = conn.execute("SELECT * FROM users WHERE email = ?", (email,)).fetchone()
        if row:
            return _row_to_user(row), row["password_hash"]
    return None


def create_session_db(token: str, user_id: str, expires_at: datetime) -> None:
    with get_db() as conn:
        conn.execute(
            "INSERT INTO sessions (token, user_id, created_at, expires_at) VALUES (?, ?, ?, ?)",
            (token, user_id, to_storage(now()), to_storage(expires_at))
        )
        conn.commit()


def get_session_user_db(token: str) -> Optional[tuple[User, Optional[datetime]]]:
    """Return (user, expires_at) for a session token, or None. expires_at is None when unreadable."""
    with get_db() as conn:
        row = conn.execute(
            """SELECT users.*, sessions.expires_at AS session_expires_at
               FROM sessions JOIN users ON users.id = sessions.user_id
               WHERE sessions.token = ?""",
            (token,)
        ).fetchone()
        if row:
            return _row_to_user(row), resolve_optional(parse_date_field(row["session_expires_at"]))
    return None


def delete_session_db(token: str) -> bool:
    with get_db() as conn:
        cursor = conn.execute("DELETE FROM sessions WHERE token = ?", (token,))
        conn.commit()
        return cursor.rowcount > 0
