"""
Shared pytest fixtures for backend tests.
Each test gets its own temporary SQLite file with the schema created directly.
"""
import uuid
from datetime import datetime, timedelta

import pytest
import sqlite3
import sys
import os

# Add backend to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import auth
import database
import store
from models import Task

SCHEMA = """
    CREATE TABLE users (
        id TEXT PRIMARY KEY,
        email TEXT NOT NULL UNIQUE,
        password_hash TEXT NOT NULL,
        created_at TEXT NOT NULL
    );

    CREATE TABLE sessions (
        token TEXT PRIMARY KEY,
        user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        created_at TEXT NOT NULL,
        expires_at TEXT NOT NULL
    );

    CREATE TABLE tasks (
        id TEXT PRIMARY KEY,
        owner_id TEXT NOT NULL,
        title TEXT NOT NULL DEFAULT '',
        description TEXT NOT NULL DEFAULT '',
        due_date TEXT,
        category TEXT NOT NULL DEFAULT 'General',
        priority TEXT NOT NULL DEFAULT 'None',
        is_completed INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        is_trashed INTEGER NOT NULL DEFAULT 0,
        trashed_at TEXT,
        reminder_at TEXT,
        subtasks TEXT NOT NULL DEFAULT '[]',
        label_id TEXT
    );

    CREATE TABLE labels (
        id TEXT PRIMARY KEY,
        owner_id TEXT NOT NULL,
        name TEXT NOT NULL,
        color TEXT NOT NULL,
        created_at TEXT NOT NULL
    );
"""


@pytest.fixture
def test_db(monkeypatch, tmp_path):
    """
    Create an isolated test database for each test.
    Uses a temp file (not :memory:) because database.py opens new connections per operation.
    """
    db_path = str(tmp_path / "test.db")
    monkeypatch.setattr(database, "DATABASE_PATH", db_path)
    monkeypatch.setattr(database, "init_db", lambda: None)
    # Fast hashing for tests
    monkeypatch.setattr(auth, "PBKDF2_ITERATIONS", 1000)
    store.reset_stores()

    # Create tables directly (skip alembic for tests)
    conn = sqlite3.connect(db_path)
    conn.executescript(SCHEMA)
    conn.commit()
    conn.close()

    yield db_path

    store.reset_stores()


@pytest.fixture
def app_client(test_db):
    """
    Create a test client for the FastAPI app.
    init_db is patched out by test_db, so no migrations run.
    """
    from fastapi.testclient import TestClient
    import main

    with TestClient(main.app) as client:
        yield client


@pytest.fixture
def auth_client(app_client):
    """Test client signed in as a fresh user."""
    response = app_client.post("/auth/signup", json={
        "email": "student@example.com",
        "password": "hunter22"
    })
    assert response.status_code == 201
    session = response.json()
    app_client.headers["Authorization"] = f"Bearer {session['token']}"
    return app_client


@pytest.fixture
def make_task():
    """Build an in-memory Task; created_at advances one minute per call unless given."""
    base = datetime(2026, 3, 1, 9, 0).astimezone()
    counter = {"n": 0}

    def _make(**fields) -> Task:
        counter["n"] += 1
        fields.setdefault("id", f"task-{counter['n']}")
        fields.setdefault("owner_id", "user-1")
        fields.setdefault("title", f"Task {counter['n']}")
        fields.setdefault("created_at", base + timedelta(minutes=counter["n"]))
        if fields.get("is_trashed") and "trashed_at" not in fields:
            fields["trashed_at"] = base
        return Task(**fields)

    return _make


@pytest.fixture
def raw_task(test_db):
    """Write a task row exactly as given, bypassing normalization. Returns the id."""
    def _insert(**columns) -> str:
        columns.setdefault("id", str(uuid.uuid4()))
        columns.setdefault("owner_id", "user-1")
        columns.setdefault("created_at", "2026-03-01T09:00:00")
        names = ", ".join(columns)
        placeholders = ", ".join("?" for _ in columns)
        conn = sqlite3.connect(test_db)
        conn.execute(f"INSERT INTO tasks ({names}) VALUES ({placeholders})", list(columns.values()))
        conn.commit()
        conn.close()
        return columns["id"]

    return _insert
