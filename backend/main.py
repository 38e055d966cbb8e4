import logging
import uuid
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

import ai
import auth
import config
import database
from errors import AuthenticationError, NotFoundError, UpnextError
from filtering import filter_tasks, task_stats, trashed, with_reminders
from models import (
    AssistantReply,
    AssistantRequest,
    CategorySuggestion,
    CategorySuggestionRequest,
    Credentials,
    Label,
    LabelCreate,
    PrioritySuggestions,
    Session,
    Task,
    TaskCreate,
    TaskFilter,
    TaskStats,
    TaskUpdate,
    User,
)
from ordering import sort_reminders, sort_tasks, sort_trash
from store import TaskStore, get_store

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    # Startup
    config.setup_logging()
    database.init_db()
    logger.info("Upnext backend ready (database=%s)", database.DATABASE_PATH)
    yield
    # Shutdown (nothing to do)

app = FastAPI(title="Upnext", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(UpnextError)
async def upnext_error_handler(request: Request, exc: UpnextError):
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
    if exc.status_code >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message}, headers=headers)


bearer = HTTPBearer(auto_error=False)


def require_token(credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer)) -> str:
    if credentials is None:
        raise AuthenticationError("Not signed in")
    return credentials.credentials


def require_user(token: str = Depends(require_token)) -> User:
    return auth.current_user(token)


def user_store(user: User = Depends(require_user)) -> TaskStore:
    return get_store(user.id)


# Accounts

@app.post("/auth/signup", status_code=201)
def sign_up(credentials: Credentials) -> Session:
    return auth.sign_up(credentials.email, credentials.password)


@app.post("/auth/signin")
def sign_in(credentials: Credentials) -> Session:
    return auth.sign_in(credentials.email, credentials.password)


@app.post("/auth/signout")
def sign_out(token: str = Depends(require_token)) -> dict:
    auth.sign_out(token)
    return {"status": "signed_out"}


@app.get("/auth/me")
def me(user: User = Depends(require_user)) -> User:
    return user


# Tasks

@app.get("/tasks")
def get_tasks(
    task_filter: TaskFilter = Query(TaskFilter.ALL, alias="filter"),
    label_id: Optional[str] = None,
    store: TaskStore = Depends(user_store),
) -> list[Task]:
    return filter_tasks(sort_tasks(store.snapshot), task_filter, label_id)


@app.get("/tasks/reminders")
def get_reminders(store: TaskStore = Depends(user_store)) -> list[Task]:
    return sort_reminders(with_reminders(store.snapshot))


@app.get("/tasks/trash")
def get_trash(store: TaskStore = Depends(user_store)) -> list[Task]:
    return sort_trash(trashed(store.snapshot))


@app.get("/tasks/stats")
def get_stats(store: TaskStore = Depends(user_store)) -> TaskStats:
    return task_stats(store.snapshot)


@app.get("/tasks/{task_id}")
def get_task(task_id: str, store: TaskStore = Depends(user_store)) -> Task:
    return store.get(task_id)


@app.post("/tasks", status_code=201)
def create_task(task_data: TaskCreate, store: TaskStore = Depends(user_store)) -> Task:
    return store.create(task_data)


@app.patch("/tasks/{task_id}")
def update_task(task_id: str, task_data: TaskUpdate, store: TaskStore = Depends(user_store)) -> Task:
    return store.update(task_id, task_data.model_dump(exclude_unset=True))


@app.post("/tasks/{task_id}/toggle-complete")
def toggle_complete(task_id: str, store: TaskStore = Depends(user_store)) -> Task:
    return store.toggle_complete(task_id)


@app.post("/tasks/{task_id}/subtasks/{subtask_id}/toggle")
def toggle_subtask(task_id: str, subtask_id: str, store: TaskStore = Depends(user_store)) -> Task:
    return store.toggle_subtask(task_id, subtask_id)


@app.post("/tasks/{task_id}/trash")
def trash_task(task_id: str, store: TaskStore = Depends(user_store)) -> Task:
    return store.trash(task_id)


@app.post("/tasks/{task_id}/restore")
def restore_task(task_id: str, store: TaskStore = Depends(user_store)) -> Task:
    return store.restore(task_id)


@app.delete("/tasks/{task_id}")
def delete_task(task_id: str, store: TaskStore = Depends(user_store)) -> dict:
    """Permanently delete a task that is already in the trash."""
    store.purge(task_id)
    return {"status": "deleted"}


@app.delete("/trash")
def empty_trash(store: TaskStore = Depends(user_store)) -> dict:
    deleted = store.empty_trash()
    return {"status": "emptied", "deleted": len(deleted), "ids": deleted}


# Labels

@app.get("/labels")
def get_labels(user: User = Depends(require_user)) -> list[Label]:
    return database.get_labels_db(user.id)


@app.post("/labels", status_code=201)
def create_label(label_data: LabelCreate, user: User = Depends(require_user)) -> Label:
    return database.create_label_db(str(uuid.uuid4()), user.id, label_data.name.strip(), label_data.color)


@app.delete("/labels/{label_id}")
def delete_label(label_id: str, user: User = Depends(require_user)) -> dict:
    if not database.delete_label_db(label_id, user.id):
        raise NotFoundError("Label not found")
    # Tasks pointing at the label now read back without one.
    get_store(user.id).refresh()
    return {"status": "deleted"}


# AI

@app.post("/ai/suggest-category")
async def suggest_category(request: CategorySuggestionRequest, user: User = Depends(require_user)) -> CategorySuggestion:
    return await ai.suggest_category(request.description)


@app.post("/ai/prioritize")
async def prioritize(store: TaskStore = Depends(user_store)) -> PrioritySuggestions:
    return await ai.suggest_priorities(store.snapshot)


@app.post("/ai/assistant")
async def assistant(request: AssistantRequest, user: User = Depends(require_user)) -> AssistantReply:
    return await ai.get_assistance(request)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
