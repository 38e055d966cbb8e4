from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator


class Category(str, Enum):
    ASSIGNMENT = "Assignment"
    CLASS = "Class"
    PERSONAL = "Personal"
    GENERAL = "General"


class Priority(str, Enum):
    URGENT = "Urgent"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"
    NONE = "None"


# Most to least pressing. Every comparator ranks priority through priority_rank.
PRIORITY_ORDER: tuple[Priority, ...] = (
    Priority.URGENT,
    Priority.HIGH,
    Priority.MEDIUM,
    Priority.LOW,
    Priority.NONE,
)
_PRIORITY_RANK = {priority: rank for rank, priority in enumerate(PRIORITY_ORDER)}


def priority_rank(priority: Priority) -> int:
    """Urgent=0 ... None=4."""
    return _PRIORITY_RANK[priority]


class TaskFilter(str, Enum):
    ALL = "all"
    GENERAL = "general"
    PENDING = "pending"
    COMPLETED = "completed"
    TODAY = "today"


class Subtask(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    text: str
    is_completed: bool = False


class Task(BaseModel):
    """A task as read back from the store. Instances are immutable snapshots."""
    model_config = ConfigDict(frozen=True)

    id: str
    owner_id: str
    title: str = ""
    description: str = ""
    due_date: Optional[datetime] = None
    category: Category = Category.GENERAL
    priority: Priority = Priority.NONE
    is_completed: bool = False
    created_at: datetime
    is_trashed: bool = False
    trashed_at: Optional[datetime] = None
    reminder_at: Optional[datetime] = None
    subtasks: tuple[Subtask, ...] = ()
    label_id: Optional[str] = None

    @property
    def display_text(self) -> str:
        return self.title or self.description


def _has_text(title: Optional[str], description: Optional[str]) -> bool:
    return bool((title or "").strip() or (description or "").strip())


class SubtaskInput(BaseModel):
    id: Optional[str] = None  # generated when missing
    text: str = Field(min_length=1)
    is_completed: bool = False


class TaskCreate(BaseModel):
    title: str = ""
    description: str = ""
    due_date: Optional[datetime] = None
    category: Category = Category.GENERAL
    priority: Priority = Priority.NONE
    reminder_at: Optional[datetime] = None
    subtasks: list[SubtaskInput] = []
    label_id: Optional[str] = None

    @model_validator(mode="after")
    def require_title_or_description(self):
        if not _has_text(self.title, self.description):
            raise ValueError("A task needs a title or a description")
        return self


class TaskUpdate(BaseModel):
    """Partial edit. Only fields present in the request are written; null clears a field."""
    title: Optional[str] = None
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    category: Optional[Category] = None
    priority: Optional[Priority] = None
    reminder_at: Optional[datetime] = None
    subtasks: Optional[list[SubtaskInput]] = None
    label_id: Optional[str] = None


class Label(BaseModel):
    id: str
    owner_id: str
    name: str
    color: str
    created_at: datetime


class LabelCreate(BaseModel):
    name: str = Field(min_length=1, max_length=50)
    color: str = Field(default="#6b7280", pattern=r"^#[0-9a-fA-F]{6}$")


class TaskStats(BaseModel):
    total: int
    completed: int
    pending: int
    completion_percentage: int


# Accounts

class Credentials(BaseModel):
    email: str = Field(pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    password: str = Field(min_length=6)


class User(BaseModel):
    id: str
    email: str
    created_at: datetime


class Session(BaseModel):
    token: str
    user: User


# AI

class CategorySuggestionRequest(BaseModel):
    description: str = Field(min_length=1)


class CategorySuggestion(BaseModel):
    category: Category


class PrioritySuggestion(BaseModel):
    task_id: str = Field(validation_alias=AliasChoices("task_id", "taskId"))
    reason: str
    description: Optional[str] = None  # filled in from the task after the model answers


class PrioritySuggestions(BaseModel):
    suggestions: list[PrioritySuggestion] = []


class AssistantTaskType(str, Enum):
    WRITING = "writing"
    CODING = "coding"
    PLANNING_REMINDER = "planning_reminder"
    GENERAL_QUERY = "general_query"
    UNKNOWN = "unknown"


class Message(BaseModel):
    role: str  # "user" or "assistant"
    content: str
    timestamp: Optional[int] = None


class AssistantRequest(BaseModel):
    current_inquiry: str
    conversation_history: list[Message] = []
    original_task_context: Optional[str] = None


class AssistantReply(BaseModel):
    assistant_response: str = Field(validation_alias=AliasChoices("assistant_response", "assistantResponse"))
    identified_task_type: AssistantTaskType = Field(
        validation_alias=AliasChoices("identified_task_type", "identifiedTaskType")
    )
