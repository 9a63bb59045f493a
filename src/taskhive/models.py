from pydantic import BaseModel, Field, PlainSerializer, field_validator, model_validator
from datetime import date, datetime, timezone
from enum import Enum
from typing import Annotated, ClassVar, Optional, List, Dict, Type
from uuid import uuid4
import re
import yaml

class Role(Enum):
    LEADER = "leader"
    MEMBER = "member"

class Priority(Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

class TaskStatus(Enum):
    TODO = "todo"
    IN_PROGRESS = "in-progress"
    REVIEW = "review"
    DONE = "done"

    @property
    def label(self) -> str:
        return self.value.replace('-', ' ')

class QueryStatus(Enum):
    PENDING = "pending"
    RESPONDED = "responded"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)

def stamp(moment: Optional[datetime] = None) -> str:
    """
    Fixed-width UTC timestamp, always with microseconds.

    Stores order records by comparing these strings, so every timestamp
    must have the same width.
    """
    moment = moment or utcnow()
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="microseconds").replace("+00:00", "Z")

Timestamp = Annotated[datetime, PlainSerializer(stamp, return_type=str, when_used="json")]

def new_id() -> str:
    return str(uuid4())


class BaseYAMLModel(BaseModel):
    """Base for every persisted record; knows its table and its YAML/record forms."""

    table: ClassVar[str] = ""

    def to_record(self) -> Dict:
        return self.model_dump(mode="json")

    @classmethod
    def from_record(cls, record: Dict):
        return cls.model_validate(record)

    def to_yaml(self) -> str:
        return yaml.safe_dump(self.to_record(), default_flow_style=False, sort_keys=False, allow_unicode=True)

    @classmethod
    def from_yaml(cls, text: str):
        return cls.model_validate(yaml.safe_load(text) or {})


def _not_blank(v: str, field: str) -> str:
    if v is not None and not isinstance(v, str):
        raise ValueError(f"{field} must be text")
    if v is None or not v.strip():
        raise ValueError(f"{field} must not be empty")
    return v.strip()


class Account(BaseYAMLModel):
    """Credential record owned by the auth provider."""

    table: ClassVar[str] = "accounts"

    id: str = Field(default_factory=new_id)
    email: str = Field(description="Login email, stored lowercased")
    password_hash: str = Field(description="Hex PBKDF2 digest of the password")
    salt: str = Field(description="Hex salt used for the digest")
    created_at: Timestamp = Field(default_factory=utcnow)

class AuthSession(BaseYAMLModel):
    table: ClassVar[str] = "auth_sessions"

    id: str = Field(default_factory=new_id, description="Opaque session token")
    user_id: str = Field(description="Account the session belongs to")
    active: bool = Field(default=True)
    created_at: Timestamp = Field(default_factory=utcnow)

class Profile(BaseYAMLModel):
    """Public identity of a team member."""

    table: ClassVar[str] = "profiles"

    id: str = Field(default_factory=new_id)
    user_id: str = Field(description="Underlying account reference")
    display_name: str = Field(description="Name shown across the board")
    avatar_initials: str = Field(description="One or two uppercase letters")
    expertise: List[str] = Field(default_factory=list, description="Ordered expertise tags")
    created_at: Timestamp = Field(default_factory=utcnow)

class RoleAssignment(BaseYAMLModel):
    table: ClassVar[str] = "user_roles"

    id: str = Field(default_factory=new_id)
    user_id: str = Field(description="Account the role is attached to")
    role: Role = Field(default=Role.MEMBER)

class Task(BaseYAMLModel):
    """A unit of work on the board."""

    table: ClassVar[str] = "tasks"

    id: str = Field(default_factory=new_id)
    title: str = Field(description="Short human readable title")
    description: Optional[str] = Field(default=None)
    priority: Priority = Field(default=Priority.MEDIUM)
    status: TaskStatus = Field(default=TaskStatus.TODO)
    assignee_id: Optional[str] = Field(default=None, description="Assigned profile, None when unassigned")
    created_by_id: str = Field(description="Profile that created the task")
    deadline: date = Field(description="Day the task is due")
    tags: List[str] = Field(default_factory=list)
    created_at: Timestamp = Field(default_factory=utcnow)
    updated_at: Timestamp = Field(default_factory=utcnow)
    completed_at: Optional[Timestamp] = Field(default=None, description="Set on the first move into done")

    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        return _not_blank(v, "title")

    def is_overdue(self, today: Optional[date] = None) -> bool:
        today = today or date.today()
        return self.deadline < today and self.status != TaskStatus.DONE

    def is_due_today(self, today: Optional[date] = None) -> bool:
        return self.deadline == (today or date.today())

class Comment(BaseYAMLModel):
    table: ClassVar[str] = "task_comments"

    id: str = Field(default_factory=new_id)
    task_id: str
    author_id: str
    content: str
    created_at: Timestamp = Field(default_factory=utcnow)

    @field_validator('content')
    @classmethod
    def validate_content(cls, v):
        return _not_blank(v, "content")

class Documentation(BaseYAMLModel):
    """Free-text note attached to a task. An unsaved note has no id."""

    table: ClassVar[str] = "task_documentation"

    id: Optional[str] = Field(default=None)
    task_id: str
    content: str = Field(default="")
    updated_by: Optional[str] = Field(default=None)
    updated_at: Optional[Timestamp] = Field(default=None)

    @property
    def saved(self) -> bool:
        return self.id is not None

class Reminder(BaseYAMLModel):
    table: ClassVar[str] = "task_reminders"

    id: str = Field(default_factory=new_id)
    task_id: str
    sent_by: str
    sent_to: str
    message: str
    is_read: bool = Field(default=False)
    created_at: Timestamp = Field(default_factory=utcnow)

class ReminderView(Reminder):
    """Reminder joined with its sender's name and its task's title."""

    sender_name: str = Field(default="Unknown")
    task_title: str = Field(default="Unknown task")

class Query(BaseYAMLModel):
    """A question from a member to a leader."""

    table: ClassVar[str] = "queries"

    id: str = Field(default_factory=new_id)
    from_profile_id: str
    to_profile_id: str
    task_id: Optional[str] = Field(default=None)
    subject: str
    message: str
    status: QueryStatus = Field(default=QueryStatus.PENDING)
    response: Optional[str] = Field(default=None)
    created_at: Timestamp = Field(default_factory=utcnow)
    responded_at: Optional[Timestamp] = Field(default=None)

    @model_validator(mode='after')
    def validate_response(self):
        if self.status == QueryStatus.RESPONDED and (self.response is None or self.responded_at is None):
            raise ValueError("a responded query needs both response and responded_at")
        return self

class CompletedTask(BaseModel):
    task: Task
    assignee_name: str
    completed_at: datetime


class Database(BaseModel):
    """Shape of the YAML store file."""

    schema_version: str = Field(description="Schema version the file was written with")
    accounts: List[Account] = Field(default_factory=list)
    auth_sessions: List[AuthSession] = Field(default_factory=list)
    profiles: List[Profile] = Field(default_factory=list)
    user_roles: List[RoleAssignment] = Field(default_factory=list)
    tasks: List[Task] = Field(default_factory=list)
    task_comments: List[Comment] = Field(default_factory=list)
    task_documentation: List[Documentation] = Field(default_factory=list)
    task_reminders: List[Reminder] = Field(default_factory=list)
    queries: List[Query] = Field(default_factory=list)

TABLES: Dict[str, Type[BaseYAMLModel]] = {
    model.table: model
    for model in (Account, AuthSession, Profile, RoleAssignment, Task, Comment, Documentation, Reminder, Query)
}


# --- Input models; validated before anything reaches a store ---

EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')

def split_tags(raw) -> List[str]:
    """Accept a comma separated string or a list and return stripped, non-empty tags."""
    if raw is None:
        return []
    if isinstance(raw, str):
        raw = raw.split(',')
    return [t.strip() for t in raw if t and t.strip()]

class SignUpForm(BaseModel):
    email: str
    password: str
    display_name: str

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        v = v.strip().lower()
        if not EMAIL_PATTERN.match(v):
            raise ValueError("Please enter a valid email address")
        return v

    @field_validator('password')
    @classmethod
    def validate_password(cls, v):
        if len(v) < 6:
            raise ValueError("Password must be at least 6 characters")
        return v

    @field_validator('display_name')
    @classmethod
    def validate_display_name(cls, v):
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Display name must be at least 2 characters")
        return v

class TaskDraft(BaseModel):
    title: str
    description: Optional[str] = None
    priority: Priority = Priority.MEDIUM
    assignee_id: str
    deadline: date
    tags: List[str] = Field(default_factory=list)

    @field_validator('title', mode='before')
    @classmethod
    def validate_title(cls, v):
        return _not_blank(v, "title")

    @field_validator('assignee_id', mode='before')
    @classmethod
    def validate_assignee(cls, v):
        return _not_blank(v, "assignee")

    @field_validator('deadline', mode='before')
    @classmethod
    def validate_deadline(cls, v):
        if v is None or v == "":
            raise ValueError("deadline is required")
        return v

    @field_validator('priority', mode='before')
    @classmethod
    def default_priority(cls, v):
        return Priority.MEDIUM if v is None else v

    @field_validator('tags', mode='before')
    @classmethod
    def validate_tags(cls, v):
        return split_tags(v)

class QueryDraft(BaseModel):
    to_profile_id: str
    subject: str
    message: str
    task_id: Optional[str] = None

    @field_validator('subject', 'message')
    @classmethod
    def validate_text(cls, v, info):
        return _not_blank(v, info.field_name)
