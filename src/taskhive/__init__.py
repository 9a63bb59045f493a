"""
TaskHive - a small team task board.

Leaders create and assign tasks, members move them across a four-column
board, and both sides talk through comments, reminders and queries:
Task → Comments / Documentation / Reminders, Member → Query → Leader
"""

from .version import VERSION, APP_SCHEMA_VERSION
from .models import (
    Role,
    Priority,
    TaskStatus,
    QueryStatus,
    Profile,
    Task,
    Comment,
    Documentation,
    Reminder,
    Query,
)
from .recovery import Result, TaskHiveError
from .data import MemoryStore, YAMLStore
from .identity import SessionContext
from .policy import Action, may_mutate
from .board import TeamBoard

__version__ = VERSION

__all__ = [
    "VERSION",
    "APP_SCHEMA_VERSION",
    "Role",
    "Priority",
    "TaskStatus",
    "QueryStatus",
    "Profile",
    "Task",
    "Comment",
    "Documentation",
    "Reminder",
    "Query",
    "Result",
    "TaskHiveError",
    "MemoryStore",
    "YAMLStore",
    "SessionContext",
    "Action",
    "may_mutate",
    "TeamBoard",
]
