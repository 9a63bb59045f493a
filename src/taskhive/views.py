"""
Derived views over the current store contents.

Nothing here is persisted. Every function is pure over the lists it is
given, so a view always reflects whatever the caller last fetched.
"""
from collections import Counter
from datetime import date
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel, Field

from .models import CompletedTask, Comment, Profile, Query, QueryStatus, Reminder, ReminderView, Role, Task, TaskStatus

BOARD_COLUMNS = [
    (TaskStatus.TODO, "To Do"),
    (TaskStatus.IN_PROGRESS, "In Progress"),
    (TaskStatus.REVIEW, "Review"),
    (TaskStatus.DONE, "Done"),
]


def board_columns(tasks: Iterable[Task]) -> Dict[TaskStatus, List[Task]]:
    """Tasks bucketed by status, keeping the order they were given in."""
    columns: Dict[TaskStatus, List[Task]] = {status: [] for status, _ in BOARD_COLUMNS}
    for task in tasks:
        columns[task.status].append(task)
    return columns

def active_tasks(tasks: Iterable[Task]) -> List[Task]:
    return [t for t in tasks if t.status != TaskStatus.DONE]

def completed_tasks(tasks: Iterable[Task]) -> List[Task]:
    return [t for t in tasks if t.status == TaskStatus.DONE]

def assignee_name(assignee_id: Optional[str], profiles_by_id: Dict[str, Profile]) -> str:
    if not assignee_id:
        return "Unassigned"
    profile = profiles_by_id.get(assignee_id)
    return profile.display_name if profile else "Unknown"

def completed_history(tasks: Iterable[Task], profiles: Iterable[Profile]) -> List[CompletedTask]:
    """
    Done tasks with their assignee's name and completion time.

    Completion time is ``completed_at``; records written before that field
    existed fall back to ``updated_at``.
    """
    by_id = {p.id: p for p in profiles}
    return [
        CompletedTask(
            task=task,
            assignee_name=assignee_name(task.assignee_id, by_id),
            completed_at=task.completed_at or task.updated_at,
        )
        for task in completed_tasks(tasks)
    ]

def active_counts(tasks: Iterable[Task]) -> Dict[str, int]:
    """Open task count per assignee. Unassigned tasks are not counted."""
    return dict(Counter(t.assignee_id for t in active_tasks(tasks) if t.assignee_id))

def completed_counts(tasks: Iterable[Task]) -> Dict[str, int]:
    return dict(Counter(t.assignee_id for t in completed_tasks(tasks) if t.assignee_id))

def _roster(profiles: Iterable[Profile], roles: Dict[str, Role], role: Role) -> List[Profile]:
    return [p for p in profiles if roles.get(p.user_id) == role]

def member_roster(profiles: Iterable[Profile], roles: Dict[str, Role]) -> List[Profile]:
    """Profiles that can be assigned tasks. ``roles`` is keyed by account id."""
    return _roster(profiles, roles, Role.MEMBER)

def leader_roster(profiles: Iterable[Profile], roles: Dict[str, Role]) -> List[Profile]:
    """Profiles that can receive queries."""
    return _roster(profiles, roles, Role.LEADER)

def received_queries(queries: Iterable[Query], profile_id: str) -> List[Query]:
    return [q for q in queries if q.to_profile_id == profile_id]

def sent_queries(queries: Iterable[Query], profile_id: str) -> List[Query]:
    return [q for q in queries if q.from_profile_id == profile_id]

def pending_count(queries: Iterable[Query], profile_id: str) -> int:
    return sum(1 for q in received_queries(queries, profile_id) if q.status == QueryStatus.PENDING)

def unread_count(reminders: Iterable[Reminder]) -> int:
    return sum(1 for r in reminders if not r.is_read)

def overdue_tasks(tasks: Iterable[Task], today: Optional[date] = None) -> List[Task]:
    return [t for t in tasks if t.is_overdue(today)]


class Snapshot(BaseModel):
    """
    Everything one session has fetched, plus the views derived from it.

    Built fresh by TeamBoard.snapshot after every mutation; a snapshot never
    updates itself, so two sessions only converge on their next fetch.
    """

    profile_id: str
    tasks: List[Task] = Field(default_factory=list)
    profiles: List[Profile] = Field(default_factory=list)
    roles: Dict[str, Role] = Field(default_factory=dict, description="Role per account id")
    comments: Dict[str, List[Comment]] = Field(default_factory=dict)
    queries: List[Query] = Field(default_factory=list)
    reminders: List[ReminderView] = Field(default_factory=list)

    def profile(self, profile_id: Optional[str]) -> Optional[Profile]:
        return next((p for p in self.profiles if p.id == profile_id), None)

    def role_of(self, profile_id: str) -> Optional[Role]:
        profile = self.profile(profile_id)
        return self.roles.get(profile.user_id) if profile else None

    def columns(self) -> Dict[TaskStatus, List[Task]]:
        return board_columns(self.tasks)

    def active(self) -> List[Task]:
        return active_tasks(self.tasks)

    def history(self) -> List[CompletedTask]:
        return completed_history(self.tasks, self.profiles)

    def active_counts(self) -> Dict[str, int]:
        return active_counts(self.tasks)

    def completed_counts(self) -> Dict[str, int]:
        return completed_counts(self.tasks)

    def members(self) -> List[Profile]:
        return member_roster(self.profiles, self.roles)

    def leaders(self) -> List[Profile]:
        return leader_roster(self.profiles, self.roles)

    def received(self) -> List[Query]:
        return received_queries(self.queries, self.profile_id)

    def sent(self) -> List[Query]:
        return sent_queries(self.queries, self.profile_id)

    def pending_count(self) -> int:
        return pending_count(self.queries, self.profile_id)

    def unread_count(self) -> int:
        return unread_count(self.reminders)

    def overdue(self, today: Optional[date] = None) -> List[Task]:
        return overdue_tasks(self.tasks, today)
