"""
Authorization rules for every mutating workflow.

A policy is any callable ``(actor, resource, action) -> bool``. The board
asks it before touching a store; the stores themselves never check.
"""
from enum import Enum
from typing import Any, Callable, Optional

from .models import Profile, Query, Reminder, Role, Task
from .recovery import PermissionDenied


class Action(Enum):
    CREATE_TASK = "create_task"
    UPDATE_STATUS = "update_status"
    COMMENT = "comment"
    SAVE_DOCUMENTATION = "save_documentation"
    SEND_REMINDER = "send_reminder"
    MARK_READ = "mark_read"
    RAISE_QUERY = "raise_query"
    RESPOND_QUERY = "respond_query"
    EDIT_EXPERTISE = "edit_expertise"


Policy = Callable[[Any, Any, Action], bool]


def _is_assignee(actor, task: Optional[Task]) -> bool:
    return task is not None and task.assignee_id is not None and task.assignee_id == actor.profile_id


def may_mutate(actor, resource, action: Action) -> bool:
    """Default team policy. ``actor`` is a SessionContext."""
    if actor is None:
        return False
    leader = actor.role == Role.LEADER

    if action == Action.CREATE_TASK:
        return leader
    if action == Action.UPDATE_STATUS:
        return leader or _is_assignee(actor, resource)
    if action == Action.COMMENT:
        return True
    if action == Action.SAVE_DOCUMENTATION:
        return _is_assignee(actor, resource)
    if action == Action.SEND_REMINDER:
        return leader
    if action == Action.MARK_READ:
        return isinstance(resource, Reminder) and resource.sent_to == actor.profile_id
    if action == Action.RAISE_QUERY:
        return True
    if action == Action.RESPOND_QUERY:
        return leader and isinstance(resource, Query) and resource.to_profile_id == actor.profile_id
    if action == Action.EDIT_EXPERTISE:
        return isinstance(resource, Profile) and resource.id == actor.profile_id
    return False


def allow_all(actor, resource, action: Action) -> bool:
    """Policy matching the unchecked behaviour of the hosted app: any signed-in actor may act."""
    return actor is not None


def require(policy: Policy, actor, resource, action: Action) -> None:
    if not policy(actor, resource, action):
        raise PermissionDenied(f"Not allowed to {action.value.replace('_', ' ')}")
