"""
TeamBoard - the workflow surface handed to the presentation layer.

Each public method resolves the caller's SessionContext, validates input,
asks the injected policy, and only then touches a store. Every method
returns a Result: ``Result(value, None)`` on success, ``Result(None, error)``
when a TaskHiveError was raised, so callers can report the failure and keep
their previous state. Nothing is retried.
"""
import functools
from datetime import date
from typing import List, Optional

from pydantic import ValidationError as PydanticValidationError

from .auth import LocalAuthProvider
from .data import DataStore
from .identity import IdentityResolver, SessionContext, first_error
from .logs import get_logger
from .models import Priority, QueryDraft, QueryStatus, Role, TaskDraft
from .policy import Action, Policy, may_mutate, require
from .recovery import NotFound, Result, TaskHiveError, ValidationError
from .stores import CommentStore, DocumentationStore, QueryStore, ReminderStore, TaskStore
from .stores.tasks import parse_status
from . import views

log = get_logger("board")


def returns_result(method):
    """Wrap a workflow so TaskHiveErrors come back as Result(None, error)."""
    @functools.wraps(method)
    def wrapper(*args, **kwargs):
        try:
            return Result(method(*args, **kwargs), None)
        except TaskHiveError as e:
            log.error(f"{method.__name__} failed: {type(e).__name__}: {e}")
            return Result(None, e)
    return wrapper


def default_reminder_message(assignee_name: Optional[str], task_title: str) -> str:
    return (f'Hi {assignee_name or "there"}, this is a reminder about the task "{task_title}". '
            f'Please update the status when possible.')


class TeamBoard:

    def __init__(self, store: DataStore, policy: Policy = may_mutate, auth: Optional[LocalAuthProvider] = None):
        self.store = store
        self.policy = policy
        self.identity = IdentityResolver(store, auth)
        self.tasks = TaskStore(store)
        self.comments = CommentStore(store)
        self.documentation = DocumentationStore(store)
        self.reminders = ReminderStore(store)
        self.queries = QueryStore(store)

    # ---- helpers ----

    def _task(self, task_id: str):
        task = self.tasks.get(task_id)
        if task is None:
            raise NotFound(f"No task {task_id}")
        return task

    def _members(self):
        return views.member_roster(self.identity.profiles(), self.identity.roles())

    # ---- identity ----

    @returns_result
    def sign_up(self, email: str, password: str, display_name: str) -> SessionContext:
        return self.identity.sign_up(email, password, display_name)

    @returns_result
    def sign_in(self, email: str, password: str) -> SessionContext:
        return self.identity.sign_in(email, password)

    @returns_result
    def sign_out(self, context: Optional[SessionContext]) -> None:
        self.identity.sign_out(context)

    @returns_result
    def whoami(self, context: Optional[SessionContext]):
        actor = self.identity.resolve(context)
        return self.identity.get_profile(actor.profile_id)

    @returns_result
    def update_expertise(self, context: Optional[SessionContext], expertise):
        actor = self.identity.resolve(context)
        profile = self.identity.get_profile(actor.profile_id)
        require(self.policy, actor, profile, Action.EDIT_EXPERTISE)
        return self.identity.update_expertise(actor.profile_id, expertise)

    # ---- tasks ----

    @returns_result
    def create_task(
        self,
        context: Optional[SessionContext],
        *,
        title: str,
        assignee_id: str,
        deadline: date,
        description: Optional[str] = None,
        priority: Optional[Priority] = None,
        tags=None,
        status=None,
    ):
        actor = self.identity.resolve(context)
        require(self.policy, actor, None, Action.CREATE_TASK)
        try:
            draft = TaskDraft(
                title=title,
                description=description,
                priority=priority,
                assignee_id=assignee_id,
                deadline=deadline,
                tags=tags,
            )
        except PydanticValidationError as e:
            raise ValidationError(first_error(e)) from e

        if draft.assignee_id not in {p.id for p in self._members()}:
            raise ValidationError("Tasks can only be assigned to team members")

        return self.tasks.create(
            title=draft.title,
            description=draft.description,
            priority=draft.priority,
            assignee_id=draft.assignee_id,
            deadline=draft.deadline,
            tags=draft.tags,
            created_by_id=actor.profile_id,
            status=status,
        )

    @returns_result
    def update_status(self, context: Optional[SessionContext], task_id: str, status):
        actor = self.identity.resolve(context)
        new_status = parse_status(status)
        task = self._task(task_id)
        require(self.policy, actor, task, Action.UPDATE_STATUS)
        return self.tasks.update_status(task_id, new_status)

    @returns_result
    def list_tasks(self, context: Optional[SessionContext]):
        self.identity.resolve(context)
        return self.tasks.list()

    @returns_result
    def get_task(self, context: Optional[SessionContext], task_id: str):
        self.identity.resolve(context)
        return self._task(task_id)

    # ---- comments ----

    @returns_result
    def add_comment(self, context: Optional[SessionContext], task_id: str, content: str):
        actor = self.identity.resolve(context)
        task = self._task(task_id)
        require(self.policy, actor, task, Action.COMMENT)
        return self.comments.add(task_id, actor.profile_id, content)

    @returns_result
    def list_comments(self, context: Optional[SessionContext], task_id: str):
        self.identity.resolve(context)
        return self.comments.list(task_id)

    # ---- documentation ----

    @returns_result
    def get_documentation(self, context: Optional[SessionContext], task_id: str):
        self.identity.resolve(context)
        return self.documentation.get(task_id)

    @returns_result
    def save_documentation(self, context: Optional[SessionContext], task_id: str, content: str):
        actor = self.identity.resolve(context)
        task = self._task(task_id)
        require(self.policy, actor, task, Action.SAVE_DOCUMENTATION)
        return self.documentation.save(task_id, content, actor.profile_id)

    # ---- reminders ----

    @returns_result
    def send_reminder(self, context: Optional[SessionContext], task_id: str, message: Optional[str] = None):
        actor = self.identity.resolve(context)
        task = self._task(task_id)
        require(self.policy, actor, task, Action.SEND_REMINDER)
        if not task.assignee_id:
            raise ValidationError("Task has no assignee to remind")
        if message is None or not message.strip():
            assignee = self.identity.get_profile(task.assignee_id)
            message = default_reminder_message(assignee.display_name if assignee else None, task.title)
        return self.reminders.send(task.id, actor.profile_id, task.assignee_id, message)

    @returns_result
    def list_reminders(self, context: Optional[SessionContext]):
        actor = self.identity.resolve(context)
        return self.reminders.list_for(actor.profile_id)

    @returns_result
    def mark_reminder_read(self, context: Optional[SessionContext], reminder_id: str):
        actor = self.identity.resolve(context)
        reminder = self.reminders.get(reminder_id)
        if reminder is None:
            raise NotFound(f"No reminder {reminder_id}")
        require(self.policy, actor, reminder, Action.MARK_READ)
        return self.reminders.mark_read(reminder_id)

    # ---- queries ----

    @returns_result
    def raise_query(
        self,
        context: Optional[SessionContext],
        *,
        to_profile_id: str,
        subject: str,
        message: str,
        task_id: Optional[str] = None,
    ):
        actor = self.identity.resolve(context)
        require(self.policy, actor, None, Action.RAISE_QUERY)
        try:
            draft = QueryDraft(to_profile_id=to_profile_id, subject=subject, message=message, task_id=task_id or None)
        except PydanticValidationError as e:
            raise ValidationError(first_error(e)) from e

        if draft.to_profile_id == actor.profile_id:
            raise ValidationError("Cannot raise a query to yourself")
        if self.identity.role_of(draft.to_profile_id) != Role.LEADER:
            raise ValidationError("Queries can only be sent to a team leader")
        if draft.task_id:
            self._task(draft.task_id)

        return self.queries.create(actor.profile_id, draft.to_profile_id, draft.subject, draft.message, draft.task_id)

    @returns_result
    def respond_query(self, context: Optional[SessionContext], query_id: str, response: str):
        actor = self.identity.resolve(context)
        query = self.queries.get(query_id)
        if query is None:
            raise NotFound(f"No query {query_id}")
        require(self.policy, actor, query, Action.RESPOND_QUERY)
        if query.status == QueryStatus.RESPONDED:
            raise ValidationError("Query has already been responded to")
        return self.queries.respond(query_id, response)

    @returns_result
    def received_queries(self, context: Optional[SessionContext]):
        actor = self.identity.resolve(context)
        return self.queries.list_received(actor.profile_id)

    @returns_result
    def sent_queries(self, context: Optional[SessionContext]):
        actor = self.identity.resolve(context)
        return self.queries.list_sent(actor.profile_id)

    @returns_result
    def pending_query_count(self, context: Optional[SessionContext]) -> int:
        actor = self.identity.resolve(context)
        return self.queries.pending_count(actor.profile_id)

    # ---- views ----

    @returns_result
    def snapshot(self, context: Optional[SessionContext]) -> views.Snapshot:
        """Full re-fetch of everything the session shows."""
        actor = self.identity.resolve(context)
        tasks = self.tasks.list()
        return views.Snapshot(
            profile_id=actor.profile_id,
            tasks=tasks,
            profiles=self.identity.profiles(),
            roles=self.identity.roles(),
            comments=self.comments.by_task(t.id for t in tasks),
            queries=self.queries.list(),
            reminders=self.reminders.list_for(actor.profile_id),
        )

    @returns_result
    def member_roster(self, context: Optional[SessionContext]) -> List:
        self.identity.resolve(context)
        return self._members()

    @returns_result
    def leader_roster(self, context: Optional[SessionContext]) -> List:
        self.identity.resolve(context)
        return views.leader_roster(self.identity.profiles(), self.identity.roles())
