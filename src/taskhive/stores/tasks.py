from datetime import date
from typing import List, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from taskhive.data import DataStore
from taskhive.logs import get_logger
from taskhive.models import Priority, Task, TaskStatus, split_tags, stamp, utcnow
from taskhive.recovery import NotFound, ValidationError

log = get_logger("stores.tasks")


def parse_status(value: Union[str, TaskStatus]) -> TaskStatus:
    if isinstance(value, TaskStatus):
        return value
    try:
        return TaskStatus(value)
    except ValueError as e:
        allowed = ", ".join(s.value for s in TaskStatus)
        raise ValidationError(f"Unknown status {value!r}; expected one of {allowed}") from e


class TaskStore:
    """
    Task records and their status transitions.

    Transitions are unrestricted: any status may move to any other. The only
    bookkeeping is ``updated_at`` on every change and ``completed_at`` on the
    first move into done.
    """

    def __init__(self, store: DataStore):
        self.store = store

    def create(
        self,
        *,
        title: str,
        created_by_id: str,
        deadline: date,
        assignee_id: Optional[str] = None,
        description: Optional[str] = None,
        priority: Union[str, Priority, None] = None,
        tags=None,
        status: Union[str, TaskStatus, None] = None,
    ) -> Task:
        """Create a task. New tasks always start in todo; ``status`` is ignored."""
        if status is not None and status not in (TaskStatus.TODO, TaskStatus.TODO.value):
            log.debug(f"Ignoring requested status {status!r} for new task {title!r}")

        now = utcnow()
        try:
            task = Task(
                title=title,
                description=description or None,
                priority=priority if priority is not None else Priority.MEDIUM,
                status=TaskStatus.TODO,
                assignee_id=assignee_id,
                created_by_id=created_by_id,
                deadline=deadline,
                tags=split_tags(tags),
                created_at=now,
                updated_at=now,
            )
        except PydanticValidationError as e:
            raise ValidationError(str(e)) from e

        row = self.store.insert(Task.table, task.to_record())
        log.info(f"Task created id={task.id} title={task.title!r} assignee={assignee_id}")
        return Task.from_record(row)

    def update_status(self, task_id: str, new_status: Union[str, TaskStatus]) -> Task:
        status = parse_status(new_status)
        row = self.store.get(Task.table, task_id)
        if row is None:
            raise NotFound(f"No task {task_id}")

        now = stamp()
        changes = {"status": status.value, "updated_at": now}
        if status == TaskStatus.DONE and row.get("completed_at") is None:
            changes["completed_at"] = now

        row = self.store.update(Task.table, task_id, changes)
        log.info(f"Task {task_id} moved {row.get('status')!r} at {changes['updated_at']}")
        return Task.from_record(row)

    def get(self, task_id: str) -> Optional[Task]:
        row = self.store.get(Task.table, task_id)
        return Task.from_record(row) if row else None

    def list(self) -> List[Task]:
        """All tasks, newest created first."""
        return [Task.from_record(r) for r in self.store.select(Task.table, order_by="created_at", descending=True)]
