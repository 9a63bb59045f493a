from collections import defaultdict
from typing import Dict, Iterable, List

from pydantic import ValidationError as PydanticValidationError

from taskhive.data import DataStore
from taskhive.logs import get_logger
from taskhive.models import Comment
from taskhive.recovery import ValidationError

log = get_logger("stores.comments")


class CommentStore:
    """Append-only discussion threads, one per task."""

    def __init__(self, store: DataStore):
        self.store = store

    def add(self, task_id: str, author_id: str, content: str) -> Comment:
        try:
            comment = Comment(task_id=task_id, author_id=author_id, content=content)
        except PydanticValidationError as e:
            raise ValidationError("Comment content must not be empty") from e
        row = self.store.insert(Comment.table, comment.to_record())
        log.info(f"Comment {comment.id} added to task {task_id}")
        return Comment.from_record(row)

    def list(self, task_id: str) -> List[Comment]:
        rows = self.store.select(Comment.table, {"task_id": task_id}, order_by="created_at")
        return [Comment.from_record(r) for r in rows]

    def by_task(self, task_ids: Iterable[str]) -> Dict[str, List[Comment]]:
        """Threads for several tasks in one read, each ascending by creation."""
        task_ids = list(task_ids)
        threads: Dict[str, List[Comment]] = defaultdict(list)
        if not task_ids:
            return {}
        for row in self.store.select(Comment.table, {"task_id": task_ids}, order_by="created_at"):
            threads[row["task_id"]].append(Comment.from_record(row))
        return dict(threads)
