from taskhive.data import DataStore
from taskhive.logs import get_logger
from taskhive.models import Documentation, new_id, stamp, utcnow

log = get_logger("stores.documentation")


class DocumentationStore:
    """
    One free-text note per task, created on first save.

    Saving is unconditional here. A note outlives reassignment of its task;
    it is neither cleared nor handed over.
    """

    def __init__(self, store: DataStore):
        self.store = store

    def get(self, task_id: str) -> Documentation:
        """The saved note, or an empty unsaved one."""
        row = self.store.select_one(Documentation.table, {"task_id": task_id})
        if row is None:
            return Documentation(task_id=task_id)
        return Documentation.from_record(row)

    def save(self, task_id: str, content: str, editor_id: str) -> Documentation:
        content = content or ""
        now = utcnow()
        existing = self.store.select_one(Documentation.table, {"task_id": task_id})
        if existing is not None:
            row = self.store.update(Documentation.table, existing["id"], {
                "content": content,
                "updated_by": editor_id,
                "updated_at": stamp(now),
            })
            log.info(f"Documentation for task {task_id} updated by {editor_id}")
        else:
            note = Documentation(id=new_id(), task_id=task_id, content=content, updated_by=editor_id, updated_at=now)
            row = self.store.insert(Documentation.table, note.to_record())
            log.info(f"Documentation for task {task_id} created by {editor_id}")
        return Documentation.from_record(row)
