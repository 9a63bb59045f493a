from typing import List, Optional

from taskhive.data import DataStore
from taskhive.logs import get_logger
from taskhive.models import Profile, Reminder, ReminderView, Task
from taskhive.recovery import NotFound, ValidationError

log = get_logger("stores.reminders")


class ReminderStore:
    """One-way nudges from a sender to a recipient about a task."""

    def __init__(self, store: DataStore):
        self.store = store

    def send(self, task_id: str, sender_id: str, recipient_id: str, message: str) -> Reminder:
        if not message or not message.strip():
            raise ValidationError("Reminder message must not be empty")
        reminder = Reminder(task_id=task_id, sent_by=sender_id, sent_to=recipient_id, message=message.strip())
        row = self.store.insert(Reminder.table, reminder.to_record())
        log.info(f"Reminder {reminder.id} sent by {sender_id} to {recipient_id} for task {task_id}")
        return Reminder.from_record(row)

    def get(self, reminder_id: str) -> Optional[Reminder]:
        row = self.store.get(Reminder.table, reminder_id)
        return Reminder.from_record(row) if row else None

    def mark_read(self, reminder_id: str) -> Reminder:
        """Flag a reminder as read. Re-marking a read reminder does nothing."""
        reminder = self.get(reminder_id)
        if reminder is None:
            raise NotFound(f"No reminder {reminder_id}")
        if reminder.is_read:
            return reminder
        row = self.store.update(Reminder.table, reminder_id, {"is_read": True})
        return Reminder.from_record(row)

    def list_for(self, recipient_id: str) -> List[ReminderView]:
        """Reminders addressed to a recipient, newest first, joined with sender name and task title."""
        rows = self.store.select(Reminder.table, {"sent_to": recipient_id}, order_by="created_at", descending=True)
        views = []
        for row in rows:
            sender = self.store.get(Profile.table, row["sent_by"])
            task = self.store.get(Task.table, row["task_id"])
            views.append(ReminderView(
                **row,
                sender_name=sender["display_name"] if sender else "Unknown",
                task_title=task["title"] if task else "Unknown task",
            ))
        return views

    def unread_count(self, recipient_id: str) -> int:
        return self.store.count(Reminder.table, {"sent_to": recipient_id, "is_read": False})
