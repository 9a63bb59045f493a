from typing import List, Optional

from taskhive.data import DataStore
from taskhive.logs import get_logger
from taskhive.models import Query, QueryStatus, stamp
from taskhive.recovery import NotFound, ValidationError

log = get_logger("stores.queries")


class QueryStore:
    """
    Member to leader questions.

    ``respond`` writes unconditionally: a second response overwrites the
    first. Rejecting double responses is the caller's job.
    """

    def __init__(self, store: DataStore):
        self.store = store

    def create(self, sender_id: str, recipient_id: str, subject: str, message: str, task_id: Optional[str] = None) -> Query:
        if not subject or not subject.strip():
            raise ValidationError("Query subject must not be empty")
        if not message or not message.strip():
            raise ValidationError("Query message must not be empty")
        query = Query(
            from_profile_id=sender_id,
            to_profile_id=recipient_id,
            task_id=task_id or None,
            subject=subject.strip(),
            message=message.strip(),
        )
        row = self.store.insert(Query.table, query.to_record())
        log.info(f"Query {query.id} raised by {sender_id} to {recipient_id}")
        return Query.from_record(row)

    def respond(self, query_id: str, response: str) -> Query:
        if not response or not response.strip():
            raise ValidationError("Response must not be empty")
        if self.store.get(Query.table, query_id) is None:
            raise NotFound(f"No query {query_id}")
        row = self.store.update(Query.table, query_id, {
            "response": response.strip(),
            "status": QueryStatus.RESPONDED.value,
            "responded_at": stamp(),
        })
        log.info(f"Query {query_id} responded")
        return Query.from_record(row)

    def get(self, query_id: str) -> Optional[Query]:
        row = self.store.get(Query.table, query_id)
        return Query.from_record(row) if row else None

    def list(self) -> List[Query]:
        rows = self.store.select(Query.table, order_by="created_at", descending=True)
        return [Query.from_record(r) for r in rows]

    def list_received(self, profile_id: str) -> List[Query]:
        rows = self.store.select(Query.table, {"to_profile_id": profile_id}, order_by="created_at", descending=True)
        return [Query.from_record(r) for r in rows]

    def list_sent(self, profile_id: str) -> List[Query]:
        rows = self.store.select(Query.table, {"from_profile_id": profile_id}, order_by="created_at", descending=True)
        return [Query.from_record(r) for r in rows]

    def pending_count(self, profile_id: str) -> int:
        return sum(1 for q in self.list_received(profile_id) if q.status == QueryStatus.PENDING)
