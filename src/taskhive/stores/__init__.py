"""
Record stores. Each owns one table family and is unconditional: callers
decide who may act, the stores only read and write.
"""

from .tasks import TaskStore
from .comments import CommentStore
from .documentation import DocumentationStore
from .reminders import ReminderStore
from .queries import QueryStore

__all__ = [
    'TaskStore',
    'CommentStore',
    'DocumentationStore',
    'ReminderStore',
    'QueryStore',
]
