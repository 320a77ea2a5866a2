"""Task records and the stores that persist them.

A store exposes exactly three data operations (create, list newest first,
delete by id) plus ``is_valid_id``, which tells the API whether a path
parameter has the right shape for this store's identifiers.
"""
import itertools
import logging
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import DESCENDING, MongoClient

from task_validation import TitleValidationError, validate_title

logger = logging.getLogger(__name__)

DEFAULT_DB_NAME = 'taskmanager'
COLLECTION_NAME = 'tasks'


def utcnow():
    return datetime.now(timezone.utc)


def format_timestamp(value):
    """ISO-8601 in UTC with millisecond precision, e.g. 2026-10-19T17:54:00.000Z."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def parse_timestamp(value):
    if value.endswith('Z'):
        value = value[:-1] + '+00:00'
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class Task:
    id: str
    title: str
    created_at: datetime
    updated_at: datetime

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'createdAt': format_timestamp(self.created_at),
            'updatedAt': format_timestamp(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data):
        created_at = parse_timestamp(data['createdAt'])
        updated_at = data.get('updatedAt')
        return cls(
            id=str(data['id']),
            title=data['title'],
            created_at=created_at,
            updated_at=parse_timestamp(updated_at) if updated_at else created_at,
        )


class TaskValidationError(TitleValidationError):
    """Raised by a store when a record would break the title rule."""

    def __init__(self, cause):
        super().__init__('Task validation failed: title: %s' % cause.message, cause.reason)


def _checked_title(title):
    try:
        return validate_title(title)
    except TitleValidationError as exc:
        raise TaskValidationError(exc) from exc


class TaskStore:
    """Interface shared by the MongoDB and in-memory stores."""

    def is_valid_id(self, task_id):
        raise NotImplementedError

    def create(self, title):
        raise NotImplementedError

    def list_recent(self):
        """All tasks, most recently created first."""
        raise NotImplementedError

    def delete(self, task_id):
        """Remove a task and return it, or None when no such task exists."""
        raise NotImplementedError


class MongoTaskStore(TaskStore):
    """Tasks kept as documents in a MongoDB collection.

    Documents look like ``{_id: ObjectId, title, createdAt, updatedAt}``.
    """

    def __init__(self, collection, clock=None):
        self.collection = collection
        self._clock = clock or utcnow

    def is_valid_id(self, task_id):
        return ObjectId.is_valid(task_id)

    def create(self, title):
        now = self._clock()
        document = {
            'title': _checked_title(title),
            'createdAt': now,
            'updatedAt': now,
        }
        result = self.collection.insert_one(document)
        document['_id'] = result.inserted_id
        return self._to_task(document)

    def list_recent(self):
        cursor = self.collection.find().sort([('createdAt', DESCENDING), ('_id', DESCENDING)])
        return [self._to_task(document) for document in cursor]

    def delete(self, task_id):
        try:
            object_id = ObjectId(task_id)
        except (InvalidId, TypeError):
            return None
        document = self.collection.find_one_and_delete({'_id': object_id})
        if document is None:
            return None
        return self._to_task(document)

    @staticmethod
    def _to_task(document):
        created_at = document['createdAt']
        return Task(
            id=str(document['_id']),
            title=document['title'],
            created_at=created_at,
            updated_at=document.get('updatedAt', created_at),
        )


class MemoryTaskStore(TaskStore):
    """Process-local store. Ids are uuid4 hex strings."""

    def __init__(self, clock=None):
        self._clock = clock or utcnow
        self._tasks = {}
        self._order = {}
        self._counter = itertools.count()
        self._lock = threading.Lock()

    def is_valid_id(self, task_id):
        if not isinstance(task_id, str) or len(task_id) != 32:
            return False
        try:
            uuid.UUID(hex=task_id)
        except ValueError:
            return False
        return True

    def create(self, title):
        title = _checked_title(title)
        now = self._clock()
        task = Task(id=uuid.uuid4().hex, title=title, created_at=now, updated_at=now)
        with self._lock:
            self._tasks[task.id] = task
            self._order[task.id] = next(self._counter)
        return task

    def list_recent(self):
        with self._lock:
            tasks = list(self._tasks.values())
            return sorted(tasks, key=lambda t: (t.created_at, self._order[t.id]), reverse=True)

    def delete(self, task_id):
        with self._lock:
            task = self._tasks.pop(task_id, None)
            self._order.pop(task_id, None)
        return task


def connect_store(uri, db_name=DEFAULT_DB_NAME):
    """Connect to MongoDB and check the server answers before returning a store.

    Raises pymongo.errors.PyMongoError when the server cannot be reached.
    """
    client = MongoClient(uri, tz_aware=True)
    client.admin.command('ping')
    logger.info('Database connected successfully db=%s', db_name)
    return MongoTaskStore(client[db_name][COLLECTION_NAME])
