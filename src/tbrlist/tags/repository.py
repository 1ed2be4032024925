"""Storage for the shared tag corpus.

The resolver and analytics never reach for a global client; a repository is
built by whoever hosts them and passed in. Two implementations:

- ``SqlTagRepository``: SQLAlchemy sessions over the local database
- ``InMemoryTagRepository``: dict-backed, for tests and embedding

Both treat ``transaction()`` as a unit of work scoped to the calling thread
or task. Nested calls from the same caller join the outermost one, and an
exception anywhere inside rolls back everything that unit of work wrote.
"""

import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from itertools import count
from typing import Callable, ContextManager, Iterable, Iterator, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..db.sqlite import Database
from .errors import DuplicateTagError, PersistenceFailure, TagNotFoundError
from .models import Tag
from .normalize import normalize_tag
from .schemas import TagResponse

logger = logging.getLogger(__name__)


class TagRepository(ABC):
    """Create, scan and update operations on the tag corpus."""

    @abstractmethod
    def transaction(self) -> ContextManager[None]:
        """Context manager wrapping a unit of work."""
        ...

    @abstractmethod
    def list_tags(self) -> list[TagResponse]:
        """All tags, in creation order."""
        ...

    @abstractmethod
    def get_tag(self, tag_id: int) -> Optional[TagResponse]:
        """Get a tag by id, or None."""
        ...

    @abstractmethod
    def create_tag(self, name: str, normalized_name: str) -> TagResponse:
        """Store a new tag.

        Raises:
            DuplicateTagError: If a tag with ``normalized_name`` exists
        """
        ...

    @abstractmethod
    def increment_usage(self, tag_ids: Iterable[int], used_at: datetime) -> None:
        """Add one use per id occurrence and stamp ``last_used_at``.

        Raises:
            TagNotFoundError: If an id is unknown
        """
        ...

    def get_tag_by_name(self, name: str) -> Optional[TagResponse]:
        """Get the tag whose normalized name equals ``name`` normalized."""
        normalized = normalize_tag(name)
        for tag in self.list_tags():
            if tag.normalized_name == normalized:
                return tag
        return None


class SqlTagRepository(TagRepository):
    """Tag repository backed by the SQLite database.

    Each thread or async task gets its own session, so callers sharing one
    repository never join each other's transactions.
    """

    def __init__(self, db: Database):
        """Initialize the repository.

        Args:
            db: Database instance
        """
        self.db = db
        self._session: ContextVar[Optional[Session]] = ContextVar(
            f"tag_session_{id(self)}", default=None
        )

    @property
    def session(self) -> Session:
        """Session of the caller's active transaction."""
        session = self._session.get()
        if session is None:
            raise RuntimeError("No active tag transaction")
        return session

    @contextmanager
    def transaction(self) -> Iterator[None]:
        if self._session.get() is not None:
            yield
            return

        try:
            with self.db.get_session() as session:
                token = self._session.set(session)
                try:
                    yield
                finally:
                    self._session.reset(token)
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"Tag store error: {e}") from e

    def list_tags(self) -> list[TagResponse]:
        with self.transaction():
            tags = self.session.execute(select(Tag).order_by(Tag.id)).scalars().all()
            return [TagResponse.model_validate(tag) for tag in tags]

    def get_tag(self, tag_id: int) -> Optional[TagResponse]:
        with self.transaction():
            tag = self.session.get(Tag, tag_id)
            return TagResponse.model_validate(tag) if tag else None

    def get_tag_by_name(self, name: str) -> Optional[TagResponse]:
        with self.transaction():
            tag = self.session.execute(
                select(Tag).where(Tag.normalized_name == normalize_tag(name))
            ).scalar_one_or_none()
            return TagResponse.model_validate(tag) if tag else None

    def create_tag(self, name: str, normalized_name: str) -> TagResponse:
        with self.transaction():
            tag = Tag(name=name, normalized_name=normalized_name, usage_count=0)
            self.session.add(tag)
            try:
                self.session.flush()
            except IntegrityError as e:
                raise DuplicateTagError(normalized_name) from e
            return TagResponse.model_validate(tag)

    def increment_usage(self, tag_ids: Iterable[int], used_at: datetime) -> None:
        with self.transaction():
            for tag_id in tag_ids:
                result = self.session.execute(
                    update(Tag)
                    .where(Tag.id == tag_id)
                    .values(
                        usage_count=Tag.usage_count + 1,
                        last_used_at=used_at.isoformat(),
                    )
                )
                if result.rowcount == 0:
                    raise TagNotFoundError(tag_id)


class _PendingWork:
    """Private view and change log of one in-memory transaction."""

    def __init__(self, tags: dict[int, TagResponse]):
        self.view = tags
        self.changes: list[Callable[[dict[int, TagResponse]], None]] = []


class InMemoryTagRepository(TagRepository):
    """Tag repository kept in a dict. Not shared across processes.

    A transaction works on a private copy of the committed tags and logs
    its changes. Commit replays the log onto the committed tags under a
    lock, so a change that conflicts with another caller's commit fails
    there, and a rollback only drops the log.
    """

    def __init__(self) -> None:
        self._tags: dict[int, TagResponse] = {}
        self._ids = count(1)
        self._lock = threading.Lock()
        self._work: ContextVar[Optional[_PendingWork]] = ContextVar(
            f"tag_work_{id(self)}", default=None
        )

    @contextmanager
    def transaction(self) -> Iterator[None]:
        if self._work.get() is not None:
            yield
            return

        with self._lock:
            work = _PendingWork(dict(self._tags))
        token = self._work.set(work)
        try:
            yield
            with self._lock:
                tags = dict(self._tags)
                for change in work.changes:
                    change(tags)
                self._tags = tags
        except Exception:
            logger.debug("Rolling back in-memory tag transaction")
            raise
        finally:
            self._work.reset(token)

    def _visible(self) -> dict[int, TagResponse]:
        work = self._work.get()
        if work is not None:
            return work.view
        with self._lock:
            return dict(self._tags)

    def _apply(self, change: Callable[[dict[int, TagResponse]], None]) -> None:
        with self.transaction():
            work = self._work.get()
            change(work.view)
            work.changes.append(change)

    def list_tags(self) -> list[TagResponse]:
        return sorted(self._visible().values(), key=lambda tag: tag.id)

    def get_tag(self, tag_id: int) -> Optional[TagResponse]:
        return self._visible().get(tag_id)

    def create_tag(self, name: str, normalized_name: str) -> TagResponse:
        def insert(tags: dict[int, TagResponse]) -> None:
            if any(t.normalized_name == normalized_name for t in tags.values()):
                raise DuplicateTagError(normalized_name)
            tags[tag.id] = tag

        with self.transaction():
            if any(t.normalized_name == normalized_name for t in self._visible().values()):
                raise DuplicateTagError(normalized_name)
            with self._lock:
                tag_id = next(self._ids)
            tag = TagResponse(
                id=tag_id,
                name=name,
                normalized_name=normalized_name,
                created_at=datetime.now(timezone.utc),
            )
            self._apply(insert)
        return tag

    def increment_usage(self, tag_ids: Iterable[int], used_at: datetime) -> None:
        tag_ids = list(tag_ids)

        def bump(tags: dict[int, TagResponse]) -> None:
            for tag_id in tag_ids:
                tag = tags.get(tag_id)
                if tag is None:
                    raise TagNotFoundError(tag_id)
                tags[tag_id] = tag.model_copy(
                    update={"usage_count": tag.usage_count + 1, "last_used_at": used_at}
                )

        self._apply(bump)
