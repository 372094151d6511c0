"""Storage abstraction for wiki pages."""

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from pagewiki.core.db import Base, PageRecord
from pagewiki.core.exceptions import (
    NoMatchingPagesError,
    PageNotFoundError,
    StorageError,
)
from pagewiki.core.models import Page

logger = logging.getLogger(__name__)

DEFAULT_PLACEHOLDER_BODY = "temp"


class PageStore(ABC):
    """Abstract base class for page storage."""

    @abstractmethod
    def find_by_title(self, title: str) -> list[Page]:
        """Get all pages with exactly this title, oldest first.

        Returns an empty list when there is none; never writes.
        """
        ...

    @abstractmethod
    def get_or_create_by_title(self, title: str) -> list[Page]:
        """Like find_by_title, but inserts a placeholder page on a miss."""
        ...

    @abstractmethod
    def find_by_id(self, page_id: int) -> Page:
        """Get a page by id. Raises PageNotFoundError if there is none."""
        ...

    @abstractmethod
    def find_by_body_substring(self, fragment: str) -> list[Page]:
        """Get pages whose body contains fragment.

        Raises NoMatchingPagesError instead of returning an empty list.
        """
        ...

    @abstractmethod
    def insert(self, title: str, body: str) -> int:
        """Add a page and return its generated id."""
        ...

    @abstractmethod
    def update(self, page_id: int, title: str, body: str) -> None:
        """Overwrite title and body of a page. Unknown ids are ignored."""
        ...


class SqlPageStore(PageStore):
    """SQLAlchemy-backed storage over a single ``pages`` table.

    Each call runs in its own session and commits on its own; there are
    no transactions spanning several calls.
    """

    def __init__(
        self,
        database_url: str | URL,
        *,
        placeholder_body: str = DEFAULT_PLACEHOLDER_BODY,
        echo: bool = False,
    ):
        url = make_url(database_url)
        engine_kwargs: dict = {"echo": echo, "pool_pre_ping": True}
        if url.get_backend_name() == "sqlite":
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if url.database in (None, "", ":memory:"):
                engine_kwargs["poolclass"] = StaticPool
        self.engine = create_engine(url, **engine_kwargs)
        self.Session = sessionmaker(bind=self.engine)
        self.placeholder_body = placeholder_body

    def create_schema(self) -> None:
        """Create the pages table if it does not exist yet."""
        try:
            with self.engine.begin() as conn:
                Base.metadata.create_all(conn)
        except SQLAlchemyError as exc:
            raise StorageError("create_schema", PageRecord.__tablename__, exc) from exc

    def ping(self) -> None:
        """Round-trip to the database; raises StorageError if unreachable."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            raise StorageError("ping", self.engine.url.render_as_string(), exc) from exc

    def close(self) -> None:
        self.engine.dispose()

    @contextmanager
    def _session(self, operation: str, key: object) -> Iterator[Session]:
        with self.Session() as session:
            try:
                yield session
            except SQLAlchemyError as exc:
                session.rollback()
                raise StorageError(operation, key, exc) from exc

    def _map_page(self, record: PageRecord) -> Page:
        return Page(id=record.id, title=record.title, body=record.body)

    def find_by_title(self, title: str) -> list[Page]:
        with self._session("find_by_title", title) as session:
            results = (
                session.query(PageRecord)
                .filter_by(title=title)
                .order_by(PageRecord.id)
                .all()
            )
            return [self._map_page(record) for record in results]

    def get_or_create_by_title(self, title: str) -> list[Page]:
        pages = self.find_by_title(title)
        if pages:
            return pages

        try:
            page_id = self.insert(title, self.placeholder_body)
            logger.info("Created placeholder page %r (id=%d)", title, page_id)
        except StorageError as exc:
            # Someone else created it between our lookup and insert
            if not isinstance(exc.cause, IntegrityError):
                raise
            logger.info("Page %r was created concurrently", title)

        pages = self.find_by_title(title)
        if not pages:
            raise StorageError("get_or_create_by_title", title, "page vanished after insert")
        return pages

    def find_by_id(self, page_id: int) -> Page:
        with self._session("find_by_id", page_id) as session:
            record = session.get(PageRecord, page_id)
            if record is None:
                raise PageNotFoundError(page_id)
            return self._map_page(record)

    def find_by_body_substring(self, fragment: str) -> list[Page]:
        with self._session("find_by_body_substring", fragment) as session:
            results = (
                session.query(PageRecord)
                .filter(PageRecord.body.contains(fragment, autoescape=True))
                .order_by(PageRecord.id)
                .all()
            )
            pages = [self._map_page(record) for record in results]

        if not pages:
            logger.warning("No pages contain %r", fragment)
            raise NoMatchingPagesError(fragment)
        return pages

    def insert(self, title: str, body: str) -> int:
        with self._session("insert", title) as session:
            record = PageRecord(title=title, body=body)
            session.add(record)
            session.flush()
            page_id = record.id
            session.commit()
            return page_id

    def update(self, page_id: int, title: str, body: str) -> None:
        with self._session("update", page_id) as session:
            updated = (
                session.query(PageRecord)
                .filter_by(id=page_id)
                .update({"title": title, "body": body}, synchronize_session=False)
            )
            session.commit()

        if not updated:
            logger.warning("Update of page id %d matched no rows", page_id)
