import logging
import threading
import time
from dataclasses import dataclass
from typing import Optional

import anyio.to_thread
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from shortlink_app.cache.strategies import CacheStrategy
from shortlink_app.database.connection import Database
from shortlink_app.exceptions import (
    DatabaseError,
    IdAllocationError,
    ShortenCancelled,
    ShortIdNotFoundError,
)
from shortlink_app.models.url import URL
from shortlink_app.services.conflicts import InsertOutcome, classify_conflict
from shortlink_app.services.id_generators import IdGenerator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """
    What to do when a candidate id collides with a stored one.

    - ``max_attempts``: inserts tried per call before giving up (None = no cap)
    - ``grow_after``: every N collisions the next candidate is one character
      longer (0 = keep the configured length)
    - ``backoff_seconds``: base of an exponential pause between attempts
    """
    max_attempts: Optional[int] = 10
    grow_after: int = 3
    backoff_seconds: float = 0.0
    max_backoff_seconds: float = 1.0

    def __post_init__(self):
        if self.max_attempts is not None and self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")
        if self.grow_after < 0:
            raise ValueError(f"grow_after must not be negative, got {self.grow_after}")

    @classmethod
    def from_settings(cls, settings) -> "RetryPolicy":
        return cls(
            max_attempts=settings.id_max_attempts,
            grow_after=settings.id_grow_after,
            backoff_seconds=settings.id_retry_backoff,
            max_backoff_seconds=settings.id_retry_max_backoff,
        )

    def allows_another(self, attempts: int) -> bool:
        return self.max_attempts is None or attempts < self.max_attempts

    def length_for(self, base_length: int, collisions: int) -> int:
        if not self.grow_after:
            return base_length
        return base_length + collisions // self.grow_after

    def delay_for(self, collisions: int) -> float:
        if self.backoff_seconds <= 0 or collisions < 1:
            return 0.0
        return min(self.backoff_seconds * 2 ** (collisions - 1), self.max_backoff_seconds)


class URLService:
    """
    Allocates short ids for URLs and resolves them back.

    Dependencies are injected (database, id generator, policy, cache); the
    service keeps no per-request state, so one instance serves every request.

    Correctness rests on the two uniqueness constraints of the ``urls``
    table. No in-process locks are taken:
    - two calls for the same url: one insert wins, the other hits the url
      constraint and reads the winner's id back
    - two calls drawing the same candidate: one insert wins, the other hits
      the primary key and retries with a fresh candidate

    Blocking database work runs in worker threads so the event loop stays free.
    """

    def __init__(
        self,
        database: Database,
        id_generator: IdGenerator,
        base_url: str,
        retry_policy: Optional[RetryPolicy] = None,
        cache: Optional[CacheStrategy] = None,
        cache_ttl: int = 3600,
    ):
        self.database = database
        self.id_generator = id_generator
        self.base_url = base_url.rstrip("/")
        self.retry_policy = retry_policy or RetryPolicy()
        self.cache = cache
        self.cache_ttl = cache_ttl

    def build_short_link(self, short_id: str) -> str:
        return f"{self.base_url}/{short_id}"

    async def shorten(self, url: str) -> str:
        """
        Return the short link for ``url``, creating the record if needed.

        If the awaiting task is cancelled (client disconnect) the worker is
        told to roll back instead of committing.

        Raises:
            DatabaseError: The store failed; nothing was committed
            IdAllocationError: The retry policy gave up
        """
        cancelled = threading.Event()
        try:
            short_id = await anyio.to_thread.run_sync(
                self.allocate, url, cancelled, abandon_on_cancel=True
            )
        except anyio.get_cancelled_exc_class():
            cancelled.set()
            raise

        # Records are immutable, so the pair can be cached on write
        await self._cache_set(short_id, url)
        return self.build_short_link(short_id)

    def allocate(self, url: str, cancelled: Optional[threading.Event] = None) -> str:
        """
        Insert-or-fetch the id for ``url`` in one transaction (blocking).

        Every attempt runs in a SAVEPOINT so a rejected insert leaves the
        outer transaction usable. Commit happens only after a new row was
        inserted or the existing id was read back.

        Returns:
            The short id (not the full link)
        """
        try:
            with self.database.session() as session, session.begin():
                short_id = self._allocate_in_transaction(session, url, cancelled)
                self._check_cancelled(cancelled)
        except SQLAlchemyError as exc:
            raise DatabaseError(f"Failed to shorten URL: {exc.__class__.__name__}") from exc
        return short_id

    def _allocate_in_transaction(
        self,
        session: Session,
        url: str,
        cancelled: Optional[threading.Event],
    ) -> str:
        attempts = 0
        while True:
            self._check_cancelled(cancelled)

            length = self.retry_policy.length_for(self.id_generator.default_length, attempts)
            candidate = self.id_generator.generate(length)
            attempts += 1

            outcome = self._try_insert(session, candidate, url)

            if outcome is InsertOutcome.CREATED:
                logger.debug("Created short id %s", candidate)
                return candidate

            if outcome is InsertOutcome.DUPLICATE_URL:
                existing = self._existing_id(session, url)
                logger.debug("URL already shortened as %s", existing)
                return existing

            # InsertOutcome.DUPLICATE_ID
            logger.info("Duplicate id %s, retry (attempt %d)", candidate, attempts)
            if not self.retry_policy.allows_another(attempts):
                logger.error("Giving up on id allocation after %d attempts", attempts)
                raise IdAllocationError(attempts)

            delay = self.retry_policy.delay_for(attempts)
            if delay:
                time.sleep(delay)

    def _try_insert(self, session: Session, candidate: str, url: str) -> InsertOutcome:
        """
        Insert one row inside a savepoint.

        A conflict naming both constraints is classified as a duplicate id;
        the url constraint is checked again by the next attempt.

        Raises:
            IntegrityError: For violations other than the two uniqueness
                constraints
        """
        try:
            with session.begin_nested():
                session.add(URL(id=candidate, url=url))
                session.flush()
        except IntegrityError as exc:
            outcome = classify_conflict(exc)
            if outcome is None:
                raise
            logger.debug("Uniqueness conflict (%s): %s", outcome.value, exc.orig)
            return outcome
        return InsertOutcome.CREATED

    def _existing_id(self, session: Session, url: str) -> str:
        existing = session.scalar(select(URL.id).where(URL.url == url))
        if existing is None:
            # The conflicting row is not visible: uncommitted writer, or
            # a different url sharing an indexed prefix
            raise DatabaseError("URL conflict reported but no matching row is visible")
        return existing

    @staticmethod
    def _check_cancelled(cancelled: Optional[threading.Event]) -> None:
        if cancelled is not None and cancelled.is_set():
            logger.info("Shorten cancelled by caller, rolling back")
            raise ShortenCancelled()

    async def resolve(self, short_id: str) -> str:
        """
        Get the stored URL for ``short_id`` (cache first, then database).

        Raises:
            ShortIdNotFoundError: No record has this id
            DatabaseError: The store failed
        """
        cached = await self._cache_get(short_id)
        if cached is not None:
            return cached

        url = await anyio.to_thread.run_sync(self.lookup, short_id)
        await self._cache_set(short_id, url)
        return url

    def lookup(self, short_id: str) -> str:
        """Primary key lookup (blocking)."""
        try:
            with self.database.session() as session:
                url = session.scalar(select(URL.url).where(URL.id == short_id))
        except SQLAlchemyError as exc:
            raise DatabaseError(f"Failed to resolve id: {exc.__class__.__name__}") from exc

        if url is None:
            raise ShortIdNotFoundError(short_id)
        return url

    async def get_record(self, short_id: str) -> URL:
        """Get the full record for ``short_id``; same errors as ``resolve``."""
        return await anyio.to_thread.run_sync(self._get_record, short_id)

    def _get_record(self, short_id: str) -> URL:
        try:
            with self.database.session() as session:
                record = session.get(URL, short_id)
        except SQLAlchemyError as exc:
            raise DatabaseError(f"Failed to load record: {exc.__class__.__name__}") from exc

        if record is None:
            raise ShortIdNotFoundError(short_id)
        return record

    async def _cache_get(self, short_id: str) -> Optional[str]:
        if self.cache is None:
            return None
        return await self.cache.get(f"url:{short_id}")

    async def _cache_set(self, short_id: str, url: str) -> None:
        if self.cache is not None:
            await self.cache.set(f"url:{short_id}", url, ttl=self.cache_ttl)
