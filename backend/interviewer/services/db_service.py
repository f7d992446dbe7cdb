# /interviewer/services/db_service.py

import logging
import tenacity
from datetime import datetime, timezone
from typing import Awaitable, Callable, List, Optional, TypeVar
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorClientSession
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import DuplicateKeyError, PyMongoError

from interviewer.config.settings import settings
from interviewer.models.guide import Guide, GuideVersion
from interviewer.models.session import InterviewSession, SessionState
from interviewer.utils.metrics import database_operations_counter

logger = logging.getLogger(__name__)

T = TypeVar("T")

GUIDES = "guides"
GUIDE_VERSIONS = "guide_versions"
SESSIONS = "interview_sessions"


def _is_retryable_transaction_error(exc: BaseException) -> bool:
    """
    Write conflicts and racing inserts are resolved by re-running the unit.

    An unknown commit result is excluded: the commit may have landed, so only
    the commit itself is retried.
    """
    if isinstance(exc, PyMongoError) and exc.has_error_label("UnknownTransactionCommitResult"):
        return False
    if isinstance(exc, DuplicateKeyError):
        return True
    if isinstance(exc, PyMongoError):
        return exc.has_error_label("TransientTransactionError")
    return False


def _is_unknown_commit_result(exc: BaseException) -> bool:
    return isinstance(exc, PyMongoError) and exc.has_error_label("UnknownTransactionCommitResult")


class DatabaseService:
    """
    MongoDB store for guides, guide versions and interview sessions.

    Every method that takes `txn` can participate in a transaction opened by
    run_in_transaction(). Session state is written with an optimistic
    version check so concurrent answers can never overwrite each other.
    """

    def __init__(self, mongo_uri: str):
        try:
            self.client = AsyncIOMotorClient(
                mongo_uri,
                maxPoolSize=settings.max_pool_size,
                minPoolSize=settings.min_pool_size,
                tls=settings.mongo_ssl,
                tz_aware=True,
                serverSelectionTimeoutMS=5000,
                connectTimeoutMS=10000
            )
            self.db = self.client.get_default_database()
            logger.info("MongoDB client initialized successfully.")
        except Exception as e:
            logger.error(f"Error initializing MongoDB client: {e}")
            raise

    # ==================== Helper Methods ====================

    def _now_utc(self) -> datetime:
        return datetime.now(timezone.utc)

    async def _db_operation(self, name: str, operation: Awaitable[T]) -> T:
        """Await a driver call, counting the outcome. Errors propagate."""
        try:
            result = await operation
        except PyMongoError as e:
            database_operations_counter.labels(operation=name, status="failed").inc()
            logger.error(f"Database operation '{name}' failed: {type(e).__name__}: {e}")
            raise
        database_operations_counter.labels(operation=name, status="success").inc()
        return result

    # ==================== Index Management ====================

    async def create_indexes(self) -> None:
        """Create all necessary database indexes on startup."""
        indexes = [
            (GUIDES, [("title", ASCENDING)], {"unique": True}),
            (GUIDE_VERSIONS, [("guide_id", ASCENDING), ("version", DESCENDING)], {"unique": True}),
            # At most one active version per guide, enforced by the server as well
            (GUIDE_VERSIONS, [("guide_id", ASCENDING)], {
                "unique": True,
                "name": "one_active_version_per_guide",
                "partialFilterExpression": {"is_active": True},
            }),
            (SESSIONS, [("guide_id", ASCENDING), ("created_at", DESCENDING)], {}),
        ]

        for collection, keys, options in indexes:
            try:
                await self.db[collection].create_index(keys, **options)
                logger.debug(f"Created index on {collection}: {keys}")
            except PyMongoError as e:
                logger.error(f"Failed to create index on {collection} {keys}: {e}")

        logger.info("Database indexes created successfully.")

    async def health_check(self) -> bool:
        try:
            await self.db.command("ping")
            return True
        except PyMongoError as e:
            logger.warning(f"Database health check failed: {e}")
            return False

    # ==================== Transactions ====================

    async def run_in_transaction(self, operation: Callable[[AsyncIOMotorClientSession], Awaitable[T]]) -> T:
        """
        Run `operation(txn)` as one atomic unit.

        Commits on success, aborts on any exception raised by the operation.
        Transient conflicts re-run the whole operation; an unknown commit
        result retries only the commit. Both stop after
        transaction_retry_seconds.
        """

        @tenacity.retry(
            retry=tenacity.retry_if_exception(_is_retryable_transaction_error),
            stop=tenacity.stop_after_delay(settings.transaction_retry_seconds),
            wait=tenacity.wait_exponential(multiplier=0.1, min=0.05, max=1),
            before_sleep=tenacity.before_sleep_log(logger, logging.WARNING),
            reraise=True
        )
        async def _attempt() -> T:
            async with await self.client.start_session() as txn:
                txn.start_transaction()
                try:
                    result = await operation(txn)
                except Exception:
                    await txn.abort_transaction()
                    raise
                await self._commit(txn)
                return result

        return await _attempt()

    async def _commit(self, txn: AsyncIOMotorClientSession) -> None:
        @tenacity.retry(
            retry=tenacity.retry_if_exception(_is_unknown_commit_result),
            stop=tenacity.stop_after_delay(settings.transaction_retry_seconds),
            wait=tenacity.wait_exponential(multiplier=0.1, min=0.05, max=1),
            before_sleep=tenacity.before_sleep_log(logger, logging.WARNING),
            reraise=True
        )
        async def _commit_attempt() -> None:
            await txn.commit_transaction()

        await _commit_attempt()

    # ==================== Guides ====================

    async def find_guide_by_title(self, title: str, txn: Optional[AsyncIOMotorClientSession] = None) -> Optional[Guide]:
        doc = await self._db_operation("find_guide", self.db[GUIDES].find_one({"title": title}, session=txn))
        return Guide.model_validate(doc) if doc else None

    async def find_guide_by_id(self, guide_id: str, txn: Optional[AsyncIOMotorClientSession] = None) -> Optional[Guide]:
        doc = await self._db_operation("find_guide", self.db[GUIDES].find_one({"_id": guide_id}, session=txn))
        return Guide.model_validate(doc) if doc else None

    async def list_guides(self) -> List[Guide]:
        cursor = self.db[GUIDES].find({}).sort("created_at", ASCENDING)
        docs = await self._db_operation("list_guides", cursor.to_list(length=None))
        return [Guide.model_validate(doc) for doc in docs]

    async def save_guide(self, guide: Guide, txn: Optional[AsyncIOMotorClientSession] = None) -> None:
        guide.updated_at = self._now_utc()
        await self._db_operation(
            "save_guide",
            self.db[GUIDES].replace_one({"_id": guide.id}, guide.model_dump(by_alias=True), upsert=True, session=txn)
        )

    # ==================== Guide Versions ====================

    async def list_versions(self, guide_id: str, txn: Optional[AsyncIOMotorClientSession] = None) -> List[GuideVersion]:
        cursor = self.db[GUIDE_VERSIONS].find({"guide_id": guide_id}, session=txn).sort("version", DESCENDING)
        docs = await self._db_operation("list_versions", cursor.to_list(length=None))
        return [GuideVersion.model_validate(doc) for doc in docs]

    async def find_version(
        self, guide_id: str, version_number: int, txn: Optional[AsyncIOMotorClientSession] = None
    ) -> Optional[GuideVersion]:
        doc = await self._db_operation(
            "find_version",
            self.db[GUIDE_VERSIONS].find_one({"guide_id": guide_id, "version": version_number}, session=txn)
        )
        return GuideVersion.model_validate(doc) if doc else None

    async def find_version_by_id(self, version_id: str) -> Optional[GuideVersion]:
        doc = await self._db_operation("find_version", self.db[GUIDE_VERSIONS].find_one({"_id": version_id}))
        return GuideVersion.model_validate(doc) if doc else None

    async def find_active_versions(self, guide_id: str) -> List[GuideVersion]:
        cursor = self.db[GUIDE_VERSIONS].find({"guide_id": guide_id, "is_active": True})
        docs = await self._db_operation("find_active_versions", cursor.to_list(length=None))
        return [GuideVersion.model_validate(doc) for doc in docs]

    async def save_version(self, version: GuideVersion, txn: Optional[AsyncIOMotorClientSession] = None) -> None:
        await self._db_operation(
            "save_version",
            self.db[GUIDE_VERSIONS].replace_one(
                {"_id": version.id}, version.model_dump(by_alias=True), upsert=True, session=txn
            )
        )

    async def deactivate_all_versions(self, guide_id: str, txn: Optional[AsyncIOMotorClientSession] = None) -> int:
        result = await self._db_operation(
            "deactivate_versions",
            self.db[GUIDE_VERSIONS].update_many(
                {"guide_id": guide_id, "is_active": True}, {"$set": {"is_active": False}}, session=txn
            )
        )
        return result.modified_count

    async def set_version_active(
        self, guide_id: str, version_number: int, txn: Optional[AsyncIOMotorClientSession] = None
    ) -> bool:
        result = await self._db_operation(
            "activate_version",
            self.db[GUIDE_VERSIONS].update_one(
                {"guide_id": guide_id, "version": version_number}, {"$set": {"is_active": True}}, session=txn
            )
        )
        return result.matched_count > 0

    # ==================== Interview Sessions ====================

    async def find_session(self, session_id: str) -> Optional[InterviewSession]:
        doc = await self._db_operation("find_session", self.db[SESSIONS].find_one({"_id": session_id}))
        return InterviewSession.model_validate(doc) if doc else None

    async def insert_session(self, interview_session: InterviewSession) -> None:
        await self._db_operation(
            "insert_session",
            self.db[SESSIONS].insert_one(interview_session.model_dump(by_alias=True))
        )

    async def save_session_state(self, session_id: str, state: SessionState, expected_version: int) -> bool:
        """
        Compare-and-swap the session state.

        Returns False when the stored state is no longer at `expected_version`,
        meaning another request advanced the session first.
        """
        result = await self._db_operation(
            "save_session",
            self.db[SESSIONS].update_one(
                {"_id": session_id, "state.version": expected_version},
                {"$set": {"state": state.model_dump(), "updated_at": self._now_utc()}}
            )
        )
        return result.matched_count > 0


# Globally accessible instance
db_service = DatabaseService(settings.mongo_uri)
