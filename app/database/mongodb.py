"""
MongoDB database connection and management.
"""

import logging
import time
from typing import Optional, Dict, Any
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, IndexModel
from pymongo.errors import ConnectionFailure, OperationFailure, ServerSelectionTimeoutError

logger = logging.getLogger(__name__)


class MongoDB:
    """
    MongoDB store handle for user, transaction and pending-order records.

    Constructed explicitly and owned by the service container; there is no
    module-level instance. A handle without a URI is "not configured" and
    exposes no collections.
    """

    def __init__(
        self,
        uri: Optional[str] = None,
        database_name: str = "translation_gateway",
        timeout_seconds: float = 5.0,
        reconnect_interval_seconds: float = 5.0
    ):
        self.uri = uri
        self.database_name = database_name
        self.timeout_seconds = timeout_seconds
        self.reconnect_interval_seconds = reconnect_interval_seconds
        self._last_attempt: Optional[float] = None
        self.client: Optional[AsyncIOMotorClient] = None
        self.db: Optional[AsyncIOMotorDatabase] = None
        self._connected: bool = False

    @property
    def is_configured(self) -> bool:
        """True when a store URI was provided."""
        return bool(self.uri) or self.client is not None

    @property
    def is_connected(self) -> bool:
        """Check if database is connected."""
        return self._connected

    async def connect(self) -> bool:
        """
        Establish connection to MongoDB.

        A client whose ping fails is closed again; ensure_connected() retries later.

        Returns:
            bool: True if connection successful, False otherwise
        """
        if not self.uri:
            logger.warning("[MongoDB] No MONGODB_URI configured - running without a store")
            return False

        self._last_attempt = time.monotonic()
        client = None
        try:
            logger.info("[MongoDB] Connecting to MongoDB...")
            logger.info(f"[MongoDB] URI: {self.uri.split('@')[1] if '@' in self.uri else 'localhost'}")

            timeout_ms = int(self.timeout_seconds * 1000)
            client = AsyncIOMotorClient(
                self.uri,
                serverSelectionTimeoutMS=timeout_ms,
                timeoutMS=timeout_ms,
                tz_aware=True,
                maxPoolSize=50,
                minPoolSize=0
            )

            # Test connection
            await client.admin.command('ping')

        except (ConnectionFailure, ServerSelectionTimeoutError) as e:
            logger.error(f"[MongoDB] Connection failed: {e}")
            self._discard(client)
            return False
        except Exception as e:
            logger.error(f"[MongoDB] Unexpected error during connection: {e}", exc_info=True)
            self._discard(client)
            return False

        self.bind(client)
        logger.info(f"[MongoDB] Successfully connected to database: {self.database_name}")

        await self._create_indexes()

        return True

    async def ensure_connected(self) -> bool:
        """
        Connect on demand when startup could not reach the store.

        Attempts are throttled to one per reconnect_interval_seconds.

        Returns:
            bool: True if the store is connected
        """
        if self._connected:
            return True
        if not self.uri:
            return False
        if (
            self._last_attempt is not None
            and time.monotonic() - self._last_attempt < self.reconnect_interval_seconds
        ):
            return False

        logger.info("[MongoDB] Store not connected - retrying connection")
        return await self.connect()

    def _discard(self, client) -> None:
        if client is not None:
            client.close()
        self._connected = False

    def bind(self, client) -> None:
        """Attach an already constructed Motor-compatible client."""
        self.client = client
        self.db = client[self.database_name]
        self._connected = True

    async def disconnect(self) -> None:
        """Close MongoDB connection."""
        if self.client:
            logger.info("[MongoDB] Closing connection...")
            self.client.close()
            self._connected = False
            logger.info("[MongoDB] Connection closed")

    async def health_check(self) -> Dict[str, Any]:
        """
        Check MongoDB health status.

        Returns:
            dict: Health status information
        """
        if not self.is_configured:
            return {
                "healthy": True,
                "status": "not_configured",
                "message": "No store configured"
            }

        if not await self.ensure_connected() or not self.client:
            return {
                "healthy": False,
                "status": "disconnected",
                "message": "MongoDB not connected"
            }

        try:
            await self.client.admin.command('ping')
            return {
                "healthy": True,
                "status": "connected",
                "database": self.database_name
            }

        except Exception as e:
            logger.error(f"[MongoDB] Health check failed: {e}")
            return {
                "healthy": False,
                "status": "error",
                "message": str(e)
            }

    async def _create_indexes(self) -> None:
        """Create database indexes for lookups outside the primary key."""
        logger.info("[MongoDB] Creating database indexes...")

        success_count = 0
        failed_count = 0

        # Users are keyed by identity-provider uid; email lookup serves legacy order ids
        try:
            await self.db.users.create_indexes([
                IndexModel([("email", ASCENDING)], name="email_idx"),
                IndexModel([("subscription_status", ASCENDING)], name="subscription_status_idx")
            ])
            logger.info("[MongoDB] Users indexes created")
            success_count += 1
        except (OperationFailure, Exception) as e:
            logger.warning(f"[MongoDB] Users index creation failed: {e}")
            failed_count += 1

        # Transactions are keyed by order id
        try:
            await self.db.transactions.create_indexes([
                IndexModel([("user_id", ASCENDING)], name="user_id_idx"),
                IndexModel([("created_at", ASCENDING)], name="created_at_asc")
            ])
            logger.info("[MongoDB] Transactions indexes created")
            success_count += 1
        except (OperationFailure, Exception) as e:
            logger.warning(f"[MongoDB] Transactions index creation failed: {e}")
            failed_count += 1

        # Pending orders are keyed by order id
        try:
            await self.db.orders.create_indexes([
                IndexModel([("user_id", ASCENDING)], name="user_id_idx"),
                IndexModel([("status", ASCENDING)], name="status_idx")
            ])
            logger.info("[MongoDB] Orders indexes created")
            success_count += 1
        except (OperationFailure, Exception) as e:
            logger.warning(f"[MongoDB] Orders index creation failed: {e}")
            failed_count += 1

        logger.info(f"[MongoDB] Index creation completed: {success_count} collections successful, {failed_count} collections had issues")

    # Collection accessors
    @property
    def users(self):
        """Get users collection (license records)."""
        return self.db.users if self.db is not None else None

    @property
    def transactions(self):
        """Get transactions collection (confirmed payments)."""
        return self.db.transactions if self.db is not None else None

    @property
    def orders(self):
        """Get orders collection (pending orders awaiting payment)."""
        return self.db.orders if self.db is not None else None
