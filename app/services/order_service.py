"""
Order service - pending orders and order-to-user resolution.

A pending order is written before checkout so the payment confirmation can
find its owner by order id. Orders issued by older clients carry the owner's
email base64-encoded in the id itself; those are resolved through the users
collection as a logged fallback.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional, Awaitable, Any

from pymongo.errors import PyMongoError

from app.database.mongodb import MongoDB
from app.exceptions import StoreUnavailableError, handle_store_error
from app.models.license import OrderOwner, OrderStatus, PendingOrder
from app.utils.order_id import decode_legacy_order_email, generate_order_id

logger = logging.getLogger(__name__)


class OrderService:
    """Creates pending orders and resolves order owners."""

    def __init__(self, database: MongoDB, store_timeout_seconds: float = 5.0):
        self.database = database
        self.store_timeout_seconds = store_timeout_seconds

    async def create_pending_order(
        self,
        user_id: str,
        email: Optional[str],
        amount: int,
        order_name: Optional[str] = None
    ) -> PendingOrder:
        """
        Create a pending order for the authenticated user.

        Args:
            user_id: Identity provider uid of the buyer
            email: Buyer email from the identity claims
            amount: Amount to charge in KRW
            order_name: Display name for the checkout widget

        Returns:
            PendingOrder (persisted unless the store is not configured)

        Raises:
            StoreUnavailableError: If the store is configured but the write fails
        """
        order = PendingOrder(
            order_id=generate_order_id(),
            user_id=user_id,
            email=email,
            amount=amount,
            order_name=order_name,
            created_at=datetime.now(timezone.utc)
        )

        if not self.database.is_configured:
            logger.warning(f"[ORDERS] No store configured - order {order.order_id} not persisted")
            return order

        orders = await self._orders()
        try:
            await self._call(orders.insert_one(order.to_document()))
        except (asyncio.TimeoutError, PyMongoError) as e:
            raise handle_store_error(e, "order creation")

        logger.info(f"[ORDERS] Created pending order {order.order_id} for {user_id} ({amount})")
        return order

    async def get_pending_order(self, order_id: str) -> Optional[PendingOrder]:
        """
        Look up a pending order by id.

        Returns:
            PendingOrder or None when absent or when no store is configured
        """
        if not self.database.is_configured:
            return None

        orders = await self._orders()
        try:
            document = await self._call(orders.find_one({"_id": order_id}))
        except (asyncio.TimeoutError, PyMongoError) as e:
            raise handle_store_error(e, "order lookup")

        if document is None:
            return None
        return PendingOrder.from_document(document)

    async def resolve_owner(self, order_id: str, pending: Optional[PendingOrder] = None) -> Optional[OrderOwner]:
        """
        Resolve the user that owns an order.

        Resolution order:
        1. Pending order record
        2. Email encoded in a legacy order id, looked up in users

        Args:
            order_id: Order id from the payment confirmation
            pending: Already loaded pending order, if any

        Returns:
            OrderOwner or None when the owner cannot be determined
        """
        if pending is None:
            pending = await self.get_pending_order(order_id)
        if pending is not None:
            return OrderOwner(user_id=pending.user_id, email=pending.email, source="pending_order")

        email = decode_legacy_order_email(order_id)
        if email is None:
            return None

        logger.warning(f"[ORDERS] Resolving {order_id} through legacy email-encoded order id")

        if not self.database.is_configured:
            return None

        await self.database.ensure_connected()
        users = self.database.users
        if users is None:
            raise StoreUnavailableError("User store is not connected")
        try:
            # uid-keyed record first: that is the one the license evaluator reads
            document = await self._call(users.find_one({
                "email": email,
                "_id": {"$ne": email},
                "migrated_to": {"$exists": False}
            }))
            if document is None:
                document = await self._call(users.find_one({"_id": email}))
        except (asyncio.TimeoutError, PyMongoError) as e:
            raise handle_store_error(e, "legacy order owner lookup")

        if document is None:
            logger.warning(f"[ORDERS] No user found for legacy order {order_id}")
            return None

        user_id = document.get("migrated_to") or str(document["_id"])
        if user_id == email:
            # Not yet re-keyed; migrate_legacy_license_schema.py --rekey carries the activation over
            logger.warning(f"[ORDERS] Legacy order {order_id} resolved to email-keyed record {email}")

        return OrderOwner(user_id=user_id, email=email, source="legacy_order_id")

    async def mark_paid(self, order_id: str) -> bool:
        """Flag a pending order as paid. Returns True when an order was updated."""
        if not self.database.is_configured:
            return False

        orders = await self._orders()
        try:
            result = await self._call(orders.update_one(
                {"_id": order_id},
                {"$set": {"status": OrderStatus.PAID.value}, "$currentDate": {"paid_at": True}}
            ))
        except (asyncio.TimeoutError, PyMongoError) as e:
            raise handle_store_error(e, "order update")

        return result.matched_count > 0

    async def _orders(self):
        await self.database.ensure_connected()
        if self.database.orders is None:
            raise StoreUnavailableError("Order store is not connected")
        return self.database.orders

    async def _call(self, awaitable: Awaitable[Any]) -> Any:
        return await asyncio.wait_for(awaitable, timeout=self.store_timeout_seconds)
