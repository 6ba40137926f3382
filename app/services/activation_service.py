"""
Activation Handler - turns a verified payment into an active subscription.

Flow:
1. Generate a license key and derive the plan from the amount
2. Resolve the order owner (pending order, then legacy order id)
3. Write the transaction record keyed by order id (overwrites on re-run)
4. Merge status/plan/license key into the owner's user record
5. Mark the pending order paid

Degraded modes:
- Owner unresolvable → transaction stored with user_id "unknown", no user write
- No store configured → writes skipped with a warning, key still returned
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional, Awaitable, Any

from pymongo.errors import PyMongoError

from app.database.mongodb import MongoDB
from app.exceptions import StoreUnavailableError, handle_store_error
from app.models.license import (
    ActivationResult,
    OrderOwner,
    SubscriptionStatus,
    TransactionRecord,
    UNKNOWN_USER,
)
from app.services.order_service import OrderService
from app.utils.license_key_generator import generate_license_key

logger = logging.getLogger(__name__)


class ActivationService:
    """Writes transactions and activates subscriptions after payment confirmation."""

    def __init__(
        self,
        database: MongoDB,
        order_service: OrderService,
        lab_plan_min_amount: int = 700000,
        lab_plan_name: str = "lab",
        personal_plan_name: str = "personal",
        store_timeout_seconds: float = 5.0
    ):
        self.database = database
        self.order_service = order_service
        self.lab_plan_min_amount = lab_plan_min_amount
        self.lab_plan_name = lab_plan_name
        self.personal_plan_name = personal_plan_name
        self.store_timeout_seconds = store_timeout_seconds

    def plan_for_amount(self, amount: int) -> str:
        """Plan granted for a paid amount."""
        if amount >= self.lab_plan_min_amount:
            return self.lab_plan_name
        return self.personal_plan_name

    async def activate(
        self,
        order_id: str,
        amount: int,
        payment_key: str,
        user_id: Optional[str] = None,
        email: Optional[str] = None
    ) -> ActivationResult:
        """
        Record a confirmed payment and activate the buyer's subscription.

        Args:
            order_id: Order id confirmed by the gateway
            amount: Confirmed amount in KRW
            payment_key: Gateway payment key
            user_id: Owner, when already known (skips order resolution)
            email: Owner email, when already known

        Returns:
            ActivationResult with the license key, plan and resolved owner

        Raises:
            StoreUnavailableError: If the store is configured but a write fails
        """
        license_key = generate_license_key()
        plan = self.plan_for_amount(amount)

        if not self.database.is_configured:
            logger.warning(f"[ACTIVATION] No store configured - skipping writes for order {order_id}")
            return ActivationResult(license_key=license_key, plan=plan, user_id=user_id, activated=False)

        owner: Optional[OrderOwner]
        if user_id:
            owner = OrderOwner(user_id=user_id, email=email, source="pending_order")
        else:
            owner = await self.order_service.resolve_owner(order_id)

        if owner is None:
            logger.warning(
                f"[ACTIVATION] Could not resolve owner of order {order_id} - "
                f"recording transaction without activating a user"
            )

        transaction = TransactionRecord(
            order_id=order_id,
            payment_key=payment_key,
            amount=amount,
            license_key=license_key,
            plan=plan,
            user_id=owner.user_id if owner else UNKNOWN_USER,
            email=owner.email if owner else None
        )

        await self.database.ensure_connected()
        transactions = self.database.transactions
        users = self.database.users
        if transactions is None or users is None:
            raise StoreUnavailableError("Store is not connected")

        try:
            fields = transaction.to_document()
            fields.pop("_id")
            await self._call(transactions.update_one(
                {"_id": order_id},
                {"$set": fields, "$currentDate": {"created_at": True}},
                upsert=True
            ))
            logger.info(f"[ACTIVATION] Transaction recorded for order {order_id} ({amount}, plan={plan})")

            if owner is not None:
                user_fields = {
                    "subscription_status": SubscriptionStatus.ACTIVE.value,
                    "plan": plan,
                    "license_key": license_key,
                    "user_id": owner.user_id,
                }
                if owner.email:
                    user_fields["email"] = owner.email
                await self._call(users.update_one(
                    {"_id": owner.user_id},
                    {
                        "$set": user_fields,
                        "$setOnInsert": {"credits": 0, "created_at": datetime.now(timezone.utc)},
                        "$currentDate": {"updated_at": True}
                    },
                    upsert=True
                ))
                logger.info(f"[ACTIVATION] Subscription activated for {owner.user_id} (plan={plan})")
        except (asyncio.TimeoutError, PyMongoError) as e:
            raise handle_store_error(e, "subscription activation")

        try:
            await self.order_service.mark_paid(order_id)
        except StoreUnavailableError as e:
            logger.error(f"[ACTIVATION] Order {order_id} activated but could not be marked paid: {e.message}")

        return ActivationResult(
            license_key=license_key,
            plan=plan,
            user_id=owner.user_id if owner else None,
            activated=owner is not None
        )

    async def _call(self, awaitable: Awaitable[Any]) -> Any:
        return await asyncio.wait_for(awaitable, timeout=self.store_timeout_seconds)
