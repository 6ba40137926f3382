"""
License Evaluator - decides whether a user may perform a metered operation.

Policy (evaluated in order, first match wins):
1. Enforcement disabled → allowed, the store is never touched
2. Unknown user → provision the default trial record, allowed
3. Active subscription → allowed, no mutation
4. Trial window → allowed while ceil(elapsed days) <= trial_days, no mutation
5. Credit balance → one atomic conditional decrement, allowed iff it matched
6. Otherwise → denied, no write

Failure Handling:
- Store not configured, driver error or timeout → denied (STORE_UNAVAILABLE)
- Errors are logged and never raised into the caller

Usage:
    evaluator = LicenseEvaluator(database, trial_days=5)
    if not await evaluator.evaluate(uid, email):
        raise LicenseDeniedError()
"""

import asyncio
import logging
import math
from datetime import datetime, timezone
from typing import Callable, Optional, Awaitable, Any

from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

from app.database.mongodb import MongoDB
from app.exceptions import StoreUnavailableError, handle_store_error
from app.models.license import (
    LicenseDecision,
    LicenseReason,
    SubscriptionStatus,
    UserRecord,
)

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def elapsed_trial_days(trial_start_date: datetime, now: datetime) -> int:
    """Whole days since the trial started, rounded up."""
    elapsed = (_as_utc(now) - _as_utc(trial_start_date)).total_seconds()
    if elapsed <= 0:
        return 0
    return math.ceil(elapsed / SECONDS_PER_DAY)


class LicenseEvaluator:
    """
    Trial / credit / subscription gate over the users collection.

    Args:
        database: MongoDB handle owned by the service container
        enforcement_enabled: When False every request is allowed
        trial_days: Length of the free trial window
        starting_credits: Credits granted to a newly provisioned user
        store_timeout_seconds: Upper bound for each store call
        clock: Callable returning the current time (injectable for tests)
    """

    def __init__(
        self,
        database: MongoDB,
        enforcement_enabled: bool = True,
        trial_days: int = 5,
        starting_credits: int = 0,
        store_timeout_seconds: float = 5.0,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.database = database
        self.enforcement_enabled = enforcement_enabled
        self.trial_days = trial_days
        self.starting_credits = starting_credits
        self.store_timeout_seconds = store_timeout_seconds
        self.clock = clock or _utcnow

    async def evaluate(self, user_id: str, email: Optional[str] = None) -> bool:
        """Return True when the user may proceed."""
        decision = await self.decide(user_id, email)
        return decision.allowed

    async def decide(self, user_id: str, email: Optional[str] = None) -> LicenseDecision:
        """
        Evaluate the license policy for a user.

        Args:
            user_id: Identity provider uid
            email: Email from the verified identity claims

        Returns:
            LicenseDecision with the allow/deny outcome and its reason
        """
        if not self.enforcement_enabled:
            logger.debug(f"[LICENSE] Enforcement disabled - allowing {user_id}")
            return LicenseDecision(allowed=True, reason=LicenseReason.ENFORCEMENT_DISABLED)

        try:
            decision = await self._decide(user_id, email)
        except StoreUnavailableError as e:
            logger.error(f"[LICENSE] Denying {user_id}: {e.message}")
            return LicenseDecision(allowed=False, reason=LicenseReason.STORE_UNAVAILABLE)
        except (asyncio.TimeoutError, PyMongoError) as e:
            error = handle_store_error(e, "license evaluation")
            logger.error(f"[LICENSE] Denying {user_id}: {error.message}")
            return LicenseDecision(allowed=False, reason=LicenseReason.STORE_UNAVAILABLE)
        except Exception as e:
            logger.error(f"[LICENSE] Unexpected error evaluating {user_id}: {e}", exc_info=True)
            return LicenseDecision(allowed=False, reason=LicenseReason.STORE_UNAVAILABLE)

        logger.info(f"[LICENSE] {user_id}: allowed={decision.allowed} reason={decision.reason.value}")
        return decision

    async def describe(self, user_id: str) -> Optional[UserRecord]:
        """
        Read the user's license record without provisioning or consuming.

        Raises:
            StoreUnavailableError: If the store cannot be read
        """
        if not self.enforcement_enabled and not self.database.is_connected:
            return None

        users = await self._users()
        try:
            document = await self._call(users.find_one({"_id": user_id}))
        except (asyncio.TimeoutError, PyMongoError) as e:
            raise handle_store_error(e, "license lookup")

        if document is None:
            return None
        return UserRecord.from_document(document)

    def trial_days_remaining(self, record: UserRecord) -> Optional[int]:
        """Days left in the trial window, or None when not on a trial."""
        if record.subscription_status != SubscriptionStatus.TRIAL or record.trial_start_date is None:
            return None
        elapsed = elapsed_trial_days(record.trial_start_date, self.clock())
        return max(self.trial_days - elapsed, 0)

    async def _decide(self, user_id: str, email: Optional[str]) -> LicenseDecision:
        users = await self._users()

        document = await self._call(users.find_one({"_id": user_id}))
        if document is None:
            if await self._provision(user_id, email):
                logger.info(f"[LICENSE] Provisioned trial record for {user_id}")
                return LicenseDecision(
                    allowed=True,
                    reason=LicenseReason.NEW_USER,
                    credits_remaining=self.starting_credits
                )
            # Lost a creation race; continue with the stored record
            document = await self._call(users.find_one({"_id": user_id}))
            if document is None:
                raise StoreUnavailableError(f"User record for {user_id} vanished after upsert")

        record = UserRecord.from_document(document)

        if record.subscription_status == SubscriptionStatus.ACTIVE:
            return LicenseDecision(
                allowed=True,
                reason=LicenseReason.ACTIVE_SUBSCRIPTION,
                credits_remaining=record.credits
            )

        if self._within_trial(record):
            return LicenseDecision(
                allowed=True,
                reason=LicenseReason.TRIAL_WINDOW,
                credits_remaining=record.credits
            )

        updated = await self._call(users.find_one_and_update(
            {"_id": user_id, "credits": {"$gt": 0}},
            {"$inc": {"credits": -1}, "$currentDate": {"updated_at": True}},
            return_document=ReturnDocument.AFTER
        ))
        if updated is not None:
            return LicenseDecision(
                allowed=True,
                reason=LicenseReason.CREDIT_CONSUMED,
                credits_remaining=updated.get("credits", 0)
            )

        return LicenseDecision(allowed=False, reason=LicenseReason.NO_CREDITS, credits_remaining=0)

    def _within_trial(self, record: UserRecord) -> bool:
        if record.subscription_status != SubscriptionStatus.TRIAL or record.trial_start_date is None:
            return False
        return elapsed_trial_days(record.trial_start_date, self.clock()) <= self.trial_days

    async def _provision(self, user_id: str, email: Optional[str]) -> bool:
        """Insert the default record if absent. Returns True when this call created it."""
        record = UserRecord.new_trial(user_id, email, self.starting_credits, self.clock())
        fields = record.to_document()
        fields.pop("_id")

        result = await self._call((await self._users()).update_one(
            {"_id": user_id},
            {"$setOnInsert": fields},
            upsert=True
        ))
        return result.upserted_id is not None

    async def _users(self):
        await self.database.ensure_connected()
        if not self.database.is_connected or self.database.users is None:
            raise StoreUnavailableError("User store is not connected")
        return self.database.users

    async def _call(self, awaitable: Awaitable[Any]) -> Any:
        return await asyncio.wait_for(awaitable, timeout=self.store_timeout_seconds)
