"""
License, transaction and order models.

Canonical user schema: subscription_status + credits + trial_start_date.
Documents written by earlier revisions (boolean isPaid, camelCase fields) are
normalised on read by UserRecord.from_document and rewritten in bulk by
scripts/migrations/migrate_legacy_license_schema.py.
"""

from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any, List
from pydantic import BaseModel, Field


# Placeholder stored on transactions whose owner could not be resolved
UNKNOWN_USER = "unknown"

# Field names used by earlier revisions, mapped to their canonical names
LEGACY_FIELD_MAP = {
    "subscriptionStatus": "subscription_status",
    "trialStartDate": "trial_start_date",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "licenseKey": "license_key",
}


class SubscriptionStatus(str, Enum):
    """Subscription state of a user record."""
    TRIAL = "trial"
    ACTIVE = "active"
    NONE = "none"


class LicenseReason(str, Enum):
    """Why the license evaluator allowed or denied a request."""
    ENFORCEMENT_DISABLED = "enforcement_disabled"
    NEW_USER = "new_user"
    ACTIVE_SUBSCRIPTION = "active_subscription"
    TRIAL_WINDOW = "trial_window"
    CREDIT_CONSUMED = "credit_consumed"
    NO_CREDITS = "no_credits"
    STORE_UNAVAILABLE = "store_unavailable"


class LicenseDecision(BaseModel):
    """Outcome of a single license evaluation."""
    allowed: bool
    reason: LicenseReason
    credits_remaining: Optional[int] = None


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"


def _coerce_status(value: Any, is_paid: Any) -> SubscriptionStatus:
    if value is not None:
        try:
            return SubscriptionStatus(str(value).lower())
        except ValueError:
            return SubscriptionStatus.NONE
    if is_paid is True:
        return SubscriptionStatus.ACTIVE
    if is_paid is False:
        return SubscriptionStatus.TRIAL
    return SubscriptionStatus.NONE


class UserRecord(BaseModel):
    """License record for a single user (users collection, _id = user id)."""
    user_id: str = Field(..., description="Identity provider uid (document _id)")
    email: Optional[str] = Field(None, description="Email from the identity claims")
    subscription_status: SubscriptionStatus = Field(SubscriptionStatus.TRIAL, description="trial | active | none")
    credits: int = Field(0, ge=0, description="Remaining metered operations")
    trial_start_date: Optional[datetime] = Field(None, description="Set once at creation")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    plan: Optional[str] = Field(None, description="Plan granted on activation")
    license_key: Optional[str] = Field(None, description="License key granted on activation")

    @classmethod
    def new_trial(cls, user_id: str, email: Optional[str], starting_credits: int, now: datetime) -> "UserRecord":
        """Default record provisioned on a user's first license check."""
        return cls(
            user_id=user_id,
            email=email,
            subscription_status=SubscriptionStatus.TRIAL,
            credits=starting_credits,
            trial_start_date=now,
            created_at=now,
            updated_at=now
        )

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "UserRecord":
        """
        Build a record from a stored document, accepting legacy shapes.

        Args:
            document: Raw users collection document

        Returns:
            UserRecord in the canonical schema
        """
        def pick(name: str):
            if name in document:
                return document[name]
            for legacy, canonical in LEGACY_FIELD_MAP.items():
                if canonical == name and legacy in document:
                    return document[legacy]
            return None

        credits = pick("credits")
        return cls(
            user_id=str(document.get("user_id") or document["_id"]),
            email=document.get("email"),
            subscription_status=_coerce_status(pick("subscription_status"), document.get("isPaid")),
            credits=max(int(credits or 0), 0),
            trial_start_date=pick("trial_start_date"),
            created_at=pick("created_at"),
            updated_at=pick("updated_at"),
            plan=document.get("plan"),
            license_key=pick("license_key")
        )

    def to_document(self) -> Dict[str, Any]:
        """Serialize for insertion, keyed by user id."""
        document = self.model_dump(mode="python")
        document["_id"] = self.user_id
        document["subscription_status"] = self.subscription_status.value
        return document


def legacy_migration_update(document: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """
    Build the update that rewrites a legacy document into the canonical schema.

    Args:
        document: Raw users collection document

    Returns:
        Update document ($set / $unset) or None when already canonical
    """
    legacy_keys: List[str] = [key for key in LEGACY_FIELD_MAP if key in document]
    if "isPaid" in document:
        legacy_keys.append("isPaid")
    missing_canonical = "subscription_status" not in document or "credits" not in document

    if not legacy_keys and not missing_canonical:
        return None

    record = UserRecord.from_document(document)
    set_fields: Dict[str, Any] = {
        "user_id": record.user_id,
        "subscription_status": record.subscription_status.value,
        "credits": record.credits,
    }
    for canonical in ("trial_start_date", "created_at", "updated_at", "license_key"):
        value = getattr(record, canonical)
        if value is not None:
            set_fields[canonical] = value
    if record.email is None and "@" in str(document["_id"]):
        set_fields["email"] = str(document["_id"])

    update: Dict[str, Any] = {"$set": set_fields}
    if legacy_keys:
        update["$unset"] = {key: "" for key in legacy_keys}
    return update


class TransactionRecord(BaseModel):
    """Confirmed payment (transactions collection, _id = order id)."""
    order_id: str
    payment_key: str
    amount: int
    status: str = "DONE"
    license_key: str
    plan: str
    user_id: str = UNKNOWN_USER
    email: Optional[str] = None

    def to_document(self) -> Dict[str, Any]:
        document = self.model_dump(mode="python")
        document["_id"] = self.order_id
        return document


class PendingOrder(BaseModel):
    """Order created before payment (orders collection, _id = order id)."""
    order_id: str
    user_id: str
    email: Optional[str] = None
    amount: int = Field(..., gt=0)
    order_name: Optional[str] = None
    status: OrderStatus = OrderStatus.PENDING
    created_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "PendingOrder":
        return cls(**{**document, "order_id": document.get("order_id") or document["_id"]})

    def to_document(self) -> Dict[str, Any]:
        document = self.model_dump(mode="python")
        document["_id"] = self.order_id
        document["status"] = self.status.value
        return document


class OrderOwner(BaseModel):
    """User resolved from an order id."""
    user_id: str
    email: Optional[str] = None
    source: str = Field(..., description="pending_order | legacy_order_id")


class ActivationResult(BaseModel):
    """Outcome of a subscription activation."""
    license_key: str
    plan: str
    user_id: Optional[str] = None
    activated: bool = False
