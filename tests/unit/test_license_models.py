"""
Unit tests for user record normalisation and the legacy schema migration.
"""

from datetime import datetime, timezone

from app.models.license import (
    PendingOrder,
    SubscriptionStatus,
    UserRecord,
    legacy_migration_update,
)

STARTED = datetime(2024, 11, 1, tzinfo=timezone.utc)


class TestUserRecordFromDocument:

    def test_canonical_document(self):
        record = UserRecord.from_document({
            "_id": "uid-1",
            "user_id": "uid-1",
            "email": "a@example.com",
            "subscription_status": "active",
            "credits": 4,
            "trial_start_date": STARTED,
            "plan": "lab",
        })

        assert record.user_id == "uid-1"
        assert record.subscription_status == SubscriptionStatus.ACTIVE
        assert record.credits == 4
        assert record.plan == "lab"

    def test_is_paid_true_is_active(self):
        record = UserRecord.from_document({"_id": "a@example.com", "isPaid": True})

        assert record.subscription_status == SubscriptionStatus.ACTIVE
        assert record.user_id == "a@example.com"

    def test_is_paid_false_is_trial(self):
        record = UserRecord.from_document({"_id": "uid-1", "isPaid": False, "trialStartDate": STARTED})

        assert record.subscription_status == SubscriptionStatus.TRIAL
        assert record.trial_start_date == STARTED

    def test_camel_case_fields(self):
        record = UserRecord.from_document({
            "_id": "uid-1",
            "subscriptionStatus": "TRIAL",
            "trialStartDate": STARTED,
            "licenseKey": "LICENSE-1-ABCDEFGHI",
        })

        assert record.subscription_status == SubscriptionStatus.TRIAL
        assert record.license_key == "LICENSE-1-ABCDEFGHI"

    def test_negative_credits_clamped(self):
        record = UserRecord.from_document({"_id": "uid-1", "subscription_status": "none", "credits": -3})

        assert record.credits == 0

    def test_unknown_status_is_none(self):
        record = UserRecord.from_document({"_id": "uid-1", "subscription_status": "suspended"})

        assert record.subscription_status == SubscriptionStatus.NONE

    def test_to_document_keyed_by_user_id(self):
        record = UserRecord.new_trial("uid-1", "a@example.com", 2, STARTED)
        document = record.to_document()

        assert document["_id"] == "uid-1"
        assert document["subscription_status"] == "trial"
        assert document["credits"] == 2
        assert document["trial_start_date"] == STARTED


class TestLegacyMigrationUpdate:

    def test_canonical_document_needs_no_update(self):
        assert legacy_migration_update({
            "_id": "uid-1", "subscription_status": "trial", "credits": 0
        }) is None

    def test_is_paid_document_rewritten(self):
        update = legacy_migration_update({
            "_id": "a@example.com",
            "isPaid": True,
            "trialStartDate": STARTED,
        })

        assert update["$set"]["subscription_status"] == "active"
        assert update["$set"]["credits"] == 0
        assert update["$set"]["trial_start_date"] == STARTED
        assert update["$set"]["email"] == "a@example.com"
        assert update["$unset"] == {"trialStartDate": "", "isPaid": ""}

    def test_missing_credits_added(self):
        update = legacy_migration_update({"_id": "uid-1", "subscription_status": "trial"})

        assert update["$set"]["credits"] == 0
        assert "$unset" not in update
        assert "email" not in update["$set"]


class TestPendingOrder:

    def test_round_trip_through_document(self):
        order = PendingOrder(order_id="ORDER-1-AB", user_id="uid-1", amount=50000)
        document = order.to_document()

        assert document["_id"] == "ORDER-1-AB"
        assert document["status"] == "PENDING"
        assert PendingOrder.from_document(document).user_id == "uid-1"
