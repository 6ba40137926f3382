#!/usr/bin/env python3
"""
Migration Script: Legacy user records -> canonical license schema

PROBLEM:
- Earlier revisions stored users keyed by email with a boolean isPaid flag,
  trialStartDate and camelCase fields
- The license evaluator reads subscription_status / credits / trial_start_date
  keyed by Firebase uid

SOLUTION:
- Rewrite legacy fields in place ($set canonical fields, $unset legacy ones)
- Re-key email-keyed records to the Firebase uid (--rekey, needs Firebase
  credentials); the email-keyed record is kept and tagged migrated_to

SAFETY:
- Dry run by default; nothing is written without --confirm
- Records that are already canonical are skipped
- Existing uid-keyed records are never overwritten by a re-key

Usage:
    python scripts/migrations/migrate_legacy_license_schema.py --dry-run
    python scripts/migrations/migrate_legacy_license_schema.py --confirm
    python scripts/migrations/migrate_legacy_license_schema.py --confirm --rekey
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo.errors import DuplicateKeyError

sys.path.insert(0, str(Path(__file__).resolve().parents[2]))

from app.config import settings  # noqa: E402
from app.models.license import UserRecord, legacy_migration_update  # noqa: E402
from app.services.identity_service import IdentityService  # noqa: E402


async def migrate(
    mongodb_uri: str,
    database_name: str,
    dry_run: bool = True,
    rekey: bool = False
) -> bool:
    """
    Migrate legacy user documents.

    Args:
        mongodb_uri: MongoDB connection string
        database_name: Database holding the users collection
        dry_run: If True, only show what would be done without making changes
        rekey: Also copy email-keyed records to their Firebase uid

    Returns:
        True when the migration (or dry run) finished without errors
    """
    client = AsyncIOMotorClient(mongodb_uri, tz_aware=True)
    users = client[database_name].users

    identity: Optional[IdentityService] = None
    if rekey:
        identity = IdentityService(
            project_id=settings.firebase_project_id,
            credentials_path=settings.google_application_credentials
        )
        if not identity.initialize():
            print("❌ --rekey needs FIREBASE_PROJECT_ID and admin credentials (GOOGLE_APPLICATION_CREDENTIALS)")
            client.close()
            return False

    print(f"\n{'='*80}")
    print(f"Database: {database_name}")
    print(f"Mode: {'DRY RUN (no changes)' if dry_run else 'LIVE (will modify database)'}")
    print(f"Re-key email records: {'yes' if rekey else 'no'}")
    print(f"{'='*80}\n")

    scanned = rewritten = rekeyed = skipped = failed = 0

    try:
        async for document in users.find({"migrated_to": {"$exists": False}}):
            scanned += 1
            doc_id = document["_id"]

            update = legacy_migration_update(document)
            if update is None and not (rekey and "@" in str(doc_id)):
                skipped += 1
                continue

            if update is not None:
                print(f"  {doc_id}: {sorted(update['$set'])} unset={sorted(update.get('$unset', {}))}")
                if not dry_run:
                    await users.update_one({"_id": doc_id}, update)
                rewritten += 1

            if rekey and "@" in str(doc_id):
                uid = await identity.lookup_uid_by_email(str(doc_id))
                if uid is None:
                    print(f"  ⚠️  {doc_id}: no Firebase account for this email, left email-keyed")
                    failed += 1
                    continue

                record = UserRecord.from_document({**document, **(update or {}).get("$set", {})})
                record.user_id = uid
                record.email = record.email or str(doc_id)
                print(f"  {doc_id} -> {uid} ({record.subscription_status.value})")

                if not dry_run:
                    try:
                        await users.insert_one(record.to_document())
                    except DuplicateKeyError:
                        print(f"  ⚠️  {uid}: record already exists, keeping it")
                        failed += 1
                        continue
                    await users.update_one({"_id": doc_id}, {"$set": {"migrated_to": uid}})
                rekeyed += 1

    except Exception as e:
        print(f"\n❌ Migration failed: {e}")
        client.close()
        if identity is not None:
            identity.shutdown()
        return False

    print(f"\n📈 Statistics:")
    print(f"  Scanned:   {scanned}")
    print(f"  Rewritten: {rewritten}")
    print(f"  Re-keyed:  {rekeyed}")
    print(f"  Skipped:   {skipped} (already canonical)")
    print(f"  Problems:  {failed}")

    if dry_run:
        print(f"\n⚠️  DRY RUN MODE - No changes made")
        print(f"  To apply changes, run with --confirm flag")

    client.close()
    if identity is not None:
        identity.shutdown()
    return True


def main():
    parser = argparse.ArgumentParser(
        description="Migrate legacy isPaid/trialStartDate user records to the canonical license schema"
    )
    parser.add_argument(
        '--mongodb-uri',
        default=settings.mongodb_uri,
        help='MongoDB connection string (default: MONGODB_URI)'
    )
    parser.add_argument(
        '--database',
        default=settings.mongodb_database,
        help='Database to migrate (default: MONGODB_DATABASE)'
    )
    parser.add_argument(
        '--rekey',
        action='store_true',
        help='Copy email-keyed records to their Firebase uid'
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        '--dry-run',
        action='store_true',
        help='Show what would change without writing (default)'
    )
    mode.add_argument(
        '--confirm',
        action='store_true',
        help='Apply the changes'
    )

    args = parser.parse_args()

    if not args.mongodb_uri:
        parser.error("MONGODB_URI is not set; pass --mongodb-uri")

    dry_run = not args.confirm

    success = asyncio.run(migrate(args.mongodb_uri, args.database, dry_run, args.rekey))
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
