#!/usr/bin/env python3
"""
Bootstrap an administrator account.

Registration through the API always creates ``user`` accounts, so the first
admin has to be created out of band. Uses the synchronous MongoDB client.

    python scripts/create_admin.py --name "Facilities Desk" --email admin@example.edu
"""

import argparse
import getpass
import sys
from datetime import datetime
from pathlib import Path

# Add parent directory to path so we can import from the main application
sys.path.append(str(Path(__file__).parent.parent))

from pymongo.errors import DuplicateKeyError

from config import settings
from database.auth import get_password_hash
from database.db import get_sync_client
from database.operations import normalize_email
from logging_config import logger
from models.user import UserRole


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Create or promote an admin account")
    parser.add_argument("--name", required=True, help="Display name")
    parser.add_argument("--email", required=True, help="Login email")
    parser.add_argument("--password", help="Password (prompted when omitted)")
    parser.add_argument(
        "--promote",
        action="store_true",
        help="Promote an existing account with this email instead of failing",
    )
    return parser.parse_args(argv)


def create_admin(db, name: str, email: str, password: str, promote: bool = False) -> str:
    users = db.users
    users.create_index("email", unique=True)
    email = normalize_email(email)

    existing = users.find_one({"email": email})
    if existing:
        if not promote:
            raise SystemExit(f"An account with email {email} already exists (use --promote)")
        users.update_one({"_id": existing["_id"]}, {"$set": {"role": UserRole.ADMIN.value}})
        logger.info(f"Promoted {email} to admin")
        return str(existing["_id"])

    if len(password) < 6:
        raise SystemExit("Password must be at least 6 characters")

    try:
        result = users.insert_one({
            "name": name,
            "email": email,
            "hashed_password": get_password_hash(password),
            "role": UserRole.ADMIN.value,
            "created_at": datetime.utcnow(),
        })
    except DuplicateKeyError:
        raise SystemExit(f"An account with email {email} already exists")

    logger.info(f"Created admin {email} with ID {result.inserted_id}")
    return str(result.inserted_id)


def main(argv=None):
    args = parse_args(argv)
    password = args.password
    if password is None and not args.promote:
        password = getpass.getpass("Password: ")
    with get_sync_client() as sync_client:
        db = sync_client[settings.database_name]
        user_id = create_admin(db, args.name, args.email, password or "", promote=args.promote)
    print(user_id)


if __name__ == "__main__":
    main()
