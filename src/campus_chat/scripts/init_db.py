"""Create the chat tables and optionally load the demo users."""
from __future__ import annotations

import argparse

from campus_chat.db.session import SessionLocal, create_tables
from campus_chat.repositories.memory import DEMO_USERS
from campus_chat.repositories.user_repo import SqlUserDirectory


def init_db(*, seed_users: bool = False) -> None:
    """Create all tables; with ``seed_users`` also upsert the demo accounts."""
    create_tables()
    if seed_users:
        directory = SqlUserDirectory(SessionLocal)
        for profile in DEMO_USERS:
            directory.add(profile)


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--seed-users",
        action="store_true",
        help="Insert the demo users (ids 1-3) used by the fixture store.",
    )
    args = parser.parse_args()
    init_db(seed_users=args.seed_users)
    print("Database initialized.")


if __name__ == "__main__":
    main()
