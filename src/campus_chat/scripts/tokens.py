# src/campus_chat/scripts/tokens.py
"""Print a bearer token for a user id.

Handy for exercising the REST endpoints and the realtime socket by hand::

    python -m campus_chat.scripts.tokens 1
    websocat "ws://localhost:8000/api/v1/chat/ws?token=$(python -m campus_chat.scripts.tokens 1)"
"""
from __future__ import annotations

import argparse

from campus_chat.core.security import create_access_token


def main() -> None:
    parser = argparse.ArgumentParser(description="Issue a chat access token.")
    parser.add_argument("user_id", type=int, help="Identifier of the user to impersonate")
    args = parser.parse_args()
    print(create_access_token(args.user_id))


if __name__ == "__main__":
    main()
