#!/usr/bin/env python3
"""
Issue a long-lived access token for an existing profile.

Handy for scripting against the API or opening the SSE streams by
hand.  The token is signed with the ``SECRET_KEY`` of the current
environment, so run it with the same settings as the server.

Usage:
    python create_token.py --email asha@iitb.ac.in --days 365
"""

import argparse
import sys

from campus_market_api.app.core.db import get_connection
from campus_market_api.app.core.security import create_access_token


def main() -> None:
    ap = argparse.ArgumentParser(description="Create an access token for a profile.")
    ap.add_argument("--email", required=True, help="Email of the profile")
    ap.add_argument("--days", type=int, default=365, help="Token lifetime in days")
    args = ap.parse_args()

    conn = get_connection()
    try:
        row = conn.execute(
            "SELECT id FROM profiles WHERE email = ?", (args.email.strip().lower(),)
        ).fetchone()
    finally:
        conn.close()
    if not row:
        print(f"[!] No profile found with email: {args.email}", file=sys.stderr)
        sys.exit(2)

    token = create_access_token({"sub": row["id"]}, expires_delta=args.days * 24 * 60 * 60)
    print(token)


if __name__ == "__main__":
    main()
