#!/usr/bin/env python3
"""
Reset a profile's password in the Campus Market SQLite database.

This script DOES NOT read or reveal any existing passwords. It simply sets a new password
hash (PBKDF2-HMAC-SHA256, format "salthex$hashhex") for the specified email.

Usage:
    python reset_password.py --db ./campus_market_api/campus_market.db --email asha@iitb.ac.in --password "NewStrongPass!234"

If --password is omitted, you will be prompted to enter it securely.
"""

import argparse
import getpass
import os
import sqlite3
import sys
from datetime import datetime, timezone

from campus_market_api.app.core.security import hash_password
from campus_market_api.app.services.profile_service import MIN_PASSWORD_LENGTH


def main():
    ap = argparse.ArgumentParser(description="Reset a Campus Market password (SQLite).")
    ap.add_argument("--db", required=True, help="Path to SQLite DB file (e.g., ./campus_market_api/campus_market.db)")
    ap.add_argument("--email", required=True, help="Profile email to update")
    ap.add_argument("--password", help="New password. If omitted, you'll be prompted securely.")
    args = ap.parse_args()

    if not os.path.exists(args.db):
        print(f"[!] DB not found: {args.db}", file=sys.stderr)
        sys.exit(1)

    new_password = args.password or getpass.getpass("Enter NEW password: ")
    if len(new_password) < MIN_PASSWORD_LENGTH:
        print(f"[!] Password must be at least {MIN_PASSWORD_LENGTH} characters.", file=sys.stderr)
        sys.exit(1)

    email = args.email.strip().lower()
    conn = sqlite3.connect(args.db)
    try:
        cur = conn.cursor()
        cur.execute("SELECT id FROM profiles WHERE email = ?", (email,))
        if not cur.fetchone():
            print(f"[!] No profile found with email: {email}", file=sys.stderr)
            sys.exit(2)

        cur.execute(
            "UPDATE profiles SET password = ?, updated_at = ? WHERE email = ?",
            (hash_password(new_password), datetime.now(timezone.utc).isoformat(), email),
        )
        conn.commit()
        print(f"[+] Password updated for: {email}")
    finally:
        conn.close()


if __name__ == "__main__":
    main()
