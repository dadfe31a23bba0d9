#!/usr/bin/env python3
"""
Print a Supabase access token for a test user, for calling the API by hand.

Acts like the frontend: uses the public anon key, never the service key or
JWT secret.

Usage:
    python scripts/get_token.py --email test@example.com --password secret

Environment variables (alternative to CLI args):
    SUPABASE_URL, SUPABASE_ANON_KEY, TEST_USER_EMAIL, TEST_USER_PASSWORD
"""

import argparse
import os
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from supabase import create_client  # noqa: E402

from app.core.config import settings  # noqa: E402


def main() -> int:
    parser = argparse.ArgumentParser(description="Sign in to Supabase and print the access token")
    parser.add_argument("--email", default=os.getenv("TEST_USER_EMAIL"))
    parser.add_argument("--password", default=os.getenv("TEST_USER_PASSWORD"))
    args = parser.parse_args()

    if not settings.supabase_url or not settings.supabase_anon_key:
        print("SUPABASE_URL and SUPABASE_ANON_KEY must be set", file=sys.stderr)
        return 1
    if not args.email or not args.password:
        print("Provide --email and --password (or TEST_USER_EMAIL / TEST_USER_PASSWORD)", file=sys.stderr)
        return 1

    client = create_client(settings.supabase_url, settings.supabase_anon_key)
    try:
        result = client.auth.sign_in_with_password({"email": args.email, "password": args.password})
    except Exception as e:
        print(f"Error logging in: {e}", file=sys.stderr)
        return 1

    if not result.session:
        print("Login failed, no session returned", file=sys.stderr)
        return 1

    print(result.session.access_token)
    return 0


if __name__ == "__main__":
    sys.exit(main())
