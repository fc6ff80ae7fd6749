#!/usr/bin/env python3
"""
Promote an existing profile to SUPERADMIN.

The account must already exist in Supabase Auth (sign up first). Reads
SUPERADMIN_EMAIL from the .env file.
Run from project root: python scripts/seed_superadmin.py
"""

import sys
import os

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, project_root)

# Load .env file
from dotenv import load_dotenv
load_dotenv(os.path.join(project_root, ".env"))

from cueboard.auth.permissions import Role
from cueboard.db import supabase


def main():
    email = os.getenv("SUPERADMIN_EMAIL")
    if not email:
        print("Error: SUPERADMIN_EMAIL must be set in .env")
        sys.exit(1)

    existing = supabase.table("profiles").select("id, user_id, role").eq("email", email).execute()
    if not existing.data:
        print(f"Error: no profile found for '{email}'. Sign up first.")
        sys.exit(1)

    profile = existing.data[0]
    if profile["role"] == Role.SUPERADMIN.value:
        print(f"Profile '{email}' is already a superadmin.")
        sys.exit(0)

    result = supabase.table("profiles").update({
        "role": Role.SUPERADMIN.value,
        "active": True,
    }).eq("id", profile["id"]).execute()

    if result.data:
        print("Promoted to superadmin:")
        print(f"  Profile ID: {profile['id']}")
        print(f"  User ID: {profile['user_id']}")
        print(f"  Email: {email}")
    else:
        print("Error: Failed to update profile")
        sys.exit(1)


if __name__ == "__main__":
    main()
