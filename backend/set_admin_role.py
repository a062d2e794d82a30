#!/usr/bin/env python3
"""
Set the `role` field of a user's profile (`users/{uid}`).

The session gate reads the role from the profile, so the change applies on the
user's next request once the role cache entry expires (no re-login needed).

Usage: python set_admin_role.py <user_email> [admin|customer]
"""
import sys

from firebase_admin import auth

from storefront.config import get_firebase_app
from storefront.core.errors import StoreError
from storefront.repositories.profiles import ProfileRepository
from storefront.schemas.principal import ROLES


def set_admin_role(user_email: str, role: str = "admin") -> bool:
    try:
        user = auth.get_user_by_email(user_email, app=get_firebase_app())
    except auth.UserNotFoundError:
        print(f"User not found: {user_email}")
        return False
    print(f"User found: {user.uid} - {user.email}")

    profiles = ProfileRepository()
    try:
        if not profiles.set_role(user.uid, role):
            # no profile yet (account created outside the app)
            profiles.upsert(user.uid, {"email": user.email, "display_name": user.display_name, "role": role})
        print(f"Role of {user_email}: {profiles.get_role(user.uid)}")
    except StoreError as exc:
        print(f"Error setting role: {exc}")
        return False
    return True


if __name__ == "__main__":
    if len(sys.argv) not in (2, 3) or (len(sys.argv) == 3 and sys.argv[2] not in ROLES):
        print("Usage: python set_admin_role.py <user_email> [admin|customer]")
        sys.exit(1)

    role = sys.argv[2] if len(sys.argv) == 3 else "admin"
    if not set_admin_role(sys.argv[1], role):
        print("Failed to set role")
        sys.exit(1)
