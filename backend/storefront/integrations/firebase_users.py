# storefront/integrations/firebase_users.py
"""Firebase Auth user management (Admin SDK) used by the account and auth routes."""
import logging
from typing import Optional

from firebase_admin import auth as firebase_auth
from firebase_admin import exceptions as fb_exceptions

from storefront.config import get_firebase_app

logger = logging.getLogger("storefront.auth")


class EmailTaken(Exception):
    pass


class UserAdminError(Exception):
    pass


class FirebaseUserAdmin:
    def create_user(self, email: str, password: str, display_name: Optional[str] = None) -> str:
        """Create an e-mail/password user and return its uid."""
        try:
            user = firebase_auth.create_user(
                email=email, password=password, display_name=display_name, app=get_firebase_app(),
            )
        except firebase_auth.EmailAlreadyExistsError as exc:
            raise EmailTaken(email) from exc
        except (fb_exceptions.FirebaseError, ValueError) as exc:
            raise UserAdminError(str(exc)) from exc
        return user.uid

    def update_password(self, uid: str, password: str) -> None:
        try:
            firebase_auth.update_user(uid, password=password, app=get_firebase_app())
        except (fb_exceptions.FirebaseError, ValueError) as exc:
            raise UserAdminError(str(exc)) from exc

    def update_display_name(self, uid: str, display_name: str) -> None:
        try:
            firebase_auth.update_user(uid, display_name=display_name, app=get_firebase_app())
        except (fb_exceptions.FirebaseError, ValueError) as exc:
            raise UserAdminError(str(exc)) from exc

    def revoke_sessions(self, uid: str) -> None:
        """Revokes refresh tokens on every device; session cookies fail check_revoked after this."""
        try:
            firebase_auth.revoke_refresh_tokens(uid, app=get_firebase_app())
        except firebase_auth.UserNotFoundError:
            pass
        except fb_exceptions.FirebaseError as exc:
            logger.warning("revoke refresh tokens for %s failed: %s", uid, exc)
