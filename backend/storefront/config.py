"""
storefront/config.py - Application configuration and Firebase initialization.

This module defines a Pydantic BaseSettings class to load configuration from environment,
and initializes the Firebase Admin SDK (Firestore DB) on first use.
All other modules import `settings` from here and call `get_db()` when they need Firestore.
"""
from typing import Optional

import firebase_admin
from dotenv import load_dotenv
from firebase_admin import credentials, firestore
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    firebase_cred_file: str = "firebase_service_account.json"
    firebase_project_id: str
    firebase_web_api_key: str

    # Firebase credentials from environment variables (for Cloud Run)
    firebase_private_key_id: Optional[str] = None
    firebase_private_key: Optional[str] = None
    firebase_client_email: Optional[str] = None
    firebase_client_id: Optional[str] = None
    firebase_auth_uri: Optional[str] = None
    firebase_token_uri: Optional[str] = None
    firebase_auth_provider_x509_cert_url: Optional[str] = None
    firebase_client_x509_cert_url: Optional[str] = None

    # Collection names are prefixed so staging and prod can share a project
    firebase_collection_prefix: str = ""

    debug: bool = False
    log_level: str = "INFO"
    allowed_origins: str = "*"  # Comma-separated list or '*' for all
    site_url: str = "http://localhost:8000"

    # Session cookies
    session_cookie_name: str = "session"
    refresh_cookie_name: str = "session_refresh"
    session_max_age_seconds: int = 60 * 60 * 24 * 5   # Firebase allows 5 min .. 14 days
    refresh_max_age_seconds: int = 60 * 60 * 24 * 30
    session_refresh_window_seconds: int = 60 * 60
    cookie_secure: bool = True
    role_cache_ttl_seconds: int = 30

    # Gate roots
    admin_root: str = "/admin"
    account_root: str = "/account"
    account_register_path: str = "/account/register"
    login_path: str = "/login"
    return_url_param: str = "return_url"

    # Cart
    cart_add_max_attempts: int = 3
    cart_sweep_minutes: int = 0  # 0 = scheduled reconciliation disabled

    def model_post_init(self, __context):
        """Validate Firebase Web API Key format"""
        if not self.firebase_web_api_key or not self.firebase_web_api_key.startswith("AIza"):
            raise ValueError("FIREBASE_WEB_API_KEY must be a valid Firebase Web API Key starting with 'AIza'")

    def collection(self, name: str) -> str:
        return f"{self.firebase_collection_prefix}{name}" if self.firebase_collection_prefix else name

    @property
    def origins(self) -> list[str]:
        if not self.allowed_origins:
            return ["*"]
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]


# .env also feeds os.environ so google-auth sees GOOGLE_APPLICATION_CREDENTIALS etc.
load_dotenv()
settings = Settings()

_db = None


def _credential() -> credentials.Base:
    # Check if we have environment variables for Firebase credentials (Cloud Run)
    if all([
        settings.firebase_private_key_id,
        settings.firebase_private_key,
        settings.firebase_client_email,
        settings.firebase_client_id,
        settings.firebase_auth_uri,
        settings.firebase_token_uri,
        settings.firebase_auth_provider_x509_cert_url,
        settings.firebase_client_x509_cert_url,
    ]):
        return credentials.Certificate({
            "type": "service_account",
            "project_id": settings.firebase_project_id,
            "private_key_id": settings.firebase_private_key_id,
            "private_key": settings.firebase_private_key.replace("\\n", "\n"),
            "client_email": settings.firebase_client_email,
            "client_id": settings.firebase_client_id,
            "auth_uri": settings.firebase_auth_uri,
            "token_uri": settings.firebase_token_uri,
            "auth_provider_x509_cert_url": settings.firebase_auth_provider_x509_cert_url,
            "client_x509_cert_url": settings.firebase_client_x509_cert_url,
        })
    # Use service account file (local development)
    return credentials.Certificate(settings.firebase_cred_file)


def get_firebase_app() -> firebase_admin.App:
    """Return the default Firebase app, initializing it on first call."""
    try:
        return firebase_admin.get_app()
    except ValueError:
        return firebase_admin.initialize_app(_credential(), {"projectId": settings.firebase_project_id})


def get_db():
    """Firestore client bound to the default Firebase app."""
    global _db
    if _db is None:
        _db = firestore.client(get_firebase_app())
    return _db
