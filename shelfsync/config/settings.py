"""
Configuration management for Shelf Sync

Loads environment variables and provides application settings.
"""

from pydantic_settings import BaseSettings
from typing import Optional, Dict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    app_name: str = "Shelf Sync"
    log_level: str = "INFO"

    # Firebase / Firestore
    firebase_project_id: Optional[str] = None
    google_application_credentials: Optional[str] = None

    # Firebase Service Account (optional - for direct credential usage)
    firebase_client_email: Optional[str] = None
    firebase_private_key: Optional[str] = None
    firebase_private_key_id: Optional[str] = None

    # firebase_admin is synchronous; calls run in a thread pool of this size
    firestore_max_workers: int = 10

    # =========================================================================
    # Document versions
    # Literal tags written next to the consolidated state and into backups
    # =========================================================================
    app_state_version: str = "1.0"
    backup_version: str = "1.0"
    backup_page_size: int = 10

    # =========================================================================
    # Session behaviour
    # =========================================================================
    # Pre-cloud JSON state file, migrated once on first sign-in
    legacy_store_path: str = "data/bibliotecaLibrosState_v1_0.json"

    # Debounce window for automatic saves after a state change
    autosave_delay_seconds: float = 2.0

    # Debug Configuration
    debug_mode: bool = False  # Detailed debug logger output
    debug_storage: bool = False  # Log every Firestore read/write as JSON lines
    debug_log_dir: str = "logs/debug"

    class Config:
        env_file = ".env"
        case_sensitive = False

    def get_firebase_credentials_dict(self) -> Optional[Dict]:
        """
        Get Firebase credentials as a dict from environment variables.

        Returns None if credentials are not available.
        """
        if self.firebase_client_email and self.firebase_private_key:
            return {
                "type": "service_account",
                "project_id": self.firebase_project_id,
                "private_key_id": self.firebase_private_key_id or "",
                "private_key": self.firebase_private_key.replace("\\n", "\n"),  # Handle escaped newlines
                "client_email": self.firebase_client_email,
                "client_id": "",
                "auth_uri": "https://accounts.google.com/o/oauth2/auth",
                "token_uri": "https://oauth2.googleapis.com/token",
                "auth_provider_x509_cert_url": "https://www.googleapis.com/oauth2/v1/certs",
            }
        return None


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache ensures we only load settings once.
    """
    return Settings()
