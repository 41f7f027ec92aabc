# venue_backoffice/config.py
import os
from functools import lru_cache


class Config:
    def __init__(self):
        # Centralized configuration retrieval
        self._validate_critical_configs()

    def _validate_critical_configs(self):
        """Validate critical configuration parameters"""
        critical_configs = [
            'SUPABASE_URL',
            'SUPABASE_ANON_KEY',
            'SUPABASE_SERVICE_KEY',
        ]

        for config in critical_configs:
            if not os.getenv(config):
                raise ValueError(f"Critical configuration {config} is not set in environment")

    @property
    def SUPABASE_URL(self) -> str:
        """Supabase Project URL"""
        url = os.getenv("SUPABASE_URL")
        if not url:
            raise ValueError("SUPABASE_URL is not set in environment")
        return url.rstrip("/")

    @property
    def SUPABASE_ANON_KEY(self) -> str:
        """Supabase Anonymous Key, used for password sign-in and token refresh"""
        key = os.getenv("SUPABASE_ANON_KEY")
        if not key:
            raise ValueError("SUPABASE_ANON_KEY is not set in environment")
        return key

    @property
    def SUPABASE_SERVICE_KEY(self) -> str:
        """Supabase Service Role Key, used by the privileged workflows"""
        key = os.getenv("SUPABASE_SERVICE_KEY")
        if not key:
            raise ValueError("SUPABASE_SERVICE_KEY is not set in environment")
        return key

    @property
    def APP_URL(self) -> str:
        """Application URL, decides cookie security"""
        return os.getenv("APP_URL", "http://localhost:8000")

    @property
    def PRODUCT_IMAGES_BUCKET(self) -> str:
        return os.getenv("PRODUCT_IMAGES_BUCKET", "product-images")

    @property
    def PROVISIONING_STALE_AFTER(self) -> int:
        """Seconds before a pending provisioning record is considered abandoned"""
        raw = os.getenv("PROVISIONING_STALE_AFTER", "900")
        try:
            value = int(raw)
        except ValueError:
            raise ValueError(f"PROVISIONING_STALE_AFTER must be an integer, got {raw!r}")
        if value < 0:
            raise ValueError("PROVISIONING_STALE_AFTER must not be negative")
        return value

    @property
    def LOG_LEVEL(self) -> str:
        return os.getenv("LOG_LEVEL", "INFO").upper()

    def validate(self) -> bool:
        """
        Comprehensive configuration validation
        Useful for pre-deployment checks
        """
        try:
            _ = [
                self.SUPABASE_URL,
                self.SUPABASE_ANON_KEY,
                self.SUPABASE_SERVICE_KEY,
                self.PROVISIONING_STALE_AFTER,
            ]
            return True
        except ValueError:
            return False


@lru_cache(maxsize=1)
def load_config() -> Config:
    """
    Cached configuration loader
    Ensures only one instance of Config is created
    """
    config = Config()
    if not config.validate():
        raise RuntimeError("Configuration validation failed")
    return config
