import logging

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional


class Settings(BaseSettings):
    # Environment
    ENV: str = "development"
    CONFIG_STRICT: bool = False

    # Store
    DATABASE_URL: Optional[str] = None
    STORE_CONNECT_ATTEMPTS: int = 5
    STORE_CONNECT_BACKOFF_SECONDS: float = 2.0

    # Stripe
    STRIPE_SECRET_KEY: Optional[str] = None
    STRIPE_WEBHOOK_SECRET: Optional[str] = None
    STRIPE_WEBHOOK_TOLERANCE: int = 300  # seconds of clock skew accepted on signatures

    # Premium (one-time, lifetime) checkout line item
    PREMIUM_PRICE_AMOUNT: int = 1500 * 100  # minor units
    PREMIUM_CURRENCY: str = "bdt"
    PREMIUM_PRODUCT_NAME: str = "Digital Life Lessons - Premium (Lifetime)"
    PREMIUM_PRODUCT_DESCRIPTION: str = "One-time payment for lifetime premium access."

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 3000

    # Frontend
    CLIENT_URL: str = "http://localhost:5173"
    CORS_EXTRA_ORIGINS: str = ""  # comma-separated

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def billing_enabled(self) -> bool:
        return bool(self.STRIPE_SECRET_KEY)

    def cors_origins(self) -> List[str]:
        """Allowed origins with trailing slashes removed (browsers never send one)."""
        candidates = [self.CLIENT_URL, "http://localhost:5173", "http://localhost:3000"]
        candidates.extend(o.strip() for o in self.CORS_EXTRA_ORIGINS.split(","))
        origins: List[str] = []
        for origin in candidates:
            if not origin:
                continue
            normalized = origin.rstrip("/")
            if normalized not in origins:
                origins.append(normalized)
        return origins


settings = Settings()


def validate_config(strict: Optional[bool] = None, settings_obj: Optional[Settings] = None, logger: Optional[logging.Logger] = None) -> bool:
    """Validate required configuration.

    In strict mode raise RuntimeError; otherwise emit warnings only.
    Secrets are not logged, only missing keys.
    """
    cfg = settings_obj or settings
    log = logger or logging.getLogger("lifelessons")
    strict_mode = strict if strict is not None else getattr(cfg, "CONFIG_STRICT", False)

    required_keys = [
        "DATABASE_URL",
        "STRIPE_SECRET_KEY",
        "STRIPE_WEBHOOK_SECRET",
    ]

    missing = [key for key in required_keys if not getattr(cfg, key, None)]
    if missing:
        message = f"Missing required configuration: {', '.join(missing)}"
        if strict_mode:
            raise RuntimeError(message)
        log.warning(message)

    return True
