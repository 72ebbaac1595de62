"""Runtime settings resolved from ``domain.toml`` ``[custom]`` plus environment overrides.

Secrets never live in ``domain.toml``; they come from the environment only.
"""

import os
from dataclasses import dataclass

from protean.domain import Domain


@dataclass(frozen=True)
class Settings:
    order_number_prefix: str = "ORD"
    order_number_max_attempts: int = 10
    lock_timeout_seconds: float = 5.0
    webhook_secret: str | None = None
    webhook_tolerance_seconds: int = 300
    payment_verifier: str = "fake"
    email_adapter: str = "fake"
    notifier_workers: int = 4
    orders_page_limit: int = 50
    orders_max_page_limit: int = 100
    client_url: str = "http://localhost:5173"
    mail_from: str = "orders@storefront.local"
    smtp_host: str = "localhost"
    smtp_port: int = 25
    smtp_username: str | None = None
    smtp_password: str | None = None
    smtp_use_tls: bool = False


def _flag(value: str | None) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


def load_settings(domain: Domain) -> Settings:
    custom = domain.config.get("custom", {}) or {}

    def pick(env_name: str, key: str, default, cast=str):
        raw = os.getenv(env_name)
        if raw is None:
            raw = custom.get(key, default)
        return cast(raw) if raw is not None else None

    # The verifier defaults to the real HMAC scheme whenever a secret is present
    webhook_secret = os.getenv("PAYMENT_WEBHOOK_SECRET") or None
    default_verifier = "hmac" if webhook_secret else "fake"

    return Settings(
        order_number_prefix=pick("ORDER_NUMBER_PREFIX", "ORDER_NUMBER_PREFIX", "ORD"),
        order_number_max_attempts=pick("ORDER_NUMBER_MAX_ATTEMPTS", "ORDER_NUMBER_MAX_ATTEMPTS", 10, int),
        lock_timeout_seconds=pick("LOCK_TIMEOUT_SECONDS", "LOCK_TIMEOUT_SECONDS", 5.0, float),
        webhook_secret=webhook_secret,
        webhook_tolerance_seconds=pick("WEBHOOK_TOLERANCE_SECONDS", "WEBHOOK_TOLERANCE_SECONDS", 300, int),
        payment_verifier=os.getenv("PAYMENT_VERIFIER", default_verifier).lower(),
        email_adapter=os.getenv("EMAIL_ADAPTER", "fake").lower(),
        notifier_workers=pick("NOTIFIER_WORKERS", "NOTIFIER_WORKERS", 4, int),
        orders_page_limit=pick("ORDERS_PAGE_LIMIT", "ORDERS_PAGE_LIMIT", 50, int),
        orders_max_page_limit=pick("ORDERS_MAX_PAGE_LIMIT", "ORDERS_MAX_PAGE_LIMIT", 100, int),
        client_url=pick("CLIENT_URL", "CLIENT_URL", "http://localhost:5173"),
        mail_from=pick("MAIL_FROM", "MAIL_FROM", "orders@storefront.local"),
        smtp_host=pick("SMTP_HOST", "SMTP_HOST", "localhost"),
        smtp_port=pick("SMTP_PORT", "SMTP_PORT", 25, int),
        smtp_username=os.getenv("SMTP_USERNAME") or None,
        smtp_password=os.getenv("SMTP_PASSWORD") or None,
        smtp_use_tls=_flag(os.getenv("SMTP_USE_TLS")),
    )
