
from pydantic import Field
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    """Application configuration loaded from environment variables / .env file."""

    app_name: str = Field(default="Bazaar Portal API", alias="APP_NAME")
    app_env: str = Field(default="development", alias="APP_ENV")
    app_port: int = Field(default=8000, alias="APP_PORT")
    frontend_url: str = Field(default="http://localhost:3000", alias="FRONTEND_URL")
    public_base_url: str = Field(default="http://localhost:8000", alias="PUBLIC_BASE_URL")

    # Attendee ID uploads
    max_upload_size_mb: int = Field(default=10, alias="MAX_UPLOAD_SIZE_MB")
    upload_dir: str = Field(default="./uploads/attendee-ids", alias="UPLOAD_DIR")

    # Database (SQLite for local dev)
    database_url: str = Field(
        default="sqlite+aiosqlite:///./bazaar_dev.db",
        alias="DATABASE_URL",
    )

    # Bearer tokens are issued by the auth service; we only verify them
    jwt_secret: str = Field(default="change-me", alias="JWT_SECRET")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")

    # Card payment gateway (Stripe-compatible REST API)
    payment_gateway_url: str = Field(
        default="https://api.stripe.com/v1", alias="PAYMENT_GATEWAY_URL",
    )
    payment_gateway_secret_key: str | None = Field(
        default=None, alias="PAYMENT_GATEWAY_SECRET_KEY",
    )
    payment_gateway_webhook_secret: str | None = Field(
        default=None, alias="PAYMENT_GATEWAY_WEBHOOK_SECRET",
    )
    payment_gateway_timeout: float = Field(
        default=15.0, alias="PAYMENT_GATEWAY_TIMEOUT",
    )  # seconds

    # Bazaar participation fee
    bazaar_default_fee: int = Field(default=1000, alias="BAZAAR_DEFAULT_FEE")
    bazaar_currency: str = Field(default="EGP", alias="BAZAAR_CURRENCY")
    payment_due_days: int = Field(default=3, alias="PAYMENT_DUE_DAYS")

    # Visitor passes
    qr_signing_secret: str = Field(default="change-me-too", alias="QR_SIGNING_SECRET")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "populate_by_name": True,
    }

    @property
    def max_upload_size_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024

    @property
    def payment_gateway_enabled(self) -> bool:
        """Card payments are available only when a gateway key is configured."""
        return bool(self.payment_gateway_secret_key)

settings = Settings()
