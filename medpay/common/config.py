"""Central environment-driven settings for the medpay API process.

The process loads this once at startup. Behavior is controlled by environment
variables (see `.env.example`).
"""

from pydantic import BaseModel, ConfigDict, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class CommonSettings(BaseSettings):
    """Typed view of runtime configuration from environment variables."""

    service_name: str = "medpay-api"
    log_level: str = "INFO"
    environment: str = "development"
    port: int = 5000
    cors_allow_origins: str = "*"

    paypal_client_id: str = ""
    paypal_secret: SecretStr = SecretStr("")
    paypal_api_base: str = "https://api-m.sandbox.paypal.com"
    paypal_web_host: str = "www.sandbox.paypal.com"
    paypal_webhook_id: str | None = None
    paypal_timeout_seconds: float = 15.0
    paypal_token_cache_enabled: bool = False

    app_base_url: str = "http://localhost:5000"
    app_deep_link_base: str = "yourapp://"
    brand_name: str = "Healthcare App"
    default_amount: str = "10.00"
    default_currency: str = "USD"
    default_description: str = "Medical Appointment"

    otel_enabled: bool = False
    otel_exporter_otlp_endpoint: str = "http://otel-collector:4318/v1/traces"
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    def credentials(self) -> "PayPalCredentials":
        """Snapshot the provider credentials as an immutable value."""

        return PayPalCredentials(
            client_id=self.paypal_client_id,
            secret=self.paypal_secret,
            api_base=self.paypal_api_base.rstrip("/"),
        )

    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.cors_allow_origins.split(",") if origin.strip()]


class PayPalCredentials(BaseModel):
    """Client-credentials pair plus the API base it is valid against."""

    model_config = ConfigDict(frozen=True)

    client_id: str
    secret: SecretStr
    api_base: str


settings = CommonSettings()
