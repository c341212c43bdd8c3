"""Startup-time checks and safe config logging."""

from medpay.common.config import CommonSettings
from medpay.common.logging import logger

_SECRET_MARKERS = ("KEY", "SECRET", "PASSWORD", "TOKEN")


def _display(name: str, value: object) -> str:
    if value is None or value == "":
        return "<unset>"
    if name.upper().endswith(_SECRET_MARKERS):
        return "<redacted>"
    if name.upper().endswith("CLIENT_ID"):
        text = str(value)
        return f"...{text[-4:]}" if len(text) > 4 else "<redacted>"
    return str(value)


def config_warnings(config: CommonSettings) -> list[str]:
    """Gaps that make the checkout flow unsafe or broken, one message each."""

    warnings = []
    if not config.paypal_client_id or not config.paypal_secret.get_secret_value():
        warnings.append("paypal_credentials_missing: every provider call will fail authentication")
    if not config.paypal_webhook_id:
        warnings.append("paypal_webhook_verification_disabled: deliveries are acknowledged unverified")
    api_is_sandbox = "sandbox" in config.paypal_api_base
    if not api_is_sandbox and config.environment != "production":
        warnings.append(f"paypal_live_api_outside_production api_base={config.paypal_api_base}")
    # Approve links are checked against the web host, so a mismatch fails every create-order.
    if api_is_sandbox != ("sandbox" in config.paypal_web_host):
        warnings.append(
            f"paypal_host_mismatch api_base={config.paypal_api_base} web_host={config.paypal_web_host}"
        )
    return warnings


def log_startup_config(config: CommonSettings, fields: list[str]) -> None:
    """Log selected settings, then any configuration warnings."""

    snapshot = {"service": config.service_name}
    for field in fields:
        value = getattr(config, field)
        if hasattr(value, "get_secret_value"):
            value = value.get_secret_value()
        snapshot[field.upper()] = _display(field, value)
    logger.info("startup_config=%s", snapshot)

    for warning in config_warnings(config):
        logger.warning(warning)
