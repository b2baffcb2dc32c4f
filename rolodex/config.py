import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv(override=True)


def _env_bool(name: str, default: bool = False) -> bool:
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_float(name: str, default: float) -> float:
    raw_value = os.getenv(name)
    if raw_value is None or not raw_value.strip():
        return default
    return float(raw_value)


def _env_list(name: str, default: str = "") -> tuple[str, ...]:
    raw_value = os.getenv(name, default)
    return tuple(item.strip() for item in raw_value.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./rolodex.db")
    database_echo: bool = _env_bool("DATABASE_ECHO", False)
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()
    otp_length: int = int(os.getenv("OTP_LENGTH", "6"))
    otp_expiration_minutes: int = int(os.getenv("OTP_EXPIRATION_MINUTES", "15"))
    otp_max_attempts: int = int(os.getenv("OTP_MAX_ATTEMPTS", "3"))
    otp_phone_notification_type: str = (
        os.getenv("OTP_PHONE_NOTIFICATION_TYPE", "SMS").strip().upper()
    )
    email_failure_rate: float = _env_float("EMAIL_FAILURE_RATE", 0.1)
    push_failure_rate: float = _env_float("PUSH_FAILURE_RATE", 0.15)
    sms_failure_rate: float = _env_float("SMS_FAILURE_RATE", 0.05)
    provider_delay_ms: int = int(os.getenv("PROVIDER_DELAY_MS", "0"))
    default_country_code: str = os.getenv("DEFAULT_COUNTRY_CODE", "+1")
    sweep_interval_seconds: int = int(os.getenv("SWEEP_INTERVAL_SECONDS", "0"))
    cors_origins: tuple[str, ...] = field(
        default=_env_list(
            "CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173"
        )
    )


settings = Settings()
