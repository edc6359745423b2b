import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    database_url: str

    storage_backend: str
    local_storage_root: str
    s3_endpoint: str
    s3_region: str
    s3_bucket: str
    s3_access_key_id: str
    s3_secret_access_key: str

    coach_whatsapp_number: str
    renewal_message: str
    temp_password_length: int
    max_pdf_bytes: int
    max_photo_bytes: int


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def _getenv_int(name: str, default: int) -> int:
    raw = _getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def load_settings() -> Settings:
    return Settings(
        secret_key=_getenv("SECRET_KEY", "change-me"),
        env=_getenv("ENV", "development"),
        database_url=_getenv("DATABASE_URL", "sqlite:///coaching.db"),
        storage_backend=_getenv("STORAGE_BACKEND", "local"),
        local_storage_root=_getenv("LOCAL_STORAGE_ROOT", ""),
        s3_endpoint=_getenv("S3_ENDPOINT", ""),
        s3_region=_getenv("S3_REGION", "nyc3"),
        s3_bucket=_getenv("S3_BUCKET", ""),
        s3_access_key_id=_getenv("S3_ACCESS_KEY_ID", ""),
        s3_secret_access_key=_getenv("S3_SECRET_ACCESS_KEY", ""),
        coach_whatsapp_number=_getenv("COACH_WHATSAPP_NUMBER", ""),
        renewal_message=_getenv("RENEWAL_MESSAGE", "Hi Coach, I need to renew my subscription."),
        temp_password_length=_getenv_int("TEMP_PASSWORD_LENGTH", 12),
        max_pdf_bytes=_getenv_int("MAX_PDF_BYTES", 20 * 1024 * 1024),
        max_photo_bytes=_getenv_int("MAX_PHOTO_BYTES", 10 * 1024 * 1024),
    )


def load_config() -> dict:
    s = load_settings()
    is_production = s.env in ("prod", "production")
    return {
        "SECRET_KEY": s.secret_key,
        "ENV": s.env,
        "DATABASE_URL": s.database_url,
        "STORAGE_BACKEND": s.storage_backend,
        "LOCAL_STORAGE_ROOT": s.local_storage_root,
        "S3_ENDPOINT": s.s3_endpoint,
        "S3_REGION": s.s3_region,
        "S3_BUCKET": s.s3_bucket,
        "S3_ACCESS_KEY_ID": s.s3_access_key_id,
        "S3_SECRET_ACCESS_KEY": s.s3_secret_access_key,
        "COACH_WHATSAPP_NUMBER": s.coach_whatsapp_number,
        "RENEWAL_MESSAGE": s.renewal_message,
        "TEMP_PASSWORD_LENGTH": s.temp_password_length,
        "MAX_PDF_BYTES": s.max_pdf_bytes,
        "MAX_PHOTO_BYTES": s.max_photo_bytes,
        # security defaults
        "SESSION_COOKIE_HTTPONLY": True,
        "SESSION_COOKIE_SAMESITE": "Lax",
        "SESSION_COOKIE_SECURE": is_production,  # Require HTTPS in production
        # request body cap (multi-image partner uploads)
        "MAX_CONTENT_LENGTH": 50 * 1024 * 1024,
    }
