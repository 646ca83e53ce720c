import os
from dataclasses import dataclass

_DEFAULT_UPLOAD_MAX_BYTES = 5 * 1024 * 1024


def _env(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def _env_int(name: str, default: int) -> int:
    try:
        return int(_env(name) or default)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    secret_key: str = "change-me"
    env: str = "development"
    database_url: str = "sqlite:///isoaudit.db"

    storage_backend: str = "local"
    s3_endpoint: str = ""
    s3_region: str = "nyc3"
    s3_bucket: str = ""
    s3_access_key_id: str = ""
    s3_secret_access_key: str = ""

    # Completed template spreadsheets, per file
    upload_max_bytes: int = _DEFAULT_UPLOAD_MAX_BYTES

    @property
    def is_production(self) -> bool:
        return self.env in ("prod", "production")

    @classmethod
    def from_env(cls) -> "Settings":
        d = cls()
        return cls(
            secret_key=_env("SECRET_KEY", d.secret_key),
            env=_env("ENV", d.env),
            database_url=_env("DATABASE_URL", d.database_url),
            storage_backend=_env("STORAGE_BACKEND", d.storage_backend),
            s3_endpoint=_env("S3_ENDPOINT"),
            s3_region=_env("S3_REGION", d.s3_region),
            s3_bucket=_env("S3_BUCKET"),
            s3_access_key_id=_env("S3_ACCESS_KEY_ID"),
            s3_secret_access_key=_env("S3_SECRET_ACCESS_KEY"),
            upload_max_bytes=_env_int("UPLOAD_MAX_BYTES", d.upload_max_bytes),
        )


def load_settings() -> Settings:
    return Settings.from_env()


def load_config() -> dict:
    """Flask config mapping built from the environment."""
    s = load_settings()
    return {
        "SECRET_KEY": s.secret_key,
        "ENV": s.env,
        "DATABASE_URL": s.database_url,
        "STORAGE_BACKEND": s.storage_backend,
        "S3_ENDPOINT": s.s3_endpoint,
        "S3_REGION": s.s3_region,
        "S3_BUCKET": s.s3_bucket,
        "S3_ACCESS_KEY_ID": s.s3_access_key_id,
        "S3_SECRET_ACCESS_KEY": s.s3_secret_access_key,
        "UPLOAD_MAX_BYTES": s.upload_max_bytes,
        "SESSION_COOKIE_HTTPONLY": True,
        "SESSION_COOKIE_SAMESITE": "Lax",
        "SESSION_COOKIE_SECURE": s.is_production,
        # Whole request body; leaves room for multipart overhead above UPLOAD_MAX_BYTES
        "MAX_CONTENT_LENGTH": 16 * 1024 * 1024,
    }
