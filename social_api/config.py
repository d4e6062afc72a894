"""
Configuration management using Pydantic BaseSettings.
All values can be overridden via environment variables or a .env file.
"""
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── TiDB (MySQL-protocol compatible) ───────────────────────────────────
    tidb_host: str = "tidb"
    tidb_port: int = 4000
    tidb_user: str = "root"
    tidb_password: str = ""
    tidb_database: str = "social_network"
    # Full SQLAlchemy URL; takes precedence over the tidb_* parts when set
    database_url: Optional[str] = None

    @property
    def tidb_url(self) -> str:
        if self.database_url:
            return self.database_url
        return (
            f"mysql+aiomysql://{self.tidb_user}:{self.tidb_password}"
            f"@{self.tidb_host}:{self.tidb_port}/{self.tidb_database}"
        )

    # ── Auth ───────────────────────────────────────────────────────────────
    jwt_secret: str = "your-secret-key"
    jwt_algorithm: str = "HS256"
    jwt_expire_days: int = 7
    auth_cookie_name: str = "auth_token"

    # ── MinIO (S3-compatible) ──────────────────────────────────────────────
    minio_endpoint: str = "minio:9000"
    minio_access_key: str = "minioadmin"
    minio_secret_key: str = "minioadmin"
    minio_bucket: str = "media"
    minio_use_ssl: bool = False
    upload_max_bytes: int = 10 * 1024 * 1024   # 10MB
    presigned_url_ttl: int = 7 * 24 * 3600

    # ── Paging ─────────────────────────────────────────────────────────────
    comments_page_size: int = 10
    posts_page_size: int = 20
    follows_page_size: int = 50
    search_default_limit: int = 10
    search_max_limit: int = 100
    recent_posts_limit: int = 10         # posts embedded in a profile

    # ── HTTP ───────────────────────────────────────────────────────────────
    cors_origins: list[str] = ["*"]

    # ── Observability ──────────────────────────────────────────────────────
    otel_exporter_otlp_endpoint: str = "http://jaeger:4317"
    tracing_enabled: bool = True
    service_name: str = "social-api"
    environment: str = "development"
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
