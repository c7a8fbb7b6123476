"""Application Settings - Central Configuration"""
from functools import lru_cache
from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # MongoDB
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_db: str = "supportdesk_dev"

    # Logging
    logs_path: str = "./logs"
    log_level: str = "INFO"
    log_to_file: bool = True

    # CORS - set to "*" to allow all origins
    cors_origins: str = "*"

    # Public base URL of this API (used in local upload URLs)
    app_url: str = "http://localhost:8000"

    # Email delivery
    email_provider: str = "sendgrid"  # sendgrid | mailgun | mailjet | elastic | smtp
    sendgrid_api_key: str = ""
    mailgun_api_key: str = ""
    mailgun_domain: str = ""
    mailgun_base_url: str = "https://api.mailgun.net/v3"
    mailjet_api_key: str = ""
    mailjet_api_secret: str = ""
    elastic_email_api_key: str = ""
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    smtp_secure: bool = False
    verified_sender_email: str = ""
    default_from_email: str = "support@company.com"
    management_email: str = ""
    email_timeout_seconds: float = 15.0

    # Channels
    channel_test_timeout_seconds: float = 10.0
    channel_sync_fresh_hours: int = 24

    # Object storage
    storage_provider: str = "local"  # local | s3 | azure | hosted
    storage_local_root: str = "./uploads"
    storage_signed_url_ttl_seconds: int = 900
    storage_chunk_size: int = 64 * 1024

    # S3 / S3-compatible (MinIO, DigitalOcean Spaces)
    s3_bucket: str = ""
    s3_region: str = "us-east-1"
    s3_endpoint_url: Optional[str] = None
    s3_access_key_id: str = ""
    s3_secret_access_key: str = ""

    # Azure Blob
    azure_storage_account_name: str = ""
    azure_storage_account_key: str = ""
    azure_storage_container: str = ""
    azure_storage_account_url: Optional[str] = None  # defaults to https://<account>.blob.core.windows.net

    # Hosted identity (sidecar-brokered object storage)
    hosted_sidecar_url: str = "http://127.0.0.1:1106"
    hosted_bucket_name: str = ""
    hosted_private_dir: str = ".private"

    # Environment
    environment: str = "development"
    debug: bool = True

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins string to list"""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def is_production(self) -> bool:
        """Check if running in production"""
        return self.environment.lower() == "production"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
