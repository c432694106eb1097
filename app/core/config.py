"""
Configuration module - loads all env vars using pydantic-settings.
This is the SINGLE SOURCE OF TRUTH for all config values.
"""

from functools import lru_cache
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # MongoDB
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_db: str = "studentnest"

    # JWT Auth
    jwt_secret_key: str = "change-this-secret"
    jwt_refresh_secret_key: str = "change-this-refresh-secret"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 15
    refresh_token_expire_days: int = 7
    refresh_cookie_name: str = "refreshToken"
    cookie_secure: bool = False
    max_refresh_tokens: int = 5

    # Login protection
    max_login_attempts: int = 5
    lock_hours: int = 2
    login_rate_limit_points: int = 100
    login_rate_limit_window_seconds: int = 900

    # OTP
    otp_length: int = 6
    otp_expiry_minutes: int = 10
    otp_max_attempts: int = 5
    otp_resend_cooldown_seconds: int = 60

    # Cloudinary (media uploads)
    cloudinary_cloud_name: str = ""
    cloudinary_api_key: str = ""
    cloudinary_api_secret: str = ""
    cloudinary_folder: str = "student-nest"

    # Email (OTP delivery)
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_from: str = "StudentNest <no-reply@studentnest.in>"

    # SMS gateway (OTP delivery)
    sms_api_url: str = ""
    sms_api_key: str = ""
    sms_sender_id: str = "STDNST"

    # Razorpay
    razorpay_key_id: str = ""
    razorpay_key_secret: str = ""
    razorpay_api_url: str = "https://api.razorpay.com/v1"

    # Google Calendar (Meet links)
    google_calendar_api_url: str = "https://www.googleapis.com/calendar/v3"
    meeting_timezone: str = "Asia/Kolkata"

    # HTTP timeout for outbound integrations (seconds)
    http_timeout: int = 15

    # App
    cors_origins: List[str] = ["*"]
    log_level: str = "INFO"
    debug: bool = True

    @property
    def cloudinary_configured(self) -> bool:
        """True when all Cloudinary credentials are present"""
        return bool(
            self.cloudinary_cloud_name and self.cloudinary_api_key and self.cloudinary_api_secret
        )

    # Pydantic v2 config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8"
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
