# rideapp/config.py
import logging
import os
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, EmailStr, field_validator

APP_VERSION = "1.0.0"

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class Settings(BaseModel):
    app_name: str = "SuperApp Rides API"
    version: str = APP_VERSION

    # Database
    database_url: str = "sqlite:///./rides.db"
    database_sslmode: Optional[str] = None

    # Auth
    jwt_secret: str = "change_this_secret_in_production"
    jwt_algorithm: str = "HS256"
    jwt_expires_minutes: int = 60 * 24 * 7  # 7d

    # Reserved main account
    superadmin_email: EmailStr = "admin@superapp.com"
    superadmin_password: Optional[str] = None
    superadmin_name: str = "Super Admin"
    superadmin_phone: str = "0000000000"

    # HTTP
    cors_origins: List[str] = ["http://localhost:3000"]
    rate_limit_max: int = 150
    rate_limit_window_seconds: int = 15 * 60
    host: str = "0.0.0.0"
    port: int = 4000
    log_level: str = "INFO"

    @field_validator("cors_origins", mode="before")
    @classmethod
    def split_origins(cls, v):
        if isinstance(v, str):
            return [o.strip() for o in v.split(",") if o.strip()]
        return v

    @field_validator("superadmin_email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.strip().lower()

    @classmethod
    def from_env(cls) -> "Settings":
        env = os.environ
        values = {
            "database_url": env.get("DATABASE_URL", "").strip() or None,
            "database_sslmode": env.get("DATABASE_SSLMODE") or None,
            "jwt_secret": env.get("JWT_SECRET"),
            "jwt_algorithm": env.get("JWT_ALGORITHM"),
            "jwt_expires_minutes": env.get("JWT_EXPIRES_MINUTES"),
            "superadmin_email": env.get("SUPERADMIN_EMAIL") or env.get("MAIN_ADMIN_EMAIL"),
            "superadmin_password": env.get("SUPERADMIN_PASSWORD"),
            "superadmin_name": env.get("SUPERADMIN_NAME"),
            "superadmin_phone": env.get("SUPERADMIN_PHONE"),
            "cors_origins": env.get("CORS_ORIGIN"),
            "rate_limit_max": env.get("RATE_LIMIT_MAX"),
            "rate_limit_window_seconds": env.get("RATE_LIMIT_WINDOW_SECONDS"),
            "host": env.get("HOST"),
            "port": env.get("PORT"),
            "log_level": env.get("LOG_LEVEL"),
        }
        # unset vars fall back to the field defaults
        return cls(**{k: v for k, v in values.items() if v is not None})


def get_settings() -> Settings:
    # load .env first
    load_dotenv()
    return Settings.from_env()


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    logging.getLogger("rideapp").setLevel(level.upper())
