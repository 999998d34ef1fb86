import argparse
import os
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


# Check if --env is provided in command line arguments
def get_env_file() -> Optional[str]:
    # In container environments, APP_ENV is typically set in the container config
    app_env = os.environ.get("APP_ENV")

    # If APP_ENV is set we prioritize environment variables already set in the container
    if app_env:
        return None

    # For local development, use command line arguments
    parser = argparse.ArgumentParser(add_help=False)
    parser.add_argument(
        "--env",
        type=str,
        choices=["dev", "docker", "prod", "local", "rc"],
        default="local",
    )

    # Parse only known args to avoid conflicts with other arguments (pytest, gunicorn)
    try:
        args, _ = parser.parse_known_args()
        env_file = f".{args.env}.env"
        if os.path.exists(env_file):
            return env_file
    except SystemExit:
        pass

    # Fall back to default .env if specified environment file doesn't exist
    return ".env" if os.path.exists(".env") else None


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=get_env_file(), extra="ignore")

    APP_NAME: str = "Mixpreset Backend"
    APP_ENV: str = "local"
    WORKERS_COUNT: int = 1
    HOST: str = "0.0.0.0"
    PORT: int = 8900
    RELOAD: bool = True
    API_PREFIX: str = "/api/v1"

    DATABASE_HOST: str = "localhost"
    DATABASE_PORT: int = 5432
    DATABASE_NAME: str = "mixpreset"
    DATABASE_USER: str = "postgres"
    DATABASE_PASSWORD: str = "postgres"
    DB_ECHO: bool = False

    AWS_ACCESS_KEY_ID: Optional[str] = None
    AWS_SECRET_ACCESS_KEY: Optional[str] = None
    AWS_DEFAULT_REGION: str = "ap-northeast-2"
    PRESET_S3_BUCKET_NAME: str = "preset.mixpreset.com"
    PRESET_CATEGORIES: List[str] = ["premium", "vocal_chain", "instrument"]
    PRESIGNED_URL_EXPIRE_SECONDS: int = 3600

    FIREBASE_CREDENTIALS_PATH: Optional[str] = None
    FIREBASE_PROJECT_ID: Optional[str] = None
    ADMIN_EMAILS: List[str] = []
    ADMIN_SECRET_KEY: Optional[str] = None

    POLAR_ACCESS_TOKEN: Optional[str] = None
    POLAR_SERVER: str = "production"
    POLAR_WEBHOOK_SECRET: str = ""
    POLAR_SUCCESS_URL: str = (
        "https://mixpreset.com/profile/credits?checkout_id={CHECKOUT_ID}&payment_success=true"
    )

    PAYPAL_CLIENT_ID: Optional[str] = None
    PAYPAL_CLIENT_SECRET: Optional[str] = None
    PAYPAL_API_BASE: str = "https://api-m.paypal.com"

    BANK_ACCOUNT_NAME: str = "Mixpreset Inc."
    BANK_ACCOUNT_NUMBER: str = ""
    BANK_NAME: str = ""

    TEST_PAYMENTS_ENABLED: bool = False

    FREE_REDOWNLOAD_WINDOW_MS: int = 3 * 24 * 60 * 60 * 1000
    ADMIN_RECORD_LIMIT: int = 1000

    @property
    def DB_URL(self) -> str:
        return f"postgresql+asyncpg://{self.DATABASE_USER}:{self.DATABASE_PASSWORD}@{self.DATABASE_HOST}:{self.DATABASE_PORT}/{self.DATABASE_NAME}"


settings = Settings()
