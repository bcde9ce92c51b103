import os
from dataclasses import dataclass
from typing import Optional
from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str = "False") -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


@dataclass
class Settings:
    # API settings
    api_host: str = os.getenv("API_HOST", "127.0.0.1")
    api_port: int = int(os.getenv("API_PORT", "8000"))
    api_key: str = os.getenv("API_KEY", "super-secret-key")

    # Database settings
    database_file: str = os.getenv("LIBRARY_DB_FILE", "library.db")
    seed_demo_data: bool = _env_flag("LIBRARY_SEED_DEMO", "True")

    # Application settings
    app_name: str = os.getenv("APP_NAME", "Library Desk")
    app_version: str = os.getenv("APP_VERSION", "1.0.0")
    debug: bool = _env_flag("DEBUG")
    log_level: str = os.getenv("LOG_LEVEL", "WARNING")

    # Reporting
    report_author: str = os.getenv("REPORT_AUTHOR", "Admin")

    # Acting ids handed to the CLI preferences on first run
    default_user_id: int = int(os.getenv("DEFAULT_USER_ID", "1"))
    default_staff_id: int = int(os.getenv("DEFAULT_STAFF_ID", "1"))
    cli_config_dir: Optional[str] = os.getenv("CLI_CONFIG_DIR")


settings = Settings()
