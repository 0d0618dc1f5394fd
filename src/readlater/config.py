from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from pathlib import Path

# Get the absolute path to the project root
PROJECT_ROOT = Path(__file__).parent.parent.parent
DEFAULT_DB_PATH = str(PROJECT_ROOT / "databases" / "readlater.db")
DEFAULT_LOG_DIR = str(PROJECT_ROOT / "logs")


class Settings(BaseSettings):
    """
    Centralized runtime configuration for the read-later service.
    All defaults are sensible for dev-mode; ops override via ENV.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # --- Database ---
    readlater_db_path: str = Field(default=DEFAULT_DB_PATH)

    # --- RabbitMQ ---
    rabbitmq_host: str = Field(default="localhost")
    rabbitmq_port: int = Field(default=5672)
    rabbitmq_user: str = Field(default="guest")
    rabbitmq_password: str = Field(default="guest")
    rabbitmq_vhost: str = Field(default="/")
    save_queue: str = Field(default="page_save_requests")
    email_queue: str = Field(default="email_saves")

    # --- Links handed back to clients ---
    home_page_url: str = Field(default="http://localhost:3000")

    # --- Logging ---
    log_level: str = Field(default="INFO")
    log_dir: str = Field(default=DEFAULT_LOG_DIR)


# Create a singleton instance
settings = Settings()
