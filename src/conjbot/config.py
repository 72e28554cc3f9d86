"""Configuration settings for the bot."""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Define base directory
BASE_DIR = Path(__file__).parent.parent.parent

# Load environment variables from .env file
env_file = ".env.test" if os.getenv("ENV") == "test" else ".env"
load_dotenv(env_file)


# Define data directories from environment variables
DATA_DIR = Path(os.getenv("DATA_DIR", "./data"))

# Trainer settings
MAX_LEVEL = 3  # highest mastery level of a card
MISTAKE_QUEUE_SIZE = 3  # recent mistakes forced back into practice
STORAGE_NAMESPACE = "fr_conj_er_app_v1"


def ensure_directories() -> None:
    """Ensure all required directories exist."""
    DATA_DIR.mkdir(parents=True, exist_ok=True)


@dataclass
class PathSettings:
    """Path configuration settings."""
    base_dir: Path = BASE_DIR
    data_dir: Path = DATA_DIR


@dataclass
class DatabaseSettings:
    """Database configuration settings."""
    url: str = os.getenv("DATABASE_URL", "sqlite:///conjbot.db")
    echo: bool = os.getenv("DATABASE_ECHO", "false").lower() == "true"


@dataclass
class LoggingSettings:
    """Logging configuration settings."""
    level: str = os.getenv("LOG_LEVEL", "INFO")
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    dir: Optional[str] = os.getenv("LOG_DIR", None)
    rotation: str = os.getenv("LOG_ROTATION", "midnight")
    interval: int = int(os.getenv("LOG_INTERVAL", "1"))
    backup_count: int = int(os.getenv("LOG_BACKUP_COUNT", "7"))


@dataclass
class BotSettings:
    """Bot configuration settings."""
    token: str = os.getenv("TELEGRAM_BOT_TOKEN", "")


@dataclass
class TrainerSettings:
    """Conjugation trainer settings."""
    default_session_length: int = int(os.getenv("SESSION_LENGTH", "20"))
    min_session_length: int = 10
    max_session_length: int = 60
    session_length_step: int = 5
    auto_advance_seconds: float = float(os.getenv("AUTO_ADVANCE_SECONDS", "10"))
    default_verb_count: int = int(os.getenv("DEFAULT_VERB_COUNT", "8"))
    max_level: int = MAX_LEVEL
    mistake_queue_size: int = MISTAKE_QUEUE_SIZE
    storage_namespace: str = os.getenv("STORAGE_NAMESPACE", STORAGE_NAMESPACE)


@dataclass
class MonitoringSettings:
    """Prometheus exporter settings."""
    port: int = int(os.getenv("METRICS_PORT", "0"))  # 0 disables the exporter


def get_path_settings() -> PathSettings:
    """Get path settings."""
    return PathSettings()


def get_database_settings() -> DatabaseSettings:
    """Get database settings."""
    return DatabaseSettings()


def get_logging_settings() -> LoggingSettings:
    """Get logging settings."""
    return LoggingSettings()


def get_bot_settings() -> BotSettings:
    """Get bot settings."""
    return BotSettings()


def get_trainer_settings() -> TrainerSettings:
    """Get trainer settings."""
    return TrainerSettings()


def get_monitoring_settings() -> MonitoringSettings:
    """Get monitoring settings."""
    return MonitoringSettings()


@dataclass
class Settings:
    """Main settings class that combines all configuration settings."""
    paths: PathSettings = field(default_factory=get_path_settings)
    database: DatabaseSettings = field(default_factory=get_database_settings)
    logging: LoggingSettings = field(default_factory=get_logging_settings)
    bot: BotSettings = field(default_factory=get_bot_settings)
    trainer: TrainerSettings = field(default_factory=get_trainer_settings)
    monitoring: MonitoringSettings = field(default_factory=get_monitoring_settings)

    def validate(self) -> None:
        """Validate settings and raise ValueError if invalid."""
        trainer = self.trainer
        if trainer.min_session_length > trainer.max_session_length:
            raise ValueError("min session length cannot be greater than max session length")

        if not trainer.min_session_length <= trainer.default_session_length <= trainer.max_session_length:
            raise ValueError(
                f"SESSION_LENGTH must be between {trainer.min_session_length} "
                f"and {trainer.max_session_length}"
            )

        if trainer.auto_advance_seconds <= 0:
            raise ValueError("AUTO_ADVANCE_SECONDS must be positive")

        if trainer.default_verb_count < 0:
            raise ValueError("DEFAULT_VERB_COUNT cannot be negative")

        if not 0 <= self.monitoring.port <= 65535:
            raise ValueError("METRICS_PORT must be a valid port number")

    def validate_bot(self) -> None:
        """Validate the settings needed to connect to Telegram."""
        if not self.bot.token:
            raise ValueError("TELEGRAM_BOT_TOKEN is required")


# Create global settings instance
settings = Settings()
settings.validate()
