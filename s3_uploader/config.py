"""Configuration management for s3_uploader"""

import json
import os
import tomllib
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

# Base directory for the project
BASE_DIR = Path(__file__).resolve().parent.parent

# Load environment variables from .env file
ENV_FILE = BASE_DIR / ".env"
load_dotenv(ENV_FILE)

# Settings file paths
SETTINGS_FILE = BASE_DIR / "settings.json"
PYPROJECT_FILE = BASE_DIR / "pyproject.toml"

# Environment variable names for configuration
ENV_AWS_PROFILE = "AWS_PROFILE"
ENV_AWS_REGION = "AWS_REGION"
ENV_S3_BUCKET = "S3_BUCKET"
ENV_UPLOAD_HLS = "UPLOAD_HLS"
ENV_UPLOAD_RECORDINGS = "UPLOAD_RECORDINGS"
ENV_DELETE_LOCAL = "DELETE_LOCAL"
ENV_RECORDING_DELAY_MINUTES = "RECORDING_DELAY_MINUTES"
ENV_HLS_DIR = "HLS_DIR"
ENV_RECORDINGS_DIR = "RECORDINGS_DIR"
ENV_HLS_PREFIX = "HLS_PREFIX"
ENV_RECORDINGS_PREFIX = "RECORDINGS_PREFIX"
ENV_LOG_DIRECTORY = "LOG_DIRECTORY"
ENV_PORT = "PORT"

ENV_KEYS = {
    "aws_profile": ENV_AWS_PROFILE,
    "aws_region": ENV_AWS_REGION,
    "s3_bucket": ENV_S3_BUCKET,
    "upload_hls": ENV_UPLOAD_HLS,
    "upload_recordings": ENV_UPLOAD_RECORDINGS,
    "delete_local": ENV_DELETE_LOCAL,
    "recording_delay_minutes": ENV_RECORDING_DELAY_MINUTES,
    "hls_dir": ENV_HLS_DIR,
    "recordings_dir": ENV_RECORDINGS_DIR,
    "hls_prefix": ENV_HLS_PREFIX,
    "recordings_prefix": ENV_RECORDINGS_PREFIX,
    "log_directory": ENV_LOG_DIRECTORY,
    "port": ENV_PORT,
}

DEFAULTS: dict[str, Any] = {
    "aws_profile": None,
    "aws_region": "ap-northeast-2",
    "s3_bucket": "",
    "upload_hls": True,
    "upload_recordings": True,
    "delete_local": True,
    "recording_delay_minutes": 10,
    "hls_dir": "/hls",
    "recordings_dir": "/recordings",
    "hls_prefix": "hls",
    "recordings_prefix": "recordings",
    "hls_stability_seconds": 0.5,
    "hls_poll_seconds": 0.1,
    "recordings_stability_seconds": 2.0,
    "recordings_poll_seconds": 0.5,
    "log_directory": "logs",
    "port": 3000,
}


def get_package_version() -> str:
    """Get the package version from pyproject.toml."""
    try:
        with open(PYPROJECT_FILE, "rb") as f:
            pyproject = tomllib.load(f)
        return str(pyproject.get("project", {}).get("version", "0.0.0"))
    except (OSError, tomllib.TOMLDecodeError):
        return "0.0.0"


def parse_flag(value: Any) -> bool:
    """Interpret a flag value; only the literal string "false" disables it."""
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() != "false"


class Settings:
    """Manages service settings.

    Settings are read once at startup and never written back; the watched
    roots and upload policies are fixed for the lifetime of the process.
    """

    _instance: "Settings | None" = None
    _settings: dict[str, Any]

    def __new__(cls) -> "Settings":
        """Singleton pattern to ensure only one settings instance exists."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._load_settings()
        return cls._instance

    def _load_settings(self) -> None:
        """Load settings, with environment variables taking precedence.

        Priority order (highest to lowest):
        1. Environment variables (from .env file or system)
        2. settings.json
        3. Hardcoded defaults
        """
        settings = dict(DEFAULTS)

        if SETTINGS_FILE.exists():
            with open(SETTINGS_FILE, encoding="utf-8") as f:
                settings.update(json.load(f))

        # Only apply environment values that are actually set
        for key, env_name in ENV_KEYS.items():
            value = os.environ.get(env_name)
            if value is not None:
                settings[key] = value

        self._settings = settings

    @property
    def aws_profile(self) -> str | None:
        """Get the AWS profile name, or None for the default credential chain."""
        profile = self._settings.get("aws_profile")
        return str(profile) if profile else None

    @property
    def aws_region(self) -> str:
        """Get the AWS region."""
        return str(self._settings.get("aws_region", "ap-northeast-2"))

    @property
    def s3_bucket(self) -> str:
        """Get the S3 bucket name."""
        return str(self._settings.get("s3_bucket", ""))

    @property
    def upload_hls(self) -> bool:
        return parse_flag(self._settings.get("upload_hls", True))

    @property
    def upload_recordings(self) -> bool:
        return parse_flag(self._settings.get("upload_recordings", True))

    @property
    def delete_local(self) -> bool:
        """Whether recordings are removed locally after a successful upload."""
        return parse_flag(self._settings.get("delete_local", True))

    @property
    def recording_delay_minutes(self) -> int | float:
        """Delay before a recording is uploaded; whole values come back as int."""
        minutes = float(self._settings.get("recording_delay_minutes", 10))
        return int(minutes) if minutes.is_integer() else minutes

    @property
    def recording_delay_seconds(self) -> float:
        return self.recording_delay_minutes * 60

    @property
    def hls_dir(self) -> Path:
        return Path(str(self._settings.get("hls_dir", "/hls")))

    @property
    def recordings_dir(self) -> Path:
        return Path(str(self._settings.get("recordings_dir", "/recordings")))

    @property
    def hls_prefix(self) -> str:
        return str(self._settings.get("hls_prefix", "hls")).strip("/")

    @property
    def recordings_prefix(self) -> str:
        return str(self._settings.get("recordings_prefix", "recordings")).strip("/")

    @property
    def hls_stability_seconds(self) -> float:
        return float(self._settings.get("hls_stability_seconds", 0.5))

    @property
    def hls_poll_seconds(self) -> float:
        return float(self._settings.get("hls_poll_seconds", 0.1))

    @property
    def recordings_stability_seconds(self) -> float:
        return float(self._settings.get("recordings_stability_seconds", 2.0))

    @property
    def recordings_poll_seconds(self) -> float:
        return float(self._settings.get("recordings_poll_seconds", 0.5))

    @property
    def log_directory(self) -> Path:
        """Get the log directory, resolved against the project root if relative."""
        log_dir = Path(str(self._settings.get("log_directory", "logs")))
        if not log_dir.is_absolute():
            log_dir = BASE_DIR / log_dir
        return log_dir

    @property
    def port(self) -> int:
        """Port the launcher binds gunicorn to."""
        return int(self._settings.get("port", 3000))


def get_settings() -> Settings:
    """Get the singleton Settings instance."""
    return Settings()
