"""Configuration module for the job tracker."""

import logging
import os
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def get_default_data_dir() -> Path:
    """Get platform-appropriate default data directory.

    Returns:
        Path to default data directory:
        - Linux/Mac: ~/.local/share/job-tracker/
        - Windows: %LOCALAPPDATA%/job-tracker/
        - Fallback: ./data/
    """
    if os.name == "posix":  # Unix-like systems
        base = Path.home() / ".local" / "share" / "job-tracker"
    elif os.name == "nt":  # Windows
        base = Path(os.getenv("LOCALAPPDATA", Path.home() / "AppData" / "Local")) / "job-tracker"
    else:
        base = Path("./data")

    return base


class PathConfig:
    """Manages configurable file paths for the application.

    Priority order:
    1. Environment variables
    2. YAML configuration file
    3. Default values

    All paths are resolved to absolute paths. Parent directories are created
    when ``ensure_directories`` is called.
    """

    def __init__(self, config_file: Optional[str] = None):
        """Initialize path configuration.

        Args:
            config_file: Optional path to YAML config file to load paths from.
        """
        # Load from YAML if provided
        yaml_paths = {}
        if config_file and Path(config_file).exists():
            with open(config_file) as f:
                data = yaml.safe_load(f) or {}
                yaml_paths = data.get("paths", {}) or {}

        default_data_dir = get_default_data_dir()

        # Configure paths with priority: env var > yaml > default
        self.database_file = self._resolve_path(
            os.getenv("DATABASE_FILE"),
            yaml_paths.get("database_file"),
            default_data_dir / "applications.db",
        )

        self.token_file = self._resolve_path(
            os.getenv("TOKEN_FILE"),
            yaml_paths.get("token_file"),
            default_data_dir / "token.json",
        )

    def _resolve_path(
        self, env_value: Optional[str], yaml_value: Optional[str], default_value: Path
    ) -> Path:
        """Resolve a path from environment, YAML, or default.

        Args:
            env_value: Value from environment variable
            yaml_value: Value from YAML config
            default_value: Default path value

        Returns:
            Resolved absolute Path object
        """
        if env_value:
            return Path(env_value).resolve()
        elif yaml_value:
            return Path(yaml_value).resolve()
        else:
            return default_value.resolve()

    def ensure_directories(self):
        """Create parent directories for all configured paths if they don't exist."""
        for path_attr in ["database_file", "token_file"]:
            path = getattr(self, path_attr)
            path.parent.mkdir(parents=True, exist_ok=True)

    def to_dict(self) -> dict:
        """Export configuration as dictionary.

        Returns:
            Dictionary of path configurations as strings
        """
        return {
            "database_file": str(self.database_file),
            "token_file": str(self.token_file),
        }


# Initialize path configuration
# Check for custom config file from environment
_config_file = os.getenv("CONFIG_FILE")
_path_config = PathConfig(config_file=_config_file)

DATABASE_FILE = str(_path_config.database_file)
TOKEN_FILE = str(_path_config.token_file)

# Setup logging
log_level = os.getenv("LOG_LEVEL", "INFO")
logging.basicConfig(
    level=getattr(logging, log_level.upper(), logging.INFO),
    format="%(asctime)s - %(levelname)s - [%(funcName)s] - %(message)s",
)

# OAuth client configuration
GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID")
GOOGLE_CLIENT_SECRET = os.getenv("GOOGLE_CLIENT_SECRET")
GOOGLE_REDIRECT_URI = os.getenv("GOOGLE_REDIRECT_URI")

# Access token supplied directly instead of a token file
GMAIL_ACCESS_TOKEN = os.getenv("GMAIL_ACCESS_TOKEN")
GMAIL_REFRESH_TOKEN = os.getenv("GMAIL_REFRESH_TOKEN")
