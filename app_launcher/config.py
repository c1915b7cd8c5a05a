"""
Configuration management for the launcher.
"""

import json
import logging
from pathlib import Path
from typing import Optional

from .types import LaunchPreferences

logger = logging.getLogger(__name__)

JAVA_DOWNLOAD_URL = "https://www.java.com/en/download/"


class LauncherConfig:
    """Manages launcher preferences and their persistence."""

    def __init__(self, config_dir: Optional[Path] = None):
        """
        Initialize launcher configuration.

        Args:
            config_dir: Directory to store launcher config (default: ~/.app_launcher)
        """
        if config_dir is None:
            config_dir = Path.home() / ".app_launcher"

        self.config_dir = config_dir
        self.config_file = self.config_dir / "launcher_config.json"

        # Default configuration
        self._config = {
            "isolate_apps": False,  # Opt-in by default
            "success_notification": True,
            "output_tail_lines": 256,
            "java_download_url": JAVA_DOWNLOAD_URL,
            "log_level": "INFO",
        }

        # Load existing configuration
        self._load()

    def _load(self):
        """Load configuration from disk."""
        if self.config_file.exists():
            try:
                with open(self.config_file) as f:
                    loaded = json.load(f)
                    self._config.update(loaded)
            except (OSError, json.JSONDecodeError) as e:
                logger.warning(f"Failed to load launcher config: {e}")

    def save(self):
        """Save configuration to disk."""
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            with open(self.config_file, "w") as f:
                json.dump(self._config, f, indent=2)
        except OSError as e:
            logger.error(f"Failed to save launcher config: {e}")

    @property
    def isolate_apps(self) -> bool:
        """Check if apps are launched in the sandbox by default."""
        return self._config.get("isolate_apps", False)

    @isolate_apps.setter
    def isolate_apps(self, value: bool):
        self._config["isolate_apps"] = value
        self.save()

    @property
    def success_notification(self) -> bool:
        """Check if a notification is shown when an app exits cleanly."""
        return self._config.get("success_notification", True)

    @success_notification.setter
    def success_notification(self, value: bool):
        self._config["success_notification"] = value
        self.save()

    @property
    def output_tail_lines(self) -> int:
        """Number of output lines kept from the child process."""
        return self._config.get("output_tail_lines", 256)

    @output_tail_lines.setter
    def output_tail_lines(self, value: int):
        if value < 1:
            raise ValueError("output_tail_lines must be at least 1")
        self._config["output_tail_lines"] = value
        self.save()

    @property
    def java_download_url(self) -> str:
        return self._config.get("java_download_url", JAVA_DOWNLOAD_URL)

    @property
    def log_level(self) -> str:
        return self._config.get("log_level", "INFO")

    def to_preferences(self) -> LaunchPreferences:
        """Snapshot the preferences a launch request carries."""
        return LaunchPreferences(
            isolate_apps=self.isolate_apps,
            success_notification=self.success_notification,
        )

    def get_status(self) -> dict:
        """Get current launcher settings as a dictionary."""
        return {
            "isolate_apps": self.isolate_apps,
            "success_notification": self.success_notification,
            "output_tail_lines": self.output_tail_lines,
            "java_download_url": self.java_download_url,
            "log_level": self.log_level,
            "config_file": str(self.config_file),
        }
