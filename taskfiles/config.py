"""
Configuration management for taskfiles.

Handles loading and saving user configuration from:
- XDG config directory: ~/.config/taskfiles/config.json
- Fallback: ~/.taskfiles/config.json
"""

import json
import logging
from pathlib import Path
from typing import Dict, Any, Optional
from dataclasses import dataclass, asdict, field

from taskfiles.reader import DEFAULT_MAX_PAGES

logger = logging.getLogger(__name__)


@dataclass
class ServerConfig:
    """Web server configuration."""
    host: str = "0.0.0.0"
    port: int = 5051
    log_level: str = "info"


@dataclass
class ReadConfig:
    """Bounded read settings."""
    max_pages: int = DEFAULT_MAX_PAGES


@dataclass
class TaskFilesConfig:
    """Main taskfiles configuration."""
    server: ServerConfig = field(default_factory=ServerConfig)
    read: ReadConfig = field(default_factory=ReadConfig)
    # Virtual name -> host path, attached when the server starts
    attachments: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "server": asdict(self.server),
            "read": asdict(self.read),
            "attachments": dict(self.attachments),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TaskFilesConfig':
        """Create from dictionary."""
        server_data = data.get("server", {})
        read_data = data.get("read", {})
        attachments = data.get("attachments", {})
        return cls(
            server=ServerConfig(**server_data),
            read=ReadConfig(**read_data),
            attachments=dict(attachments),
        )


def get_config_path() -> Path:
    """
    Get configuration file path.

    Follows XDG Base Directory specification:
    1. ~/.config/taskfiles/config.json
    2. Fallback: ~/.taskfiles/config.json

    Returns:
        Path to config file
    """
    xdg_config_home = Path.home() / ".config"
    if xdg_config_home.exists():
        config_dir = xdg_config_home / "taskfiles"
    else:
        config_dir = Path.home() / ".taskfiles"

    return config_dir / "config.json"


def load_config() -> TaskFilesConfig:
    """
    Load configuration from file.

    Returns:
        TaskFilesConfig instance with loaded values or defaults
    """
    config_path = get_config_path()

    if not config_path.exists():
        return TaskFilesConfig()

    try:
        with open(config_path, 'r') as f:
            data = json.load(f)
        return TaskFilesConfig.from_dict(data)
    except (json.JSONDecodeError, OSError, TypeError) as e:
        logger.warning(f"Failed to load config from {config_path}: {e}")
        logger.warning("Using default configuration")
        return TaskFilesConfig()


def save_config(config: TaskFilesConfig) -> Path:
    """
    Save configuration to file.

    Args:
        config: Configuration to save

    Returns:
        Path the configuration was written to
    """
    config_path = get_config_path()

    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, 'w') as f:
        json.dump(config.to_dict(), f, indent=2)

    logger.debug(f"Configuration saved to {config_path}")
    return config_path


def update_config(
    server_host: Optional[str] = None,
    server_port: Optional[int] = None,
    server_log_level: Optional[str] = None,
    read_max_pages: Optional[int] = None,
) -> TaskFilesConfig:
    """
    Update configuration.

    Only updates provided values, leaving others unchanged.
    """
    config = load_config()

    if server_host is not None:
        config.server.host = server_host
    if server_port is not None:
        config.server.port = server_port
    if server_log_level is not None:
        config.server.log_level = server_log_level

    if read_max_pages is not None:
        if read_max_pages < 1:
            raise ValueError("max_pages must be at least 1")
        config.read.max_pages = read_max_pages

    save_config(config)
    return config


def add_attachment(name: str, host_path: str) -> TaskFilesConfig:
    """Persist an attachment; an existing name is overwritten."""
    config = load_config()
    config.attachments[name] = host_path
    save_config(config)
    return config


def remove_attachment(name: str) -> TaskFilesConfig:
    """Forget a persisted attachment; unknown names are ignored."""
    config = load_config()
    config.attachments.pop(name, None)
    save_config(config)
    return config
