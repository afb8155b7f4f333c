"""Configuration loading and credential persistence."""

import json
import os
from pathlib import Path
from typing import Optional

import structlog
import yaml

from gateway.base import Identity

from .config_models import LifelogConfig

logger = structlog.get_logger().bind(source="config")


def find_config() -> Optional[Path]:
    """Find config file in standard locations."""
    env_path = os.environ.get("LIFELOG_CONFIG")
    locations = [Path(env_path)] if env_path else []
    locations += [
        Path.cwd() / "lifelog.yaml",
        Path.home() / ".lifelog" / "config.yaml",
    ]
    for loc in locations:
        if loc.exists():
            return loc
    return None


def load_config(config_path: Optional[Path] = None) -> LifelogConfig:
    """Load configuration as a validated model.

    Raises:
        ValueError: On invalid YAML or a config that fails validation.
    """
    base_config = {}

    path = config_path or find_config()
    if path and path.exists():
        try:
            with open(path) as f:
                base_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in config file: {e}")

    try:
        return LifelogConfig.from_dict(base_config)
    except Exception as e:
        raise ValueError(f"Config validation failed: {e}")


def load_identity(path: Path) -> Optional[Identity]:
    """Read the saved sign-in, or None when signed out or unreadable."""
    if not path.exists():
        return None
    try:
        data = json.loads(path.read_text())
        return Identity(
            user_id=str(data["user_id"]),
            token=data["token"],
            name=data.get("name", ""),
            email=data.get("email", ""),
        )
    except (OSError, ValueError, KeyError) as e:
        logger.warning("credentials_unreadable", path=str(path), error=str(e))
        return None


def save_identity(path: Path, identity: Identity) -> None:
    """Write the sign-in with owner-only permissions."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w") as f:
        json.dump(identity.to_dict(), f)


def clear_identity(path: Path) -> bool:
    if path.exists():
        path.unlink()
        return True
    return False
