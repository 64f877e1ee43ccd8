"""
Configuration loading for a steward instance.

Each target repository carries a `.stewardmcp/` directory with:
- config.json: instance name, idle timeout, tool allow-list, warmup prompt
- ENGINEER.md: optional instructions appended to the agent's system prompt
"""

import json
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from steward.logger import get_logger

logger = get_logger(__name__)

STEWARD_DIR = ".stewardmcp"
CONFIG_FILENAME = "config.json"
ENGINEER_MD_FILENAME = "ENGINEER.md"


class ConfigError(Exception):
    """Raised when a steward configuration is missing or invalid."""


class StewardConfig(BaseModel):
    """Immutable configuration record, read once at startup."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str = Field(min_length=1)
    idle_timeout_minutes: int | float = Field(gt=0)
    allowed_tools: list[str] = Field(default_factory=list)
    warmup_prompt: str


def config_path(repo_path: Path) -> Path:
    return Path(repo_path) / STEWARD_DIR / CONFIG_FILENAME


def load_config(repo_path: Path) -> StewardConfig:
    """
    Load and validate `.stewardmcp/config.json` from the repository root.

    Raises:
        ConfigError: If the file is missing, is not valid JSON, or does not
            match the expected schema.
    """
    path = config_path(repo_path)
    if not path.exists():
        raise ConfigError(
            f"No {STEWARD_DIR}/{CONFIG_FILENAME} found in {repo_path}. "
            f"Create one in the target repo first."
        )

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"{path} must contain a JSON object")

    try:
        config = StewardConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {path}:\n{e}") from e

    logger.debug(f"Loaded config '{config.name}' from {path}")
    return config


def load_engineer_md(repo_path: Path) -> str:
    """Read ENGINEER.md, or return an empty string if it does not exist."""
    path = Path(repo_path) / STEWARD_DIR / ENGINEER_MD_FILENAME
    if not path.exists():
        return ""
    return path.read_text(encoding="utf-8")
