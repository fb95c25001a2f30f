"""Configuration: load and validate the task-service YAML file at startup.

Usage:
    from taskflow.config import load_settings
    settings = load_settings()            # path from CLICKUP_ENV_FILE
    settings = load_settings("env/clickup.dev.yaml")

Settings are frozen once built; every component receives them explicitly.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ConfigError

logger = logging.getLogger(__name__)

ENV_FILE_VAR = "CLICKUP_ENV_FILE"
DEFAULT_API_BASE_URL = "https://api.clickup.com/api/v2"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


# ---------------------------------------------------------------------------
# Webhook channels
# ---------------------------------------------------------------------------

class WebhookChannel(_Frozen):
    id: str
    secret: str


class WebhookSettings(_Frozen):
    endpoint_base_url: str
    endpoint_route: str
    verify_on_startup: bool = True
    channels: List[WebhookChannel] = Field(default_factory=list, alias="list")

    @property
    def endpoint_url(self) -> str:
        return f"{self.endpoint_base_url}{self.endpoint_route}"

    def channel(self, webhook_id: str) -> Optional[WebhookChannel]:
        return next((c for c in self.channels if c.id == webhook_id), None)


# ---------------------------------------------------------------------------
# Workspace ids
# ---------------------------------------------------------------------------

class TaskTypeIds(_Frozen):
    event: str
    record: str
    meeting: str


class ListIds(_Frozen):
    shopping: str


class CustomFieldIds(_Frozen):
    start_time: str
    end_time: str
    relevance_num: str
    relevance_unit: str
    relevance_date: str
    timestamp: str
    pre_meeting_tasks: str


class TagNames(_Frozen):
    purchase: str


class WorkspaceSettings(_Frozen):
    id: str
    task_type_ids: TaskTypeIds
    list_ids: ListIds
    custom_field_ids: CustomFieldIds
    tag_names: TagNames


class Settings(_Frozen):
    token: str
    api_base_url: str = DEFAULT_API_BASE_URL
    http_timeout_seconds: float = 15.0
    webhooks: WebhookSettings
    workspace: WorkspaceSettings


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def _maybe_load_dotenv() -> None:
    if os.getenv("APP_LOAD_DOTENV") in {"1", "true", "TRUE", "yes", "on"}:
        from dotenv import load_dotenv

        load_dotenv(override=False)


def resolve_config_path(path: Optional[str] = None) -> Path:
    _maybe_load_dotenv()
    raw = path or os.getenv(ENV_FILE_VAR)
    if not raw:
        raise ConfigError(f"{ENV_FILE_VAR} environment variable must be set")
    return Path(raw)


def load_settings(path: Optional[str] = None) -> Settings:
    """Read, parse and validate the YAML configuration. Raises ConfigError."""
    config_path = resolve_config_path(path)
    if not config_path.exists():
        raise ConfigError(f"{config_path} not found; create it with your configuration")
    try:
        with open(config_path) as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Error loading {config_path}: {e}") from e
    settings = settings_from_dict(raw)
    logger.info("Loaded configuration from %s", config_path)
    return settings


def settings_from_dict(raw: dict) -> Settings:
    if not isinstance(raw, dict):
        raise ConfigError("configuration root must be a mapping")
    try:
        return Settings.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
