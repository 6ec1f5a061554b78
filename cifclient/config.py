"""
Client configuration

Settings are held in an explicit ClientConfig object that is passed to the
transport and client. They are loaded from a YAML file in the user's home
directory and can be overridden through environment variables.
"""
import logging
import os
from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import BaseModel, Field, ConfigDict, ValidationError

from cifclient.exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".cif.yml"

# Environment variable -> config field
ENV_OVERRIDES = {
    "CIF_REMOTE": "remote",
    "CIF_TOKEN": "token",
    "CIF_PROXY": "proxy",
}


class ClientConfig(BaseModel):
    """Connection settings for the threat intel API"""

    remote: str = Field(
        default="",
        description="Base URL of the API, e.g. https://cif.example.com"
    )

    token: str = Field(
        default="",
        description="API token"
    )

    proxy: Optional[str] = Field(
        default=None,
        description="HTTP(S) proxy URL"
    )

    verbose: bool = Field(
        default=False,
        description="Log request details"
    )

    raw: bool = Field(
        default=False,
        description="Return unmodified payloads instead of normalized records"
    )

    api_name: str = Field(
        default="cif",
        description="Vendor name used in the Accept media type"
    )

    timeout: float = Field(
        default=30,
        gt=0,
        description="Per-request socket timeout in seconds"
    )

    max_retry_attempts: Optional[int] = Field(
        default=5,
        ge=1,
        description="Total attempts when rate limited; None retries forever"
    )

    model_config = ConfigDict(extra='ignore')

    @property
    def base_url(self) -> str:
        """Remote with trailing slash removed"""
        return self.remote.rstrip('/')


def load_config(path: Optional[Union[str, Path]] = None) -> ClientConfig:
    """
    Load configuration from YAML and environment

    Args:
        path: Config file path. Defaults to ~/.cif.yml

    Returns:
        ClientConfig instance. A missing file yields defaults.

    Raises:
        ConfigError: If the file is not valid YAML or holds invalid values
    """
    config_path = Path(path) if path else DEFAULT_CONFIG_PATH
    values = {}

    if config_path.exists():
        try:
            with open(config_path, 'r') as f:
                loaded = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Cannot read config file {config_path}: {e}") from e

        if not isinstance(loaded, dict):
            raise ConfigError(f"Config file {config_path} must contain a mapping")

        values.update(loaded)
        logger.debug(f"Loaded config from {config_path}")
    else:
        logger.debug(f"No config file at {config_path}, using defaults")

    for env_var, field in ENV_OVERRIDES.items():
        if os.getenv(env_var):
            values[field] = os.getenv(env_var)

    try:
        return ClientConfig(**values)
    except ValidationError as e:
        error_messages = [
            f"{err['loc'][0] if err['loc'] else 'field'}: {err['msg']}"
            for err in e.errors()
        ]
        raise ConfigError(f"Invalid configuration: {error_messages}") from e


def save_config(config: ClientConfig, path: Optional[Union[str, Path]] = None) -> Path:
    """
    Write configuration to YAML

    Args:
        config: Configuration to persist
        path: Destination. Defaults to ~/.cif.yml

    Returns:
        Path written
    """
    config_path = Path(path) if path else DEFAULT_CONFIG_PATH
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, 'w') as f:
        yaml.safe_dump(config.model_dump(), f, default_flow_style=False, sort_keys=False)

    logger.info(f"Saved config to {config_path}")
    return config_path
