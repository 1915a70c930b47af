"""Runtime settings with typed configuration and fail-fast validation.

:class:`CatalogSettings` reads, in decreasing precedence: explicit overrides,
``WORKFLOW_*`` environment variables, then a dotenv-format configuration file
(``$WORKFLOW_CONFIG`` or ``~/.config/workflow/config``) keyed by the unprefixed
field names. Validation failures surface as :class:`SettingsError`.

Examples
--------
>>> from workflow_common.settings import load_settings
>>> settings = load_settings(workflow_dir="/tmp/workflows")
>>> settings.index_dir.name
'index'
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field, field_validator, model_validator
from pydantic_settings import (
    BaseSettings,
    DotEnvSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from workflow_common.errors import SettingsError
from workflow_common.logging import get_logger

__all__ = [
    "CONFIG_ENV_VAR",
    "DEFAULT_CONFIG_PATH",
    "CatalogSettings",
    "load_settings",
]

logger = get_logger(__name__)

CONFIG_ENV_VAR = "WORKFLOW_CONFIG"
DEFAULT_CONFIG_PATH = Path("~/.config/workflow/config")
DEFAULT_WORKFLOW_DIR = Path("~/.workflows")


class CatalogSettings(BaseSettings):
    """Catalog configuration (``WORKFLOW_*`` namespace)."""

    model_config = SettingsConfigDict(
        env_prefix="WORKFLOW_",
        extra="forbid",
        case_sensitive=False,
    )

    workflow_dir: Path = Field(
        default=DEFAULT_WORKFLOW_DIR, description="Directory holding workflow documents"
    )
    store_dir: Path = Field(description="Store directory (defaults to <workflow_dir>/.store)")
    index_dir: Path = Field(
        description="Search index directory (defaults to <workflow_dir>/index)"
    )
    log_level: str = Field(
        default="WARNING", description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )
    search_limit: int = Field(default=100, ge=1, description="Default number of search hits")

    @field_validator("workflow_dir", "store_dir", "index_dir")
    @classmethod
    def _expand_user(cls, value: Path) -> Path:
        return value.expanduser()

    @field_validator("log_level")
    @classmethod
    def _check_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            msg = f"Unknown log level: {value!r}"
            raise ValueError(msg)
        return level

    @model_validator(mode="before")
    @classmethod
    def _derive_dirs(cls, data: object) -> object:
        if not isinstance(data, dict):
            return data
        values = dict(data)
        base = Path(values.get("workflow_dir") or DEFAULT_WORKFLOW_DIR)
        if values.get("store_dir") is None:
            values["store_dir"] = base / ".store"
        if values.get("index_dir") is None:
            values["index_dir"] = base / "index"
        return values

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        del dotenv_settings, file_secret_settings
        config_path = Path(os.environ.get(CONFIG_ENV_VAR, str(DEFAULT_CONFIG_PATH)))
        return (
            init_settings,
            env_settings,
            DotEnvSettingsSource(
                settings_cls, env_file=config_path.expanduser(), env_prefix=""
            ),
        )


def load_settings(**overrides: object) -> CatalogSettings:
    """Load :class:`CatalogSettings` with optional overrides.

    Parameters
    ----------
    **overrides : object
        Field values taking precedence over the environment and config file.

    Returns
    -------
    CatalogSettings
        Validated settings with derived directories filled in.

    Raises
    ------
    SettingsError
        If validation fails or the configuration file is unreadable.
    """
    try:
        return CatalogSettings(**overrides)  # type: ignore[arg-type]
    except SettingsError:
        raise
    except Exception as exc:
        msg = f"Configuration validation failed: {exc}"
        logger.exception(
            "Settings validation failed",
            extra={"operation": "settings", "error_type": type(exc).__name__},
        )
        raise SettingsError(
            msg,
            cause=exc,
            context={"validation_error": str(exc)},
        ) from exc
