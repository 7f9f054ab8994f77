"""Layered configuration for cargocov.

Sources, strongest first: keyword overrides, ``CARGOCOV__SECTION__KEY``
environment variables, ``.cargocov/config.yaml`` in the workspace, the
user's ``~/.config/cargocov/config.yaml``, then the model defaults.
"""

from __future__ import annotations

from contextvars import ContextVar
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError
from pydantic_settings import (
    BaseSettings,
    InitSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from cargocov.config.models import (
    BuildConfig,
    CargoCovConfig,
    LoggingConfig,
    PathsConfig,
    ToolsConfig,
)
from cargocov.core.errors import ConfigError

GLOBAL_CONFIG_PATH = Path.home() / ".config" / "cargocov" / "config.yaml"
WORKSPACE_CONFIG_NAME = Path(".cargocov") / "config.yaml"

# Merged YAML documents for the load_config call in progress
_yaml_layer: ContextVar[dict[str, Any] | None] = ContextVar("cargocov_yaml_layer", default=None)


def _load_yaml(path: Path) -> dict[str, Any]:
    """Parse one config file. A missing or empty file contributes nothing."""
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError.parse_error(str(path), str(exc)) from exc
    if document is None:
        return {}
    if not isinstance(document, dict):
        raise ConfigError.parse_error(str(path), "top-level value must be a mapping")
    return document


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Overlay ``override`` on ``base``; sections merge, scalars and lists replace."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = value
    return merged


class CargoCovSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="CARGOCOV__",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    logging: LoggingConfig = LoggingConfig()
    paths: PathsConfig = PathsConfig()
    tools: ToolsConfig = ToolsConfig()
    build: BuildConfig = BuildConfig()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        file_secret_settings: PydanticBaseSettingsSource,  # noqa: ARG003
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        yaml_source = InitSettingsSource(settings_cls, init_kwargs=_yaml_layer.get() or {})
        return (init_settings, env_settings, yaml_source)


def _as_config_error(exc: ValidationError) -> ConfigError:
    first = exc.errors()[0]
    field = ".".join(str(part) for part in first["loc"])
    return ConfigError.invalid_value(field, first.get("input"), first["msg"])


def load_config(workspace_root: Path | None = None, **kwargs: Any) -> CargoCovConfig:
    """Resolve the configuration for a Cargo workspace.

    Args:
        workspace_root: Directory holding ``.cargocov/config.yaml``.
            Defaults to the current working directory.
        **kwargs: Whole sections (``build=BuildConfig(...)``) that beat
            every other source.

    Raises:
        ConfigError: A config file is not valid YAML, or a value fails
            validation.
    """
    root = workspace_root or Path.cwd()
    layered = _deep_merge(
        _load_yaml(GLOBAL_CONFIG_PATH),
        _load_yaml(root / WORKSPACE_CONFIG_NAME),
    )

    token = _yaml_layer.set(layered)
    try:
        settings = CargoCovSettings(**kwargs)
    except ValidationError as exc:
        raise _as_config_error(exc) from exc
    finally:
        _yaml_layer.reset(token)
    return CargoCovConfig.model_validate(settings.model_dump())
