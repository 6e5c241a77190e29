"""
Configuration Loader - Bridge Between JSON Config and AppSettings
================================================================
Loads configuration from a JSON file and maps it onto AppSettings.
Environment variables (and .env) are read by AppSettings itself; JSON
values override the defaults, except the store connection string, where
an environment value wins.
"""

import json
import os
from pathlib import Path
from typing import Dict, Any

from .settings import (
    AppSettings,
    DatabaseSettings,
    PresenceSettings,
    ValidationSettings,
    ServerSettings,
    LoggingSettings,
)

_SECTIONS = {
    'database': DatabaseSettings,
    'presence': PresenceSettings,
    'validation': ValidationSettings,
    'server': ServerSettings,
    'logging': LoggingSettings,
}


def _resolve_env_vars(data: Any) -> Any:
    """Replace "${VAR}" string values with the environment value (empty if unset)."""
    if isinstance(data, dict):
        return {k: _resolve_env_vars(v) for k, v in data.items()}
    if isinstance(data, list):
        return [_resolve_env_vars(i) for i in data]
    if isinstance(data, str) and data.startswith("${") and data.endswith("}"):
        return os.getenv(data[2:-1], "")
    return data


def apply_config_data(settings: AppSettings, config_data: Dict[str, Any]) -> AppSettings:
    """
    Overlay a parsed JSON document onto settings.

    Unknown sections and keys are ignored. Each section is re-validated, so a
    bad value raises pydantic.ValidationError.
    """
    resolved = _resolve_env_vars(config_data)

    for section_name, section_cls in _SECTIONS.items():
        section_data = resolved.get(section_name)
        if not isinstance(section_data, dict):
            continue

        current = getattr(settings, section_name)
        values = current.model_dump()
        for key, value in section_data.items():
            if key not in section_cls.model_fields:
                continue
            if section_name == 'database' and key == 'url' and current.url:
                continue
            values[key] = value

        setattr(settings, section_name, section_cls(**values))

    if 'app_name' in resolved:
        settings.app_name = str(resolved['app_name'])
    if 'debug' in resolved:
        settings.debug = bool(resolved['debug'])

    return settings


def load_app_settings_from_json(config_path: str = "config/config.json") -> AppSettings:
    """
    Load AppSettings from a JSON configuration file.

    A missing or unreadable file falls back to environment/default settings;
    invalid values are reported through ValidationError.
    """
    settings = AppSettings()

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            config_data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        print(f"[WARNING] Failed to load JSON config from {config_path}: {e}")
        print("[INFO] Using environment/default AppSettings configuration")
        return settings

    return apply_config_data(settings, config_data)


def get_settings_from_working_directory() -> AppSettings:
    """
    Load settings from config.json relative to the current working directory.

    Returns:
        Configured AppSettings instance
    """
    possible_paths = [
        os.getenv("CHATROOM_CONFIG", ""),
        "config/config.json",
        "../config/config.json",
    ]

    for config_path in possible_paths:
        if config_path and Path(config_path).exists():
            return load_app_settings_from_json(config_path)

    return AppSettings()

