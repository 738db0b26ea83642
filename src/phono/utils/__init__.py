from .config import ServiceSettings, load_settings, settings_from_env

__all__ = [
    "ServiceSettings",
    "load_settings",
    "settings_from_env",
]
