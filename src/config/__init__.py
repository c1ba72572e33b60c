from .settings import AppSettings, UserConfig, UserConfigStore, load_settings

__all__ = ["AppSettings", "UserConfig", "UserConfigStore", "load_settings"]
