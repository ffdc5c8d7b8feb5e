from .settings import Settings, StoreSettings, load_dotenv_if_present, load_settings

__all__ = ["Settings", "StoreSettings", "load_dotenv_if_present", "load_settings"]
