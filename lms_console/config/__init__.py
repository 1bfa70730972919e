from .loader import CONF_FILE_ENV, load_raw, load_settings
from .model import ConsoleSettings

__all__ = ["CONF_FILE_ENV", "ConsoleSettings", "load_raw", "load_settings"]
