from .loader import load_settings
from .models import LoggingConfig, PairConfig, Settings, TokenConfig, VenueConfig

__all__ = ["Settings", "LoggingConfig", "PairConfig", "TokenConfig", "VenueConfig", "load_settings"]
