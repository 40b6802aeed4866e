"""Settings package."""

from ammcore.settings.config import ADAPTER_ABI, Settings, settings

__all__ = ["ADAPTER_ABI", "Settings", "settings"]
