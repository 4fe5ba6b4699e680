# Core modules
# core.session depends on the services; import it directly

from .config import settings, get_settings, Settings

__all__ = ["settings", "get_settings", "Settings"]
