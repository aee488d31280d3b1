"""lifecycle

Database lifecycle: discovery on disk, remote download, local creation.
"""

from __future__ import annotations

from .manager import DatabaseLifecycleManager
from .models import ObtainOptions
from .store import DatabaseStore

__all__ = ["DatabaseLifecycleManager", "DatabaseStore", "ObtainOptions"]
