from __future__ import annotations

import logging
from importlib.metadata import version

__version__ = version("buildgate")

logger = logging.getLogger("buildgate")

__all__ = ["__version__", "logger"]
