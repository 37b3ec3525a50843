"""Global configuration and defaults for the lifecycle event registry."""

from __future__ import annotations

import os
from typing import Final

DEFAULT_TRACE_CAPACITY: Final = int(os.environ.get("LIFECYCLE_TRACE_CAPACITY", "50"))
TRACING_ENABLED: Final = os.environ.get("LIFECYCLE_TRACING", "0") == "1"
SLOW_HANDLER_THRESHOLD_S: Final = float(
    os.environ.get("LIFECYCLE_SLOW_HANDLER_S", "0.25")
)  # seconds
