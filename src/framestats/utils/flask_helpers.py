from typing import Optional, TYPE_CHECKING

from flask import current_app

if TYPE_CHECKING:
    # These imports are only used for type checking, not at runtime
    from framestats.run_service import RunService


def get_run_service() -> Optional["RunService"]:
    """Get the run service from the current app configuration."""
    return current_app.config.get("RUN_SERVICE", None)
