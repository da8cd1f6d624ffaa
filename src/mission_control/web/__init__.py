"""HTTP layer: JSON endpoints and the dashboard page."""

from mission_control.web.app import create_app

__all__ = ["create_app"]
