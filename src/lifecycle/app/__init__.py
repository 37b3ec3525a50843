"""Application-level wiring helpers built on the event registry."""

from .bootstrap import AppContext, AppEvent, create_app, create_app_async  # noqa: F401

__all__ = ["AppContext", "AppEvent", "create_app", "create_app_async"]
