"""Core application utilities."""

from .config import Settings, get_settings
from .database import (
    close_db,
    get_engine,
    get_session,
    get_session_context,
    get_session_factory,
    init_db,
)
from .security import (
    create_publisher_token,
    create_viewer_token,
    decode_publisher_token,
    decode_viewer_token,
)

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Database
    "get_engine",
    "get_session_factory",
    "get_session",
    "get_session_context",
    "init_db",
    "close_db",
    # Security
    "create_publisher_token",
    "create_viewer_token",
    "decode_publisher_token",
    "decode_viewer_token",
]
