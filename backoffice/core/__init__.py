"""Core infrastructure: config, database, logging, middleware, exceptions."""

from backoffice.core.config import Settings, get_settings
from backoffice.core.database import Base, get_db, get_session_maker
from backoffice.core.exceptions import BackofficeError, StoreUnavailableError
from backoffice.core.logging import get_logger, request_id_ctx

__all__ = [
    "BackofficeError",
    "Base",
    "Settings",
    "StoreUnavailableError",
    "get_db",
    "get_logger",
    "get_session_maker",
    "get_settings",
    "request_id_ctx",
]
