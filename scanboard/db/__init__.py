from . import models  # noqa: F401
from .session import dispose_engine, get_session, init_db

__all__ = [
    "models",
    "dispose_engine",
    "get_session",
    "init_db",
]
