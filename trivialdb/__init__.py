from __future__ import annotations

from .errors import (
    DatabaseFileMissing,
    DocumentNotFound,
    LoadFailure,
    ParseFailure,
    TrivialDBError,
    UnsupportedOperation,
    ValidationError,
    WriteFailure,
)
from .ids import generate_id
from .models import Collection, Model, define_model
from .namespace import Namespace, Registry
from .options import StoreOptions
from .query import Query
from .scheduler import SchedulerState
from .settings import Settings, get_settings
from .store import Store

__all__ = [
    "Collection",
    "DatabaseFileMissing",
    "DocumentNotFound",
    "LoadFailure",
    "Model",
    "Namespace",
    "ParseFailure",
    "Query",
    "Registry",
    "SchedulerState",
    "Settings",
    "Store",
    "StoreOptions",
    "TrivialDBError",
    "UnsupportedOperation",
    "ValidationError",
    "WriteFailure",
    "define_model",
    "generate_id",
    "get_settings",
]
