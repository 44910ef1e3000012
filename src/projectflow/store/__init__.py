"""Entity models, storage backends, and the unified data store."""

from projectflow.store.backends import (
    COLLECTIONS,
    COURSES,
    LINKS,
    Backend,
    Change,
    LocalBackend,
    RelationalBackend,
    StorageError,
)
from projectflow.store.datastore import DataStore, StoreActions
from projectflow.store.factory import build_backend, open_store
from projectflow.store.gateway import RelationalGateway
from projectflow.store.models import COMPLETED, IDEAS, Course, Link, Note, Project

__all__ = [
    "COLLECTIONS",
    "COMPLETED",
    "COURSES",
    "IDEAS",
    "LINKS",
    "Backend",
    "Change",
    "LocalBackend",
    "RelationalBackend",
    "StorageError",
    "DataStore",
    "StoreActions",
    "build_backend",
    "open_store",
    "RelationalGateway",
    "Course",
    "Link",
    "Note",
    "Project",
]
