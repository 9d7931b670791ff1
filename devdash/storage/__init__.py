"""
Storage backend abstraction for DevDash.

Supports multiple storage backends:
- LocalBackend: JSON files in a local data directory (default)
- SupabaseBackend: Cloud PostgreSQL
"""

from devdash.storage.protocol import StorageBackend, StorageError
from devdash.storage.local_backend import LocalBackend
from devdash.storage.factory import create_backend

__all__ = [
    'StorageBackend',
    'StorageError',
    'LocalBackend',
    'create_backend',
]
