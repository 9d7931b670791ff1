"""
Backend Factory for DevDash.

Creates the appropriate storage backend based on configuration.
Handles reading config.json / environment and instantiating
LocalBackend or SupabaseBackend.
"""

import logging
from typing import Optional, TYPE_CHECKING

from devdash.config import load_config, get_storage_backend, get_supabase_credentials, get_local_data_dir
from devdash.storage.local_backend import LocalBackend

if TYPE_CHECKING:
    from devdash.storage.protocol import StorageBackend

logger = logging.getLogger(__name__)


def create_backend(
    config: Optional[dict] = None,
    supabase_client=None,
    force_backend: Optional[str] = None,
) -> "StorageBackend":
    """
    Create a storage backend instance.

    Args:
        config: Configuration dict (defaults to config.json)
        supabase_client: Optional Supabase client for cloud storage
        force_backend: Override the configured backend type

    Returns:
        StorageBackend instance (LocalBackend or SupabaseBackend)
    """
    if config is None:
        config = load_config()

    backend_type = force_backend or get_storage_backend(config)

    if backend_type == "supabase":
        # Import here so the local backend works without touching supabase-py
        from devdash.storage.supabase_backend import SupabaseBackend

        url, key = get_supabase_credentials(config)
        logger.info("Using Supabase storage backend")
        return SupabaseBackend(
            client=supabase_client,
            supabase_url=url,
            supabase_key=key,
        )

    if backend_type != "local":
        logger.warning(f"Unknown storage backend '{backend_type}', falling back to local")

    data_dir = get_local_data_dir(config)
    logger.info(f"Using local storage backend at {data_dir}")
    return LocalBackend(data_dir)
