"""
Main NiceGUI application for DevDash.

Builds the storage backend and session manager once at startup and hands
them to every page through an AppContext.
"""

import logging
import sys

from nicegui import ui

from dotenv import load_dotenv
load_dotenv()

from devdash.auth import configure_session_manager
from devdash.config import (
    get_log_level,
    get_storage_backend,
    get_storage_secret,
    get_supabase_credentials,
)
from devdash.pages import AppContext, register_pages
from devdash.paths import ensure_data_dir
from devdash.storage import StorageError, create_backend

logging.basicConfig(
    level=get_log_level(),
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)
logger = logging.getLogger('devdash')

# Ensure required directories exist on startup
ensure_data_dir()

# Global Styles
ui.add_head_html('''
    <style>
        ::-webkit-scrollbar {
            width: 8px;
            height: 8px;
        }
        ::-webkit-scrollbar-track {
            background: transparent;
        }
        ::-webkit-scrollbar-thumb {
            background: #475569;
            border-radius: 9999px;
        }
    </style>
''', shared=True)


def build_context() -> AppContext:
    supabase_url, supabase_key = get_supabase_credentials()
    session = configure_session_manager(supabase_url, supabase_key)

    try:
        backend = create_backend()
    except (StorageError, ValueError) as e:
        logger.error(f"Could not create '{get_storage_backend()}' backend: {e}. Falling back to local storage.")
        backend = create_backend(force_backend='local')

    logger.info(f"Using {backend.backend_type} storage backend")
    return AppContext(backend=backend, session=session)


register_pages(build_context())


if __name__ in {"__main__", "__mp_main__"}:
    ui.run(
        title='DevDash',
        port=8080,
        dark=True,
        reload=not getattr(sys, 'frozen', False),
        storage_secret=get_storage_secret(),
    )
