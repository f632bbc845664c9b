"""Store runner entry point.

Loads the document collection once, preferring the remote mirror when it
is configured and a session is restored, and reports what was loaded.
Useful to check remote settings and the local cache without the API.

Usage:
    python -m services.document_store.store_runner
"""

import asyncio

from services.document_store.DocumentStore import DocumentStore
from shared.cache.LocalCache import LocalCache
from shared.clients.remote.RemoteClientManager import RemoteClientManager
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import STATUS_COLORS, setup_logging
from shared.models.document import DocumentKind
from shared.models.filter import DocumentFilter
logging = setup_logging()

async def main() -> None:
    """Load the collection and log a summary."""
    logger = setup_logging()
    config = HelperConfig(logger=logger)
    cache = LocalCache(helper_config=config)
    store = DocumentStore(
        helper_config=config,
        cache=cache,
        remote_manager=RemoteClientManager(helper_config=config, cache=cache),
    )

    try:
        docs = await store.boot()
        user = await store.current_user()
        if store.is_remote_enabled() and user is None:
            logger.warning("Remote settings found but no session is stored. Sign in through the API first.")

        forwarded = store.get_filtered(DocumentFilter(kind=DocumentKind.FORWARD))
        received = store.get_filtered(DocumentFilter(kind=DocumentKind.RECEIVED))
        logger.info(
            "Loaded %d document(s) (%d forwarded, %d received) from %s.",
            len(docs), len(forwarded), len(received), cache.directory,
        )
        logger.info("Store status: %s", store.status.value, color=STATUS_COLORS.get(store.status.value))
    finally:
        await store.close()


if __name__ == "__main__":
    asyncio.run(main())
