import httpx

from shared.cache.LocalCache import LocalCache
from shared.clients.remote.RemoteClientInterface import RemoteClientInterface
from shared.clients.remote.SessionTracker import SessionTracker
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import RemoteConfig


class RemoteClientManager:
    """
    Manager class that keeps exactly one remote client (and its session tracker)
    per remote configuration signature.
    """

    def __init__(self, helper_config: HelperConfig, cache: LocalCache | None = None, transport: httpx.AsyncBaseTransport | None = None):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self._cache = cache
        self._transport = transport
        self._client: RemoteClientInterface | None = None
        self._tracker: SessionTracker | None = None
        self._signature: str | None = None

    def _get_engine_from_env(self) -> str:
        """
        Reads the remote engine from ENV configuration.

        Returns:
            str: The name of the remote engine, capitalized (e.g. "Supabase").

        Raises:
            ValueError: If the configured engine is empty.
        """
        engine = self.helper_config.get_string_val("REMOTE_ENGINE", default="supabase")
        if not engine:
            raise ValueError("No remote engine specified in configuration.")

        #lowercase all and uppcercase first letter for better comparison and display
        engine = engine.strip().lower()
        engine = engine.capitalize()
        return engine

    def _create_client(self, config: RemoteConfig) -> RemoteClientInterface:
        """
        Instantiates the remote client of the configured engine.

        Raises:
            ValueError: If the configured engine has no client implementation.
        """
        engine = self._get_engine_from_env()
        className = f"RemoteClient{engine}"
        try:
            module = __import__(
                f"shared.clients.remote.{engine.lower()}.{className}",
                fromlist=[className],
            )
            client_class = getattr(module, className)
        except (ImportError, AttributeError) as e:
            raise ValueError(f"Unsupported remote engine specified: '{engine}'. Error: {e}")
        self.logging.debug(f"Instantiated remote client for engine: {engine}")
        return client_class(helper_config=self.helper_config, config=config, transport=self._transport)

    async def init(self, config: RemoteConfig | None) -> RemoteClientInterface | None:
        """
        Returns a booted client for config, reusing the current one if the signature is unchanged.

        A different signature closes and replaces the current client. A missing or
        incomplete config tears the current client down.

        Args:
            config (RemoteConfig | None): The remote configuration to use.

        Returns:
            RemoteClientInterface | None: The live client, or None if remote mirroring is disabled.
        """
        if config is None or not config.is_complete():
            await self.teardown()
            return None

        signature = config.signature()
        if self._client is not None and self._signature == signature:
            return self._client

        await self.teardown()
        client = self._create_client(config)
        await client.boot()
        tracker = SessionTracker(helper_config=self.helper_config, client=client, cache=self._cache)
        if tracker.restore():
            self.logging.info("Restored saved %s session.", client.get_engine_name())

        self._client = client
        self._tracker = tracker
        self._signature = signature
        self.logging.info("Remote client ready for %s (%s).", client.get_engine_name(), config.endpoint)
        return client

    async def teardown(self) -> None:
        """Closes and forgets the current client, if any."""
        if self._client is not None:
            await self._client.close()
            self.logging.info("Remote client for %s closed.", self._client.get_engine_name())
        self._client = None
        self._tracker = None
        self._signature = None

    def get_client(self) -> RemoteClientInterface | None:
        return self._client

    def get_tracker(self) -> SessionTracker | None:
        return self._tracker

    def get_signature(self) -> str | None:
        return self._signature
