"""Session tracking for a remote client.

One tracker exists per live remote client instance. It answers "who is
signed in" and notifies subscribers when the auth state transitions.
"""

from typing import Awaitable, Callable

from shared.cache.LocalCache import LocalCache
from shared.clients.remote.RemoteClientInterface import RemoteClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.session import AuthEvent, Identity, RemoteSession

AuthListener = Callable[[AuthEvent, Identity | None], Awaitable[None]]


class SessionTracker:
    def __init__(self, helper_config: HelperConfig, client: RemoteClientInterface, cache: LocalCache | None = None) -> None:
        self.logging = helper_config.get_logger()
        self._client = client
        self._cache = cache
        self._persist = helper_config.get_bool_val("REMOTE_PERSIST_SESSION", default=True)
        self._listeners: list[AuthListener] = []
        self._last_user: Identity | None = None
        self._persisted: RemoteSession | None = None

    def get_client(self) -> RemoteClientInterface:
        return self._client

    ##########################################
    ############# SUBSCRIPTIONS ##############
    ##########################################

    def subscribe(self, listener: AuthListener) -> Callable[[], None]:
        """
        Registers a listener for auth transitions. Registering the same listener twice is a no-op.

        Returns:
            Callable[[], None]: Removes the listener again.
        """
        if listener not in self._listeners:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def listener_count(self) -> int:
        return len(self._listeners)

    async def _emit(self, event: AuthEvent, user: Identity | None) -> None:
        self.logging.info("Auth transition on %s: %s", self._client.get_engine_name(), event.value)
        for listener in list(self._listeners):
            try:
                await listener(event, user)
            except Exception as e:
                self.logging.error("Auth listener failed on %s: %s", event.value, e)

    ##########################################
    ################ SESSION #################
    ##########################################

    def restore(self) -> bool:
        """
        Loads a previously persisted session into the client.

        Returns:
            bool: True if a session was restored.
        """
        if self._cache is None or not self._persist:
            return False
        session = self._cache.read_session()
        if session is None:
            return False
        self._client.set_session(session)
        self._persisted = session
        self._last_user = session.user
        return True

    def _save_session(self) -> None:
        if self._cache is None or not self._persist:
            return
        session = self._client.get_session()
        if session is self._persisted:
            return
        if session is None:
            self._cache.clear_session()
        else:
            self._cache.write_session(session)
        self._persisted = session

    async def current_user(self) -> Identity | None:
        """
        Returns the signed-in identity, or None. Never raises.

        A session that the backend no longer accepts produces a SIGNED_OUT transition.
        """
        user = await self._client.get_current_user()
        if user is None and self._last_user is not None and self._client.get_session() is not None:
            # token rejected by the backend: drop it so we stop sending it
            self._client.set_session(None)
            self._last_user = None
            self._save_session()
            await self._emit(AuthEvent.SIGNED_OUT, None)
            return None
        if user is not None:
            self._last_user = user
        self._save_session()
        return user

    async def sign_in(self, email: str, password: str) -> Identity | None:
        """
        Signs in and emits SIGNED_IN.

        Raises:
            NotAuthenticated: If the credentials are rejected.
            RemoteUnavailable: If the backend cannot be reached.
        """
        session = await self._client.do_sign_in(email, password)
        user = session.user or await self._client.get_current_user()
        self._last_user = user
        self._save_session()
        await self._emit(AuthEvent.SIGNED_IN, user)
        return user

    async def sign_up(self, email: str, password: str) -> Identity | None:
        """
        Registers an account. Emits SIGNED_IN only if the backend signed the user in right away.

        Returns:
            Identity | None: The signed-in identity, or None if confirmation is pending.
        """
        session = await self._client.do_sign_up(email, password)
        if session is None:
            self.logging.info("Account for %s created; confirmation required before sign-in.", email)
            return None
        user = session.user or await self._client.get_current_user()
        self._last_user = user
        self._save_session()
        await self._emit(AuthEvent.SIGNED_IN, user)
        return user

    async def sign_out(self) -> None:
        """Ends the session and emits SIGNED_OUT."""
        await self._client.do_sign_out()
        self._last_user = None
        self._save_session()
        await self._emit(AuthEvent.SIGNED_OUT, None)
