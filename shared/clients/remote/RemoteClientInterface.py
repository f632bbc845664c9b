from abc import abstractmethod
from typing import Any

import httpx
from pydantic import ValidationError

from shared.clients.ClientInterface import ClientInterface
from shared.clients.remote.models.DocumentRow import DocumentRow
from shared.errors import NotAuthenticated, RemoteUnavailable
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import RemoteConfig
from shared.models.document import Document
from shared.models.session import Identity, RemoteSession


class RemoteClientInterface(ClientInterface):
    """
    Remote mirror of the document collection: a user-scoped table behind an
    authentication backend. Every data operation requires a signed-in identity.
    """

    def __init__(self, helper_config: HelperConfig, config: RemoteConfig, transport: httpx.AsyncBaseTransport | None = None):
        super().__init__(helper_config=helper_config, transport=transport)
        self._config = config.stripped()
        self._table = helper_config.get_string_val("REMOTE_TABLE", default="documents")
        self._session: RemoteSession | None = None

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "remote"

    def get_config(self) -> RemoteConfig:
        return self._config

    def get_signature(self) -> str:
        """
        Returns the configuration signature this client was created for.
        """
        return self._config.signature()

    def get_table(self) -> str:
        return self._table

    ################ SESSION ##################
    def get_session(self) -> RemoteSession | None:
        return self._session

    def set_session(self, session: RemoteSession | None) -> None:
        self._session = session

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_user(self) -> str:
        """
        Returns the endpoint path that reports the user owning the current access token.
        """
        pass

    @abstractmethod
    def _get_endpoint_sign_in(self) -> str:
        """
        Returns the endpoint path for password sign-in.
        """
        pass

    @abstractmethod
    def _get_endpoint_refresh(self) -> str:
        """
        Returns the endpoint path for exchanging a refresh token for a new session.
        """
        pass

    @abstractmethod
    def _get_endpoint_sign_up(self) -> str:
        """
        Returns the endpoint path for account registration.
        """
        pass

    @abstractmethod
    def _get_endpoint_sign_out(self) -> str:
        """
        Returns the endpoint path that revokes the current session.
        """
        pass

    @abstractmethod
    def _get_endpoint_rows(self) -> str:
        """
        Returns the endpoint path of the documents table.
        """
        pass

    ################ QUERY PARAMS ##################
    @abstractmethod
    def _get_params_fetch_all(self) -> dict:
        """
        Returns the query parameters selecting all rows, newest first by server creation time.
        """
        pass

    @abstractmethod
    def _get_params_match_id(self, document_id: str) -> dict:
        pass

    @abstractmethod
    def _get_params_match_ids(self, document_ids: list[str]) -> dict:
        pass

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    @abstractmethod
    def _parse_identity(self, response: dict) -> Identity:
        """
        Parses the user payload of the auth backend into an Identity.
        """
        pass

    @abstractmethod
    def _parse_session(self, response: dict) -> RemoteSession | None:
        """
        Parses a token response into a RemoteSession.

        Returns:
            RemoteSession | None: None if the backend issued no session (e.g. sign-up awaiting e-mail confirmation).
        """
        pass

    def _parse_rows(self, response: Any) -> list[Document]:
        if not isinstance(response, list):
            raise RemoteUnavailable(f"Unexpected response from {self.get_engine_name()} table '{self._table}': expected a list of rows.")
        try:
            return [DocumentRow.model_validate(row).to_document() for row in response]
        except ValidationError as e:
            raise RemoteUnavailable(f"Malformed row in {self.get_engine_name()} table '{self._table}': {e}") from e

    ##########################################
    ############# AUTH REQUESTS ##############
    ##########################################

    async def get_current_user(self) -> Identity | None:
        """
        Asks the auth backend who owns the current session.

        An expired access token is refreshed once if a refresh token is available.

        Returns:
            Identity | None: The signed-in identity, or None when signed out or on any error.
        """
        if self._session is None:
            return None
        try:
            identity = await self._fetch_identity()
            if identity is None and self._session.refresh_token:
                if await self.do_refresh_session():
                    identity = await self._fetch_identity()
            return identity
        except Exception as e:
            self.logging.warning("Could not determine the current %s user: %s", self.get_engine_name(), e)
            return None

    async def _fetch_identity(self) -> Identity | None:
        resp = await self.do_request(method="GET", endpoint=self._get_endpoint_user())
        if resp.status_code in (401, 403):
            return None
        if resp.status_code >= 300:
            raise RemoteUnavailable(f"User lookup failed with status {resp.status_code}", status_code=resp.status_code)
        return self._parse_identity(resp.json())

    async def do_refresh_session(self) -> bool:
        """
        Exchanges the refresh token for a new session.

        Returns:
            bool: True if a new session was issued.
        """
        if self._session is None or not self._session.refresh_token:
            return False
        resp = await self.do_request(
            method="POST",
            endpoint=self._get_endpoint_refresh(),
            json={"refresh_token": self._session.refresh_token},
        )
        if resp.status_code >= 300:
            self.logging.info("Refreshing the %s session failed with status %d.", self.get_engine_name(), resp.status_code)
            return False
        session = self._parse_session(resp.json())
        if session is None:
            return False
        self._session = session
        return True

    async def do_sign_in(self, email: str, password: str) -> RemoteSession:
        """
        Signs in with e-mail and password and keeps the issued session.

        Raises:
            NotAuthenticated: If the credentials are rejected.
            RemoteUnavailable: If the backend cannot be reached.
        """
        resp = await self.do_request(method="POST", endpoint=self._get_endpoint_sign_in(), json={"email": email, "password": password})
        if resp.status_code in (400, 401, 403, 422):
            raise NotAuthenticated(f"Sign-in rejected: {self._error_message(resp)}")
        if resp.status_code >= 300:
            raise RemoteUnavailable(f"Sign-in failed with status {resp.status_code}", status_code=resp.status_code)
        session = self._parse_session(resp.json())
        if session is None:
            raise NotAuthenticated("Sign-in returned no session.")
        self._session = session
        return session

    async def do_sign_up(self, email: str, password: str) -> RemoteSession | None:
        """
        Registers a new account. If the backend signs the user in right away, the session is kept.

        Returns:
            RemoteSession | None: The new session, or None if the account still needs confirmation.

        Raises:
            NotAuthenticated: If the registration is rejected.
            RemoteUnavailable: If the backend cannot be reached.
        """
        resp = await self.do_request(method="POST", endpoint=self._get_endpoint_sign_up(), json={"email": email, "password": password})
        if resp.status_code in (400, 401, 403, 422):
            raise NotAuthenticated(f"Sign-up rejected: {self._error_message(resp)}")
        if resp.status_code >= 300:
            raise RemoteUnavailable(f"Sign-up failed with status {resp.status_code}", status_code=resp.status_code)
        session = self._parse_session(resp.json())
        if session is not None:
            self._session = session
        return session

    async def do_sign_out(self) -> None:
        """Revokes the session on the backend (best-effort) and forgets it locally."""
        if self._session is None:
            return
        try:
            await self.do_request(method="POST", endpoint=self._get_endpoint_sign_out())
        except RemoteUnavailable as e:
            self.logging.warning("Could not revoke %s session remotely: %s", self.get_engine_name(), e)
        finally:
            self._session = None

    def _error_message(self, resp: httpx.Response) -> str:
        try:
            body = resp.json()
        except ValueError:
            return resp.text
        if isinstance(body, dict):
            return str(body.get("error_description") or body.get("msg") or body.get("message") or body)
        return str(body)

    ##########################################
    ############# DATA REQUESTS ##############
    ##########################################

    async def _require_user(self) -> Identity:
        user = await self.get_current_user()
        if user is None:
            raise NotAuthenticated("Not signed in")
        return user

    async def do_fetch_all(self) -> list[Document]:
        """
        Fetches all documents of the signed-in user, newest first.

        Returns:
            list[Document]: The mirrored documents.

        Raises:
            NotAuthenticated: If nobody is signed in.
            RemoteUnavailable: On any transport or service error.
        """
        await self._require_user()
        resp = await self.do_request(method="GET", endpoint=self._get_endpoint_rows(), params=self._get_params_fetch_all(), raise_on_error=True)
        docs = self._parse_rows(resp.json())
        self.logging.info("Fetched %d document(s) from %s table '%s'", len(docs), self.get_engine_name(), self._table)
        return docs

    async def do_insert(self, doc: Document) -> None:
        await self.do_insert_many([doc])

    async def do_insert_many(self, docs: list[Document]) -> None:
        """
        Inserts documents in one request, each stamped with the signed-in user as owner.

        Raises:
            NotAuthenticated: If nobody is signed in.
            RemoteUnavailable: On any transport or service error.
        """
        user = await self._require_user()
        if not docs:
            return
        payload = [DocumentRow.from_document(d, user_id=user.id).to_payload() for d in docs]
        await self.do_request(method="POST", endpoint=self._get_endpoint_rows(), json=payload, additional_headers=self._get_write_headers(), raise_on_error=True)

    async def do_update(self, doc: Document) -> None:
        """
        Replaces the row with the same id, stamped with the signed-in user as owner.

        Raises:
            NotAuthenticated: If nobody is signed in.
            RemoteUnavailable: On any transport or service error.
        """
        user = await self._require_user()
        payload = DocumentRow.from_document(doc, user_id=user.id).to_payload()
        await self.do_request(
            method="PATCH",
            endpoint=self._get_endpoint_rows(),
            params=self._get_params_match_id(doc.id),
            json=payload,
            additional_headers=self._get_write_headers(),
            raise_on_error=True,
        )

    async def do_delete(self, document_ids: list[str]) -> None:
        """
        Deletes the rows with the given ids.

        Raises:
            NotAuthenticated: If nobody is signed in.
            RemoteUnavailable: On any transport or service error.
        """
        await self._require_user()
        if not document_ids:
            return
        await self.do_request(
            method="DELETE",
            endpoint=self._get_endpoint_rows(),
            params=self._get_params_match_ids(list(document_ids)),
            additional_headers=self._get_write_headers(),
            raise_on_error=True,
        )

    def _get_write_headers(self) -> dict:
        """
        Extra headers sent with insert/update/delete requests.
        """
        return {}
