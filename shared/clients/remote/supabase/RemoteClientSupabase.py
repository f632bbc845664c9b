import httpx

from shared.clients.remote.RemoteClientInterface import RemoteClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import RemoteConfig
from shared.models.session import Identity, RemoteSession


class RemoteClientSupabase(RemoteClientInterface):
    """Remote mirror backed by a Supabase project (GoTrue auth + PostgREST table).

    Row level security on the table scopes every request to the signed-in user,
    so requests carry the user's access token rather than the anon key once a
    session exists.
    """

    def __init__(self, helper_config: HelperConfig, config: RemoteConfig, transport: httpx.AsyncBaseTransport | None = None):
        super().__init__(helper_config=helper_config, config=config, transport=transport)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Supabase"

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        session = self.get_session()
        bearer = session.access_token if session else self._config.key
        return {
            "apikey": self._config.key,
            "Authorization": f"Bearer {bearer}",
        }

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._config.endpoint

    def _get_endpoint_healthcheck(self) -> str:
        return "/auth/v1/health"

    def _get_endpoint_user(self) -> str:
        return "/auth/v1/user"

    def _get_endpoint_sign_in(self) -> str:
        return "/auth/v1/token?grant_type=password"

    def _get_endpoint_refresh(self) -> str:
        return "/auth/v1/token?grant_type=refresh_token"

    def _get_endpoint_sign_up(self) -> str:
        return "/auth/v1/signup"

    def _get_endpoint_sign_out(self) -> str:
        return "/auth/v1/logout"

    def _get_endpoint_rows(self) -> str:
        return f"/rest/v1/{self.get_table()}"

    ################ QUERY PARAMS ##################
    def _get_params_fetch_all(self) -> dict:
        return {"select": "*", "order": "created_at.desc"}

    def _get_params_match_id(self, document_id: str) -> dict:
        return {"id": f"eq.{document_id}"}

    def _get_params_match_ids(self, document_ids: list[str]) -> dict:
        quoted = ",".join(f'"{i}"' for i in document_ids)
        return {"id": f"in.({quoted})"}

    def _get_write_headers(self) -> dict:
        return {"Prefer": "return=minimal"}

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def _parse_identity(self, response: dict) -> Identity:
        return Identity(id=str(response["id"]), email=response.get("email"))

    def _parse_session(self, response: dict) -> RemoteSession | None:
        # sign-up with e-mail confirmation enabled returns the bare user without tokens
        access_token = response.get("access_token")
        if not access_token:
            return None
        user = response.get("user")
        return RemoteSession(
            access_token=access_token,
            refresh_token=response.get("refresh_token"),
            user=self._parse_identity(user) if user else None,
        )
