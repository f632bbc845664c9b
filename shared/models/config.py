from pydantic import BaseModel, ConfigDict, Field


class RemoteConfig(BaseModel):
    """
    Connection settings for the remote mirror, as persisted in the local cache.

    Attributes:
        endpoint (str): Base URL of the remote project (cache key "url").
        key (str): Public API key of the remote project (cache key "anonKey").
    """

    model_config = ConfigDict(populate_by_name=True)

    endpoint: str = Field(default="", alias="url")
    key: str = Field(default="", alias="anonKey")

    def is_complete(self) -> bool:
        """Both endpoint and key must be set for remote mirroring to be enabled."""
        return bool(self.endpoint.strip()) and bool(self.key.strip())

    def signature(self) -> str:
        """
        Stable signature used to decide whether an existing client can be reused.

        Returns:
            str: "<endpoint>::<first 12 characters of the key>"
        """
        return f"{self.endpoint.strip()}::{self.key.strip()[:12]}"

    def stripped(self) -> "RemoteConfig":
        return RemoteConfig(endpoint=self.endpoint.strip(), key=self.key.strip())
