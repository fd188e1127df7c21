"""DataArts provider - connection configuration for DataArts Studio."""

import logging
from typing import Self

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, SecretStr

from dataarts_provisioner.core.client import ServiceClient
from dataarts_provisioner.core.errors import ClientInitError

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "https://dayu.{region}.myhuaweicloud.com/"


class TokenAuth(BaseModel):
    """IAM token authentication, sent as the ``X-Auth-Token`` header."""

    token: SecretStr


class DataArtsProvider(BaseModel):
    """Connection configuration for the DataArts Studio API.

    Clients are region-scoped: each region resolves its own endpoint and
    project id. ``project_id`` applies to the default ``region``; ``projects``
    maps other regions to their project ids.

    Examples:
        provider = DataArtsProvider(
            region="cn-north-4",
            project_id="0123456789abcdef",
            auth=TokenAuth(token="..."),
        )
        client = provider.client()

        # Tests: inject a prebuilt client
        provider = DataArtsProvider.from_client(ServiceClient(...))
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    region: str | None = None
    project_id: str | None = None
    projects: dict[str, str] = Field(default_factory=dict)
    endpoint: str = DEFAULT_ENDPOINT
    auth: TokenAuth | None = None
    timeout: float = 60.0

    # Injected client (for testing)
    _injected_client: ServiceClient | None = None
    _clients: dict[str, ServiceClient] = PrivateAttr(default_factory=dict)

    @classmethod
    def from_client(cls, client: ServiceClient) -> Self:
        """Create a provider whose every region resolves to *client*.

        The provider region defaults to the client's region.
        """
        provider = cls.model_construct(region=client.region, project_id=client.project_id)
        provider._injected_client = client
        return provider

    def get_region(self, region: str | None = None) -> str:
        """Resolve a per-resource region, falling back to the provider region."""
        resolved = region or self.region
        if not resolved:
            raise ClientInitError("region is required (set provider.region or DATAARTS_REGION)")
        return resolved

    def _project_id_for(self, region: str) -> str:
        if region in self.projects:
            return self.projects[region]
        if region == self.region and self.project_id:
            return self.project_id
        raise ClientInitError(f"No project id configured for region '{region}'")

    def client(self, region: str | None = None) -> ServiceClient:
        """Get the region-scoped service client (cached per region)."""
        if self._injected_client is not None:
            return self._injected_client

        resolved = self.get_region(region)
        if resolved in self._clients:
            return self._clients[resolved]

        if self.auth is None:
            raise ClientInitError(
                "Either provide auth, or use DataArtsProvider.from_client() to inject a client"
            )
        try:
            endpoint = self.endpoint.format(region=resolved)
        except (KeyError, IndexError) as exc:
            raise ClientInitError(f"Invalid endpoint template '{self.endpoint}': {exc}") from exc

        client = ServiceClient.create(
            endpoint,
            self._project_id_for(resolved),
            region=resolved,
            token=self.auth.token.get_secret_value(),
            timeout=self.timeout,
        )
        logger.debug("Created DataArts client for region %s (%s)", resolved, client.endpoint)
        self._clients[resolved] = client
        return client
