"""Upload backends, selected by ProviderKind."""
from typing import Optional

import httpx

from ..models import Credentials, EngineConfig, ProviderKind
from ..protocols import IProvider
from .anonymous_host import AnonymousHostProvider
from .cloud_store import CloudStoreProvider, GoogleOAuth


def build_provider(
    kind: ProviderKind,
    client: httpx.AsyncClient,
    config: EngineConfig,
    credentials: Optional[Credentials] = None,
) -> IProvider:
    """Build the provider for kind. Credentials are only used by the cloud store."""
    if kind is ProviderKind.ANONYMOUS_HOST:
        return AnonymousHostProvider(client, config.anonymous_host_url, config.user_agent)
    if kind is ProviderKind.CLOUD_STORE:
        return CloudStoreProvider(client, credentials, folder_id=config.drive_folder_id)
    raise ValueError(f"Unsupported provider: {kind}")


__all__ = [
    "AnonymousHostProvider",
    "CloudStoreProvider",
    "GoogleOAuth",
    "build_provider",
]
