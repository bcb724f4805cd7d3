"""
Catalog client construction.

The engine receives a CatalogClientFactory and calls it once per shop with
that shop's credential record.
"""

import logging
from collections.abc import Callable

from autodiscount_core.catalog.base import CatalogClient
from autodiscount_core.catalog.shopify import ShopifyCatalogClient
from autodiscount_core.catalog.stub import StubCatalogClient
from autodiscount_core.errors import CatalogError
from autodiscount_core.persistence.models import ShopCredential

logger = logging.getLogger(__name__)

CatalogClientFactory = Callable[[ShopCredential], CatalogClient]


def decrypt_access_token(token: str, encryption_key: str | None = None) -> str:
    """
    Decrypt a stored access token.

    Without an encryption key the token is assumed to be stored in clear
    (development setups).

    Raises:
        CatalogError: the token cannot be decrypted with the configured key
    """
    if not encryption_key:
        return token

    from cryptography.fernet import Fernet, InvalidToken

    try:
        f = Fernet(encryption_key.encode())
        return f.decrypt(token.encode()).decode()
    except (InvalidToken, ValueError) as e:
        logger.error(f"Failed to decrypt access token: {e}")
        raise CatalogError(
            message="Stored access token could not be decrypted",
            code="CREDENTIAL_INVALID",
        ) from e


def encrypt_access_token(token: str, encryption_key: str | None = None) -> str:
    """Encrypt an access token for storage (returned as-is without a key)."""
    if not encryption_key:
        return token

    from cryptography.fernet import Fernet

    f = Fernet(encryption_key.encode())
    return f.encrypt(token.encode()).decode()


def get_client_for_credential(
    credential: ShopCredential,
    provider: str = "shopify",
    api_version: str = "2024-10",
    timeout: float = 30.0,
    encryption_key: str | None = None,
) -> CatalogClient:
    """
    Build the catalog client for one shop.

    Args:
        credential: Shop credential record
        provider: "shopify" or "stub"
        api_version: Shopify Admin API version
        timeout: HTTP timeout for the client
        encryption_key: Fernet key for decrypting the token

    Returns:
        Client bound to the shop
    """
    if provider == "stub":
        return StubCatalogClient(shop=credential.shop)

    access_token = decrypt_access_token(credential.access_token_encrypted, encryption_key)
    return ShopifyCatalogClient(
        shop=credential.shop,
        access_token=access_token,
        api_version=api_version,
        timeout=timeout,
    )


def make_client_factory(
    provider: str = "shopify",
    api_version: str = "2024-10",
    timeout: float = 30.0,
    encryption_key: str | None = None,
) -> CatalogClientFactory:
    """Bind provider settings into a factory the engine can call per shop."""

    def factory(credential: ShopCredential) -> CatalogClient:
        return get_client_for_credential(
            credential,
            provider=provider,
            api_version=api_version,
            timeout=timeout,
            encryption_key=encryption_key,
        )

    return factory
