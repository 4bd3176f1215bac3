"""
Entra ID credential construction.
"""

import logging

from azure.core.credentials_async import AsyncTokenCredential
from azure.identity.aio import DefaultAzureCredential

from ..config import Settings

logger = logging.getLogger(__name__)


def create_credential(settings: Settings) -> AsyncTokenCredential:
    """
    Build the credential chain used to obtain upstream tokens.

    DefaultAzureCredential walks environment, workload identity, managed
    identity and developer credentials in order. A user-assigned managed
    identity is selected with AZURE_MANAGED_IDENTITY_CLIENT_ID.

    Raises:
        azure.core.exceptions.AzureError: If the chain cannot be constructed.
    """
    kwargs = {}
    if settings.AZURE_MANAGED_IDENTITY_CLIENT_ID:
        kwargs["managed_identity_client_id"] = settings.AZURE_MANAGED_IDENTITY_CLIENT_ID
        logger.info("Using user-assigned managed identity")

    return DefaultAzureCredential(**kwargs)
