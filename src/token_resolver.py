"""
Resolve the Dataverse token for a tool call.

Azure mode (CLIENT_SECRET set): FastMCP's EntraOBOToken dependency injects an
on-behalf-of token into the ``_obo_token`` parameter of every tool. Local
mode: ``_obo_token`` stays None and the MSAL cache in auth.py supplies the
token.
"""

import base64
import binascii
import json
import logging
from typing import Optional

from config import settings

logger = logging.getLogger(__name__)

if settings.is_azure_mode:
    from fastmcp.server.auth.providers.azure import EntraOBOToken
    OBO_TOKEN_DEFAULT = EntraOBOToken([f"{settings.dataverse_url}/user_impersonation"])
else:
    OBO_TOKEN_DEFAULT = None


async def resolve_token(obo_token: Optional[str] = None) -> str:
    """
    Return a bearer token for the Dataverse Web API.

    Raises:
        auth.AuthenticationRequiredError: local mode without a signed-in account.
    """
    if obo_token:
        return obo_token
    from auth import get_token
    return await get_token()


def get_user_oid(obo_token: Optional[str] = None) -> Optional[str]:
    """
    Object ID (``oid`` claim) of the caller in Azure mode; None locally.

    The token is only decoded, not verified: FastMCP already validated it.
    """
    if not obo_token or not settings.is_azure_mode:
        return None
    try:
        payload = obo_token.split(".")[1]
        payload += "=" * (-len(payload) % 4)
        claims = json.loads(base64.urlsafe_b64decode(payload))
    except (IndexError, ValueError, binascii.Error) as e:
        logger.debug("Could not decode caller token: %s", e)
        return None
    return claims.get("oid")
