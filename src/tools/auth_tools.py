"""
Sign-in and sign-out tools (local mode).

If any other tool reports that authentication is missing, the agent calls
`Sign_in_to_Dataverse`, shows the returned URL to the user and continues once
the user confirms the sign-in.
"""

import logging

import cache
from auth import sign_out, start_interactive_auth

logger = logging.getLogger(__name__)


async def tool_authenticate() -> str:
    """
    Start an interactive Microsoft sign-in and return the URL the user must open.

    Call this tool when:
    - Any other tool returns an error mentioning authentication
    - The user asks to sign in

    The token exchange completes automatically when the browser redirects back;
    no second tool call is needed. After the user confirms, call
    `Get_my_identity` to check the session.
    """
    try:
        auth_url = start_interactive_auth()
    except Exception as e:
        logger.exception("Failed to start interactive authentication")
        return f"Failed to initiate authentication: {e}"
    return (
        "IMPORTANT: include the full sign-in URL below in your response; the user "
        "cannot see tool output directly.\n\n"
        f"Sign-in URL: {auth_url}\n\n"
        "Ask the user to open it, sign in with the Microsoft account that has access "
        "to the Dataverse environment, and tell you when they are done."
    )


async def tool_sign_out() -> str:
    """
    Sign out from Dataverse: delete the cached token and the cached identity.

    Call it when the user wants to sign out or switch accounts.
    """
    try:
        sign_out()
        cache.invalidate_whoami()
    except Exception as e:
        logger.exception("Failed to sign out")
        return f"Failed to sign out: {e}"
    return (
        "Signed out. Token cache and user identity were cleared.\n\n"
        "To sign in with another account, call `Sign_in_to_Dataverse`."
    )
