# -*- coding: utf-8 -*-
"""
Microsoft authentication module for the SharePoint PDF pipeline.

This module handles Azure AD authentication using MSAL (Microsoft Authentication Library).
"""

import msal

from .errors import GraphAuthError
from .models import Stage


def acquire_token(tenant_id, client_id, client_secret, login_endpoint, graph_endpoint):
    """
    Acquire an authentication token from Azure Active Directory using MSAL.

    This uses the OAuth 2.0 client credentials flow (service-to-service, no
    user interaction).

    Args:
        tenant_id (str): Azure AD tenant ID (GUID format)
        client_id (str): Application (client) ID from Azure AD app registration
        client_secret (str): Client secret value from Azure AD app registration
        login_endpoint (str): Azure AD authentication endpoint (e.g., 'login.microsoftonline.com')
        graph_endpoint (str): Microsoft Graph API endpoint (e.g., 'graph.microsoft.com')

    Returns:
        dict: Token dictionary containing 'access_token', 'token_type' and
            'expires_in' on success, or 'error'/'error_description' on failure

    Note:
        The app registration needs Graph API Sites.ReadWrite.All permission.
    """
    authority_url = f'https://{login_endpoint}/{tenant_id}'

    app = msal.ConfidentialClientApplication(
        authority=authority_url,
        client_id=client_id,
        client_credential=client_secret
    )

    # '/.default' scope means "use all permissions granted to this app"
    return app.acquire_token_for_client(scopes=[f"https://{graph_endpoint}/.default"])


class TokenProvider:
    """
    Opaque "get bearer token" capability used by GraphClient.

    A fresh token is requested on every call; caching is left to MSAL.
    """

    def __init__(self, tenant_id, client_id, client_secret,
                 login_endpoint="login.microsoftonline.com",
                 graph_endpoint="graph.microsoft.com"):
        self.tenant_id = tenant_id
        self.client_id = client_id
        self.client_secret = client_secret
        self.login_endpoint = login_endpoint
        self.graph_endpoint = graph_endpoint

    def get_access_token(self):
        """
        Return a bearer token for Microsoft Graph.

        Raises:
            GraphAuthError: If Azure AD did not issue a token
        """
        token = acquire_token(
            self.tenant_id, self.client_id, self.client_secret,
            self.login_endpoint, self.graph_endpoint
        )
        if not token or 'access_token' not in token:
            description = (token or {}).get('error_description', 'Unknown error')
            raise GraphAuthError(f"Failed to acquire token for Graph API: {description}", Stage.UNKNOWN)
        return token['access_token']
