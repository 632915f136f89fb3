"""
Tenant identity header encoding.

Both inventory APIs authenticate a request by the ``x-rh-identity`` header:
a base64-encoded JSON envelope naming the tenant account. The token is
derived once per change event and reused for every call made for it.

Example:
    encode_identity("acct1") -> base64('{"identity":{"account_number":"acct1"}}')
"""

import base64
import json
from typing import Dict

IDENTITY_HEADER = "x-rh-identity"


def encode_identity(account_number: str) -> str:
    """
    Encode a tenant account number into an identity token.

    Args:
        account_number: Tenant account (``external_tenant`` of the event)

    Returns:
        Single-line base64 string, safe to use as an HTTP header value
    """
    envelope = {"identity": {"account_number": account_number}}
    serialized = json.dumps(envelope, separators=(",", ":"))
    return base64.b64encode(serialized.encode("utf-8")).decode("ascii")


def identity_headers(identity: str) -> Dict[str, str]:
    """Build the auth header dict for an encoded identity token."""
    return {IDENTITY_HEADER: identity}
