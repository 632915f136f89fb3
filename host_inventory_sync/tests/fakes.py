"""Shared fakes for the inventory client and consumer tests."""

import json

import requests

TENANT = "external_tenant_uuid"
# Base64 of {"identity":{"account_number":"external_tenant_uuid"}}
TENANT_IDENTITY = "eyJpZGVudGl0eSI6eyJhY2NvdW50X251bWJlciI6ImV4dGVybmFsX3RlbmFudF91dWlkIn19"


def make_response(status_code=200, body=None, text=None):
    """Build a real requests.Response with a JSON or raw text body."""
    response = requests.Response()
    response.status_code = status_code
    response.encoding = "utf-8"
    if body is not None:
        response._content = json.dumps(body).encode("utf-8")
    elif text is not None:
        response._content = text.encode("utf-8")
    else:
        response._content = b""
    return response
