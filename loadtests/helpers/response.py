"""Response error extraction for load test observability.

Parses Storefront API error responses into human-readable messages.
Handles two response shapes:

- Request validation (400): {"success": false, "message": "field: msg", "errors": {"field": ["msg"]}}
- Domain errors (400/401/403/404/409/503): {"success": false, "message": "msg", "error": "CODE"}
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from requests import Response


def extract_error_detail(response: Response) -> str:
    """Extract a human-readable error message from an API error response.

    Returns a compact string suitable for Locust failure messages and log lines.
    """
    try:
        body = response.json()
    except ValueError:
        # Not JSON, return raw text truncated
        text = getattr(response, "text", "") or ""
        return text[:300] or "(empty response body)"

    if not isinstance(body, dict):
        return str(body)[:300]

    message = body.get("message")
    code = body.get("error")
    if message and code:
        return f"{code}: {message}"
    if message:
        return str(message)

    return str(body)[:300]
