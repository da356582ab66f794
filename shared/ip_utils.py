"""
Caller metadata extraction for FastAPI requests.

Used by the API-key usage trail (IP and user agent) and by rejection logs.
"""

from __future__ import annotations

from starlette.requests import HTTPConnection

UNKNOWN = "unknown"

# Proxy headers checked in priority order
_IP_HEADERS: tuple[str, ...] = (
    "CF-Connecting-IP",
    "True-Client-IP",
    "X-Forwarded-For",
    "X-Real-IP",
)


def get_client_ip(conn: HTTPConnection) -> str:
    """Extract the real client IP, preferring proxy headers.

    ``X-Forwarded-For`` may hold a chain; the first (original client) entry
    is used. Falls back to the socket peer, then to ``"unknown"``.
    """
    for header in _IP_HEADERS:
        ip_value = conn.headers.get(header)
        if ip_value:
            client_ip = ip_value.split(",")[0].strip()
            if client_ip:
                return client_ip

    if conn.client and conn.client.host:
        return conn.client.host
    return UNKNOWN


def get_user_agent(conn: HTTPConnection) -> str:
    return conn.headers.get("user-agent") or UNKNOWN
