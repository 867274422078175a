"""Security event logging.

Security-relevant failures are written to their own logger so they can be
routed to an audit sink separately from ordinary request logs.
"""

import logging
from typing import Any

from starlette.requests import Request

security_logger = logging.getLogger("authkit.security")


def client_ip(request: Request) -> str | None:
    return request.client.host if request.client else None


def client_user_agent(request: Request) -> str | None:
    return request.headers.get("user-agent")


def log_security_event(
    event: str,
    request: Request,
    message: str,
    level: int = logging.WARNING,
    **details: Any,
) -> None:
    """Log a security event with the requester's IP and user-agent.

    Args:
        event: Stable event name (e.g. ``refresh_token_invalid``)
        request: Request that triggered the event
        message: Human readable summary
        level: Log level, WARNING by default
        **details: Extra fields added to the record

    """
    ip = client_ip(request)
    user_agent = client_user_agent(request)
    security_logger.log(
        level,
        f"[SECURITY] {message} (path={request.url.path}, ip={ip}, user_agent={user_agent})",
        extra={
            "security_event": event,
            "path": request.url.path,
            "client_ip": ip,
            "user_agent": user_agent,
            **details,
        },
    )
