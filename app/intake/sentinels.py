"""
Reserved token values that change how an intake is processed.
"""
from typing import Optional
from app.core.config import settings

DEMO_TOKEN = "demo"
DEMO_LINK_ID = "demo-link-id"


def is_demo(token: Optional[str], link_id: Optional[str]) -> bool:
    """Demo intakes never touch the network; uploads and submit are simulated."""
    token = token or ""
    link_id = link_id or ""
    return (
        token == DEMO_TOKEN
        or link_id == DEMO_LINK_ID
        or token.startswith("demo-token-")
        or link_id.startswith("demo-")
    )


def is_self_service(token: Optional[str], link_id: Optional[str]) -> bool:
    """Walk-in intake without a pre-issued link; the server skips link validation."""
    return settings.SELF_SERVICE_TOKEN in (token, link_id)
