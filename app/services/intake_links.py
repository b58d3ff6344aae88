"""Intake link management service."""

import logging
import secrets
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.models.intake import IntakeLink
from app.schemas.intake_link import IntakeLinkCreate, IntakeLinkValidation

logger = logging.getLogger(__name__)

INVALID_LINK = "Invalid intake link"
EXPIRED_LINK = "This link has expired"
USED_LINK = "This link has already been used"


def generate_token() -> str:
    """32 random hex characters."""
    return secrets.token_hex(16)


def intake_url(token: str) -> str:
    return f"{settings.APP_URL.rstrip('/')}/intake/{token}"


def link_problem(link: Optional[IntakeLink]) -> Optional[str]:
    """Reason a link cannot be used, or None when it is still active."""
    if link is None:
        return INVALID_LINK
    if link.is_expired:
        return EXPIRED_LINK
    if link.is_used:
        return USED_LINK
    return None


async def create_intake_link(db: AsyncSession, data: IntakeLinkCreate) -> IntakeLink:
    """Issue a new one-time link.

    Args:
        db: Database session
        data: Prefill values, expiry and issuing preparer

    Returns:
        The persisted IntakeLink
    """
    link = IntakeLink(
        token=generate_token(),
        email=data.email,
        prefill_first_name=data.prefill_first_name or None,
        prefill_last_name=data.prefill_last_name or None,
        client_id=data.client_id,
        created_by=data.created_by,
        expires_at=datetime.utcnow() + timedelta(days=data.expires_in_days),
    )
    db.add(link)
    await db.flush()
    await db.refresh(link)
    logger.info(f"Intake link {link.id} created, expires {link.expires_at.isoformat()}")
    return link


async def get_link_by_token(db: AsyncSession, token: str) -> Optional[IntakeLink]:
    result = await db.execute(select(IntakeLink).where(IntakeLink.token == token))
    return result.scalar_one_or_none()


async def validate_intake_link(db: AsyncSession, token: str) -> IntakeLinkValidation:
    """Check a token the way the intake page does before showing the wizard."""
    link = await get_link_by_token(db, token)
    problem = link_problem(link)
    if problem:
        return IntakeLinkValidation(valid=False, error=problem)
    return IntakeLinkValidation(
        valid=True,
        link_id=link.id,
        client_id=link.client_id,
        email=link.email,
        prefill_first_name=link.prefill_first_name,
        prefill_last_name=link.prefill_last_name,
    )


async def list_intake_links(db: AsyncSession) -> List[IntakeLink]:
    result = await db.execute(select(IntakeLink).order_by(IntakeLink.created_at.desc()))
    return list(result.scalars().all())


async def delete_intake_link(db: AsyncSession, link_id: str) -> bool:
    """Delete a link; returns False when it does not exist."""
    link = await db.get(IntakeLink, link_id)
    if link is None:
        return False
    await db.delete(link)
    await db.flush()
    logger.info(f"Intake link {link_id} deleted")
    return True
