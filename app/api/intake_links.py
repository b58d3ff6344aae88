"""
Intake link API endpoints
"""
from typing import List
from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.database import get_db
from app.models.client import Client
from app.schemas.intake_link import (
    IntakeLinkCreate,
    IntakeLinkCreated,
    IntakeLinkSummary,
    IntakeLinkValidation,
)
from app.services.intake_links import (
    create_intake_link,
    delete_intake_link,
    intake_url,
    list_intake_links,
    validate_intake_link,
)

router = APIRouter()


@router.post("", response_model=IntakeLinkCreated, status_code=201)
async def create_link(
    link_data: IntakeLinkCreate,
    db: AsyncSession = Depends(get_db)
):
    """
    Issue a one-time intake link for a prospective or existing client.

    Args:
        link_data: Optional email and name prefill, expiry in days, issuing preparer
        db: Database session

    Returns:
        IntakeLinkCreated with the shareable URL and token
    """
    if link_data.client_id:
        if await db.get(Client, link_data.client_id) is None:
            raise HTTPException(
                status_code=404,
                detail=f"Client with id {link_data.client_id} not found"
            )

    link = await create_intake_link(db, link_data)
    return IntakeLinkCreated(url=intake_url(link.token), token=link.token, link_id=link.id)


@router.get("", response_model=List[IntakeLinkSummary])
async def list_links(db: AsyncSession = Depends(get_db)):
    """List all intake links, newest first, with their active/used/expired state."""
    links = await list_intake_links(db)
    return [IntakeLinkSummary.model_validate(link) for link in links]


@router.get("/validate/{token}", response_model=IntakeLinkValidation)
async def validate_link(token: str, db: AsyncSession = Depends(get_db)):
    """
    Check a link token before showing the intake wizard.

    Always answers 200; ``valid`` is false with an ``error`` message when the
    link is unknown, expired or already used.
    """
    return await validate_intake_link(db, token)


@router.delete("/{link_id}", status_code=204)
async def delete_link(link_id: str, db: AsyncSession = Depends(get_db)):
    """
    Delete an intake link.

    Raises:
        HTTPException 404: If link not found
    """
    if not await delete_intake_link(db, link_id):
        raise HTTPException(
            status_code=404,
            detail=f"Intake link with id {link_id} not found"
        )
    return Response(status_code=204)
