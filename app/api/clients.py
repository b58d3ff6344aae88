"""
Client API endpoints
"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.orm import selectinload
from app.core.database import get_db
from app.models.client import Client
from app.schemas.checklist import ChecklistResponse
from app.schemas.client import ClientResponse, RevealSsnRequest, RevealSsnResponse
from app.services.checklist_service import get_checklist
from app.services.ssn import decrypt_ssn

logger = logging.getLogger(__name__)

router = APIRouter()


async def _get_client_or_404(db: AsyncSession, client_id: str, *options) -> Client:
    result = await db.execute(
        select(Client).options(*options).where(Client.id == client_id)
    )
    client = result.scalar_one_or_none()
    if not client:
        raise HTTPException(
            status_code=404,
            detail=f"Client with id {client_id} not found"
        )
    return client


@router.get("/{client_id}", response_model=ClientResponse)
async def get_client(
    client_id: str,
    db: AsyncSession = Depends(get_db)
):
    """
    Get a client with the dependents, documents and answers collected at intake.

    SSNs are never returned; only their last four digits.

    Raises:
        HTTPException 404: If client not found
    """
    return await _get_client_or_404(
        db,
        client_id,
        selectinload(Client.dependents),
        selectinload(Client.documents),
        selectinload(Client.intake_responses),
    )


@router.get("/{client_id}/checklist", response_model=ChecklistResponse)
async def get_client_checklist(
    client_id: str,
    tax_year: Optional[int] = None,
    db: AsyncSession = Depends(get_db)
):
    """
    Get the document checklist for a client.

    Suggestions come from the client's intake answers; received counts come
    from the documents uploaded for the same tax year.

    Args:
        client_id: Client UUID
        tax_year: Tax year to report on; defaults to the latest intake year
        db: Database session

    Raises:
        HTTPException 404: If client not found
    """
    checklist = await get_checklist(db, client_id, tax_year)
    if checklist is None:
        raise HTTPException(
            status_code=404,
            detail=f"Client with id {client_id} not found"
        )
    return checklist


@router.post("/{client_id}/reveal-ssn", response_model=RevealSsnResponse)
async def reveal_ssn(
    client_id: str,
    body: Optional[RevealSsnRequest] = None,
    db: AsyncSession = Depends(get_db)
):
    """
    Decrypt the client's (or spouse's) SSN for staff.

    Returns ``ssn: null`` when none is on file or the stored value cannot be decrypted.

    Raises:
        HTTPException 404: If client not found
    """
    client = await _get_client_or_404(db, client_id)
    target = body.target if body else "client"
    encrypted = client.spouse_ssn_encrypted if target == "spouse" else client.ssn_encrypted
    logger.info(f"SSN revealed for client {client_id} ({target})")
    return RevealSsnResponse(ssn=decrypt_ssn(encrypted))
