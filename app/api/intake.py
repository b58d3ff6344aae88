"""
Public intake API endpoints (no staff login)
"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.config import settings
from app.core.database import get_db
from app.intake.draft import DOCUMENT_CATEGORIES
from app.schemas.intake import SubmissionRequest, SubmissionResponse, UploadResponse
from app.services.notifications import EmailProvider, get_email_provider
from app.services.submission import submit_intake
from app.utils.file_handling import save_uploaded_file

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/submit", response_model=SubmissionResponse)
async def submit_intake_form(
    request: SubmissionRequest,
    db: AsyncSession = Depends(get_db),
    email_provider: EmailProvider = Depends(get_email_provider),
):
    """
    Submit a completed intake form.

    Creates or updates the client, replaces their dependents, records uploaded
    documents and answers, marks the intake link used and notifies staff.

    Args:
        request: Link credentials, optional request id and the form data
        db: Database session
        email_provider: Delivery for the staff and welcome emails

    Returns:
        SubmissionResponse with the client id

    Raises:
        LinkError 400: Invalid, expired or already used link
        SubmissionValidationError 400: Required fields missing
        PersistenceError 500: A required write failed
    """
    return await submit_intake(db, request, email_provider)


@router.post("/upload", response_model=UploadResponse)
async def upload_intake_document(
    file: UploadFile = File(...),
    category: str = Form("other"),
    temp_id: Optional[str] = Form(None, alias="tempId"),
):
    """
    Store one document selected on the intake documents step.

    Args:
        file: PDF, JPG, PNG or HEIC, at most 10MB
        category: Document category tag (w2, 1099, 1098, prior_return, id, other)
        temp_id: Client-side id echoed back so the upload can be matched

    Returns:
        UploadResponse with the bucket-relative storage path

    Raises:
        UploadError 400: Wrong file type or file too large
    """
    if category not in DOCUMENT_CATEGORIES:
        category = "other"

    file_path, mime_type, file_size = await save_uploaded_file(
        file,
        settings.BUCKET_DIR,
        settings.UPLOAD_PREFIX,
        settings.ALLOWED_CONTENT_TYPES,
        settings.MAX_FILE_SIZE,
    )
    logger.info(f"File uploaded successfully: {file_path}")

    return UploadResponse(
        temp_id=temp_id,
        file_path=file_path,
        file_name=file.filename,
        file_type=mime_type,
        file_size=file_size,
        category=category,
    )
