"""Intake submission service.

Turns a submitted intake form into client, dependent, document and answer
rows. All writes share one transaction; document rows, the review task and
the activity entry are written inside savepoints so a failure there is
logged without losing the submission. Emails go out after the commit.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import List, Optional, Tuple

from fastapi.concurrency import run_in_threadpool
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.errors import IntakeError, LinkError, PersistenceError, SubmissionValidationError
from app.intake.draft import IntakeDraft
from app.intake.editors import FILING_STATUS_OPTIONS
from app.intake.sentinels import is_self_service
from app.models.activity import ActivityLog, Task
from app.models.client import Client
from app.models.dependent import Dependent
from app.models.document import Document
from app.models.enums import ClientStatus, ResponseType, TaskPriority, TaskStatus
from app.models.intake import IntakeLink, IntakeResponse, IntakeSubmission
from app.schemas.intake import SubmissionRequest, SubmissionResponse
from app.services.intake_links import INVALID_LINK, link_problem
from app.services.notifications import (
    EmailProvider,
    IntakeSummary,
    client_welcome_email,
    intake_notification_email,
    send_safely,
)
from app.services.ssn import encrypt_ssn, last_four

logger = logging.getLogger(__name__)

# (step, question key, draft field, value type)
ANSWER_FIELDS: List[Tuple[int, str, str, ResponseType]] = [
    (5, "has_w2_income", "has_w2_income", ResponseType.BOOLEAN),
    (5, "w2_employer_count", "w2_employer_count", ResponseType.NUMBER),
    (5, "has_1099_income", "has_1099_income", ResponseType.BOOLEAN),
    (5, "income_types", "income_types", ResponseType.ARRAY),
    (5, "has_crypto", "has_crypto_transactions", ResponseType.BOOLEAN),
    (5, "has_stock_sales", "has_stock_sales", ResponseType.BOOLEAN),
    (5, "has_rental_income", "has_rental_income", ResponseType.BOOLEAN),
    (5, "has_foreign_income", "has_foreign_income", ResponseType.BOOLEAN),
    (6, "itemize_deductions", "itemize_deductions", ResponseType.BOOLEAN),
    (6, "has_mortgage_interest", "has_mortgage_interest", ResponseType.BOOLEAN),
    (6, "has_charitable", "has_charitable_donations", ResponseType.BOOLEAN),
    (6, "has_student_loan", "has_student_loan_interest", ResponseType.BOOLEAN),
    (6, "has_medical", "has_medical_expenses", ResponseType.BOOLEAN),
    (6, "has_business", "has_business_expenses", ResponseType.BOOLEAN),
    (6, "has_childcare", "has_childcare", ResponseType.BOOLEAN),
    (6, "has_education", "has_education_expenses", ResponseType.BOOLEAN),
    (6, "other_deductions", "other_deductions", ResponseType.TEXT),
    (8, "additional_notes", "additional_notes", ResponseType.TEXT),
]


@dataclass
class SubmissionOutcome:
    response: SubmissionResponse
    replayed: bool = False
    summary: Optional[IntakeSummary] = None


def validate_form(form: IntakeDraft) -> None:
    """Required-field rules enforced regardless of what the client checked."""
    if form.filing_status is None:
        raise SubmissionValidationError("Please select a filing status")
    if form.spouse_required:
        missing = [
            label for label, value in (
                ("first name", form.spouse_first_name),
                ("last name", form.spouse_last_name),
            ) if not value
        ]
        if missing:
            raise SubmissionValidationError(f"Spouse information is missing: {', '.join(missing)}")
    for index, dependent in enumerate(form.dependents, start=1):
        missing = dependent.missing_fields()
        if missing:
            raise SubmissionValidationError(f"Dependent {index} is missing: {', '.join(missing)}")


def parse_date(value: str, label: str) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise SubmissionValidationError(f"{label} must be a date in YYYY-MM-DD format")


async def _find_link(db: AsyncSession, link_id: str, token: str) -> IntakeLink:
    result = await db.execute(
        select(IntakeLink).where(IntakeLink.id == link_id, IntakeLink.token == token)
    )
    link = result.scalar_one_or_none()
    problem = link_problem(link)
    if problem:
        raise LinkError(problem)
    return link


async def _find_replay(db: AsyncSession, request: SubmissionRequest) -> Optional[IntakeSubmission]:
    if not request.request_id:
        return None
    previous = await db.get(IntakeSubmission, request.request_id)
    if previous is None:
        return None
    if previous.link_id != request.link_id or previous.token != request.token:
        raise LinkError(INVALID_LINK)
    return previous


def _client_values(form: IntakeDraft, self_service: bool, user_id: Optional[str]) -> dict:
    values = {
        "first_name": form.first_name,
        "last_name": form.last_name,
        "email": form.email or None,
        "phone": form.phone or None,
        "date_of_birth": parse_date(form.date_of_birth, "Date of birth"),
        "ssn_encrypted": encrypt_ssn(form.ssn) if form.ssn else None,
        "ssn_last_four": last_four(form.ssn),
        "address_street": form.address_street or None,
        "address_city": form.address_city or None,
        "address_state": form.address_state or None,
        "address_zip": form.address_zip or None,
        "filing_status": form.filing_status,
        "has_spouse": form.has_spouse,
        "spouse_first_name": form.spouse_first_name if form.has_spouse else None,
        "spouse_last_name": form.spouse_last_name if form.has_spouse else None,
        "spouse_dob": parse_date(form.spouse_dob, "Spouse date of birth") if form.has_spouse else None,
        "spouse_ssn_encrypted": encrypt_ssn(form.spouse_ssn) if form.has_spouse and form.spouse_ssn else None,
        "status": ClientStatus.PROSPECT if self_service else ClientStatus.ACTIVE,
        "intake_completed": True,
        "intake_completed_at": datetime.utcnow(),
        "pipeline_status": "new_intake",
    }
    if user_id:
        values["user_id"] = user_id
    return values


async def _upsert_client(db: AsyncSession, values: dict, client_id: Optional[str]) -> Client:
    client = await db.get(Client, client_id) if client_id else None
    if client is None:
        client = Client(**values)
        db.add(client)
    else:
        for name, value in values.items():
            setattr(client, name, value)
    await db.flush()
    return client


async def _replace_dependents(db: AsyncSession, client_id: str, form: IntakeDraft) -> None:
    await db.execute(delete(Dependent).where(Dependent.client_id == client_id))
    db.add_all([
        Dependent(
            client_id=client_id,
            first_name=dep.first_name,
            last_name=dep.last_name,
            date_of_birth=parse_date(dep.date_of_birth, f"Dependent {dep.first_name} date of birth"),
            ssn_encrypted=encrypt_ssn(dep.ssn) if dep.ssn else None,
            ssn_last_four=last_four(dep.ssn),
            relationship_type=dep.relationship or None,
            months_lived_with=dep.months_lived_with,
        )
        for dep in form.dependents
    ])
    await db.flush()


async def _save_documents(db: AsyncSession, client_id: str, form: IntakeDraft, tax_year: int) -> int:
    stored = [doc for doc in form.uploaded_documents if doc.file_path]
    if not stored:
        return 0
    try:
        async with db.begin_nested():
            db.add_all([
                Document(
                    client_id=client_id,
                    name=doc.name,
                    file_path=doc.file_path,
                    file_type=doc.file_type,
                    file_size=doc.file_size,
                    category=doc.category or "other",
                    tax_year=tax_year,
                )
                for doc in stored
            ])
    except SQLAlchemyError as e:
        logger.error(f"Saving documents for client {client_id} failed: {e}")
        return 0
    return len(stored)


async def _save_answers(db: AsyncSession, client_id: str, form: IntakeDraft, tax_year: int) -> None:
    db.add_all([
        IntakeResponse(
            client_id=client_id,
            tax_year=tax_year,
            step_number=step,
            question_key=key,
            response_value=getattr(form, field),
            response_type=value_type,
        )
        for step, key, field, value_type in ANSWER_FIELDS
    ])
    await db.flush()


async def _record_follow_up(
    db: AsyncSession,
    client_id: str,
    form: IntakeDraft,
    self_service: bool,
    user_id: Optional[str],
) -> None:
    task = Task(
        client_id=client_id,
        title=f"Review intake for {form.first_name} {form.last_name}",
        description=(
            "New self-service intake form submitted. Review information and reach out to client."
            if self_service else
            "New client intake form submitted. Review information and request any missing documents."
        ),
        status=TaskStatus.PENDING,
        priority=TaskPriority.MEDIUM if self_service else TaskPriority.HIGH,
        assigned_to=user_id,
        created_by=user_id,
    )
    try:
        async with db.begin_nested():
            db.add(task)
    except SQLAlchemyError as e:
        logger.error(f"Creating review task for client {client_id} failed: {e}")

    activity = ActivityLog(
        client_id=client_id,
        user_id=user_id,
        action="intake_completed",
        description=(
            "Client intake completed via self-service form"
            if self_service else
            "Client intake completed via secure link"
        ),
    )
    try:
        async with db.begin_nested():
            db.add(activity)
    except SQLAlchemyError as e:
        logger.error(f"Logging intake activity for client {client_id} failed: {e}")


async def process_submission(db: AsyncSession, request: SubmissionRequest) -> SubmissionOutcome:
    """Validate and persist one intake submission without committing.

    Args:
        db: Database session
        request: Link credentials, request id and form data

    Returns:
        SubmissionOutcome with the response to send and, for new
        submissions, the summary used for notification emails

    Raises:
        LinkError: Unknown, expired or used link
        SubmissionValidationError: Required-field rule broken
        PersistenceError: A required write failed
    """
    form = request.form_data
    self_service = is_self_service(request.token, request.link_id)

    previous = await _find_replay(db, request)
    if previous is not None:
        logger.info(f"Replaying submission {request.request_id} for client {previous.client_id}")
        return SubmissionOutcome(SubmissionResponse(client_id=previous.client_id), replayed=True)

    link = None
    user_id = None
    if not self_service:
        link = await _find_link(db, request.link_id, request.token)
        user_id = link.created_by

    validate_form(form)

    tax_year = datetime.utcnow().year
    client_id = None
    stage = "client"
    try:
        client = await _upsert_client(db, _client_values(form, self_service, user_id), link.client_id if link else None)
        client_id = client.id

        stage = "dependents"
        await _replace_dependents(db, client_id, form)

        saved_documents = await _save_documents(db, client_id, form, tax_year)

        stage = "responses"
        await _save_answers(db, client_id, form, tax_year)

        if link is not None:
            stage = "link"
            link.used_at = datetime.utcnow()
            link.client_id = client_id
            await db.flush()

        await _record_follow_up(db, client_id, form, self_service, user_id)

        if request.request_id:
            stage = "idempotency"
            db.add(IntakeSubmission(
                request_id=request.request_id,
                client_id=client_id,
                link_id=request.link_id,
                token=request.token,
            ))
            await db.flush()
    except IntakeError:
        raise
    except SQLAlchemyError as e:
        logger.error(f"Intake submission failed at stage '{stage}': {e}")
        raise PersistenceError(
            f"Failed to save {stage.replace('_', ' ')}",
            stage=stage,
            client_id=client_id,
            details=str(e.orig) if getattr(e, "orig", None) is not None else str(e),
        )

    logger.info(
        f"Intake submitted for client {client_id} "
        f"({'self-service' if self_service else 'link ' + request.link_id}, "
        f"{len(form.dependents)} dependents, {saved_documents} documents)"
    )
    filing_label = FILING_STATUS_OPTIONS[form.filing_status][0] if form.filing_status else None
    summary = IntakeSummary(
        client_id=client_id,
        client_name=f"{form.first_name} {form.last_name}".strip(),
        client_email=form.email or None,
        client_phone=form.phone or None,
        filing_status=filing_label,
        dependent_count=len(form.dependents),
        income_sources=form.income_summary(),
        submitted_at=datetime.utcnow(),
    )
    return SubmissionOutcome(SubmissionResponse(client_id=client_id), summary=summary)


async def send_intake_emails(provider: EmailProvider, summary: IntakeSummary) -> None:
    """Staff notification and client welcome; failures are only logged."""
    if settings.STAFF_NOTIFICATION_EMAIL:
        message = intake_notification_email(summary, settings.STAFF_NOTIFICATION_EMAIL)
        await run_in_threadpool(send_safely, provider, message)
    if summary.client_email:
        message = client_welcome_email(summary.client_name, summary.client_email)
        await run_in_threadpool(send_safely, provider, message)


async def submit_intake(db: AsyncSession, request: SubmissionRequest, provider: EmailProvider) -> SubmissionResponse:
    """Persist a submission, commit it, then send the notification emails."""
    outcome = await process_submission(db, request)
    if outcome.replayed:
        return outcome.response
    try:
        await db.commit()
    except SQLAlchemyError as e:
        logger.error(f"Committing intake submission failed: {e}")
        raise PersistenceError("Failed to save intake submission", stage="commit")
    await send_intake_emails(provider, outcome.summary)
    return outcome.response
