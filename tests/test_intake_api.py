"""Test the public intake endpoints: upload and submit."""

from datetime import datetime, timedelta

import httpx
import pytest
from httpx import ASGITransport
from sqlalchemy import select, update
from sqlalchemy.exc import OperationalError

from app.core.config import settings
from app.core.database import AsyncSessionLocal
from app.intake.editors import (
    AddressEditor,
    DependentsEditor,
    FilingStatusEditor,
    IncomeEditor,
    PersonalInfoEditor,
)
from app.intake.uploads import LocalFile
from app.intake.wizard import IntakeWizard
from app.models.activity import ActivityLog, Task
from app.models.client import Client
from app.models.dependent import Dependent
from app.models.document import Document
from app.models.enums import ClientStatus, FilingStatus, TaskPriority
from app.models.intake import IntakeLink, IntakeResponse, IntakeSubmission
from app.services import submission
from app.services.notifications import DeliveryResult, EmailProvider, get_email_provider
from app.services.ssn import decrypt_ssn
from main import app


def form(**overrides):
    data = {
        "firstName": "Ana",
        "lastName": "Diaz",
        "email": "ana@example.com",
        "phone": "(555) 123-4567",
        "dateOfBirth": "1985-04-12",
        "ssn": "123-45-6789",
        "addressStreet": "12 Elm St",
        "addressCity": "Austin",
        "addressState": "TX",
        "addressZip": "78701",
        "filingStatus": "single",
        "hasW2Income": True,
        "w2EmployerCount": 2,
        "incomeTypes": ["interest"],
        "additionalNotes": "Moved in March",
    }
    data.update(overrides)
    return data


def dependent(**overrides):
    data = {
        "id": "dep-1",
        "firstName": "Leo",
        "lastName": "Diaz",
        "dateOfBirth": "2015-06-01",
        "ssn": "987-65-4321",
        "relationship": "Son",
        "monthsLivedWith": 12,
    }
    data.update(overrides)
    return data


def via_link(link, form_data, **extra):
    return {"token": link["token"], "linkId": link["linkId"], "formData": form_data, **extra}


async def fetch_all(statement):
    async with AsyncSessionLocal() as db:
        result = await db.execute(statement)
        return result.scalars().all()


async def fetch_one(statement):
    rows = await fetch_all(statement)
    assert len(rows) == 1
    return rows[0]


# ============================================================================
# UPLOAD
# ============================================================================

@pytest.mark.asyncio
async def test_upload_stores_file_under_sanitized_name(client, bucket_dir):
    response = await client.post(
        "/api/intake/upload",
        files={"file": ("My W2 (final).pdf", b"%PDF-1.4 test", "application/pdf")},
        data={"category": "w2", "tempId": "temp-1"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["tempId"] == "temp-1"
    assert body["filePath"].startswith("intake-uploads/")
    assert body["filePath"].endswith("-My_W2__final_.pdf")
    assert body["fileName"] == "My W2 (final).pdf"
    assert body["fileType"] == "application/pdf"
    assert body["fileSize"] == 13
    assert body["category"] == "w2"
    assert (bucket_dir / body["filePath"]).read_bytes() == b"%PDF-1.4 test"


@pytest.mark.asyncio
async def test_upload_unknown_category_becomes_other(client):
    response = await client.post(
        "/api/intake/upload",
        files={"file": ("scan.png", b"\x89PNG", "image/png")},
        data={"category": "receipts"},
    )

    assert response.status_code == 200
    assert response.json()["category"] == "other"


@pytest.mark.asyncio
async def test_upload_rejects_wrong_type(client):
    response = await client.post(
        "/api/intake/upload",
        files={"file": ("notes.txt", b"hello", "text/plain")},
        data={"category": "other"},
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid file type. Allowed: PDF, JPG, PNG, HEIC", "stage": "upload"}


@pytest.mark.asyncio
async def test_upload_rejects_large_file(client, monkeypatch):
    monkeypatch.setattr(settings, "MAX_FILE_SIZE", 1024 * 1024)

    response = await client.post(
        "/api/intake/upload",
        files={"file": ("big.pdf", b"0" * (1024 * 1024 + 1), "application/pdf")},
    )

    assert response.status_code == 400
    assert response.json()["error"] == "File too large. Maximum size is 1MB"


# ============================================================================
# SUBMIT
# ============================================================================

@pytest.mark.asyncio
async def test_submit_through_link_creates_client(client, intake_link):
    response = await client.post("/api/intake/submit", json=via_link(intake_link, form()))

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Intake form submitted successfully"

    stored = await fetch_one(select(Client))
    assert stored.id == body["clientId"]
    assert stored.first_name == "Ana"
    assert stored.status == ClientStatus.ACTIVE
    assert stored.filing_status == FilingStatus.SINGLE
    assert stored.intake_completed is True
    assert stored.user_id == "preparer-1"
    assert stored.date_of_birth.isoformat() == "1985-04-12"

    link = await fetch_one(select(IntakeLink))
    assert link.used_at is not None
    assert link.client_id == body["clientId"]

    task = await fetch_one(select(Task))
    assert task.priority == TaskPriority.HIGH
    assert task.title == "Review intake for Ana Diaz"
    activity = await fetch_one(select(ActivityLog))
    assert activity.action == "intake_completed"


@pytest.mark.asyncio
async def test_link_cannot_be_used_twice(client, intake_link):
    first = await client.post("/api/intake/submit", json=via_link(intake_link, form()))
    assert first.status_code == 200

    second = await client.post("/api/intake/submit", json=via_link(intake_link, form(firstName="Eve")))

    assert second.status_code == 400
    assert second.json() == {"error": "This link has already been used", "stage": "link"}
    assert len(await fetch_all(select(Client))) == 1

    validation = await client.get(f"/api/intake-links/validate/{intake_link['token']}")
    assert validation.json()["valid"] is False
    assert validation.json()["error"] == "This link has already been used"


@pytest.mark.asyncio
async def test_unknown_token_is_rejected(client, intake_link):
    payload = via_link(intake_link, form())
    payload["token"] = "0" * 32

    response = await client.post("/api/intake/submit", json=payload)

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid intake link", "stage": "link"}
    assert await fetch_all(select(Client)) == []


@pytest.mark.asyncio
async def test_expired_link_is_rejected(client, intake_link):
    async with AsyncSessionLocal() as db:
        await db.execute(
            update(IntakeLink)
            .where(IntakeLink.id == intake_link["linkId"])
            .values(expires_at=datetime.utcnow() - timedelta(days=1))
        )
        await db.commit()

    response = await client.post("/api/intake/submit", json=via_link(intake_link, form()))

    assert response.status_code == 400
    assert response.json() == {"error": "This link has expired", "stage": "link"}


@pytest.mark.asyncio
async def test_link_checked_before_form_data(client):
    response = await client.post(
        "/api/intake/submit",
        json={"token": "nope", "linkId": "nope", "formData": form(filingStatus="")},
    )

    assert response.status_code == 400
    assert response.json()["stage"] == "link"


@pytest.mark.asyncio
async def test_retry_with_same_request_id_is_replayed(client, intake_link, email_provider):
    payload = via_link(intake_link, form(), requestId="req-123")

    first = await client.post("/api/intake/submit", json=payload)
    second = await client.post("/api/intake/submit", json=payload)

    assert first.status_code == 200
    assert second.status_code == 200
    assert second.json()["clientId"] == first.json()["clientId"]
    assert len(await fetch_all(select(Client))) == 1
    assert len(await fetch_all(select(IntakeSubmission))) == 1
    assert len(email_provider.sent) == 2


@pytest.mark.asyncio
async def test_request_id_reused_with_other_link_is_rejected(client, intake_link):
    first = await client.post("/api/intake/submit", json=via_link(intake_link, form(), requestId="req-9"))
    assert first.status_code == 200
    other = (await client.post("/api/intake-links", json={"email": "bo@example.com"})).json()

    response = await client.post("/api/intake/submit", json=via_link(other, form(), requestId="req-9"))

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid intake link", "stage": "link"}


@pytest.mark.asyncio
async def test_self_service_submission_creates_prospect(client):
    response = await client.post(
        "/api/intake/submit",
        json={"token": "self-service", "linkId": "self-service", "formData": form()},
    )

    assert response.status_code == 200
    stored = await fetch_one(select(Client))
    assert stored.status == ClientStatus.PROSPECT
    assert stored.user_id is None
    task = await fetch_one(select(Task))
    assert task.priority == TaskPriority.MEDIUM
    activity = await fetch_one(select(ActivityLog))
    assert activity.description == "Client intake completed via self-service form"


@pytest.mark.asyncio
async def test_missing_filing_status_is_rejected(client, intake_link):
    response = await client.post("/api/intake/submit", json=via_link(intake_link, form(filingStatus=None)))

    assert response.status_code == 400
    assert response.json() == {"error": "Please select a filing status", "stage": "validation"}

    validation = await client.get(f"/api/intake-links/validate/{intake_link['token']}")
    assert validation.json()["valid"] is True


@pytest.mark.asyncio
async def test_married_filing_requires_spouse_name(client, intake_link):
    response = await client.post(
        "/api/intake/submit",
        json=via_link(intake_link, form(filingStatus="married_joint", hasSpouse=True, spouseFirstName="Sam")),
    )

    assert response.status_code == 400
    assert response.json()["error"] == "Spouse information is missing: last name"


@pytest.mark.asyncio
async def test_incomplete_dependent_is_rejected(client, intake_link):
    response = await client.post(
        "/api/intake/submit",
        json=via_link(intake_link, form(dependents=[dependent(ssn="", relationship="")])),
    )

    assert response.status_code == 400
    assert response.json()["error"] == "Dependent 1 is missing: SSN, relationship"


@pytest.mark.asyncio
async def test_malformed_form_data_is_a_validation_error(client, intake_link):
    response = await client.post("/api/intake/submit", json=via_link(intake_link, form(filingStatus="divorced")))

    assert response.status_code == 400
    body = response.json()
    assert body["stage"] == "validation"
    assert "formData.filingStatus" in body["error"]
    assert body["details"]


@pytest.mark.asyncio
async def test_bad_date_is_a_validation_error(client, intake_link):
    response = await client.post("/api/intake/submit", json=via_link(intake_link, form(dateOfBirth="04/12/1985")))

    assert response.status_code == 400
    assert response.json() == {
        "error": "Date of birth must be a date in YYYY-MM-DD format",
        "stage": "validation",
    }
    assert await fetch_all(select(Client)) == []


@pytest.mark.asyncio
async def test_ssns_are_stored_encrypted(client, intake_link):
    payload = via_link(intake_link, form(
        filingStatus="married_joint",
        hasSpouse=True,
        spouseFirstName="Sam",
        spouseLastName="Diaz",
        spouseSsn="111-22-3333",
        dependents=[dependent()],
    ))

    response = await client.post("/api/intake/submit", json=payload)

    assert response.status_code == 200
    stored = await fetch_one(select(Client))
    assert stored.ssn_encrypted != "123-45-6789"
    assert ":" in stored.ssn_encrypted
    assert stored.ssn_last_four == "6789"
    assert decrypt_ssn(stored.ssn_encrypted) == "123-45-6789"
    assert decrypt_ssn(stored.spouse_ssn_encrypted) == "111-22-3333"

    dep = await fetch_one(select(Dependent))
    assert dep.ssn_last_four == "4321"
    assert decrypt_ssn(dep.ssn_encrypted) == "987-65-4321"
    assert dep.relationship_type == "Son"


@pytest.mark.asyncio
async def test_client_bound_link_updates_client_and_replaces_dependents(client, intake_link):
    first = await client.post(
        "/api/intake/submit",
        json=via_link(intake_link, form(dependents=[dependent(), dependent(id="dep-2", firstName="Mia")])),
    )
    client_id = first.json()["clientId"]
    bound = await client.post("/api/intake-links", json={"clientId": client_id, "createdBy": "preparer-1"})
    assert bound.status_code == 201

    second = await client.post(
        "/api/intake/submit",
        json=via_link(bound.json(), form(lastName="Diaz-Ruiz", dependents=[dependent(id="dep-3", firstName="Noa")])),
    )

    assert second.status_code == 200
    assert second.json()["clientId"] == client_id
    stored = await fetch_one(select(Client))
    assert stored.last_name == "Diaz-Ruiz"
    dependents = await fetch_all(select(Dependent))
    assert [d.first_name for d in dependents] == ["Noa"]


@pytest.mark.asyncio
async def test_only_stored_documents_are_recorded(client, intake_link):
    documents = [
        {"id": "temp-1", "name": "w2.pdf", "category": "w2", "filePath": "intake-uploads/1-w2.pdf",
         "fileType": "application/pdf", "fileSize": 100},
        {"id": "temp-2", "name": "demo.pdf", "category": "1099"},
        {"id": "temp-3", "name": "misc.pdf", "category": "", "filePath": "intake-uploads/2-misc.pdf"},
    ]

    response = await client.post("/api/intake/submit", json=via_link(intake_link, form(uploadedDocuments=documents)))

    assert response.status_code == 200
    stored = await fetch_all(select(Document).order_by(Document.name))
    assert [(d.name, d.category) for d in stored] == [("misc.pdf", "other"), ("w2.pdf", "w2")]
    assert all(d.tax_year == datetime.utcnow().year for d in stored)


@pytest.mark.asyncio
async def test_answers_are_recorded(client, intake_link):
    response = await client.post("/api/intake/submit", json=via_link(intake_link, form()))

    assert response.status_code == 200
    rows = await fetch_all(select(IntakeResponse))
    answers = {row.question_key: row.response_value for row in rows}
    assert len(rows) == 18
    assert answers["has_w2_income"] is True
    assert answers["w2_employer_count"] == 2
    assert answers["income_types"] == ["interest"]
    assert answers["has_crypto"] is False
    assert answers["additional_notes"] == "Moved in March"
    assert {row.step_number for row in rows} == {5, 6, 8}


@pytest.mark.asyncio
async def test_failed_write_reports_stage_and_rolls_back(client, intake_link, monkeypatch):
    async def broken_answers(*args, **kwargs):
        raise OperationalError("INSERT INTO intake_responses", {}, Exception("disk I/O error"))

    monkeypatch.setattr(submission, "_save_answers", broken_answers)

    response = await client.post("/api/intake/submit", json=via_link(intake_link, form()))

    assert response.status_code == 500
    body = response.json()
    assert body["error"] == "Failed to save responses"
    assert body["stage"] == "responses"
    assert body["details"] == "disk I/O error"
    assert body["clientId"]
    assert await fetch_all(select(Client)) == []
    link = await fetch_one(select(IntakeLink))
    assert link.used_at is None


@pytest.mark.asyncio
async def test_failed_review_task_does_not_block_submission(client, intake_link, monkeypatch):
    monkeypatch.setattr(submission, "Task", lambda **kwargs: Task(**{**kwargs, "title": None}))

    response = await client.post("/api/intake/submit", json=via_link(intake_link, form()))

    assert response.status_code == 200
    assert await fetch_all(select(Task)) == []
    assert len(await fetch_all(select(ActivityLog))) == 1
    assert len(await fetch_all(select(Client))) == 1


@pytest.mark.asyncio
async def test_w2_income_without_employer_count_is_rejected(client, intake_link):
    response = await client.post(
        "/api/intake/submit",
        json=via_link(intake_link, form(hasW2Income=True, w2EmployerCount=0)),
    )

    assert response.status_code == 400
    assert response.json()["stage"] == "validation"
    assert await fetch_all(select(Client)) == []


@pytest.mark.asyncio
async def test_replay_requires_matching_token(client, intake_link):
    payload = via_link(intake_link, form(), requestId="req-77")
    first = await client.post("/api/intake/submit", json=payload)
    assert first.status_code == 200

    forged = {**payload, "token": "0" * 32}
    response = await client.post("/api/intake/submit", json=forged)

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid intake link", "stage": "link"}
    assert "clientId" not in response.json()


# ============================================================================
# EMAILS
# ============================================================================

@pytest.mark.asyncio
async def test_submission_sends_staff_and_welcome_emails(client, intake_link, email_provider):
    await client.post("/api/intake/submit", json=via_link(intake_link, form()))

    staff, welcome = email_provider.sent
    assert staff.to == "staff@example.com"
    assert staff.subject == "New Intake Submission: Ana Diaz"
    assert "Filing Status: Single" in staff.body_text
    assert "- W-2 Income (2 employers)" in staff.body_text
    assert welcome.to == "ana@example.com"
    assert welcome.subject == f"Welcome to {settings.FIRM_NAME}"


@pytest.mark.asyncio
async def test_no_welcome_email_without_client_address(client, intake_link, email_provider):
    await client.post("/api/intake/submit", json=via_link(intake_link, form(email="")))

    assert [m.to for m in email_provider.sent] == ["staff@example.com"]


class BrokenProvider(EmailProvider):
    provider_name = "broken"

    def send(self, message):
        raise OSError("connection refused")


@pytest.mark.asyncio
async def test_email_failure_does_not_fail_submission(client, intake_link):
    app.dependency_overrides[get_email_provider] = BrokenProvider

    response = await client.post("/api/intake/submit", json=via_link(intake_link, form()))

    assert response.status_code == 200
    assert len(await fetch_all(select(Client))) == 1


# ============================================================================
# END TO END
# ============================================================================

@pytest.mark.asyncio
async def test_wizard_submits_through_api(client, intake_link, email_provider):
    async with httpx.AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http:
        validation = (await http.get(f"/api/intake-links/validate/{intake_link['token']}")).json()
        wizard = IntakeWizard.for_link(intake_link["token"], validation, http=http)
        assert wizard.draft.first_name == "Ana"
        assert wizard.draft.email == "ana@example.com"

        personal = wizard.editor()
        assert isinstance(personal, PersonalInfoEditor)
        personal.set_phone("5551234567")
        personal.set_ssn("123456789")
        personal.set_date_of_birth("04/12/1985")
        wizard.next()

        address = wizard.editor()
        assert isinstance(address, AddressEditor)
        address.set_state("tx")
        address.set_zip("78701")
        wizard.next()

        filing = wizard.editor()
        assert isinstance(filing, FilingStatusEditor)
        filing.select_status(FilingStatus.HEAD_OF_HOUSEHOLD)
        wizard.next()

        dependents = wizard.editor()
        assert isinstance(dependents, DependentsEditor)
        dep_id = dependents.add_dependent()
        for name, value in (
            ("first_name", "Leo"),
            ("last_name", "Diaz"),
            ("date_of_birth", "6/1/2015"),
            ("ssn", "987654321"),
            ("relationship", "Son"),
        ):
            dependents.update_dependent(dep_id, name, value)
        wizard.next()

        income = wizard.editor()
        assert isinstance(income, IncomeEditor)
        income.set_w2_income(True)
        wizard.next()
        wizard.next()

        docs = await wizard.editor().add_files(
            "w2", [LocalFile("w2.pdf", b"%PDF-1.4", "application/pdf")]
        )
        assert docs[0].file_path.startswith("intake-uploads/")
        wizard.next()

        assert await wizard.submit() is True

    assert wizard.submitted is True
    assert wizard.error is None
    stored = await fetch_one(select(Client))
    assert wizard.result_client_id == stored.id
    assert stored.phone == "(555) 123-4567"
    assert stored.address_state == "TX"
    assert stored.ssn_last_four == "6789"
    assert stored.filing_status == FilingStatus.HEAD_OF_HOUSEHOLD
    document = await fetch_one(select(Document))
    assert document.file_path == docs[0].file_path
    assert len(await fetch_all(select(Dependent))) == 1
    assert len(email_provider.sent) == 2
