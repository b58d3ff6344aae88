"""Test wizard navigation, step editors and submission."""

import json

import httpx
import pytest

from app.core.errors import LinkError
from app.intake.draft import DocumentsPatch, DraftDocument, FilingPatch, NotesPatch, PersonalPatch
from app.intake.editors import (
    AddressEditor,
    DeductionsEditor,
    DependentsEditor,
    DocumentsEditor,
    FilingStatusEditor,
    IncomeEditor,
    PersonalInfoEditor,
    ReviewEditor,
)
from app.core.config import settings
from app.intake.wizard import (
    NETWORK_ERROR_MESSAGE,
    SUBMIT_FAILED_MESSAGE,
    SUBMIT_PATH,
    IntakeWizard,
    WizardClosedError,
)


class RecordingTransport(httpx.MockTransport):
    """Mock transport that remembers every request it receives."""

    def __init__(self, status_code=200, body=None, error=None):
        self.requests = []

        def handler(request):
            self.requests.append(request)
            if error is not None:
                raise error(f"cannot reach {request.url}", request=request)
            return httpx.Response(status_code, json=body if body is not None else {})

        super().__init__(handler)


def live_wizard(transport, **kwargs):
    http = httpx.AsyncClient(transport=transport, base_url="http://test")
    return IntakeWizard("a" * 32, "link-1", http=http, **kwargs)


def fill_required(wizard):
    wizard.patch(PersonalPatch(first_name="Ana", last_name="Diaz"))
    wizard.patch(FilingPatch(filing_status="single"))


def test_navigation_stays_in_bounds():
    wizard = IntakeWizard.demo()
    assert wizard.current_step == 1

    wizard.back()
    assert wizard.current_step == 1

    for _ in range(10):
        wizard.next()
    assert wizard.current_step == 8

    wizard.back()
    assert wizard.current_step == 7


def test_jump_only_to_visited_steps():
    wizard = IntakeWizard.demo()
    for _ in range(4):
        wizard.next()
    assert wizard.current_step == 5

    assert wizard.jump_to(6) is False
    assert wizard.current_step == 5
    assert wizard.jump_to(0) is False
    assert wizard.jump_to(2) is True
    assert wizard.current_step == 2
    assert wizard.jump_to(2) is True


def test_next_is_not_gated_by_missing_fields():
    wizard = IntakeWizard.demo()
    assert wizard.editor().missing_fields()
    wizard.next()
    assert wizard.current_step == 2


def test_step_change_observer():
    seen = []
    wizard = IntakeWizard.demo(on_step_change=seen.append)
    wizard.next()
    wizard.next()
    wizard.back()
    wizard.back()
    wizard.back()
    assert seen == [2, 3, 2, 1]


def test_editor_matches_current_step():
    wizard = IntakeWizard.demo()
    expected = [
        PersonalInfoEditor, AddressEditor, FilingStatusEditor, DependentsEditor,
        IncomeEditor, DeductionsEditor, DocumentsEditor, ReviewEditor,
    ]
    for editor_type in expected:
        editor = wizard.editor()
        assert editor.step.number == wizard.current_step
        assert isinstance(editor, editor_type)
        wizard.next()


def test_personal_editor_formats_input():
    wizard = IntakeWizard.demo()
    editor = wizard.editor()

    assert editor.set_phone("5551234567") == "(555) 123-4567"
    editor.set_ssn("123456789")
    editor.set_date_of_birth("3/7/1990")
    editor.set_date_of_birth("3/7/19")

    assert wizard.draft.phone == "(555) 123-4567"
    assert wizard.draft.ssn == "123-45-6789"
    assert wizard.draft.date_of_birth == "1990-03-07"
    assert "phone" not in editor.missing_fields()
    with pytest.raises(TypeError):
        editor.values["phone"] = "x"


def test_address_editor_validates_state():
    wizard = IntakeWizard.demo()
    wizard.next()
    editor = wizard.editor()

    editor.set_state("tx")
    assert editor.set_zip("78701-1234") == "78701"
    assert wizard.draft.address_state == "TX"
    with pytest.raises(ValueError):
        editor.set_state("ZZ")


def test_filing_editor_requires_spouse_when_married():
    wizard = IntakeWizard.demo()
    wizard.jump_to(1)
    for _ in range(2):
        wizard.next()
    editor = wizard.editor()

    editor.select_status("single")
    assert editor.required_fields() == ["filing_status"]

    editor.select_status("married_separate")
    editor.set_spouse_ssn("987654321")
    assert wizard.draft.has_spouse is True
    assert wizard.draft.spouse_ssn == "987-65-4321"
    assert editor.missing_fields() == ["spouse_first_name", "spouse_last_name", "spouse_dob"]


def test_dependents_editor():
    wizard = IntakeWizard.demo()
    for _ in range(3):
        wizard.next()
    editor = wizard.editor()

    first = editor.add_dependent()
    second = editor.add_dependent()
    editor.update_dependent(first, "first_name", "Mia")
    editor.update_dependent(first, "ssn", "111223333")
    editor.update_dependent(first, "date_of_birth", "6/1/2015")
    editor.update_dependent(first, "relationship", "Daughter")
    editor.remove_dependent(second)

    dependents = wizard.draft.dependents
    assert len(dependents) == 1
    assert dependents[0].ssn == "111-22-3333"
    assert dependents[0].date_of_birth == "2015-06-01"
    assert dependents[0].months_lived_with == 12
    assert editor.missing_fields() == ["dependents[0].last name"]

    with pytest.raises(KeyError):
        editor.update_dependent("missing", "first_name", "X")
    with pytest.raises(ValueError):
        editor.update_dependent(first, "id", "X")
    with pytest.raises(ValueError):
        editor.update_dependent(first, "relationship", "Cousin")


def test_income_editor_w2_count():
    wizard = IntakeWizard.demo()
    for _ in range(4):
        wizard.next()
    editor = wizard.editor()

    editor.set_w2_income(True)
    assert wizard.draft.w2_employer_count == 1
    editor.set_w2_employer_count(3)
    editor.toggle_income_type("interest")
    editor.toggle_income_type("dividends")
    editor.toggle_income_type("interest")
    editor.set_special_situation("has_crypto_transactions", True)

    assert wizard.draft.w2_employer_count == 3
    assert wizard.draft.income_types == ["dividends"]
    assert wizard.draft.has_crypto_transactions is True

    with pytest.raises(ValueError):
        editor.set_w2_employer_count(11)
    editor.set_w2_income(False)
    assert wizard.draft.w2_employer_count == 0


def test_review_editor_masks_ssn_and_jumps_back():
    wizard = IntakeWizard.demo()
    wizard.patch(PersonalPatch(first_name="Ana", last_name="Diaz", ssn="123-45-6789"))
    wizard.patch(FilingPatch(filing_status="married_joint", spouse_first_name="Luis", spouse_last_name="Diaz"))
    for _ in range(7):
        wizard.next()
    editor = wizard.editor()

    sections = {section.title: section.lines for section in editor.sections()}
    assert "***-**-6789" in sections["Personal Information"]
    assert "123-45-6789" not in sections["Personal Information"]
    assert sections["Filing Status"] == ["Married Filing Jointly", "Spouse: Luis Diaz"]
    assert sections["Dependents"] == ["No dependents"]

    editor.set_notes("Call after 5pm")
    assert wizard.draft.additional_notes == "Call after 5pm"
    assert editor.edit(3) is True
    assert wizard.current_step == 3


@pytest.mark.asyncio
async def test_demo_submit_makes_no_request():
    transport = RecordingTransport()
    http = httpx.AsyncClient(transport=transport, base_url="http://test")
    wizard = IntakeWizard.demo(http=http)

    assert await wizard.submit() is True
    assert wizard.submitted is True
    assert wizard.submitting is False
    assert transport.requests == []

    with pytest.raises(WizardClosedError):
        wizard.patch(NotesPatch(additional_notes="late"))
    assert await wizard.submit() is True
    await http.aclose()


def test_demo_link_prefixes_are_demo():
    assert IntakeWizard("demo-token-123", "abc").is_demo
    assert IntakeWizard("abc", "demo-42").is_demo
    assert not IntakeWizard("abc", "link-1").is_demo


@pytest.mark.asyncio
async def test_server_error_is_shown_verbatim():
    transport = RecordingTransport(400, {"error": "This link has already been used", "stage": "link"})
    wizard = live_wizard(transport)
    fill_required(wizard)
    draft_before = wizard.draft

    assert await wizard.submit() is False
    assert wizard.error == "This link has already been used"
    assert wizard.submitted is False
    assert wizard.draft == draft_before

    request = transport.requests[0]
    assert request.url.path == SUBMIT_PATH
    payload = json.loads(request.content)
    assert payload["token"] == "a" * 32
    assert payload["linkId"] == "link-1"
    assert payload["requestId"] == wizard.request_id
    assert payload["formData"]["firstName"] == "Ana"


@pytest.mark.asyncio
async def test_network_error_shows_retry_message():
    wizard = live_wizard(RecordingTransport(error=httpx.ConnectError))
    fill_required(wizard)

    assert await wizard.submit() is False
    assert wizard.error == NETWORK_ERROR_MESSAGE
    assert wizard.submitting is False


@pytest.mark.asyncio
async def test_missing_filing_status_stops_submit_before_request():
    transport = RecordingTransport(200, {"success": True, "clientId": "c1"})
    wizard = live_wizard(transport)

    assert await wizard.submit() is False
    assert wizard.error == "Please select a filing status"
    assert transport.requests == []


@pytest.mark.asyncio
async def test_successful_submit_is_terminal():
    transport = RecordingTransport(200, {"success": True, "clientId": "c1"})
    wizard = live_wizard(transport)
    fill_required(wizard)

    assert await wizard.submit() is True
    assert wizard.result_client_id == "c1"
    assert wizard.error is None
    assert await wizard.submit() is True
    assert len(transport.requests) == 1


def test_for_link_uses_prefill():
    wizard = IntakeWizard.for_link("t" * 32, {
        "valid": True,
        "linkId": "link-9",
        "clientId": None,
        "email": "ana@example.com",
        "prefillFirstName": "Ana",
        "prefillLastName": "Diaz",
    })
    assert wizard.link_id == "link-9"
    assert wizard.draft.first_name == "Ana"
    assert wizard.draft.email == "ana@example.com"


def test_self_service_wizard():
    wizard = IntakeWizard.self_service()
    assert wizard.is_self_service
    assert not wizard.is_demo


def test_for_link_rejects_invalid_validation():
    with pytest.raises(LinkError) as exc_info:
        IntakeWizard.for_link("t" * 32, {"valid": False, "error": "This link has expired"})
    assert exc_info.value.message == "This link has expired"


def test_date_setters_accept_digits_only():
    wizard = IntakeWizard.demo()
    personal = wizard.editor()
    assert personal.set_date_of_birth("03071990") == "1990-03-07"

    wizard.next()
    wizard.next()
    filing = wizard.editor()
    filing.select_status("married_joint")
    assert filing.set_spouse_dob("12251988") == "1988-12-25"

    assert wizard.draft.date_of_birth == "1990-03-07"
    assert wizard.draft.spouse_dob == "1988-12-25"


def test_review_lists_document_sizes():
    wizard = IntakeWizard.demo()
    wizard.patch(DocumentsPatch(uploaded_documents=[
        DraftDocument(id="d1", name="w2.pdf", category="w2", uploaded=True, file_size=1536),
        DraftDocument(id="d2", name="id.png", category="id", uploaded=True),
    ]))
    wizard.jump_to(1)
    for _ in range(7):
        wizard.next()

    sections = {section.title: section.lines for section in wizard.editor().sections()}

    assert sections["Documents"] == ["w2.pdf (W-2 Forms), 1.5 KB", "id.png (Photo ID)"]


@pytest.mark.asyncio
async def test_error_body_that_is_not_an_object():
    wizard = live_wizard(RecordingTransport(status_code=500, body=["unexpected"]))
    fill_required(wizard)

    assert await wizard.submit() is False
    assert wizard.error == SUBMIT_FAILED_MESSAGE
    assert wizard.submitted is False


@pytest.mark.asyncio
async def test_default_client_targets_api_url(monkeypatch):
    monkeypatch.setattr(settings, "API_URL", "http://api.example.com:8000")
    wizard = IntakeWizard("a" * 32, "link-1")

    async with wizard.http_client() as http:
        assert http.base_url == httpx.URL("http://api.example.com:8000/")
