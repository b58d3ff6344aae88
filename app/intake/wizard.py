"""
Multi-step intake wizard.

The wizard owns the draft, the current step and the submission lifecycle.
Navigation is never gated by field validation; required fields are checked
once, right before submission, and again by the server.
"""
import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, List, Mapping, Optional, Union

import httpx

from app.core.config import settings
from app.core.errors import LinkError
from app.intake.draft import BasePatch, IntakeDraft, apply_patch
from app.intake.editors import (
    AddressEditor,
    DeductionsEditor,
    DependentsEditor,
    DocumentsEditor,
    FilingStatusEditor,
    IncomeEditor,
    PersonalInfoEditor,
    ReviewEditor,
    StepEditor,
)
from app.intake.sentinels import DEMO_LINK_ID, DEMO_TOKEN, is_demo, is_self_service
from app.intake.steps import FIRST_STEP, LAST_STEP, IntakeStep, get_step
from app.intake.uploads import DocumentUploader

logger = logging.getLogger(__name__)

SUBMIT_PATH = "/api/intake/submit"
NETWORK_ERROR_MESSAGE = "There was an error submitting your form. Please try again."
SUBMIT_FAILED_MESSAGE = "Failed to submit intake form"

StepObserver = Callable[[int], None]


class WizardClosedError(RuntimeError):
    """The intake was already submitted; the draft can no longer change."""


class IntakeWizard:
    def __init__(
        self,
        token: str,
        link_id: str,
        client_id: Optional[str] = None,
        prefill: Optional[Mapping[str, Optional[str]]] = None,
        http: Optional[httpx.AsyncClient] = None,
        on_step_change: Optional[StepObserver] = None,
    ):
        self.token = token
        self.link_id = link_id
        self.client_id = client_id
        self.draft = IntakeDraft.from_prefill(prefill)
        self.current_step = FIRST_STEP
        self.submitting = False
        self.submitted = False
        self.error: Optional[str] = None
        self.result_client_id: Optional[str] = None
        # One id per wizard so a retried submit is recognised by the server
        self.request_id = str(uuid.uuid4())
        self.uploader = DocumentUploader(self)
        self._http = http
        self._observers: List[StepObserver] = [on_step_change] if on_step_change else []

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------

    @classmethod
    def for_link(cls, token: str, validation: Mapping[str, Any], **kwargs) -> "IntakeWizard":
        """Build a wizard from the result of validating an intake link."""
        if not validation.get("valid"):
            raise LinkError(validation.get("error") or "Invalid intake link")
        prefill = {
            "email": validation.get("email"),
            "first_name": validation.get("prefillFirstName"),
            "last_name": validation.get("prefillLastName"),
        }
        return cls(token, validation["linkId"], validation.get("clientId"), prefill, **kwargs)

    @classmethod
    def self_service(cls, **kwargs) -> "IntakeWizard":
        return cls(settings.SELF_SERVICE_TOKEN, settings.SELF_SERVICE_TOKEN, **kwargs)

    @classmethod
    def demo(cls, **kwargs) -> "IntakeWizard":
        return cls(DEMO_TOKEN, DEMO_LINK_ID, **kwargs)

    @property
    def is_demo(self) -> bool:
        return is_demo(self.token, self.link_id)

    @property
    def is_self_service(self) -> bool:
        return is_self_service(self.token, self.link_id)

    @property
    def step(self) -> IntakeStep:
        return get_step(self.current_step)

    # ------------------------------------------------------------------
    # Draft and navigation
    # ------------------------------------------------------------------

    def patch(self, patch: Union[BasePatch, Mapping[str, Any]]) -> IntakeDraft:
        if self.submitted:
            raise WizardClosedError("Intake has already been submitted")
        self.draft = apply_patch(self.draft, patch)
        return self.draft

    def add_step_observer(self, observer: StepObserver) -> None:
        self._observers.append(observer)

    def _go_to(self, step: int) -> None:
        if step == self.current_step:
            return
        self.current_step = step
        for observer in self._observers:
            observer(step)

    def next(self) -> None:
        if self.current_step < LAST_STEP:
            self._go_to(self.current_step + 1)

    def back(self) -> None:
        if self.current_step > FIRST_STEP:
            self._go_to(self.current_step - 1)

    def jump_to(self, step: int) -> bool:
        """Jump to an already visited step; forward jumps are refused."""
        if FIRST_STEP <= step <= self.current_step:
            self._go_to(step)
            return True
        return False

    def _current_draft(self) -> IntakeDraft:
        return self.draft

    def editor(self) -> StepEditor:
        source = self._current_draft
        step = self.current_step
        if step == 1:
            return PersonalInfoEditor(source, self.patch)
        if step == 2:
            return AddressEditor(source, self.patch)
        if step == 3:
            return FilingStatusEditor(source, self.patch)
        if step == 4:
            return DependentsEditor(source, self.patch)
        if step == 5:
            return IncomeEditor(source, self.patch)
        if step == 6:
            return DeductionsEditor(source, self.patch)
        if step == 7:
            return DocumentsEditor(source, self.patch, self.uploader)
        return ReviewEditor(source, self.patch, self.jump_to)

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def http_client(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._http is not None:
            yield self._http
            return
        async with httpx.AsyncClient(base_url=settings.API_URL) as client:
            yield client

    def submission_payload(self) -> dict:
        return {
            "token": self.token,
            "linkId": self.link_id,
            "clientId": self.client_id,
            "requestId": self.request_id,
            "formData": self.draft.to_submission(),
        }

    async def submit(self) -> bool:
        """
        Submit the draft once.

        Returns True when the intake is submitted. On failure ``error`` holds
        the message to show and the draft is left untouched for a retry.
        """
        if self.submitting or self.submitted:
            return self.submitted
        self.error = None

        if not self.is_demo:
            problems = self.draft.submission_problems()
            if problems:
                self.error = problems[0]
                return False

        self.submitting = True
        try:
            if self.is_demo:
                await asyncio.sleep(settings.DEMO_SUBMIT_DELAY)
                self.submitted = True
                return True
            return await self._post_submission()
        finally:
            self.submitting = False

    async def _post_submission(self) -> bool:
        try:
            async with self.http_client() as client:
                response = await client.post(SUBMIT_PATH, json=self.submission_payload())
        except httpx.HTTPError as e:
            logger.warning(f"Intake submission did not reach the server: {e}")
            self.error = NETWORK_ERROR_MESSAGE
            return False

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        if response.is_error:
            self.error = body.get("error") or SUBMIT_FAILED_MESSAGE
            logger.info(f"Intake submission rejected ({response.status_code}): {self.error}")
            return False

        self.result_client_id = body.get("clientId")
        self.submitted = True
        return True
