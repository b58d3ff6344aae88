"""
Document upload sub-flow of the intake wizard.

Files selected for a category are uploaded one at a time. While a file is in
flight it lives in ``DocumentUploader.pending``; once the server confirms the
storage path it is promoted into the draft's document list. Failed uploads
stay in ``pending`` marked ``error`` for a few seconds and then disappear
without touching the draft.
"""
import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional, Set

import httpx

from app.core.config import settings
from app.intake.draft import DocumentsPatch, DraftDocument

if TYPE_CHECKING:
    from app.intake.wizard import IntakeWizard

logger = logging.getLogger(__name__)

UPLOAD_PATH = "/api/intake/upload"
CLOSED_MESSAGE = "Intake already submitted; file was not added"


@dataclass
class LocalFile:
    """A file picked on the client, not yet uploaded."""
    name: str
    content: bytes
    content_type: str = "application/octet-stream"

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass
class PendingUpload:
    temp_id: str
    name: str
    category: str
    status: str = "uploading"  # uploading | error
    error: Optional[str] = None


class UploadFailed(Exception):
    pass


class DocumentUploader:
    def __init__(self, wizard: "IntakeWizard"):
        self._wizard = wizard
        self.pending: List[PendingUpload] = []
        self._dismissals: Set[asyncio.Task] = set()

    async def upload(self, category: str, files: List[LocalFile]) -> List[DraftDocument]:
        """
        Upload files sequentially and return the documents that made it into the draft.

        Every file gets its ``uploading`` entry before the first request goes out.
        """
        entries = [
            PendingUpload(temp_id=f"temp-{uuid.uuid4().hex[:12]}", name=f.name, category=category)
            for f in files
        ]
        self.pending.extend(entries)

        promoted = []
        for local_file, entry in zip(files, entries):
            try:
                if self._wizard.submitted:
                    raise UploadFailed(CLOSED_MESSAGE)
                if self._wizard.is_demo:
                    document = await self._simulate(local_file, entry)
                else:
                    document = await self._send(local_file, entry)
                # The intake may have been submitted while the file was in flight
                if self._wizard.submitted:
                    raise UploadFailed(CLOSED_MESSAGE)
            except UploadFailed as e:
                logger.warning(f"Upload of {local_file.name} failed: {e}")
                self._fail(entry, str(e))
                continue
            self._promote(entry, document)
            promoted.append(document)
        return promoted

    async def settle(self) -> None:
        """Wait for every scheduled error dismissal to finish."""
        while self._dismissals:
            await asyncio.gather(*list(self._dismissals))

    async def _simulate(self, local_file: LocalFile, entry: PendingUpload) -> DraftDocument:
        await asyncio.sleep(settings.DEMO_UPLOAD_DELAY)
        return DraftDocument(
            id=entry.temp_id,
            name=local_file.name,
            category=entry.category,
            uploaded=True,
            file_type=local_file.content_type,
            file_size=local_file.size,
        )

    async def _send(self, local_file: LocalFile, entry: PendingUpload) -> DraftDocument:
        try:
            async with self._wizard.http_client() as client:
                response = await client.post(
                    UPLOAD_PATH,
                    data={"category": entry.category, "tempId": entry.temp_id},
                    files={"file": (local_file.name, local_file.content, local_file.content_type)},
                )
        except httpx.HTTPError as e:
            raise UploadFailed("Upload failed. Please try again.") from e

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        if response.is_error or not body.get("filePath"):
            raise UploadFailed(body.get("error") or "Upload failed")

        return DraftDocument(
            id=entry.temp_id,
            name=body.get("fileName") or local_file.name,
            category=entry.category,
            uploaded=True,
            file_path=body["filePath"],
            file_type=body.get("fileType") or local_file.content_type,
            file_size=body.get("fileSize", local_file.size),
        )

    def _promote(self, entry: PendingUpload, document: DraftDocument) -> None:
        # Current draft, not the one seen when the upload started
        current = self._wizard.draft.uploaded_documents
        self._wizard.patch(DocumentsPatch(uploaded_documents=[*current, document]))
        self.pending.remove(entry)

    def _fail(self, entry: PendingUpload, message: str) -> None:
        entry.status = "error"
        entry.error = message
        task = asyncio.get_running_loop().create_task(self._dismiss(entry))
        self._dismissals.add(task)
        task.add_done_callback(self._dismissals.discard)

    async def _dismiss(self, entry: PendingUpload) -> None:
        await asyncio.sleep(settings.UPLOAD_ERROR_DISMISS_SECONDS)
        if entry in self.pending:
            self.pending.remove(entry)
