import io
import logging
import time
import uuid
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Callable, Iterable

from pydantic import BaseModel, Field

from photo_file_sdk.errors import BatchStateError
from photo_file_sdk.state_store import StateStore, UPLOADED_NAMES_KEY

logger = logging.getLogger(__name__)

# seconds completed files stay listed after their batch finished
COMPLETED_BATCH_TTL = 5.0


class FileStatus(str, Enum):
    PENDING = 'pending'
    UPLOADING = 'uploading'
    COMPLETED = 'completed'
    ERROR = 'error'


class UploadableFile(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex[:9])
    name: str
    size_bytes: int
    status: FileStatus = FileStatus.PENDING
    progress_percent: int = 0
    path: Path | None = None
    content: bytes | None = Field(default=None, repr=False)

    @classmethod
    def from_path(cls, path: Path | str) -> 'UploadableFile':
        path = Path(path)
        return cls(name=path.name, size_bytes=path.stat().st_size, path=path)

    @classmethod
    def from_bytes(cls, name: str, content: bytes) -> 'UploadableFile':
        return cls(name=name, size_bytes=len(content), content=content)

    def open(self) -> BinaryIO:
        if self.content is not None:
            return io.BytesIO(self.content)
        return open(self.path, 'rb')


class BatchCounts(BaseModel):
    pending: int = 0
    uploading: int = 0
    completed: int = 0
    error: int = 0

    @property
    def total(self) -> int:
        return self.pending + self.uploading + self.completed + self.error


def uploaded_names(store: StateStore) -> list[str]:
    return list(store.get(UPLOADED_NAMES_KEY) or [])


def remember_uploaded_names(store: StateStore, names: Iterable[str]) -> None:
    known = uploaded_names(store)
    new = [name for name in dict.fromkeys(names) if name not in known]
    if new:
        store.set(UPLOADED_NAMES_KEY, known + new)


class FileBatch:
    """Lifecycle of the files selected for one upload.

    pending -> uploading -> completed | error. The whole batch travels in one
    request, so every uploading member mirrors the same progress percent.
    """

    def __init__(self, store: StateStore, clock: Callable[[], float] = time.time):
        self.store = store
        self.clock = clock
        self.files: list[UploadableFile] = []
        self.completed_at: float | None = None

    def _with_status(self, status: FileStatus) -> list[UploadableFile]:
        return [file for file in self.files if file.status == status]

    @property
    def pending_files(self) -> list[UploadableFile]:
        return self._with_status(FileStatus.PENDING)

    @property
    def uploading_files(self) -> list[UploadableFile]:
        return self._with_status(FileStatus.UPLOADING)

    @property
    def counts(self) -> BatchCounts:
        counts = BatchCounts()
        for file in self.files:
            setattr(counts, file.status.value, getattr(counts, file.status.value) + 1)
        return counts

    @staticmethod
    def total_bytes(files: Iterable[UploadableFile]) -> int:
        return sum(file.size_bytes for file in files)

    def add(self, files: Iterable[UploadableFile]) -> list[UploadableFile]:
        """Add selected files as pending; names already uploaded or pending are skipped."""
        skip = set(uploaded_names(self.store)) | {file.name for file in self.pending_files}
        added = []
        for file in files:
            if file.name in skip:
                logger.debug('skipping already selected or uploaded file %s', file.name)
                continue
            skip.add(file.name)
            file.status = FileStatus.PENDING
            file.progress_percent = 0
            added.append(file)
        self.files.extend(added)
        return added

    def remove(self, file_id: str) -> UploadableFile:
        for file in self.files:
            if file.id == file_id:
                if file.status != FileStatus.PENDING:
                    raise BatchStateError(f'{file.name} is {file.status.value}, only pending files can be removed')
                self.files.remove(file)
                return file
        raise BatchStateError(f'no file with id {file_id}')

    def clear(self) -> None:
        self.files = []
        self.completed_at = None

    def start_upload(self) -> list[UploadableFile]:
        if self.uploading_files:
            raise BatchStateError('an upload is already in progress')
        started = self.pending_files
        for file in started:
            file.status = FileStatus.UPLOADING
            file.progress_percent = 0
        return started

    def set_progress(self, percent: int) -> None:
        for file in self.uploading_files:
            file.progress_percent = max(file.progress_percent, min(percent, 100))

    def mark_completed(self) -> list[UploadableFile]:
        completed = self.uploading_files
        for file in completed:
            file.status = FileStatus.COMPLETED
            file.progress_percent = 100
        remember_uploaded_names(self.store, [file.name for file in completed])
        self.completed_at = self.clock()
        return completed

    def mark_failed(self) -> list[UploadableFile]:
        failed = self.uploading_files
        for file in failed:
            file.status = FileStatus.ERROR
        return failed

    def retry_failed(self) -> list[UploadableFile]:
        """Move error files back to pending so the user can resubmit them.

        Files the retry queue has delivered meanwhile are completed instead.
        """
        delivered = set(uploaded_names(self.store))
        failed = []
        for file in self._with_status(FileStatus.ERROR):
            if file.name in delivered:
                file.status = FileStatus.COMPLETED
                file.progress_percent = 100
                self.completed_at = self.clock()
                continue
            file.status = FileStatus.PENDING
            file.progress_percent = 0
            failed.append(file)
        return failed

    def expire_if_due(self) -> bool:
        if self.completed_at is None or self.clock() - self.completed_at < COMPLETED_BATCH_TTL:
            return False
        self.files = [file for file in self.files if file.status != FileStatus.COMPLETED]
        self.completed_at = None
        return True
