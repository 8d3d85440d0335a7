import logging
import time
import uuid
from contextlib import ExitStack
from pathlib import Path
from typing import Callable

from pydantic import BaseModel, Field

from photo_file_sdk.batch import UploadableFile, remember_uploaded_names
from photo_file_sdk.connectivity import Connectivity
from photo_file_sdk.errors import PhotoDropError
from photo_file_sdk.photo_api import PhotoApi
from photo_file_sdk.state_store import StateStore, FAILED_BATCHES_KEY

logger = logging.getLogger(__name__)


class QueuedFile(BaseModel):
    name: str
    path: Path


class FailedBatch(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    directory: str
    files: list[QueuedFile]
    failed_at: float = Field(default_factory=time.time)


class RetryQueue:
    def __init__(self, store: StateStore, api: PhotoApi, connectivity: Connectivity | None = None):
        self.store = store
        self.api = api
        self._unsubscribe: Callable[[], None] | None = None
        if connectivity is not None:
            self._unsubscribe = connectivity.subscribe(self._on_connectivity)

    def _on_connectivity(self, online: bool) -> None:
        if online:
            self.retry_all()

    def pending(self) -> list[FailedBatch]:
        return [FailedBatch.model_validate(item) for item in self.store.get(FAILED_BATCHES_KEY) or []]

    def _save(self, batches: list[FailedBatch]) -> None:
        self.store.set(FAILED_BATCHES_KEY, [batch.model_dump(mode='json') for batch in batches])

    def enqueue(self, directory: str, files: list[UploadableFile]) -> FailedBatch | None:
        # only files backed by a local path can be read again later
        queued = [QueuedFile(name=file.name, path=file.path) for file in files if file.path is not None]
        if not queued:
            return None
        batch = FailedBatch(directory=directory, files=queued)
        self._save(self.pending() + [batch])
        logger.info('queued %d file(s) for %r to retry when back online', len(queued), directory)
        return batch

    def _replay(self, batch: FailedBatch) -> None:
        with ExitStack() as stack:
            files = [(file.name, stack.enter_context(open(file.path, 'rb'))) for file in batch.files]
            self.api.upload(batch.directory, files)
        remember_uploaded_names(self.store, [file.name for file in batch.files])

    def retry_all(self) -> list[FailedBatch]:
        """Replay every queued batch; returns the ones that went through."""
        succeeded, remaining = [], []
        for batch in self.pending():
            missing = [file.name for file in batch.files if not file.path.is_file()]
            if missing:
                logger.warning('dropping queued batch %s, local files are gone: %s', batch.id, ', '.join(missing))
                continue
            try:
                self._replay(batch)
            except PhotoDropError as e:
                logger.warning('retry of batch %s to %r failed: %s', batch.id, batch.directory, e)
                remaining.append(batch)
            else:
                logger.info('retried batch %s to %r', batch.id, batch.directory)
                succeeded.append(batch)
        self._save(remaining)
        return succeeded

    def close(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None
