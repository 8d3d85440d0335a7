import logging
import time
from contextlib import ExitStack
from pathlib import Path
from typing import Callable, Iterable

from photo_file_sdk.batch import FileBatch, UploadableFile
from photo_file_sdk.connectivity import Connectivity
from photo_file_sdk.errors import InvalidRequest, OfflineError, UploadInProgress, PhotoDropError, TransportError
from photo_file_sdk.photo_api import PhotoApi
from photo_file_sdk.preference import DirectoryPreference
from photo_file_sdk.retry_queue import RetryQueue
from photo_file_sdk.transfer_stats import TransferStats, ProgressStream, ProgressSample, format_duration
from photo_file_server.photo.model import UploadResponse

logger = logging.getLogger(__name__)

OFFLINE_MESSAGE = "You're offline. Please check your connection and try again."
FAILED_MESSAGE = "Upload failed. Please try again."


class Uploader:
    def __init__(self,
                 api: PhotoApi,
                 batch: FileBatch,
                 preference: DirectoryPreference,
                 connectivity: Connectivity | None = None,
                 retry_queue: RetryQueue | None = None,
                 clock: Callable[[], float] = time.time):
        self.api = api
        self.batch = batch
        self.preference = preference
        self.connectivity = connectivity or Connectivity()
        self.retry_queue = retry_queue
        self.clock = clock
        self.is_uploading = False
        self.stats: TransferStats | None = None
        self.message: str | None = None

    def select(self, paths: Iterable[Path | str]) -> list[UploadableFile]:
        self.message = None
        return self.batch.add(UploadableFile.from_path(path) for path in paths)

    def clear(self) -> None:
        self.batch.clear()
        self.stats = None
        self.message = None

    def refresh(self) -> None:
        """Drop the finished batch and its stats once they have been shown long enough."""
        if self.batch.expire_if_due():
            self.stats = None

    def upload(self, on_stats: Callable[[TransferStats], None] | None = None) -> UploadResponse | None:
        files = self.batch.pending_files
        if not files:
            return None
        if self.is_uploading:
            raise UploadInProgress('an upload is already in progress')
        if not self.preference.validate():
            raise InvalidRequest(self.preference.error)
        if not self.connectivity.online:
            self.message = OFFLINE_MESSAGE
            raise OfflineError(OFFLINE_MESSAGE)

        directory = self.preference.directory
        total_bytes = FileBatch.total_bytes(files)
        stats = TransferStats.start(total_bytes, self.clock())
        self.stats = stats
        self.message = None

        stream = ProgressStream()
        stats.attach(stream)
        stream.subscribe(lambda sample: self.batch.set_progress(stats.progress_percent))
        if on_stats:
            stream.subscribe(lambda sample: on_stats(stats))

        def on_progress(bytes_read: int, body_length: int) -> None:
            # the multipart body carries framing on top of the file bytes
            sent = bytes_read * total_bytes // body_length if body_length else 0
            stream.emit(ProgressSample(self.clock(), sent))

        self.is_uploading = True
        self.batch.start_upload()
        try:
            with ExitStack() as stack:
                streams = [(file.name, stack.enter_context(file.open())) for file in files]
                response = self.api.upload(directory, streams, on_progress)
        except (PhotoDropError, OSError) as e:
            logger.warning('upload of %d file(s) to %r failed: %s', len(files), directory, e)
            self.batch.mark_failed()
            self.stats = None
            self.message = FAILED_MESSAGE
            if isinstance(e, TransportError) and self.retry_queue is not None:
                self.retry_queue.enqueue(directory, files)
            raise
        finally:
            stream.close()
            self.is_uploading = False

        stats.complete(self.clock())
        self.batch.mark_completed()
        self.message = (f'Successfully uploaded {len(files)} file(s) to "{directory}" '
                        f'in {format_duration(stats.duration_ms)}')
        logger.info(self.message)
        if on_stats:
            on_stats(stats)
        return response
