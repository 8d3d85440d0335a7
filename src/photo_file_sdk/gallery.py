import logging
import time
import webbrowser
from pathlib import Path
from typing import Callable, Literal

from pydantic import BaseModel

from photo_file_sdk.errors import PhotoDropError, DirectoryNotFound, InvalidRequest
from photo_file_sdk.photo_api import PhotoApi
from photo_file_sdk.preference import DirectoryPreference

logger = logging.getLogger(__name__)

DIRECTORY_NOT_FOUND_MESSAGE = "Directory not found. Please check the path and try again."
DIRECTORY_REQUIRED_MESSAGE = "Directory path is required"
LOAD_FAILED_MESSAGE = "Failed to load photos. Please try again."

# pause between two downloads of a batch
DOWNLOAD_PAUSE_SECONDS = 0.5


class PhotoRecord(BaseModel):
    name: str
    view_url: str
    download_url: str


class DownloadResult(BaseModel):
    name: str
    method: Literal['fetch', 'open', 'failed']
    path: Path | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.method != 'failed'


class BatchDownloader:
    def __init__(self,
                 api: PhotoApi,
                 target_dir: Path | str,
                 open_url: Callable[[str], bool] = webbrowser.open,
                 sleep: Callable[[float], None] = time.sleep,
                 pause: float = DOWNLOAD_PAUSE_SECONDS):
        self.api = api
        self.target_dir = Path(target_dir)
        self.open_url = open_url
        self.sleep = sleep
        self.pause = pause

    def _free_path(self, name: str) -> Path:
        path = self.target_dir / name
        stem, suffix = path.stem, path.suffix
        index = 1
        while path.exists():
            path = self.target_dir / f'{stem} ({index}){suffix}'
            index += 1
        return path

    def _save(self, photo: PhotoRecord) -> Path:
        content = self.api.fetch(photo.download_url)
        self.target_dir.mkdir(parents=True, exist_ok=True)
        path = self._free_path(Path(photo.name).name)
        path.write_bytes(content)
        return path

    def download_one(self, photo: PhotoRecord) -> DownloadResult:
        try:
            return DownloadResult(name=photo.name, method='fetch', path=self._save(photo))
        except (PhotoDropError, OSError) as e:
            logger.warning('fetching %s failed, opening the download url instead: %s', photo.name, e)
            fetch_error = str(e)

        try:
            opened = self.open_url(photo.download_url)
        except (webbrowser.Error, OSError) as e:
            opened, fetch_error = False, f'{fetch_error}; {e}'
        if opened is False:
            return DownloadResult(name=photo.name, method='failed', error=fetch_error)
        return DownloadResult(name=photo.name, method='open', error=fetch_error)

    def download(self, photos: list[PhotoRecord]) -> list[DownloadResult]:
        results = []
        for index, photo in enumerate(photos):
            results.append(self.download_one(photo))
            if index < len(photos) - 1:
                self.sleep(self.pause)
        return results


class Gallery:
    def __init__(self, api: PhotoApi, preference: DirectoryPreference):
        self.api = api
        self.preference = preference
        self.photos: list[PhotoRecord] = []
        self.error = ''
        self.search_term = ''
        self.selection: set[str] = set()
        self.selection_mode = False

    def _record(self, directory: str, name: str) -> PhotoRecord:
        return PhotoRecord(name=name,
                           view_url=self.api.file_url(directory, name),
                           download_url=self.api.download_url(directory, name))

    def fetch(self) -> list[PhotoRecord]:
        directory = self.preference.directory
        if not directory:
            self.error = DIRECTORY_REQUIRED_MESSAGE
            return []
        if not self.preference.validate():
            self.error = self.preference.error
            return []

        self.error = ''
        self.photos = []
        self.selection = set()
        self.selection_mode = False

        try:
            names = self.api.list_photos(directory)
        except DirectoryNotFound:
            self.error = DIRECTORY_NOT_FOUND_MESSAGE
            return []
        except InvalidRequest:
            self.error = DIRECTORY_REQUIRED_MESSAGE
            return []
        except PhotoDropError as e:
            logger.error('listing %r failed: %s', directory, e)
            self.error = LOAD_FAILED_MESSAGE
            return []

        self.photos = [self._record(directory, name) for name in names]
        self.preference.remember(directory)
        return self.photos

    @property
    def filtered_photos(self) -> list[PhotoRecord]:
        term = self.search_term.lower()
        return [photo for photo in self.photos if term in photo.name.lower()]

    def toggle_selection_mode(self) -> None:
        if self.selection_mode:
            self.selection = set()
        self.selection_mode = not self.selection_mode

    def toggle_photo(self, name: str) -> None:
        if name in self.selection:
            self.selection.discard(name)
        else:
            self.selection.add(name)

    @property
    def is_all_selected(self) -> bool:
        filtered = self.filtered_photos
        return bool(filtered) and len(self.selection) == len(filtered)

    def select_all(self) -> None:
        """Select every filtered photo, or clear the selection when all are already selected."""
        filtered = self.filtered_photos
        if len(self.selection) == len(filtered):
            self.selection = set()
        else:
            self.selection = {photo.name for photo in filtered}

    @property
    def selected_photos(self) -> list[PhotoRecord]:
        return [photo for photo in self.photos if photo.name in self.selection]

    def download_selected(self, downloader: BatchDownloader) -> list[DownloadResult]:
        if not self.selection:
            return []
        results = downloader.download(self.selected_photos)
        self.selection = set()
        self.selection_mode = False
        return results
