import re
from typing import Callable

from photo_file_sdk.state_store import StateStore, UPLOAD_DIRECTORY_KEY

DIRECTORY_REQUIRED = "Directory path is required"
DIRECTORY_INVALID_CHARS = "Directory contains invalid characters"

INVALID_CHARS = re.compile(r'[<>:"|?*]')


def validate_directory(directory: str | None) -> str | None:
    """Return the error message for `directory`, or None when it is usable."""
    if not directory or not directory.strip():
        return DIRECTORY_REQUIRED
    if INVALID_CHARS.search(directory):
        return DIRECTORY_INVALID_CHARS
    return None


class DirectoryPreference:
    """Remembered upload directory, one instance shared by the uploader and the gallery."""

    def __init__(self, store: StateStore):
        self.store = store
        self.value: str = store.get(UPLOAD_DIRECTORY_KEY) or ''
        self.error = ''
        self._unsubscribe: Callable[[], None] = store.subscribe(UPLOAD_DIRECTORY_KEY, self._on_stored)

    def _on_stored(self, key: str, value: str) -> None:
        self.value = value or ''

    @property
    def directory(self) -> str:
        return self.value.strip()

    def validate(self) -> bool:
        self.error = validate_directory(self.value) or ''
        return not self.error

    def update(self, value: str) -> bool:
        """Keystroke in the directory field; invalid values are still kept."""
        self.store.set(UPLOAD_DIRECTORY_KEY, value)
        return self.validate()

    def remember(self, value: str | None = None) -> None:
        self.store.set(UPLOAD_DIRECTORY_KEY, (self.value if value is None else value).strip())

    def close(self) -> None:
        self._unsubscribe()
