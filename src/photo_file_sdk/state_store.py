import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable

logger = logging.getLogger(__name__)

UPLOADED_NAMES_KEY = 'uploadedNames'
UPLOAD_DIRECTORY_KEY = 'uploadDirectory'
FAILED_BATCHES_KEY = 'failedBatches'

StateListener = Callable[[str, Any], None]


class StateStore(ABC):
    def __init__(self):
        self._listeners: dict[str, list[StateListener]] = {}

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        ...

    @abstractmethod
    def _write(self, key: str, value: Any) -> None:
        ...

    def set(self, key: str, value: Any) -> None:
        self._write(key, value)
        for listener in list(self._listeners.get(key, [])):
            listener(key, value)

    def subscribe(self, key: str, listener: StateListener) -> Callable[[], None]:
        listeners = self._listeners.setdefault(key, [])
        listeners.append(listener)

        def unsubscribe():
            if listener in listeners:
                listeners.remove(listener)

        return unsubscribe


class MemoryStateStore(StateStore):
    def __init__(self, initial: dict[str, Any] | None = None):
        super().__init__()
        self._data = dict(initial or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def _write(self, key: str, value: Any) -> None:
        self._data[key] = value


class JsonFileStateStore(StateStore):
    """State persisted as one JSON object, rewritten on every set."""

    def __init__(self, path: Path | str):
        super().__init__()
        self.path = Path(path)
        self._data: dict[str, Any] = {}
        if self.path.is_file():
            try:
                with open(self.path, encoding='utf-8') as f:
                    self._data = json.load(f)
            except (OSError, ValueError) as e:
                logger.warning('ignoring unreadable state file %s: %s', self.path, e)

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def _write(self, key: str, value: Any) -> None:
        self._data[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + '.tmp')
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump(self._data, f, ensure_ascii=False, indent=2)
        tmp_path.replace(self.path)
