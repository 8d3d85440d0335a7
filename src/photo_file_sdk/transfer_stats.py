import math
import time
from typing import Callable, NamedTuple

from pydantic import BaseModel

SIZE_UNITS = ('Bytes', 'KB', 'MB', 'GB')
SPEED_UNITS = ('B/s', 'KB/s', 'MB/s', 'GB/s')


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _scale(value: float, units: tuple[str, ...], digits: int) -> str:
    if value <= 0:
        return f'0 {units[0]}'

    index = 0
    while index < len(units) - 1 and value >= 1024 ** (index + 1):
        index += 1
    number = f'{value / 1024 ** index:.{digits}f}'.rstrip('0').rstrip('.')
    return f'{number} {units[index]}'


def format_file_size(num_bytes: float) -> str:
    return _scale(num_bytes, SIZE_UNITS, 2)


def format_speed(bytes_per_second: float) -> str:
    return _scale(bytes_per_second, SPEED_UNITS, 1)


def format_time(seconds: float) -> str:
    if seconds < 60:
        return f'{round_half_up(seconds)}s'
    if seconds < 3600:
        return f'{math.floor(seconds / 60)}m {round_half_up(seconds % 60)}s'
    return f'{math.floor(seconds / 3600)}h {math.floor(seconds % 3600 / 60)}m'


def format_duration(milliseconds: float) -> str:
    if milliseconds < 1000:
        return f'{round_half_up(milliseconds)}ms'
    return format_time(milliseconds / 1000)


class ProgressSample(NamedTuple):
    timestamp: float
    bytes_sent: int


ProgressListener = Callable[[ProgressSample], None]


class ProgressStream:
    def __init__(self):
        self._listeners: list[ProgressListener] = []
        self.closed = False

    def subscribe(self, listener: ProgressListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(self, sample: ProgressSample) -> None:
        if self.closed:
            return
        for listener in list(self._listeners):
            listener(sample)

    def close(self) -> None:
        self.closed = True
        self._listeners.clear()


class TransferStats(BaseModel):
    start_time: float
    end_time: float | None = None
    total_bytes: int
    uploaded_bytes: int = 0
    speed_bytes_per_sec: float = 0
    eta_seconds: float = 0
    progress_percent: int = 0

    @classmethod
    def start(cls, total_bytes: int, now: float | None = None) -> 'TransferStats':
        return cls(start_time=time.time() if now is None else now, total_bytes=total_bytes)

    @property
    def completed(self) -> bool:
        return self.end_time is not None

    def update(self, uploaded_bytes: int, now: float) -> None:
        """Recompute every derived value from the cumulative byte counter."""
        if self.completed:
            return

        # ticks are cumulative; stale or overshooting ones are clamped
        self.uploaded_bytes = min(max(uploaded_bytes, self.uploaded_bytes), self.total_bytes)

        elapsed = now - self.start_time
        self.speed_bytes_per_sec = self.uploaded_bytes / elapsed if elapsed > 0 else 0
        remaining = self.total_bytes - self.uploaded_bytes
        self.eta_seconds = remaining / self.speed_bytes_per_sec if self.speed_bytes_per_sec > 0 else 0
        self.progress_percent = (round_half_up(self.uploaded_bytes * 100 / self.total_bytes)
                                 if self.total_bytes > 0 else 0)

    def complete(self, now: float) -> None:
        self.end_time = now
        self.uploaded_bytes = self.total_bytes
        self.progress_percent = 100
        self.eta_seconds = 0

    def attach(self, stream: ProgressStream) -> Callable[[], None]:
        return stream.subscribe(lambda sample: self.update(sample.bytes_sent, sample.timestamp))

    def elapsed_seconds(self, now: float | None = None) -> float:
        end = self.end_time if self.end_time is not None else (time.time() if now is None else now)
        return max(end - self.start_time, 0)

    @property
    def duration_ms(self) -> float:
        return self.elapsed_seconds() * 1000

    def summary(self) -> str:
        return (f'{format_file_size(self.uploaded_bytes)} / {format_file_size(self.total_bytes)}, '
                f'{format_speed(self.speed_bytes_per_sec)}, ETA {format_time(self.eta_seconds)}')
