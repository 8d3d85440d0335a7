import pytest

from photo_file_sdk.transfer_stats import (TransferStats, ProgressStream, ProgressSample, format_file_size,
                                           format_speed, format_time, format_duration)


def test_tick_derives_average_speed_eta_and_percent():
    stats = TransferStats.start(total_bytes=1000, now=10.0)

    stats.update(250, now=12.0)

    assert stats.speed_bytes_per_sec == 125
    assert stats.eta_seconds == 6
    assert stats.progress_percent == 25


def test_zero_elapsed_gives_zero_speed_and_eta():
    stats = TransferStats.start(total_bytes=1000, now=10.0)
    stats.update(100, now=10.0)
    assert stats.speed_bytes_per_sec == 0
    assert stats.eta_seconds == 0
    assert stats.progress_percent == 10


def test_speed_is_cumulative_average_not_instantaneous():
    stats = TransferStats.start(total_bytes=1000, now=0.0)
    stats.update(900, now=1.0)
    stats.update(950, now=11.0)
    assert stats.speed_bytes_per_sec == pytest.approx(950 / 11)


def test_percent_rounds_half_up():
    stats = TransferStats.start(total_bytes=200, now=0.0)
    stats.update(1, now=1.0)
    assert stats.progress_percent == 1


def test_progress_never_regresses_or_overshoots():
    stats = TransferStats.start(total_bytes=100, now=0.0)
    stats.update(60, now=1.0)
    stats.update(40, now=2.0)
    assert stats.uploaded_bytes == 60
    stats.update(500, now=3.0)
    assert stats.uploaded_bytes == 100
    assert stats.eta_seconds == 0


def test_completion_forces_full_progress():
    stats = TransferStats.start(total_bytes=3000, now=0.0)
    for at, sent in enumerate((500, 1200, 2100), start=1):
        stats.update(sent, now=float(at))
    assert stats.eta_seconds > 0

    stats.complete(now=4.0)

    assert stats.end_time == 4.0
    assert stats.uploaded_bytes == 3000
    assert stats.progress_percent == 100
    assert stats.eta_seconds == 0
    assert stats.duration_ms == 4000

    stats.update(10, now=5.0)
    assert stats.progress_percent == 100


def test_stream_feeds_subscribers_until_closed():
    stream = ProgressStream()
    stats = TransferStats.start(total_bytes=100, now=0.0)
    stats.attach(stream)
    seen = []
    unsubscribe = stream.subscribe(seen.append)

    stream.emit(ProgressSample(1.0, 50))
    unsubscribe()
    stream.emit(ProgressSample(2.0, 60))
    stream.close()
    stream.emit(ProgressSample(3.0, 90))

    assert seen == [ProgressSample(1.0, 50)]
    assert stats.uploaded_bytes == 60


@pytest.mark.parametrize('num_bytes, expected', [
    (0, '0 Bytes'),
    (1, '1 Bytes'),
    (1023, '1023 Bytes'),
    (1024, '1 KB'),
    (1536, '1.5 KB'),
    (1024 ** 2 - 1, '1024 KB'),
    (1024 ** 2, '1 MB'),
    (3 * 1024 ** 3, '3 GB'),
    (2048 * 1024 ** 3, '2048 GB'),
])
def test_format_file_size(num_bytes, expected):
    assert format_file_size(num_bytes) == expected


def test_format_file_size_changes_unit_once_per_boundary():
    units = []
    for k in range(4):
        for num_bytes in (1024 ** k, 1024 ** (k + 1) - 1024 ** k // 2 if k else 1023):
            units.append(format_file_size(num_bytes).split()[-1])
    assert units == ['Bytes', 'Bytes', 'KB', 'KB', 'MB', 'MB', 'GB', 'GB']


@pytest.mark.parametrize('speed, expected', [
    (0, '0 B/s'),
    (512, '512 B/s'),
    (1024 * 1.3, '1.3 KB/s'),
    (5 * 1024 ** 2, '5 MB/s'),
])
def test_format_speed(speed, expected):
    assert format_speed(speed) == expected


@pytest.mark.parametrize('seconds, expected', [
    (0, '0s'),
    (59.4, '59s'),
    (60, '1m 0s'),
    (125, '2m 5s'),
    (3600, '1h 0m'),
    (3725, '1h 2m'),
])
def test_format_time(seconds, expected):
    assert format_time(seconds) == expected


@pytest.mark.parametrize('milliseconds, expected', [(250, '250ms'), (999.6, '1000ms'), (1500, '2s'), (61000, '1m 1s')])
def test_format_duration(milliseconds, expected):
    assert format_duration(milliseconds) == expected
