"""
CSV time-series logger.

Appends one header-less row per logging interval with the live and average
values of the built-in channels, for offline analysis.
"""

import csv
import logging
import threading
from dataclasses import dataclass, astuple
from datetime import datetime
from pathlib import Path
from queue import Queue, Full, Empty
from typing import Optional, List, Callable, IO

from perfmon.utils.timing import ThrottledInterval
from .channel import BuiltinChannels

logger = logging.getLogger(__name__)


LOG_COLUMNS = ("time", "fps_live", "fps_avg", "gpu_live", "gpu_avg", "mem_live", "mem_avg")


@dataclass(frozen=True)
class LogRecord:
    """One time-series row."""
    time: float
    fps_live: float
    fps_avg: float
    gpu_live: float
    gpu_avg: float
    mem_live: float
    mem_avg: float

    def to_row(self) -> List[float]:
        return list(astuple(self))

    @classmethod
    def from_channels(cls, now: float, channels: BuiltinChannels) -> "LogRecord":
        """Create record from the built-in channels."""
        return cls(
            time=now,
            fps_live=channels.fps.live,
            fps_avg=channels.fps.average,
            gpu_live=channels.gpu.live,
            gpu_avg=channels.gpu.average,
            mem_live=channels.memory.live,
            mem_avg=channels.memory.average,
        )


class TimeSeriesLogger:
    """
    Append-only CSV logger for channel samples.

    Features:
    - Fixed logging interval, independent of the display update interval
    - One file per logging session, created on the first row
    - Optional non-blocking writes via a background thread

    Usage:
        ts_logger = TimeSeriesLogger("PerformanceLogs")
        ts_logger.start()

        # In tick loop:
        ts_logger.log_sample(now, channels)

        # On shutdown:
        ts_logger.stop()
    """

    DEFAULT_LOG_INTERVAL = 1.0  # seconds
    DEFAULT_MAX_BUFFER = 1000  # records

    def __init__(
        self,
        log_directory: str,
        log_interval: float = DEFAULT_LOG_INTERVAL,
        async_writes: bool = False,
        max_buffer: int = DEFAULT_MAX_BUFFER,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize time-series logger.

        Args:
            log_directory: Directory receiving the CSV file
            log_interval: Seconds between rows
            async_writes: Queue rows to a background writer thread
            max_buffer: Maximum rows queued in async mode
            clock: Wall clock used to name the session file
        """
        self._log_directory = Path(log_directory)
        self._throttle = ThrottledInterval(log_interval)
        self._async_writes = async_writes
        self._clock = clock

        self._log_file: Optional[Path] = None
        self._file_handle: Optional[IO[str]] = None
        self._csv_writer = None

        # Thread-safe queue for async writes
        self._queue: "Queue[LogRecord]" = Queue(maxsize=max_buffer)
        self._writer_thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

        # Statistics
        self._records_written = 0
        self._records_dropped = 0
        self._write_errors = 0

    @property
    def log_file(self) -> Optional[Path]:
        """Current session file, None until the first row is written."""
        return self._log_file

    @property
    def records_written(self) -> int:
        return self._records_written

    @property
    def records_dropped(self) -> int:
        return self._records_dropped

    @property
    def write_errors(self) -> int:
        return self._write_errors

    def start(self) -> None:
        """Start the background writer thread (async mode only)."""
        if not self._async_writes:
            return
        if self._writer_thread is not None and self._writer_thread.is_alive():
            return

        self._stop_event.clear()
        self._writer_thread = threading.Thread(
            target=self._writer_loop,
            name="PerfLogWriter",
            daemon=True,
        )
        self._writer_thread.start()
        logger.info(f"Time-series logger started: {self._log_directory}")

    def stop(self) -> None:
        """Stop the background writer and flush remaining records."""
        self._stop_event.set()

        if self._writer_thread is not None:
            self._writer_thread.join(timeout=5.0)
            self._writer_thread = None

        self._flush_remaining()

        if self._file_handle is not None:
            self._file_handle.close()
            self._file_handle = None
            self._csv_writer = None

        logger.info(
            f"Time-series logger stopped. "
            f"Written: {self._records_written}, Dropped: {self._records_dropped}"
        )

    def log_sample(self, now: float, channels: BuiltinChannels) -> bool:
        """
        Log the channels if the logging interval has elapsed.

        Args:
            now: Current time in seconds
            channels: Built-in channels to record

        Returns:
            True if a row was written (or queued)
        """
        if not self._throttle.ready(now):
            return False
        return self.log(LogRecord.from_channels(now, channels))

    def log(self, record: LogRecord) -> bool:
        """
        Write one record, bypassing the interval throttle.

        Write failures are logged and counted, never raised.

        Returns:
            True if the record was written (or queued)
        """
        if self._async_writes and self._writer_thread is not None:
            try:
                self._queue.put_nowait(record)
                return True
            except Full:
                self._records_dropped += 1
                return False

        return self._write_records([record])

    def _open_session_file(self) -> None:
        if self._log_file is None:
            filename = f"performance_log_{self._clock():%Y%m%d_%H%M%S}.csv"
            self._log_file = self._log_directory / filename

        self._log_directory.mkdir(parents=True, exist_ok=True)
        self._file_handle = open(self._log_file, "a", encoding="utf-8", newline="")
        self._csv_writer = csv.writer(self._file_handle)

    def _write_records(self, records: List[LogRecord]) -> bool:
        """Write records to the session file."""
        try:
            if self._file_handle is None:
                self._open_session_file()

            for record in records:
                self._csv_writer.writerow(record.to_row())

            self._file_handle.flush()
            self._records_written += len(records)
            return True

        except OSError as e:
            logger.error(f"Time-series write error: {e}")
            self._write_errors += 1
            self._records_dropped += len(records)
            if self._file_handle is not None:
                self._file_handle.close()
            self._file_handle = None
            self._csv_writer = None
            return False

    def _writer_loop(self) -> None:
        """Background thread loop for writing records."""
        while not self._stop_event.is_set():
            try:
                record = self._queue.get(timeout=0.1)
            except Empty:
                continue

            batch = [record]
            while True:
                try:
                    batch.append(self._queue.get_nowait())
                except Empty:
                    break
            self._write_records(batch)

    def _flush_remaining(self) -> None:
        """Flush any remaining records in queue."""
        buffer: List[LogRecord] = []

        while True:
            try:
                buffer.append(self._queue.get_nowait())
            except Empty:
                break

        if buffer:
            self._write_records(buffer)

    def __enter__(self) -> "TimeSeriesLogger":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()
