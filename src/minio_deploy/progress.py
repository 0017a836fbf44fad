import sys
import threading
import time
from typing import Optional, TextIO


def format_bytes(n: float) -> str:
    if n < 1024:
        return f"{n:.0f}B"
    for unit in ["KB", "MB", "GB"]:
        n /= 1024
        if n < 1024:
            return f"{n:.1f}{unit}"
    return f"{n / 1024:.1f}TB"


class UploadProgress:
    """Thread-safe single-line progress bar for uploads.

    Renders to stderr so it never interleaves with the status lines on stdout.
    boto3 calls ``add_bytes`` from its transfer threads.
    """

    BAR_WIDTH = 30
    MIN_INTERVAL = 0.1

    def __init__(self, total_bytes: int, total_files: int, stream: Optional[TextIO] = None) -> None:
        self.total_bytes = max(0, int(total_bytes))
        self.total_files = max(0, int(total_files))
        self.sent_bytes = 0
        self.done_files = 0
        self._stream = stream or sys.stderr
        self._start = time.perf_counter()
        self._last = 0.0
        self._lock = threading.Lock()

    def add_bytes(self, n: int) -> None:
        if n <= 0:
            return
        with self._lock:
            self.sent_bytes += n
            self._render()

    def file_done(self) -> None:
        with self._lock:
            self.done_files += 1
            self._render(force=True)

    def _render(self, force: bool = False) -> None:
        now = time.perf_counter()
        if not force and now - self._last < self.MIN_INTERVAL:
            return
        self._last = now
        sent = min(self.sent_bytes, self.total_bytes) if self.total_bytes else self.sent_bytes
        ratio = sent / self.total_bytes if self.total_bytes else 1.0
        filled = int(ratio * self.BAR_WIDTH)
        rate = sent / max(1e-6, now - self._start)
        self._stream.write(
            f"\r[{'#' * filled}{'-' * (self.BAR_WIDTH - filled)}] {ratio * 100:6.2f}%  "
            f"{format_bytes(sent)}/{format_bytes(self.total_bytes)}  "
            f"files {self.done_files}/{self.total_files}  {format_bytes(rate)}/s"
        )
        self._stream.flush()

    def finish(self) -> None:
        with self._lock:
            self._render(force=True)
            self._stream.write("\n")
            self._stream.flush()
