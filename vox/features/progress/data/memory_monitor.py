# File: vox/features/progress/data/memory_monitor.py
import os
import sys
import logging
import resource
import threading
from pathlib import Path
from typing import Callable, Dict, Optional

from ..domain.models import MemoryUsage

logger = logging.getLogger(__name__)

PROC_STATUS = Path("/proc/self/status")
PROC_MEMINFO = Path("/proc/meminfo")


def _read_proc_kb(path: Path) -> Dict[str, int]:
    """Parses 'Key:   1234 kB' lines into bytes."""
    values = {}
    with open(path, "r") as f:
        for line in f:
            key, _, rest = line.partition(":")
            parts = rest.split()
            if parts and parts[0].isdigit():
                values[key.strip()] = int(parts[0]) * 1024
    return values


class MemoryMonitor:
    """
    Samples resident memory of this process against the host's total memory.
    Reads /proc on Linux and falls back to getrusage/sysconf elsewhere.
    """
    def __init__(self):
        self._peak_bytes = 0
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def get_current_usage(self) -> MemoryUsage:
        current = self._resident_bytes()
        total = self._total_bytes()
        available = self._available_bytes(total, current)

        with self._lock:
            self._peak_bytes = max(self._peak_bytes, current)
            peak = self._peak_bytes

        return MemoryUsage(
            current_bytes=current,
            peak_bytes=peak,
            available_bytes=available,
            total_system_bytes=total,
        )

    def start_sampling(self, interval: float, callback: Callable[[MemoryUsage], None]):
        """Runs `callback` with a fresh sample every `interval` seconds on a daemon thread."""
        if self._thread and self._thread.is_alive():
            return
        self._stop_event.clear()

        def loop():
            while not self._stop_event.wait(interval):
                callback(self.get_current_usage())

        self._thread = threading.Thread(target=loop, name="vox-memory-sampler", daemon=True)
        self._thread.start()
        logger.debug(f"Memory sampling started (every {interval}s)")

    def stop_sampling(self):
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=5)
            self._thread = None

    # --- Platform probes ---

    def _resident_bytes(self) -> int:
        if PROC_STATUS.exists():
            rss = _read_proc_kb(PROC_STATUS).get("VmRSS")
            if rss is not None:
                return rss

        # ru_maxrss is bytes on macOS, kilobytes on Linux
        max_rss = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
        return max_rss if sys.platform == "darwin" else max_rss * 1024

    def _total_bytes(self) -> int:
        if PROC_MEMINFO.exists():
            total = _read_proc_kb(PROC_MEMINFO).get("MemTotal")
            if total:
                return total
        return os.sysconf("SC_PAGE_SIZE") * os.sysconf("SC_PHYS_PAGES")

    def _available_bytes(self, total: int, current: int) -> int:
        if PROC_MEMINFO.exists():
            available = _read_proc_kb(PROC_MEMINFO).get("MemAvailable")
            if available is not None:
                return available
        try:
            return os.sysconf("SC_PAGE_SIZE") * os.sysconf("SC_AVPHYS_PAGES")
        except (ValueError, OSError):
            return max(0, total - current)
