"""
System metrics for /status — CPU, memory and disk usage via psutil.

psutil calls block (cpu_percent samples for a short interval), so they
run in the default executor.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

import psutil

from pako.core.errors import PakoError

logger = logging.getLogger(__name__)

CPU_SAMPLE_INTERVAL = 0.2  # seconds


@dataclass(frozen=True)
class Metrics:
    cpu_percent: float
    memory_used: int
    memory_total: int
    memory_percent: float
    disk_used: int
    disk_total: int
    disk_percent: float


class MetricsCollector:
    """Collects a Metrics snapshot."""

    def __init__(self, disk_path: str = "/") -> None:
        self._disk_path = disk_path

    async def collect(self) -> Metrics:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._collect_sync)

    def _collect_sync(self) -> Metrics:
        try:
            cpu = psutil.cpu_percent(interval=CPU_SAMPLE_INTERVAL)
            mem = psutil.virtual_memory()
            disk = psutil.disk_usage(self._disk_path)
        except (OSError, psutil.Error) as e:
            raise PakoError(f"Failed to collect system metrics: {e}") from e

        return Metrics(
            cpu_percent=cpu,
            memory_used=mem.used,
            memory_total=mem.total,
            memory_percent=mem.percent,
            disk_used=disk.used,
            disk_total=disk.total,
            disk_percent=disk.percent,
        )


def format_bytes(size: int) -> str:
    """Human-readable binary size: 512 B, 1.5 KB, 3.2 GB."""
    unit = 1024
    if size < unit:
        return f"{size} B"
    div, exp = unit, 0
    n = size // unit
    while n >= unit:
        div *= unit
        exp += 1
        n //= unit
    return f"{size / div:.1f} {'KMGTPE'[exp]}B"
