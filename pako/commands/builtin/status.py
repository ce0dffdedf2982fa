"""
/status — CPU, memory and disk usage of the host.
"""

from __future__ import annotations

from pako.commands.base import Command, OutputWriter
from pako.status.metrics import MetricsCollector, format_bytes


class StatusCommand(Command):
    def __init__(self, collector: MetricsCollector) -> None:
        self._collector = collector

    @property
    def name(self) -> str:
        return "status"

    @property
    def description(self) -> str:
        return "Show CPU, memory, and disk usage"

    async def execute(self, args: list[str], output: OutputWriter) -> None:
        m = await self._collector.collect()
        await output.write(
            "System Status\n"
            "─────────────\n\n"
            f"CPU:    {m.cpu_percent:5.1f}%\n"
            f"Memory: {m.memory_percent:5.1f}% "
            f"({format_bytes(m.memory_used)} / {format_bytes(m.memory_total)})\n"
            f"Disk:   {m.disk_percent:5.1f}% "
            f"({format_bytes(m.disk_used)} / {format_bytes(m.disk_total)})\n"
        )
