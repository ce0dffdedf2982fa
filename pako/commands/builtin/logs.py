"""
/logs — send the newest Pako log file to the chat as a document.
"""

from __future__ import annotations

from pathlib import Path

from pako.commands.base import Capability, CategoryInfo, Command, FileResponse, OutputWriter
from pako.core.errors import ExecutionError


class LogsCommand(Command):
    def __init__(self, log_dir: Path) -> None:
        self._log_dir = Path(log_dir).expanduser()
        self._response: FileResponse | None = None

    @property
    def name(self) -> str:
        return "logs"

    @property
    def description(self) -> str:
        return "Send the latest log file"

    @property
    def capabilities(self) -> frozenset[Capability]:
        return frozenset({Capability.CATEGORY, Capability.FILE_RESPONSE})

    @property
    def category(self) -> CategoryInfo:
        return CategoryInfo(name="system", icon="ℹ️")

    def latest(self) -> Path | None:
        """Newest pako_YYYYMMDD.log in the log directory, if any."""
        if not self._log_dir.is_dir():
            return None
        files = sorted(self._log_dir.glob("pako_*.log"))
        return files[-1] if files else None

    def file_response(self) -> FileResponse | None:
        return self._response

    async def execute(self, args: list[str], output: OutputWriter) -> None:
        self._response = None
        path = self.latest()
        if path is None:
            raise ExecutionError(f"No log files in {self._log_dir}", command=self.name)

        size_kb = path.stat().st_size / 1024
        await output.write(f"Sending {path.name} ({size_kb:.1f} KB)\n")
        # The live log is never removed after upload
        self._response = FileResponse(path=str(path), caption=path.name, cleanup=False)
