"""
File references in command output.

A command can ask the bot to upload files by printing [file:path]. The
markers are stripped from the text that goes back to the chat; files
that exist are collected for upload, missing ones become error lines.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

DEFAULT_GROUP_SIZE = 10

_FILE_REF = re.compile(r"\[file:([^\]]+)\]")
_MANY_NEWLINES = re.compile(r"\n{3,}")

_PHOTO = {".jpg", ".jpeg", ".png", ".gif", ".webp"}
_VIDEO = {".mp4", ".mov", ".avi", ".mkv", ".webm"}
_AUDIO = {".mp3", ".ogg", ".wav", ".m4a", ".flac"}


class FileKind(str, Enum):
    DOCUMENT = "document"
    PHOTO = "photo"
    VIDEO = "video"
    AUDIO = "audio"


@dataclass(frozen=True)
class FileRef:
    path: str
    kind: FileKind


@dataclass
class ParseResult:
    text: str
    files: list[FileRef] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def detect_kind(path: str) -> FileKind:
    ext = Path(path).suffix.lower()
    if ext in _PHOTO:
        return FileKind.PHOTO
    if ext in _VIDEO:
        return FileKind.VIDEO
    if ext in _AUDIO:
        return FileKind.AUDIO
    return FileKind.DOCUMENT


def has_files(output: str) -> bool:
    return _FILE_REF.search(output) is not None


def parse_output(output: str, workdir: str = "") -> ParseResult:
    """Split output into cleaned text, existing files and missing-file errors."""
    if not has_files(output):
        return ParseResult(text=output)

    files: list[FileRef] = []
    errors: list[str] = []

    def _collect(match: re.Match) -> str:
        raw = match.group(1).strip()
        if raw:
            path = Path(raw).expanduser()
            if workdir and not path.is_absolute():
                path = Path(workdir).expanduser() / path
            if path.exists():
                files.append(FileRef(path=str(path), kind=detect_kind(str(path))))
            else:
                errors.append(f"File not found: {path}")
        return ""

    cleaned = _FILE_REF.sub(_collect, output)
    return ParseResult(text=_clean_whitespace(cleaned), files=files, errors=errors)


def group_files(files: list[FileRef], max_per_group: int = DEFAULT_GROUP_SIZE) -> list[list[FileRef]]:
    """Chunk files into upload batches of at most max_per_group."""
    if max_per_group <= 0:
        max_per_group = DEFAULT_GROUP_SIZE
    return [list(files[i:i + max_per_group]) for i in range(0, len(files), max_per_group)]


def _clean_whitespace(text: str) -> str:
    text = _MANY_NEWLINES.sub("\n\n", text)
    text = "\n".join(line.rstrip(" \t") for line in text.split("\n"))
    return text.strip()
