"""
Argument definitions for commands that collect input interactively.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ArgumentKind(str, Enum):
    """How a collected value is validated."""

    STRING = "string"
    INT = "int"
    BOOL = "bool"
    CHOICE = "choice"


@dataclass(frozen=True, slots=True)
class ArgumentSpec:
    """One argument a command asks for before it runs."""

    name: str
    description: str = ""
    required: bool = False
    kind: ArgumentKind = ArgumentKind.STRING
    choices: tuple[str, ...] = ()
    default: str = ""
    sensitive: bool = False

    @property
    def auto_resolved(self) -> bool:
        """Optional arguments with a default are never prompted."""
        return bool(self.default) and not self.required

    @property
    def prompt(self) -> str:
        return self.description or f"Enter {self.name}:"
