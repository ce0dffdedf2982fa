"""
Argument validation.

validate_argument() raises ArgumentValidationError with a message meant
to be shown to the operator as-is; the caller re-prompts.
"""

from __future__ import annotations

import re

from pako.arguments.spec import ArgumentKind, ArgumentSpec
from pako.core.errors import ArgumentValidationError

_BOOL_VALUES = frozenset({"true", "false", "yes", "no", "1", "0"})
_INTEGER = re.compile(r"[+-]?[0-9]+")


def validate_argument(spec: ArgumentSpec, value: str) -> None:
    """
    Check one raw input against its spec.

    Order matters: the required check comes first, then a blank optional
    value is accepted for every kind, then the kind-specific rule.
    """
    if spec.required and not value.strip():
        raise ArgumentValidationError(f"{spec.name} is required", argument=spec.name)

    if value == "":
        return

    if spec.kind == ArgumentKind.INT:
        # int() would also take "1_000" and non-ASCII digits
        if not _INTEGER.fullmatch(value):
            raise ArgumentValidationError("please enter a valid integer", argument=spec.name)

    elif spec.kind == ArgumentKind.BOOL:
        if value.strip().lower() not in _BOOL_VALUES:
            raise ArgumentValidationError(
                "please enter true/false, yes/no, or 1/0", argument=spec.name
            )

    elif spec.kind == ArgumentKind.CHOICE:
        if spec.choices and value not in spec.choices:
            raise ArgumentValidationError(
                f"please select one of: {', '.join(spec.choices)}", argument=spec.name
            )
