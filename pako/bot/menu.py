"""
Inline menus and callback data.

Builders return (text, reply_markup) pairs where reply_markup is the Bot
API's InlineKeyboardMarkup as a plain dict.

Callback data prefixes:
    menu:main              back to the category list
    cat:<category>         open a category
    cmd:<name>             run (or open) a command
    cleanup:<option>       run a cleanup option
    sched:<action>:<name>  run / pause / resume a scheduled command
    arg:<value>            pick a choice while collecting arguments
    confirm:<id> cancel:<id>  handled by ConfirmationManager
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable

from pako.arguments.spec import ArgumentKind, ArgumentSpec
from pako.commands.base import Capability, Command
from pako.scheduler.timeofday import format_duration
from pako.security.confirm import CANCEL_PREFIX, CONFIRM_PREFIX

if TYPE_CHECKING:
    from pako.commands.registry import CommandRegistry

MENU_PREFIX = "menu:"
CATEGORY_PREFIX = "cat:"
COMMAND_PREFIX = "cmd:"
CLEANUP_PREFIX = "cleanup:"
SCHEDULE_PREFIX = "sched:"
ARGUMENT_PREFIX = "arg:"
BACK_TO_MENU = "menu:main"

MAX_INLINE_CHOICES = 4
SCHEDULE_ACTIONS = ("run", "pause", "resume")


def button(text: str, data: str) -> dict:
    return {"text": text, "callback_data": data}


def keyboard(rows: Iterable[list[dict]]) -> dict:
    return {"inline_keyboard": [list(row) for row in rows]}


def _capitalize(text: str) -> str:
    return text[:1].upper() + text[1:]


def _back_row() -> list[dict]:
    return [button("<< Back to Menu", BACK_TO_MENU)]


# ━━━ Navigation ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def main_menu(registry: "CommandRegistry") -> tuple[str, dict]:
    """Categories, two buttons per row."""
    rows: list[list[dict]] = []
    row: list[dict] = []
    for group in registry.categories():
        label = f"{group.icon} {group.name}" if group.icon else group.name
        row.append(button(_capitalize(label), CATEGORY_PREFIX + group.name))
        if len(row) == 2:
            rows.append(row)
            row = []
    if row:
        rows.append(row)
    return "Select a category:", keyboard(rows)


def category_menu(registry: "CommandRegistry", category: str) -> tuple[str, dict]:
    """One button per command in the category, then a back button."""
    rows = []
    for cmd in registry.by_category(category):
        label = f"/{cmd.name}"
        if cmd.has(Capability.CATEGORY) and cmd.category.icon:
            label = f"{cmd.category.icon} {label}"
        if cmd.has(Capability.CONFIRM):
            label += " (!)"
        rows.append([button(label, COMMAND_PREFIX + cmd.name)])
    rows.append(_back_row())

    icon = next((g.icon for g in registry.categories() if g.name == category), "")
    header = _capitalize(category)
    if icon:
        header = f"{icon} {header}"
    return f"{header} commands:\n\nTap a command to run it.", keyboard(rows)


# ━━━ Scheduled commands ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def schedule_callback(action: str, name: str) -> str:
    return f"{SCHEDULE_PREFIX}{action}:{name}"


def parse_schedule_callback(data: str) -> tuple[str, str]:
    """("run", "backup") from "sched:run:backup"; ("", "") when malformed."""
    if not data.startswith(SCHEDULE_PREFIX):
        return "", ""
    action, _, name = data[len(SCHEDULE_PREFIX):].partition(":")
    if action not in SCHEDULE_ACTIONS or not name:
        return "", ""
    return action, name


def schedule_menu(command: Command, paused: bool) -> tuple[str, dict]:
    lines = []
    spec = command.schedule
    if spec is not None:
        if spec.times:
            lines.append("Schedule: " + ", ".join(str(t) for t in spec.times))
        if spec.interval.total_seconds() > 0:
            lines.append(f"Interval: {format_duration(spec.interval)}")
    lines.append(f"Status: {'Paused' if paused else 'Running'}")

    rows = [[button("▶ Run now", schedule_callback("run", command.name))]]
    if paused:
        rows.append([button("▶ Resume schedule", schedule_callback("resume", command.name))])
    else:
        rows.append([button("⏸ Pause schedule", schedule_callback("pause", command.name))])
    rows.append(_back_row())

    text = f"/{command.name}\n\n" + "\n".join(lines) + "\n\nSelect action:"
    return text, keyboard(rows)


# ━━━ Cleanup ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def cleanup_menu(tracked: int, options: Iterable[tuple[str, str, int]]) -> tuple[str, dict]:
    """options: (option, label, matching message count)."""
    rows = [
        [button(f"{label} ({count})", CLEANUP_PREFIX + option)]
        for option, label, count in options
    ]
    rows.append(_back_row())
    text = f"Cleanup tracked files\n\nTracked messages: {tracked}\n\nSelect what to delete:"
    return text, keyboard(rows)


# ━━━ Arguments & confirmation ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def argument_prompt(spec: ArgumentSpec) -> tuple[str, dict | None]:
    """
    Prompt for one argument.

    Choices get buttons when there are only a few, otherwise a numbered
    list the operator answers by typing the value.
    """
    if spec.kind == ArgumentKind.CHOICE and spec.choices:
        if len(spec.choices) <= MAX_INLINE_CHOICES:
            rows = [[button(choice, ARGUMENT_PREFIX + choice)] for choice in spec.choices]
            return spec.prompt, keyboard(rows)
        listing = "\n".join(f"{i}. {choice}" for i, choice in enumerate(spec.choices, 1))
        return f"{spec.prompt}\n\nOptions:\n{listing}", None
    return spec.prompt, None


def confirm_keyboard(confirmation_id: str) -> dict:
    return keyboard([[
        button("Confirm", CONFIRM_PREFIX + confirmation_id),
        button("Cancel", CANCEL_PREFIX + confirmation_id),
    ]])


# ━━━ Callback routing ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def parse_callback(data: str) -> tuple[str, str]:
    """
    Classify callback data.

    Returns (kind, value) with kind one of "menu", "category", "command",
    "cleanup", "schedule", "argument", "confirm" or "" when unknown.
    """
    prefixes = (
        (ARGUMENT_PREFIX, "argument"),
        (CATEGORY_PREFIX, "category"),
        (COMMAND_PREFIX, "command"),
        (CLEANUP_PREFIX, "cleanup"),
        (SCHEDULE_PREFIX, "schedule"),
        (MENU_PREFIX, "menu"),
    )
    for prefix, kind in prefixes:
        if data.startswith(prefix):
            return kind, data[len(prefix):]
    if data.startswith(CONFIRM_PREFIX) or data.startswith(CANCEL_PREFIX):
        return "confirm", data
    return "", data
