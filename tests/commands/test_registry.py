"""Tests for pako/commands/registry.py"""
from __future__ import annotations

from pako.commands.base import Capability, CategoryInfo
from pako.commands.registry import OTHER_CATEGORY, category_of
from tests.conftest import FakeCommand

OPS = frozenset({Capability.CATEGORY})


def ops(name: str, icon: str = "🛠") -> FakeCommand:
    return FakeCommand(name, capabilities=OPS, category=CategoryInfo("ops", icon))


def test_register_and_get(registry):
    cmd = FakeCommand("uptime")
    registry.register(cmd)
    assert registry.get("uptime") is cmd
    assert registry.get("missing") is None
    assert "uptime" in registry
    assert len(registry) == 1


def test_all_is_sorted(registry):
    for name in ("zeta", "alpha", "mid"):
        registry.register(FakeCommand(name))
    assert [c.name for c in registry.all()] == ["alpha", "mid", "zeta"]


def test_reload_replaces_everything_but_builtins(registry):
    help_cmd = FakeCommand("help")
    registry.register(help_cmd, builtin=True)
    registry.register(FakeCommand("old"))

    shadow = FakeCommand("help")
    registry.reload([FakeCommand("new"), shadow])

    assert registry.get("old") is None
    assert registry.get("new") is not None
    assert registry.get("help") is help_cmd
    assert registry.is_builtin("help")
    assert not registry.is_builtin("new")


def test_category_of_requires_capability():
    # A category without the capability doesn't count
    sneaky = FakeCommand("x", category=CategoryInfo("ops"))
    assert category_of(sneaky) == (OTHER_CATEGORY, "")
    assert category_of(ops("y")) == ("ops", "🛠")


def test_categories_sorted_with_other_last(registry):
    registry.register(FakeCommand("plain"))
    registry.register(ops("deploy"))
    registry.register(FakeCommand("backup", capabilities=OPS, category=CategoryInfo("backups", "💾")))

    groups = registry.categories()
    assert [g.name for g in groups] == ["backups", "ops", OTHER_CATEGORY]
    assert groups[0].icon == "💾"
    assert [c.name for c in groups[2].commands] == ["plain"]
    assert [c.name for c in registry.by_category("ops")] == ["deploy"]
