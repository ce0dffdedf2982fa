"""Tests for pako/commands/loader.py"""
from __future__ import annotations

import textwrap
from datetime import timedelta
from pathlib import Path

import pytest

from pako.arguments.spec import ArgumentKind
from pako.commands.base import Capability
from pako.commands.loader import CommandLoader
from pako.core.config import DefaultsConfig
from pako.core.errors import CommandLoadError
from pako.scheduler.timeofday import TimeOfDay
from pako.shell.executor import ShellExecutor


def write(directory: Path, name: str, content: str) -> Path:
    path = directory / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(content), encoding="utf-8")
    return path


@pytest.fixture
def loader(tmp_path):
    return CommandLoader(tmp_path, DefaultsConfig(timeout=30, max_output=2000), ShellExecutor())


class TestLoad:
    def test_missing_directory_yields_nothing(self, tmp_path):
        loader = CommandLoader(tmp_path / "nope", DefaultsConfig(), ShellExecutor())
        assert loader.load() == []

    def test_minimal_command_gets_defaults(self, loader, tmp_path):
        write(tmp_path, "uptime.yaml", """
            name: uptime
            command: uptime
        """)
        [cmd] = loader.load()
        assert cmd.name == "uptime"
        assert cmd.description == "uptime"
        assert cmd.metadata.timeout == 30
        assert cmd.metadata.max_output == 2000
        assert cmd.capabilities == frozenset({Capability.TIMEOUT})
        assert cmd.source == tmp_path / "uptime.yaml"

    def test_full_definition(self, loader, tmp_path):
        write(tmp_path, "ops/deploy.yml", """
            name: /deploy
            description: Deploy the app
            command: ./deploy.sh {{.env}} {{.version | quote}}
            timeout: 5m
            confirm: true
            category: ops
            icon: "🚀"
            workdir: /srv/app
            arguments:
              - name: env
                type: choice
                choices: [staging, prod]
                required: true
              - name: version
                description: Version to deploy
                default: 1
            argument_timeout: 2m
        """)
        [cmd] = loader.load()
        assert cmd.name == "deploy"
        assert cmd.metadata.timeout == 300
        assert cmd.metadata.require_confirm
        assert cmd.category.name == "ops"
        assert cmd.category.icon == "🚀"
        assert cmd.workdir == "/srv/app"
        assert cmd.argument_timeout == 120
        assert {Capability.CONFIRM, Capability.ARGUMENTS, Capability.CATEGORY} <= cmd.capabilities

        env, version = cmd.arguments
        assert env.kind == ArgumentKind.CHOICE
        assert env.choices == ("staging", "prod")
        assert version.default == "1"
        assert version.auto_resolved

    def test_schedule_and_interval(self, loader, tmp_path):
        write(tmp_path, "report.yaml", """
            name: report
            command: ./report.sh
            schedule: ["09:00", "18:30"]
            paused: true
        """)
        write(tmp_path, "ping.yaml", """
            name: ping
            command: ping -c1 example.com
            interval: 30m
            quiet: true
        """)
        commands = {c.name: c for c in loader.load()}

        report = commands["report"].schedule
        assert report.times == (TimeOfDay(9, 0), TimeOfDay(18, 30))
        assert report.initial_paused

        ping = commands["ping"]
        assert ping.schedule.interval == timedelta(minutes=30)
        assert ping.quiet
        assert Capability.SCHEDULE in ping.capabilities

    def test_single_schedule_string(self, loader, tmp_path):
        write(tmp_path, "one.yaml", "name: one\ncommand: 'true'\nschedule: '07:15'\n")
        [cmd] = loader.load()
        assert cmd.schedule.times == (TimeOfDay(7, 15),)

    def test_non_yaml_files_are_ignored(self, loader, tmp_path):
        write(tmp_path, "README.md", "# commands")
        write(tmp_path, "a.yaml", "name: a\ncommand: 'true'\n")
        assert [c.name for c in loader.load()] == ["a"]


class TestErrors:
    @pytest.mark.parametrize(
        "content, fragment",
        [
            ("name: bad\ncommand: x\nschedule: ['9:00']\n", "schedule"),
            ("name: bad\ncommand: x\ninterval: soon\n", "interval"),
            ("name: bad\n", "command"),
            ("command: x\n", "name"),
            ("name: bad\ncommand: x\narguments:\n  - name: a\n    type: float\n", "type"),
            ("name: bad\ncommand: x\narguments:\n  - name: a\n    type: choice\n", "choices"),
            ("name: bad\ncommand: x\narguments:\n  - name: a\n  - name: a\n", "duplicate"),
        ],
    )
    def test_invalid_definitions(self, loader, tmp_path, content, fragment):
        path = write(tmp_path, "bad.yaml", content)
        with pytest.raises(CommandLoadError) as exc:
            loader.load()
        assert exc.value.path == str(path)
        assert fragment in exc.value.message

    def test_top_level_must_be_mapping(self, loader, tmp_path):
        write(tmp_path, "list.yaml", "- a\n- b\n")
        with pytest.raises(CommandLoadError, match="mapping"):
            loader.load()

    def test_malformed_yaml(self, loader, tmp_path):
        write(tmp_path, "broken.yaml", "name: [unclosed\n")
        with pytest.raises(CommandLoadError):
            loader.load()

    def test_duplicate_names_across_files(self, loader, tmp_path):
        write(tmp_path, "a.yaml", "name: same\ncommand: 'true'\n")
        write(tmp_path, "b.yaml", "name: same\ncommand: 'false'\n")
        with pytest.raises(CommandLoadError, match="defined twice"):
            loader.load()
