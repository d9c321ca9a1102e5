"""Test configuration and fixtures."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

import pytest

from automirror.models import Output, Resolution, Snapshot
from automirror.xrandr import CommandError, QueryError


LAPTOP_ONLY = """\
Screen 0: minimum 320 x 200, current 1920 x 1080, maximum 16384 x 16384
eDP-1 connected primary 1920x1080+0+0 (normal left inverted right x axis y axis) 344mm x 194mm
   1920x1080     60.02*+  48.00
   1680x1050     60.02
   1280x720      60.00    59.99    59.86    59.74
HDMI-1 disconnected (normal left inverted right x axis y axis)
DP-1 disconnected (normal left inverted right x axis y axis)
"""

LAPTOP_AND_HDMI = """\
Screen 0: minimum 320 x 200, current 1920 x 1080, maximum 16384 x 16384
eDP-1 connected primary 1920x1080+0+0 (normal left inverted right x axis y axis) 344mm x 194mm
   1920x1080     60.02*+  48.00
   1680x1050     60.02
   1280x720      60.00    59.99    59.86    59.74
HDMI-1 connected (normal left inverted right x axis y axis)
   2560x1440     59.95 +
   1920x1080     60.00    50.00    59.94
   1280x720      60.00    50.00    59.94
   EDID:
	00ffffffffffff004c2d
DP-1 disconnected (normal left inverted right x axis y axis)
"""


def res(text: str) -> Resolution:
    return Resolution.parse(text)


def make_output(name: str, *modes: str, connected: bool = True, primary: bool = False) -> Output:
    return Output(
        name=name,
        connected=connected,
        primary=primary,
        resolutions=tuple(res(m) for m in modes),
    )


def make_snapshot(*outputs: Output) -> Snapshot:
    return Snapshot(tuple(outputs))


class FakeIPC:
    """Stands in for XrandrIPC: serves queued query results and records actions."""

    def __init__(self, results: Iterable = (), fail_actions: bool = False, on_drained=None) -> None:
        self.results = list(results)
        self.fail_actions = fail_actions
        self.on_drained = on_drained
        self.queries = 0
        self.executed: list = []

    def query(self) -> Snapshot:
        self.queries += 1
        result = self.results.pop(0)
        if not self.results and self.on_drained is not None:
            self.on_drained()
        if isinstance(result, Exception):
            raise result
        return result

    def execute(self, action) -> None:
        self.executed.append(action)
        if self.fail_actions:
            raise CommandError("xrandr rejected layout", returncode=1, stderr="BadMatch")


@pytest.fixture
def laptop() -> Output:
    return make_output("eDP-1", "1920x1080", "1680x1050", "1280x720", primary=True)


@pytest.fixture
def hdmi() -> Output:
    return make_output("HDMI-1", "2560x1440", "1920x1080", "1280x720")


@pytest.fixture
def query_error() -> QueryError:
    return QueryError("xrandr --query: exit status 1: Can't open display", returncode=1,
                      stderr="Can't open display")


@pytest.fixture
def config_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point XDG_CONFIG_HOME at a temporary directory."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
    return tmp_path
