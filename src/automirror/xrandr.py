"""X11 display configuration via the ``xrandr`` command-line tool."""

from __future__ import annotations

import logging
import re
import shlex
import subprocess

from .models import Action, Output, Resolution, Snapshot

log = logging.getLogger(__name__)

# <name> <connected|disconnected> [primary] ...
_OUTPUT_RE = re.compile(r"^(\S+)\s+(connected|disconnected)\s*(primary)?\s*")
# <indent><width>x<height> ...
_MODE_RE = re.compile(r"^\s+(\d+x\d+)\s+")


class XrandrError(Exception):
    """An xrandr invocation failed to spawn or exited non-zero."""

    def __init__(self, message: str, *, returncode: int | None = None, stderr: str = "") -> None:
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


class QueryError(XrandrError):
    """``xrandr --query`` could not be run or returned an error."""


class CommandError(XrandrError):
    """A reconfiguration call was rejected by xrandr."""


def parse_query(text: str) -> Snapshot:
    """Parse ``xrandr --query`` output into a Snapshot.

    Example input::

        Screen 0: minimum 320 x 200, current 1920 x 1080, maximum 16384 x 16384
        eDP-1 connected primary 1920x1080+0+0 (normal left inverted right) 344mm x 194mm
           1920x1080     60.02*+  48.00
           1680x1050     60.02
        HDMI-1 disconnected (normal left inverted right x axis y axis)

    Mode lines attach to the most recent header; anything matching neither
    pattern (screen line, properties, refresh-only lines) is skipped.

    Raises:
        QueryError: the same output name is listed twice.
    """
    records: list[dict] = []
    current: int | None = None

    for line in text.splitlines():
        m = _OUTPUT_RE.match(line)
        if m:
            records.append({
                "name": m.group(1),
                "connected": m.group(2) == "connected",
                "primary": m.group(3) == "primary",
                "resolutions": [],
            })
            current = len(records) - 1
            continue

        if current is None:
            continue
        m = _MODE_RE.match(line)
        if m:
            records[current]["resolutions"].append(
                Resolution.parse(m.group(1))
            )

    try:
        return Snapshot(tuple(
            Output(
                name=r["name"],
                connected=r["connected"],
                primary=r["primary"],
                resolutions=tuple(r["resolutions"]),
            )
            for r in records
        ))
    except ValueError as e:
        raise QueryError(f"Unusable xrandr output: {e}") from e


class XrandrIPC:
    """Query and reconfigure X11 outputs through the xrandr binary."""

    def __init__(self, command: str = "xrandr", *, dry_run: bool = False) -> None:
        self._command = command
        self._dry_run = dry_run

    def _run(self, args: list[str]) -> subprocess.CompletedProcess:
        return subprocess.run(
            [self._command, *args],
            capture_output=True,
            text=True,
        )

    def query(self) -> Snapshot:
        """Read the current output state.

        Raises:
            QueryError: xrandr could not be started, exited non-zero, or
                listed an output twice.
        """
        try:
            result = self._run(["--query"])
        except OSError as e:
            raise QueryError(f"{self._command} --query: {e}") from e

        if result.returncode != 0:
            stderr = result.stderr.strip()
            raise QueryError(
                f"{self._command} --query: exit status {result.returncode}: {stderr or 'no output'}",
                returncode=result.returncode,
                stderr=stderr,
            )

        snapshot = parse_query(result.stdout)
        log.debug(
            "Queried %d output(s), connected: %s",
            len(snapshot.outputs), ", ".join(sorted(snapshot.connected_names)) or "none",
        )
        return snapshot

    def execute(self, action: Action) -> None:
        """Apply *action* with a single xrandr invocation.

        Raises:
            CommandError: xrandr could not be started or rejected the layout.
        """
        args = action.to_xrandr_args()
        cmdline = shlex.join([self._command, *args])
        if self._dry_run:
            log.info("Dry run, not executing: %s", cmdline)
            return

        log.info("%s", cmdline)
        try:
            result = self._run(args)
        except OSError as e:
            raise CommandError(f"{action.describe()} failed: {e}") from e

        if result.returncode != 0:
            stderr = result.stderr.strip()
            raise CommandError(
                f"{action.describe()} failed: exit status {result.returncode}: {stderr or 'no output'}",
                returncode=result.returncode,
                stderr=stderr,
            )
        if result.stdout.strip():
            log.debug("xrandr: %s", result.stdout.strip())
