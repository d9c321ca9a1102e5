"""Data models: Resolution, Output, Snapshot and the reconfiguration actions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union


# ── Resolution ───────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Resolution:
    width: int
    height: int

    @property
    def pixels(self) -> int:
        """Pixel area, used only for ordering."""
        return self.width * self.height

    def __str__(self) -> str:
        return f"{self.width}x{self.height}"

    @classmethod
    def parse(cls, text: str) -> Resolution:
        """Create from an xrandr mode token such as ``1920x1080``."""
        w, _, h = text.partition("x")
        return cls(int(w), int(h))


FALLBACK_RESOLUTION = Resolution(1920, 1080)


# ── Output ───────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Output:
    name: str                   # e.g. "eDP-1", "HDMI-1"
    connected: bool = False
    primary: bool = False

    # Supported modes in the order xrandr reports them (preferred first)
    resolutions: tuple[Resolution, ...] = ()

    @property
    def native(self) -> Resolution | None:
        """The preferred resolution: the first one listed."""
        return self.resolutions[0] if self.resolutions else None


# ── Snapshot ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Snapshot:
    outputs: tuple[Output, ...] = ()
    connected_names: frozenset[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        names = [o.name for o in self.outputs]
        if len(names) != len(set(names)):
            raise ValueError(f"Duplicate output names in snapshot: {names}")
        object.__setattr__(
            self, "connected_names",
            frozenset(o.name for o in self.outputs if o.connected),
        )

    @property
    def connected(self) -> list[Output]:
        """Connected outputs in snapshot order."""
        return [o for o in self.outputs if o.connected]

    def get(self, name: str) -> Output | None:
        return next((o for o in self.outputs if o.name == name), None)


# ── Actions ──────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class MirrorAction:
    primary: Output
    externals: tuple[Output, ...]
    resolution: Resolution

    def to_xrandr_args(self) -> list[str]:
        """Arguments for a single xrandr call mirroring every external onto the primary.

        All outputs go into one invocation so the server applies the layout
        atomically.
        """
        mode = str(self.resolution)
        args = [
            "--output", self.primary.name,
            "--mode", mode,
            "--pos", "0x0",
            "--primary",
        ]
        for ext in self.externals:
            args += ["--output", ext.name, "--mode", mode, "--same-as", self.primary.name]
        return args

    def describe(self) -> str:
        names = ", ".join(e.name for e in self.externals)
        return f"mirror {names} onto {self.primary.name} at {self.resolution}"


@dataclass(frozen=True)
class RestoreAction:
    output: Output
    resolution: Resolution

    def to_xrandr_args(self) -> list[str]:
        return [
            "--output", self.output.name,
            "--mode", str(self.resolution),
            "--primary",
        ]

    def describe(self) -> str:
        return f"restore {self.output.name} to native {self.resolution}"


Action = Union[MirrorAction, RestoreAction]
