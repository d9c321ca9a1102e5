"""Background daemon that polls xrandr and mirrors newly connected monitors."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys

from .models import Action, Snapshot
from .reconciler import best_common_resolution, find_primary, reconcile
from .utils import load_app_settings, save_app_settings
from .xrandr import CommandError, QueryError, XrandrIPC

try:
    import pyudev
    HAS_PYUDEV = True
except ImportError:
    HAS_PYUDEV = False

log = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [automirrord] %(levelname)s %(message)s"
UDEV_ACTIONS = ("change", "add", "remove")


class MirrorDaemon:
    """Polls output state on a fixed interval and reconciles every change.

    Only the last successfully read snapshot is retained; it lives in
    :meth:`run` and is handed to each :meth:`tick`.
    """

    def __init__(
        self,
        ipc: XrandrIPC,
        *,
        poll_interval: float = 2.0,
        udev_wakeup: bool = False,
    ) -> None:
        self._ipc = ipc
        self._poll_interval = poll_interval
        self._udev_wakeup = udev_wakeup
        self._stop = asyncio.Event()
        self._wake = asyncio.Event()

    def stop(self) -> None:
        """Request shutdown; takes effect at the next wait."""
        log.info("Shutdown requested")
        self._stop.set()

    def tick(self, previous: Snapshot) -> Snapshot:
        """Run one read, reconcile, act cycle and return the snapshot to retain."""
        try:
            current = self._ipc.query()
        except QueryError as e:
            log.error("Query failed: %s", e)
            return previous

        # The snapshot advances even when a command fails; no retry, no rollback
        self.apply(reconcile(previous, current))
        return current

    def apply(self, actions: list[Action]) -> int:
        """Execute *actions* in order and return how many failed."""
        failed = 0
        for action in actions:
            log.info("Applying: %s", action.describe())
            try:
                self._ipc.execute(action)
            except CommandError as e:
                log.error("%s", e)
                failed += 1
        return failed

    async def run(self, initial: Snapshot) -> None:
        log.info("Watching for monitor changes every %.1fs", self._poll_interval)
        loop = asyncio.get_running_loop()
        monitor = self._start_udev_monitor(loop)
        previous = initial
        # Each wait ends one interval after the previous tick started, so
        # slow xrandr calls do not stretch the schedule
        deadline = loop.time() + self._poll_interval
        try:
            while not await self._wait(max(0.0, deadline - loop.time())):
                deadline = loop.time() + self._poll_interval
                previous = self.tick(previous)
        finally:
            if monitor is not None:
                loop.remove_reader(monitor.fileno())
        log.info("Stopped watching")

    async def _wait(self, timeout: float) -> bool:
        """Sleep until *timeout* elapses, a udev event arrives or stop is requested.

        Returns True when the daemon should stop.
        """
        if self._stop.is_set():
            return True
        waiters = {
            asyncio.ensure_future(self._stop.wait()),
            asyncio.ensure_future(self._wake.wait()),
        }
        try:
            await asyncio.wait(waiters, timeout=timeout,
                               return_when=asyncio.FIRST_COMPLETED)
        finally:
            for w in waiters:
                w.cancel()
        self._wake.clear()
        return self._stop.is_set()

    # ── udev hotplug wake-up ────────────────────────────────────────

    def _start_udev_monitor(self, loop: asyncio.AbstractEventLoop):
        """Listen for DRM uevents so a hotplug is picked up before the next poll."""
        if not self._udev_wakeup:
            return None
        if not HAS_PYUDEV:
            log.warning("udev_wakeup is enabled but pyudev is not installed, polling only")
            return None

        context = pyudev.Context()
        monitor = pyudev.Monitor.from_netlink(context)
        monitor.filter_by(subsystem="drm")
        monitor.start()

        def on_readable() -> None:
            device = monitor.poll(timeout=0)
            if device and device.action in UDEV_ACTIONS:
                log.debug("udev DRM event: %s %s", device.action, device.device_path)
                self._wake.set()

        loop.add_reader(monitor.fileno(), on_readable)
        log.info("Using udev DRM events to wake the poll loop")
        return monitor


# ── Command line ────────────────────────────────────────────────────────

def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="automirrord",
        description="Mirror newly connected X11 monitors onto the primary output.",
    )
    parser.add_argument("--interval", type=float, help="Seconds between xrandr polls")
    parser.add_argument("--xrandr", help="Path to the xrandr binary")
    parser.add_argument("--dry-run", action="store_true", default=None,
                        help="Log xrandr commands instead of running them")
    parser.add_argument("--udev", action="store_true", default=None,
                        help="Also poll on udev DRM hotplug events (needs pyudev)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--once", action="store_true",
                      help="Mirror all connected outputs once and exit")
    mode.add_argument("--status", action="store_true",
                      help="Show detected outputs and the mirror resolution, then exit")
    mode.add_argument("--write-config", action="store_true",
                      help="Save the effective settings to the settings file and exit")
    return parser


def _settings_from_args(args: argparse.Namespace) -> dict:
    settings = load_app_settings()
    if args.interval is not None:
        settings["poll_interval"] = args.interval
    if args.xrandr is not None:
        settings["xrandr"] = args.xrandr
    if args.dry_run is not None:
        settings["dry_run"] = args.dry_run
    if args.udev is not None:
        settings["udev_wakeup"] = args.udev
    if args.verbose:
        settings["log_level"] = "DEBUG"
    return settings


def format_status(snapshot: Snapshot) -> str:
    """Human-readable summary of a snapshot and the mirror layout it would get."""
    lines = []
    for o in snapshot.outputs:
        state = "connected" if o.connected else "disconnected"
        flags = " primary" if o.primary else ""
        native = f" native {o.native}" if o.native else ""
        lines.append(f"{o.name}: {state}{flags}{native} ({len(o.resolutions)} modes)")

    primary = find_primary(snapshot)
    connected = snapshot.connected
    if primary is not None and len(connected) > 1:
        lines.append(f"Mirror resolution: {best_common_resolution(connected)} (primary {primary.name})")
    else:
        lines.append("Mirror resolution: n/a (fewer than two connected outputs)")
    return "\n".join(lines)


def main(argv: list[str] | None = None) -> None:
    args = _build_parser().parse_args(argv)
    settings = _settings_from_args(args)

    logging.basicConfig(
        level=getattr(logging, str(settings["log_level"]).upper(), logging.INFO),
        format=LOG_FORMAT,
    )

    if args.write_config:
        save_app_settings(settings)
        log.info("Settings saved")
        return

    ipc = XrandrIPC(settings["xrandr"], dry_run=bool(settings["dry_run"]))

    # A daemon without a usable initial state never starts
    try:
        initial = ipc.query()
    except QueryError as e:
        log.error("Initial query failed: %s", e)
        sys.exit(1)

    if args.status:
        print(format_status(initial))
        return

    daemon = MirrorDaemon(
        ipc,
        poll_interval=float(settings["poll_interval"]),
        udev_wakeup=bool(settings["udev_wakeup"]),
    )
    if args.once:
        # Nothing counts as previously connected, so every output is "new"
        if daemon.apply(reconcile(None, initial)):
            sys.exit(1)
        return

    loop = asyncio.new_event_loop()

    # Handle signals for clean shutdown
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, daemon.stop)

    try:
        loop.run_until_complete(daemon.run(initial))
    finally:
        loop.close()
        log.info("Daemon stopped")
