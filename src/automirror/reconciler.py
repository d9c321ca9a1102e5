"""Decide which reconfiguration actions a change between two snapshots requires."""

from __future__ import annotations

import logging
from typing import Iterable

from .models import (
    FALLBACK_RESOLUTION,
    Action,
    MirrorAction,
    Output,
    Resolution,
    RestoreAction,
    Snapshot,
)

log = logging.getLogger(__name__)


def diff(previous: Snapshot | None, current: Snapshot) -> tuple[tuple[str, ...], tuple[str, ...]]:
    """Return ``(appeared, disappeared)`` output names, each sorted.

    A missing *previous* snapshot counts as nothing connected.
    """
    before = previous.connected_names if previous is not None else frozenset()
    after = current.connected_names
    return tuple(sorted(after - before)), tuple(sorted(before - after))


def find_primary(snapshot: Snapshot) -> Output | None:
    """First connected output flagged primary, else the first connected output."""
    connected = snapshot.connected
    for o in connected:
        if o.primary:
            return o
    return connected[0] if connected else None


def best_common_resolution(outputs: Iterable[Output]) -> Resolution:
    """Highest-pixel-count resolution supported by every output.

    Ties on pixel count go to the wider mode, then the taller one. When the
    outputs share nothing, the first mode of the last output is used, since
    that is the one just connected.
    """
    outputs = list(outputs)
    if not outputs:
        return FALLBACK_RESOLUTION

    common = set(outputs[0].resolutions)
    for o in outputs[1:]:
        common &= set(o.resolutions)

    if not common:
        last = outputs[-1]
        if last.native is not None:
            log.info("No common resolution, using %s native %s", last.name, last.native)
            return last.native
        return FALLBACK_RESOLUTION

    shared = sorted(common, key=lambda r: (r.pixels, r.width, r.height), reverse=True)
    return shared[0]


def reconcile(previous: Snapshot | None, current: Snapshot) -> list[Action]:
    """Compute the actions needed to move from *previous* to *current*.

    A mirror action (for newly connected outputs) always comes before a
    restore action (for removed ones).
    """
    appeared, disappeared = diff(previous, current)
    actions: list[Action] = []

    if appeared:
        log.info("New monitor(s) detected: %s", ", ".join(appeared))
        primary = find_primary(current)
        connected = current.connected
        externals = tuple(o for o in connected if primary is not None and o.name != primary.name)
        if primary is not None and externals:
            # Snapshot order, so a newly listed output is last
            res = best_common_resolution(connected)
            actions.append(MirrorAction(primary, externals, res))
        else:
            log.info("No external monitors to mirror")

    if disappeared:
        log.info("Monitor(s) disconnected: %s", ", ".join(disappeared))
        target = find_primary(current)
        if target is not None and target.native is not None:
            actions.append(RestoreAction(target, target.native))
        elif target is not None:
            log.warning("%s reports no modes, cannot restore native resolution", target.name)

    return actions
