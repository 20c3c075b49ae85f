"""Free disk space check for sbcli.

Playbook runs pull images and write appdata, so an install is refused
while the root filesystem or the appdata filesystem is nearly full.
"""

import logging
import os
import shutil
from typing import Iterable

logger = logging.getLogger(__name__)

# Minimum free space required on each checked filesystem (2 GiB).
MIN_FREE_BYTES = 2 * 1024 * 1024 * 1024


class DiskSpaceError(Exception):
    """Raised when a filesystem has too little free space for an install."""

    pass


def format_bytes(size: int) -> str:
    """Format a byte count with binary units, e.g. ``1.5 GiB``."""
    if size < 1024:
        return f"{size} B"
    value = float(size)
    for unit in "KMGTP":
        value /= 1024
        if value < 1024:
            return f"{value:.1f} {unit}iB"
    return f"{value / 1024:.1f} EiB"


def nearest_existing_path(path: str) -> str:
    """Walk up from ``path`` until an existing directory is found."""
    current = os.path.abspath(path)
    while not os.path.exists(current):
        parent = os.path.dirname(current)
        if parent == current:
            break
        current = parent
    return current


def check_disk_space(paths: Iterable[str], min_free_bytes: int = MIN_FREE_BYTES) -> None:
    """Verify every filesystem holding ``paths`` has enough free space.

    Paths that do not exist yet are checked at their nearest existing
    parent. Each filesystem is checked once.

    Args:
        paths: Paths whose filesystems must have room.
        min_free_bytes: Required free space per filesystem.

    Raises:
        DiskSpaceError: If a filesystem is too full or cannot be inspected.
    """
    seen_devices = {}
    for path in paths:
        resolved = nearest_existing_path(path)
        try:
            device = os.stat(resolved).st_dev
            if device in seen_devices:
                logger.debug(f"Skipping {resolved} (same filesystem as {seen_devices[device]})")
                continue
            usage = shutil.disk_usage(resolved)
        except OSError as e:
            raise DiskSpaceError(f"Unable to check disk usage for {resolved}: {e}")
        seen_devices[device] = resolved

        used_percent = (usage.total - usage.free) / usage.total * 100 if usage.total else 100.0
        logger.debug(
            f"Disk usage for {resolved}: total={format_bytes(usage.total)}, "
            f"available={format_bytes(usage.free)}, used={used_percent:.1f}%"
        )

        if usage.free < min_free_bytes:
            raise DiskSpaceError(
                f"INSUFFICIENT DISK SPACE - Install cancelled: {resolved} is "
                f"{used_percent:.1f}% full ({format_bytes(usage.free)} free). "
                f"Free up space on {resolved} before continuing."
            )
