"""Manifest file discovery."""

from pathlib import Path

MANIFEST_NAMES = ("package.json", "bower.json")


def find_manifest(start: Path, names: tuple[str, ...] = MANIFEST_NAMES) -> Path | None:
    """Find the nearest manifest, walking up from ``start``.

    Args:
        start: Directory to start from
        names: Manifest file names, in order of preference per directory

    Returns:
        Path of the manifest, or None if no directory up to the root has one
    """
    start = start.resolve()
    for directory in (start, *start.parents):
        for name in names:
            candidate = directory / name
            if candidate.is_file():
                return candidate
    return None
