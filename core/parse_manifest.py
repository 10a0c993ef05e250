"""package.json / bower.json parsing."""

import json
import logging
import re
from collections.abc import Iterable
from pathlib import Path

from .errors import ManifestError
from .models import DependencySet, Manifest

logger = logging.getLogger(__name__)


def parse_manifest(content: str, path: Path | None = None) -> Manifest:
    """Parse manifest content into Manifest.

    Args:
        content: The manifest file content
        path: File the content was read from, if any

    Returns:
        Parsed Manifest object

    Raises:
        ManifestError: If the content is not a JSON object
    """
    try:
        # a leading BOM stays in raw so rewrites keep it
        data = json.loads(content.removeprefix("\ufeff"))
    except json.JSONDecodeError as e:
        raise ManifestError(f"Invalid JSON in {path or 'manifest'}: {e}") from e

    if not isinstance(data, dict):
        raise ManifestError(f"Expected a JSON object in {path or 'manifest'}")

    return Manifest(raw=content, data=data, path=path)


def parse_name_filter(args: Iterable[str] | None) -> tuple[str, ...]:
    """Split positional filter arguments on commas and whitespace."""
    names: list[str] = []
    for arg in args or ():
        names.extend(part for part in re.split(r"[,\s]+", arg) if part)
    return tuple(names)


def _matches(name: str, patterns: Iterable[str]) -> bool:
    for pattern in patterns:
        if len(pattern) > 2 and pattern.startswith("/") and pattern.endswith("/"):
            if re.search(pattern[1:-1], name):
                return True
        elif name == pattern:
            return True
    return False


def extract_dependencies(
    manifest: Manifest,
    include_prod: bool = True,
    include_dev: bool = True,
    name_filter: Iterable[str] | None = None,
) -> DependencySet:
    """Collect the declared ranges to check.

    Args:
        manifest: Parsed manifest
        include_prod: Include ``dependencies``
        include_dev: Include ``devDependencies``
        name_filter: Names to keep; ``/regex/`` entries match by pattern

    Returns:
        Dependency name to declared range, empty if nothing matches
    """
    fields = []
    if include_prod:
        fields.append("dependencies")
    if include_dev:
        fields.append("devDependencies")

    current: DependencySet = {}
    for field_name in fields:
        section = manifest.data.get(field_name)
        if not isinstance(section, dict):
            continue
        for name, constraint in section.items():
            if isinstance(constraint, str):
                current[name] = constraint
            else:
                logger.debug("Skipping %s in %s: not a version string", name, field_name)

    patterns = tuple(name_filter or ())
    if patterns:
        current = {name: c for name, c in current.items() if _matches(name, patterns)}

    return current
