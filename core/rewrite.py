"""Format-preserving manifest rewriting."""

import json
import re

from .errors import ManifestError
from .models import DEPENDENCY_FIELDS, DependencySet


def _string_end(text: str, start: int) -> int:
    """Return the index just past the JSON string opening at ``start``."""
    i = start + 1
    while i < len(text):
        char = text[i]
        if char == "\\":
            i += 2
            continue
        if char == '"':
            return i + 1
        i += 1
    raise ManifestError("Unterminated string in manifest")


def _container_end(text: str, start: int) -> int:
    """Return the index just past the object or array opening at ``start``."""
    depth = 0
    i = start
    while i < len(text):
        char = text[i]
        if char == '"':
            i = _string_end(text, i)
            continue
        if char in "{[":
            depth += 1
        elif char in "}]":
            depth -= 1
            if depth == 0:
                return i + 1
        i += 1
    raise ManifestError("Unbalanced braces in manifest")


def dependency_spans(text: str, fields=DEPENDENCY_FIELDS) -> dict[str, tuple[int, int]]:
    """Find where each top-level dependency object sits in the raw text.

    Args:
        text: Manifest text
        fields: Top-level keys to look for

    Returns:
        Field name to (start, end) offsets of its ``{...}`` value
    """
    spans: dict[str, tuple[int, int]] = {}
    depth = 0
    key = None
    i = 0
    while i < len(text):
        char = text[i]
        if char == '"':
            end = _string_end(text, i)
            if depth == 1:
                key = json.loads(text[i:end])
            i = end
            continue

        if char == ":" and depth == 1 and key in fields:
            j = i + 1
            while j < len(text) and text[j].isspace():
                j += 1
            if j < len(text) and text[j] == "{":
                end = _container_end(text, j)
                spans[key] = (j, end)
                key = None
                i = end
                continue

        if char in "{[":
            depth += 1
        elif char in "}]":
            depth -= 1
        elif char == ",":
            key = None
        i += 1

    return spans


def _literal(value: str) -> str:
    return json.dumps(value, ensure_ascii=False)


def rewrite_manifest(content: str, current: DependencySet, upgraded: DependencySet) -> str:
    """Replace upgraded ranges in manifest text, leaving the rest untouched.

    Only values inside the top-level dependency objects are replaced, and
    only where they still equal the declared range.

    Args:
        content: Original manifest text
        current: Declared ranges
        upgraded: New ranges by dependency name

    Returns:
        Updated manifest text
    """
    if not upgraded:
        return content

    # rewrite later sections first so earlier offsets stay valid
    spans = sorted(dependency_spans(content).values(), reverse=True)
    for start, end in spans:
        section = content[start:end]
        for name, constraint in upgraded.items():
            if name not in current:
                continue
            pattern = re.compile(
                rf"({re.escape(_literal(name))}\s*:\s*){re.escape(_literal(current[name]))}"
            )
            replacement = _literal(constraint)
            section = pattern.sub(lambda m: m.group(1) + replacement, section)
        content = content[:start] + section + content[end:]

    return content
