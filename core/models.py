"""Core data models for DepBump."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

# name -> version range, or name -> installed version
DependencySet = dict[str, str]

DEPENDENCY_FIELDS = ("dependencies", "devDependencies")


@dataclass
class Manifest:
    """A parsed dependency manifest."""

    raw: str
    data: dict
    path: Path | None = None  # None when read from stdin

    @property
    def name(self) -> str:
        return self.path.name if self.path else "package.json"


class UpgradeStatus(str, Enum):
    """Outcome of comparing one declared range with a published version."""

    SATISFIED = "satisfied"
    UPGRADE_AVAILABLE = "upgrade-available"
    ERROR = "error"


@dataclass
class Resolution:
    """Result of resolving a dependency set against the registry."""

    upgraded: DependencySet = field(default_factory=dict)
    latest: DependencySet = field(default_factory=dict)
    errors: dict[str, str] = field(default_factory=dict)
