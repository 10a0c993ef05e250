"""Resolve declared dependencies against registry versions."""

import asyncio
import logging

from .config import VersionTarget
from .errors import InvalidConstraintError
from .models import DependencySet, Resolution, UpgradeStatus
from .registry import RegistryClient
from .semver import is_satisfied, upgrade_constraint

logger = logging.getLogger(__name__)


def decide(constraint: str, version: str, upgrade_all: bool = False) -> tuple[UpgradeStatus, str]:
    """Decide whether a declared range needs to change for a version.

    Args:
        constraint: Declared range
        version: Latest or greatest published version
        upgrade_all: Also move ranges that already accept the version

    Returns:
        Status and the range to use (the original one unless upgrading)
    """
    try:
        satisfied = is_satisfied(version, constraint)
    except InvalidConstraintError:
        return UpgradeStatus.ERROR, constraint

    if satisfied and not upgrade_all:
        return UpgradeStatus.SATISFIED, constraint

    upgraded = upgrade_constraint(constraint, version)
    if upgraded == constraint:
        return UpgradeStatus.SATISFIED, constraint
    return UpgradeStatus.UPGRADE_AVAILABLE, upgraded


class UpgradeResolver:
    """Looks up every dependency and computes upgraded ranges."""

    def __init__(
        self,
        registry: RegistryClient,
        version_target: VersionTarget = VersionTarget.LATEST,
        upgrade_all: bool = False,
    ):
        self.registry = registry
        self.version_target = version_target
        self.upgrade_all = upgrade_all

    async def resolve(self, current: DependencySet) -> Resolution:
        """Resolve a dependency set concurrently.

        One lookup is started per dependency and all of them are awaited;
        a failed lookup is recorded in ``errors`` and does not affect the
        others.

        Args:
            current: Dependency name to declared range

        Returns:
            Upgraded ranges, found versions and per-dependency errors
        """
        names = list(current)
        outcomes = await asyncio.gather(
            *(self.registry.get_version(name, self.version_target) for name in names),
            return_exceptions=True,
        )

        resolution = Resolution()
        for name, outcome in zip(names, outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                logger.warning("Could not look up %s: %s", name, outcome)
                resolution.errors[name] = str(outcome)
                continue

            resolution.latest[name] = outcome
            status, constraint = decide(current[name], outcome, self.upgrade_all)
            logger.debug("%s %s -> %s (%s)", name, current[name], outcome, status.value)

            if status is UpgradeStatus.ERROR:
                logger.warning("Cannot compare %s %s with %r", name, outcome, current[name])
                resolution.errors[name] = f"Cannot compare {outcome} with {current[name]!r}"
            elif status is UpgradeStatus.UPGRADE_AVAILABLE:
                resolution.upgraded[name] = constraint

        return resolution
