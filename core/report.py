"""Human-readable upgrade reports."""

from .config import VersionTarget
from .models import DependencySet
from .semver import is_satisfied


def render_local(
    current: DependencySet,
    upgraded: DependencySet,
    installed: DependencySet | None,
    latest: DependencySet,
    version_target: VersionTarget = VersionTarget.LATEST,
) -> list[str]:
    """Render report lines for a project manifest.

    Args:
        current: Declared ranges
        upgraded: Upgraded ranges
        installed: Installed versions, or None when unknown
        latest: Versions found on the registry
        version_target: Whether latest or greatest versions were used

    Returns:
        One line per upgraded dependency, or a single "all match" line
    """
    superlative = version_target.superlative
    if not upgraded:
        return [f"All dependencies match the {superlative.lower()} package versions :)"]

    lines = []
    for name, constraint in upgraded.items():
        installed_message = ""
        if installed is not None:
            installed_message = f"Installed: {installed.get(name) or 'none'}, "
        if is_satisfied(latest[name], current[name]):
            message = "satisfies current dependency"
        else:
            message = f"can be updated from {current[name]} to {constraint}"
        lines.append(
            f'"{name}" {message} ({installed_message}{superlative}: {latest[name]})'
        )
    return lines


def render_global(current: DependencySet, upgraded: DependencySet) -> list[str]:
    """Render report lines for globally installed packages."""
    if not upgraded:
        return ["All global packages are up to date :)"]
    return [
        f'"{name}" can be updated from {current[name]} to {constraint}'
        for name, constraint in upgraded.items()
    ]


def upgrade_hint(manifest_name: str) -> list[str]:
    return [
        f"Run with '-u' to upgrade your {manifest_name}",
        "Run with '-ua' to upgrade even those that satisfy the declared version range",
    ]
