"""Installed package discovery."""

import asyncio
import json
import logging
from pathlib import Path

from .errors import InstalledPackagesError
from .models import DependencySet

logger = logging.getLogger(__name__)


class InstalledPackages:
    """Lists installed package versions, globally or for one project."""

    def __init__(self, npm: str = "npm"):
        self.npm = npm

    async def list_global(self) -> DependencySet:
        """List globally installed packages via ``npm ls``.

        Returns:
            Package name to installed version

        Raises:
            InstalledPackagesError: If npm cannot be run or prints no JSON
        """
        try:
            process = await asyncio.create_subprocess_exec(
                self.npm, "ls", "--global", "--depth=0", "--json",
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise InstalledPackagesError(f"Could not run {self.npm}: {e}") from e

        stdout, stderr = await process.communicate()
        # npm ls exits non-zero on extraneous or missing packages but still prints the tree
        if process.returncode:
            logger.debug("%s ls exited with %s: %s", self.npm, process.returncode, stderr.decode(errors="replace").strip())
        return parse_npm_ls(stdout.decode(errors="replace"))

    async def list_local(self, project_dir: Path) -> DependencySet:
        """List packages installed next to a project manifest."""
        return await asyncio.to_thread(scan_installed, project_dir)


def parse_npm_ls(output: str) -> DependencySet:
    """Parse ``npm ls --json`` output into name -> version.

    Raises:
        InstalledPackagesError: If the output is not a JSON object
    """
    try:
        tree = json.loads(output)
    except json.JSONDecodeError as e:
        raise InstalledPackagesError(f"Unexpected npm ls output: {e}") from e
    if not isinstance(tree, dict):
        raise InstalledPackagesError("Unexpected npm ls output")

    installed: DependencySet = {}
    for name, info in (tree.get("dependencies") or {}).items():
        version = info.get("version") if isinstance(info, dict) else None
        if version:
            installed[name] = version
    return installed


def _read_version(path: Path) -> str | None:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return None
    version = data.get("version") if isinstance(data, dict) else None
    return version if isinstance(version, str) else None


def scan_installed(project_dir: Path) -> DependencySet:
    """Read installed versions from ``node_modules`` and ``bower_components``.

    Args:
        project_dir: Directory holding the manifest

    Returns:
        Package name to installed version; empty if nothing is installed
    """
    installed: DependencySet = {}

    node_modules = project_dir / "node_modules"
    if node_modules.is_dir():
        for package_dir in sorted(node_modules.iterdir()):
            if package_dir.name.startswith("@") and package_dir.is_dir():
                # scoped packages live one level deeper
                candidates = sorted(p for p in package_dir.iterdir() if p.is_dir())
            else:
                candidates = [package_dir]
            for candidate in candidates:
                version = _read_version(candidate / "package.json")
                if version:
                    name = candidate.name
                    if candidate.parent != node_modules:
                        name = f"{candidate.parent.name}/{candidate.name}"
                    installed[name] = version

    bower_components = project_dir / "bower_components"
    if bower_components.is_dir():
        for package_dir in sorted(bower_components.iterdir()):
            version = _read_version(package_dir / ".bower.json") or _read_version(
                package_dir / "bower.json"
            )
            if version:
                installed.setdefault(package_dir.name, version)

    return installed
