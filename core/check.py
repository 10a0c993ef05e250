"""Run orchestration: check a manifest or global packages for upgrades."""

import asyncio
import json
import logging
import os
import sys
from pathlib import Path
from typing import TextIO

from rich.console import Console

from .config import Options, OutputFormat
from .discover import find_manifest
from .errors import InstalledPackagesError, ManifestNotFoundError
from .exit_codes import ExitCode
from .installed import InstalledPackages
from .models import DEPENDENCY_FIELDS, DependencySet, Manifest
from .parse_manifest import extract_dependencies, parse_manifest
from .registry import RegistryClient
from .report import render_global, render_local, upgrade_hint
from .resolve import UpgradeResolver
from .rewrite import rewrite_manifest

logger = logging.getLogger(__name__)


def read_manifest_file(path: Path) -> str:
    # newline="" keeps CRLF files byte-identical on rewrite
    with open(path, encoding="utf-8", newline="") as f:
        return f.read()


def write_manifest_file(path: Path, content: str) -> None:
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(content)


class UpdateChecker:
    """Checks one manifest, or the global packages, against a registry."""

    def __init__(
        self,
        options: Options,
        registry: RegistryClient,
        installed: InstalledPackages | None = None,
        console: Console | None = None,
        cwd: Path | None = None,
        stdin: TextIO | None = None,
    ):
        self.options = options
        self.registry = registry
        self.installed = installed or InstalledPackages()
        self.console = console or Console(soft_wrap=True, highlight=False)
        self.cwd = cwd or Path.cwd()
        self.stdin = stdin or sys.stdin

    async def run(self) -> ExitCode:
        """Run a full check.

        Returns:
            SUCCESS, or OUTDATED when upgrades exist and the error level is 2

        Raises:
            ConfigurationError: If the options conflict (before any lookup)
            ManifestNotFoundError: If no manifest can be located
            ManifestError: If the manifest is not valid JSON
            OSError: If the upgraded manifest cannot be written
        """
        self.options.validate()

        if self.options.global_:
            return await self.run_global()
        return await self.run_local(self.load_manifest())

    def load_manifest(self) -> Manifest:
        """Read the manifest from stdin, the given path, or the nearest file."""
        manifest = self.options.manifest
        if manifest == "-":
            return parse_manifest(self.stdin.read())

        if manifest:
            path = Path(manifest)
            if not path.is_absolute():
                path = self.cwd / path
            if not path.is_file():
                raise ManifestNotFoundError(f"{manifest} not found")
        else:
            path = find_manifest(self.cwd)
            if path is None:
                raise ManifestNotFoundError("package.json not found")
            cwd = self.cwd.resolve()
            if path.parent != cwd:
                self._note(f"Using {os.path.relpath(path, cwd)}")

        return parse_manifest(read_manifest_file(path), path)

    async def run_global(self) -> ExitCode:
        current = await self.installed.list_global()
        resolution = await self._resolver().resolve(current)

        if self.options.output_format.is_json:
            self._print_json(resolution.upgraded)
        else:
            self._print_lines(render_global(current, resolution.upgraded))

        return self._exit_code(resolution.upgraded)

    async def run_local(self, manifest: Manifest) -> ExitCode:
        options = self.options
        current = extract_dependencies(
            manifest,
            include_prod=options.include_prod,
            include_dev=options.include_dev,
            name_filter=options.name_filter,
        )

        resolver = self._resolver()
        if manifest.path is not None:
            resolution, installed = await asyncio.gather(
                resolver.resolve(current), self._installed_near(manifest.path)
            )
        else:
            # no file on disk, so nothing installed to compare against
            resolution, installed = await resolver.resolve(current), None
        upgraded = resolution.upgraded

        if options.output_format.is_json:
            updated = rewrite_manifest(manifest.raw, current, upgraded)
            self._print_json(self._json_payload(updated, upgraded))
        else:
            self._print_lines(
                render_local(current, upgraded, installed, resolution.latest, options.version_target)
            )

        if upgraded and manifest.path is not None:
            if options.wants_upgrade:
                write_manifest_file(manifest.path, rewrite_manifest(manifest.raw, current, upgraded))
                self._note(f"\n{manifest.path} upgraded")
            elif not options.output_format.is_json:
                for line in upgrade_hint(manifest.name):
                    self._print(line)
        elif upgraded and options.wants_upgrade:
            logger.warning("Manifest was read from standard input; nothing was written")

        return self._exit_code(upgraded)

    def _resolver(self) -> UpgradeResolver:
        return UpgradeResolver(
            self.registry,
            version_target=self.options.version_target,
            upgrade_all=self.options.upgrade_all,
        )

    async def _installed_near(self, manifest_path: Path) -> DependencySet | None:
        try:
            return await self.installed.list_local(manifest_path.parent)
        except (InstalledPackagesError, OSError) as e:
            logger.warning("Could not list installed packages: %s", e)
            return None

    def _json_payload(self, updated: str, upgraded: DependencySet):
        fmt = self.options.output_format
        if fmt is OutputFormat.JSON_ALL:
            return json.loads(updated)
        if fmt is OutputFormat.JSON_DEPS:
            data = json.loads(updated)
            return {key: data[key] for key in DEPENDENCY_FIELDS if key in data}
        return upgraded

    def _exit_code(self, upgraded: DependencySet) -> ExitCode:
        if upgraded and self.options.error_level >= 2:
            return ExitCode.OUTDATED
        return ExitCode.SUCCESS

    def _print(self, message: str = "") -> None:
        if not self.options.silent:
            self.console.print(message, markup=False)

    def _print_lines(self, lines: list[str]) -> None:
        self._print()
        for line in lines:
            self._print(line)
        self._print()

    def _print_json(self, data) -> None:
        if not self.options.silent:
            self.console.out(json.dumps(data, indent=2, ensure_ascii=False), highlight=False)

    def _note(self, message: str) -> None:
        # stdout must stay parseable in JSON modes
        if self.options.output_format.is_json:
            logger.info(message.strip())
        else:
            self._print(message)
