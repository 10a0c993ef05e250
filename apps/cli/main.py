"""CLI application for DepBump."""

import asyncio
import logging

import typer
from rich.console import Console

from core.check import UpdateChecker
from core.config import Options, OutputFormat
from core.errors import ConfigurationError, ManifestNotFoundError
from core.exit_codes import ExitCode
from core.installed import InstalledPackages
from core.log import configure_logging
from core.parse_manifest import parse_name_filter
from core.registry import RegistryClient

console = Console(soft_wrap=True, highlight=False)
err_console = Console(stderr=True, soft_wrap=True, highlight=False)
logger = logging.getLogger(__name__)


async def run_checker(options: Options) -> ExitCode:
    """Open a registry client for the run and check for upgrades."""
    async with RegistryClient(options.registry) as registry:
        checker = UpdateChecker(
            options,
            registry=registry,
            installed=InstalledPackages(),
            console=console,
        )
        return await checker.run()


app = typer.Typer(
    name="depbump",
    help="DepBump - Check package.json dependencies for newer versions and upgrade them",
    add_completion=False,
)


@app.command()
def check(
    filter_args: list[str] | None = typer.Argument(
        None, metavar="[FILTER]...", help="Only check these dependencies (names, comma-separated, or /regex/)"
    ),
    global_: bool = typer.Option(False, "--global", "-g", help="Check global packages instead of package.json"),
    upgrade: bool = typer.Option(False, "--upgrade", "-u", help="Write upgraded version ranges to the manifest"),
    upgrade_all: bool = typer.Option(
        False, "--upgrade-all", "-a", help="Also upgrade ranges that already satisfy the latest version"
    ),
    greatest: bool = typer.Option(
        False, "--greatest", "-t", help="Use the highest version, pre-releases included, instead of latest stable"
    ),
    prod: bool = typer.Option(False, "--prod", "-p", help="Check only dependencies"),
    dev: bool = typer.Option(False, "--dev", "-d", help="Check only devDependencies"),
    registry: str | None = typer.Option(
        None, "--registry", "-r", envvar="DEPBUMP_REGISTRY", help="Registry URL"
    ),
    json_all: bool = typer.Option(False, "--json-all", "-j", help="Print the upgraded manifest as JSON"),
    json_deps: bool = typer.Option(False, "--json-deps", help="Print the upgraded dependency fields as JSON"),
    json_upgraded: bool = typer.Option(False, "--json-upgraded", help="Print only upgraded dependencies as JSON"),
    error_level: int = typer.Option(
        1, "--error-level", "-e", help="Set to 2 to exit non-zero when upgrades are available"
    ),
    silent: bool = typer.Option(False, "--silent", "-s", help="Print nothing to stdout"),
    manifest: str | None = typer.Option(
        None, "--manifest", "-m", help="Path to package.json or bower.json (use '-' for stdin)"
    ),
    log_level: str = typer.Option("WARNING", "--log-level", envvar="DEPBUMP_LOG_LEVEL", help="Log level"),
) -> None:
    """DepBump - Check dependencies against the registry and report available upgrades."""

    try:
        configure_logging(log_level)

        options = Options(
            global_=global_,
            upgrade=upgrade,
            upgrade_all=upgrade_all,
            greatest=greatest,
            prod=prod,
            dev=dev,
            registry=registry,
            output_format=OutputFormat.from_flags(json_all, json_deps, json_upgraded),
            error_level=error_level,
            silent=silent,
            manifest=manifest,
            name_filter=parse_name_filter(filter_args),
        )
        options.validate()

        exit_code = asyncio.run(run_checker(options))

    except ConfigurationError as e:
        console.print(f"Error: {e}", style="red", markup=False)
        raise typer.Exit(ExitCode.INVALID_ARGUMENT)
    except ManifestNotFoundError as e:
        console.print(f"Error: {e}", style="red", markup=False)
        raise typer.Exit(ExitCode.FILE_NOT_FOUND)
    except Exception as e:
        logger.debug("Run failed", exc_info=True)
        console.print(f"Error: {e}", style="red", markup=False)
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    if exit_code != ExitCode.SUCCESS:
        if not silent:
            err_console.print("Dependencies not up-to-date", style="red", markup=False)
        raise typer.Exit(exit_code)


if __name__ == "__main__":
    app()
