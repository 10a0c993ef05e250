"""Run configuration for DepBump."""

from dataclasses import dataclass, field
from enum import Enum

from .errors import ConfigurationError


class VersionTarget(str, Enum):
    """Which published version a dependency is compared against."""

    LATEST = "latest"  # highest stable release
    GREATEST = "greatest"  # highest release, pre-releases included

    @property
    def superlative(self) -> str:
        return self.value.capitalize()


class OutputFormat(str, Enum):
    """How the result of a run is printed."""

    HUMAN = "human"
    JSON_ALL = "json-all"
    JSON_DEPS = "json-deps"
    JSON_UPGRADED = "json-upgraded"

    @classmethod
    def from_flags(
        cls, json_all: bool = False, json_deps: bool = False, json_upgraded: bool = False
    ) -> "OutputFormat":
        """Pick one format from the JSON flags, the fullest one winning."""
        if json_all:
            return cls.JSON_ALL
        if json_deps:
            return cls.JSON_DEPS
        if json_upgraded:
            return cls.JSON_UPGRADED
        return cls.HUMAN

    @property
    def is_json(self) -> bool:
        return self is not OutputFormat.HUMAN


@dataclass(frozen=True)
class Options:
    """Options for a single run.

    Built once by the CLI and passed down explicitly; nothing reads
    configuration from module state.
    """

    global_: bool = False
    upgrade: bool = False
    upgrade_all: bool = False
    greatest: bool = False
    prod: bool = False
    dev: bool = False
    registry: str | None = None
    output_format: OutputFormat = OutputFormat.HUMAN
    error_level: int = 1
    silent: bool = False
    manifest: str | None = None  # path, "-" for stdin, None to discover
    name_filter: tuple[str, ...] = field(default_factory=tuple)

    @property
    def wants_upgrade(self) -> bool:
        # upgrading all is still an upgrade
        return self.upgrade or self.upgrade_all

    @property
    def version_target(self) -> VersionTarget:
        return VersionTarget.GREATEST if self.greatest else VersionTarget.LATEST

    @property
    def include_prod(self) -> bool:
        return self.prod or not self.dev

    @property
    def include_dev(self) -> bool:
        return self.dev or not self.prod

    def validate(self) -> None:
        """Reject option combinations that cannot be honoured.

        Raises:
            ConfigurationError: If the options conflict
        """
        if self.global_ and self.wants_upgrade:
            raise ConfigurationError(
                "depbump cannot update global packages. "
                "Run 'npm install -g [package]' to upgrade a global package."
            )
        if self.error_level not in (0, 1, 2):
            raise ConfigurationError(f"Invalid error level: {self.error_level}")
