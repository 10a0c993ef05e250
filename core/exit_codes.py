"""Process exit codes returned by a run."""

from enum import IntEnum


class ExitCode(IntEnum):
    """Exit codes used by the CLI.

    ``OUTDATED`` is only returned when the error level asks for it; an
    ordinary run that finds upgrades still exits with ``SUCCESS``.
    """

    SUCCESS = 0
    GENERAL_ERROR = 1
    FILE_NOT_FOUND = 2
    OUTDATED = 3
    INVALID_ARGUMENT = 22
