"""Exception types for DepBump."""


class DepBumpError(Exception):
    """Base class for errors raised by DepBump."""


class ConfigurationError(DepBumpError):
    """Invalid combination of options.

    Raised before any registry lookup so nothing is half-done when the
    run aborts.
    """


class ManifestNotFoundError(DepBumpError):
    """No manifest file could be located."""


class ManifestError(DepBumpError):
    """Manifest text could not be parsed as a JSON object."""


class RegistryError(DepBumpError):
    """A registry lookup failed for a single package."""


class PackageNotFoundError(RegistryError):
    """The registry has no package by that name."""


class InvalidConstraintError(DepBumpError, ValueError):
    """A version or version range could not be parsed."""


class InstalledPackagesError(DepBumpError):
    """Installed packages could not be listed."""
