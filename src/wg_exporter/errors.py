"""
Exception types raised by the collection pipeline.

Everything derives from ExporterError so the collector can treat any
per-interface failure the same way: log it and move on to the next one.
"""


class ExporterError(Exception):
    """Base class for all wg-exporter errors."""


class ConfigError(ExporterError):
    """Exporter configuration could not be loaded or is invalid."""


class InvalidInterfaceName(ExporterError):
    """Interface name failed validation and must not reach a subprocess."""


class CommandError(ExporterError):
    """The wg tool could not be launched, or exited non-zero."""


class CommandTimeout(CommandError):
    """The wg tool did not finish within its timeout."""


class DumpParseError(ExporterError):
    """wg output was empty or its header could not be understood."""


class ConfigReadError(ExporterError):
    """A wg-quick config file exists but could not be read or decoded."""


class ConfigFileMissing(ConfigReadError):
    """A wg-quick config file does not exist. Usually not worth a warning."""


class UnitError(ExporterError, ValueError):
    """A human-readable byte size used a unit we don't know."""
