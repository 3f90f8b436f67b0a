"""Exceptions related to chart-inflator."""

__all__ = [
    "InflatorException",
    "ConfigException",
    "FileException",
    "ParseException",
    "CommandException",
    "HelmException",
    "ValidationException",
]


class InflatorException(Exception):
    """Generic base exception used for this library."""


class ConfigException(InflatorException):
    """Raised when the generator configuration is missing or invalid."""


class FileException(InflatorException):
    """Raised when a file or temporary directory can't be read or written."""


class ParseException(InflatorException):
    """Raised when values or command output are not formatted as expected."""


class CommandException(InflatorException):
    """Raised when there is a failure running a subcommand."""


class HelmException(CommandException):
    """Raised when there is a failure running a helm command."""


class ValidationException(InflatorException):
    """Raised when the helm binary does not meet the version requirements."""
