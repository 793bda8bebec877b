"""
errors.py

Responsibility: the exception taxonomy shared by every starli module.

Every failure a user can hit is a `StarliError`; the CLI turns those into a
one-line message and a non-zero exit code. Library errors (OSError,
requests exceptions, tarfile errors, json errors) are chained with
`raise ... from e` so `--verbose` tracebacks keep the original cause.
"""

from __future__ import annotations


class StarliError(RuntimeError):
    pass


class ConfigError(StarliError):
    pass


class HomeDirectoryUnavailable(StarliError):
    pass


class CacheDirectoryCreateFailed(StarliError):
    pass


class RemoteClientInitFailed(StarliError):
    pass


class RemoteMetadataFetchFailed(StarliError):
    pass


class RemoteDownloadFailed(StarliError):
    pass


class ArchiveExtractFailed(StarliError):
    pass


class MarkerWriteFailed(StarliError):
    pass


class MarkerReadFailed(StarliError):
    pass


class CacheDeleteFailed(StarliError):
    pass


class CacheStatFailed(StarliError):
    pass


class TemplateNotFound(StarliError):
    pass


class MalformedDescriptor(StarliError):
    pass


class RenderError(StarliError):
    pass


class CLIError(StarliError):
    pass
