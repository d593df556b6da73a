"""Exceptions raised by the full-sync engine."""


class FullSyncError(Exception):
    """Base class for full-sync failures."""


class StoreUnavailable(FullSyncError):
    """
    A backing-store query failed; retry later.

    When raised out of a driver invocation, ``status`` holds the progress
    made by the chunks sent before the failure.
    """

    status = None


class TransportFailure(FullSyncError):
    """Transmitting a chunk failed; the cursor was not advanced."""


class ConfigurationMissing(FullSyncError):
    """No transmission limits are configured for a module."""

    def __init__(self, module_name: str, detail: str | None = None):
        self.module_name = module_name
        message = f"No full sync limits configured for module {module_name!r}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class InvalidLimits(FullSyncError, ValueError):
    """A chunk size, chunk budget or batch size is not a positive integer."""


class StatusFinalized(FullSyncError):
    """Attempt to overwrite a full-sync status that is already finished."""


class UnknownModule(FullSyncError, KeyError):
    """No sync module is registered under the requested name."""
