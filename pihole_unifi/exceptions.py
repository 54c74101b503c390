class SyncError(Exception):
    """Base class for errors that abort the whole sync run."""


class ConfigError(SyncError):
    """Required settings are missing or still hold placeholder values."""


class SourceUnavailable(SyncError):
    """The Pi-hole custom DNS list could not be read, or it was empty."""


class AuthFailed(SyncError):
    """Login to the UniFi controller was rejected or the controller was unreachable."""


class AuthError(SyncError):
    """The UniFi session stopped being accepted partway through a run."""
