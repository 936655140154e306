"""Custom exception hierarchy for the border controller."""


class BorderControllerError(Exception):
    """Base exception for all border controller errors."""


class ConfigError(BorderControllerError):
    """Invalid or missing configuration."""


class DiscoveryError(BorderControllerError):
    """Backend discovery failed for this tick."""


class RenderError(BorderControllerError):
    """The proxy configuration template could not be loaded or executed."""


class InstallError(BorderControllerError):
    """The rendered configuration could not be written to the live path."""

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path


class ProcessControlError(BorderControllerError):
    """Error starting or signalling the proxy process."""

    def __init__(self, message: str, command: list[str] | None = None):
        super().__init__(message)
        self.command = command


class ProcessStartError(ProcessControlError):
    """The proxy process could not be launched."""


class ProcessReloadError(ProcessControlError):
    """The proxy did not accept the reload command."""
