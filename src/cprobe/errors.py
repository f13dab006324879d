"""
Exception hierarchy for container probing runs.
"""
from typing import Optional


class ProbeError(Exception):
    """Base class for every error raised by cprobe."""


class ConfigError(ProbeError):
    """Invalid or unreadable inspector configuration."""


class InspectorStateError(ProbeError):
    """An operation was invoked in the wrong session state."""


class FatalLaunchError(ProbeError):
    """
    The run cannot proceed: the launched container offers no usable channel back
    to the sensor, or the sensor refused to start monitoring.
    """


class MissingNetworkInfoError(FatalLaunchError):
    """The inspected container has no network settings."""

    def __init__(self, container_id: str):
        super().__init__(f"no network info for container {container_id}")
        self.container_id = container_id


class MissingCommsPortsError(FatalLaunchError):
    """Fewer published port bindings than reserved communication ports."""

    def __init__(self, container_id: str, found: int, expected: int):
        super().__init__(
            f"missing comms ports for container {container_id}: "
            f"{found} bindings, expected at least {expected}"
        )
        self.container_id = container_id
        self.found = found
        self.expected = expected


class EmptyCommandError(FatalLaunchError):
    """Neither the image nor the overrides supply a command to monitor."""


class StartMonitorError(FatalLaunchError):
    """The sensor did not accept the start-monitor command."""


class ChannelError(ProbeError):
    """Transport failure on the command or event channel."""


class ChannelTimeoutError(ChannelError):
    """No reply within the channel's wait window."""

    def __init__(self, channel: str, timeout: Optional[float] = None):
        message = f"receive timed out on {channel} channel"
        if timeout is not None:
            message += f" after {timeout}s"
        super().__init__(message)
        self.channel = channel
        self.timeout = timeout


class ContainerNotRunning(ProbeError):
    """A stop was requested for a container that already exited."""

    def __init__(self, container_id: str):
        super().__init__(f"container {container_id} is not running")
        self.container_id = container_id


class ProfileGenerationError(ProbeError):
    """A security profile generator failed."""

    def __init__(self, generator: str, cause: Exception):
        super().__init__(f"{generator} profile generation failed: {cause}")
        self.generator = generator
        self.cause = cause
