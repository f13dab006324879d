"""
Typed request/response client for the sensor protocol.
"""
from dataclasses import dataclass
from typing import Callable, Optional

from ..MODELS.ipc_messages import Command, CommandResponse, Event
from ..UTILS.logger import get_logger
from .channels import CommandChannel, EventChannel, tcp_address

logger = get_logger(__name__)


@dataclass(frozen=True)
class SensorEndpoints:
    """Host-reachable addresses of the sensor's command and event sockets."""

    host: str
    cmd_port: str
    evt_port: str

    @property
    def cmd_address(self) -> str:
        return tcp_address(self.host, self.cmd_port)

    @property
    def evt_address(self) -> str:
        return tcp_address(self.host, self.evt_port)


class SensorClient:
    """
    Talks to one sensor instance.

    ``send`` blocks for at most ``command_timeout`` seconds and
    ``receive_event`` for at most ``event_timeout`` seconds; both raise
    ChannelTimeoutError when the window expires.
    """

    def __init__(self,
                 endpoints: SensorEndpoints,
                 command_timeout: float,
                 event_timeout: float,
                 socket_factory: Optional[Callable] = None):
        self.endpoints = endpoints
        self.command_channel = CommandChannel(endpoints.cmd_address, command_timeout, socket_factory)
        self.event_channel = EventChannel(endpoints.evt_address, event_timeout, socket_factory)
        self._shut_down = False

    def open(self):
        """Opens both channels. On failure the already opened one stays for shutdown()."""
        self.command_channel.open()
        self.event_channel.open()
        logger.info("sensor channels ready",
                    cmd=self.endpoints.cmd_address, evt=self.endpoints.evt_address)

    def send(self, command: Command) -> CommandResponse:
        """
        Sends a command and waits for the sensor's reply.

        :param command: The command to send.
        :return: The decoded response.
        """
        logger.debug("sending command", command=command.name)
        raw = self.command_channel.request(command.encode())
        response = CommandResponse.decode(raw)
        logger.debug("command response", command=command.name, status=response.status.value)
        return response

    def receive_event(self) -> Event:
        """Waits once for the next sensor event."""
        event = Event.decode(self.event_channel.receive())
        logger.debug("sensor event", name=event.name)
        return event

    def shutdown(self):
        """Closes both channels. Safe to call repeatedly."""
        if self._shut_down:
            return
        self._shut_down = True
        self.command_channel.close()
        self.event_channel.close()
        logger.debug("sensor channels closed")
