"""
Command and event channels to the sensor.

The sensor listens with nanomsg scalability protocols: a REP socket for
commands and a PUB socket for events. The host side dials them with REQ and
SUB sockets.
"""
from typing import Callable, Optional

import pynng

from ..errors import ChannelError, ChannelTimeoutError
from ..UTILS.logger import get_logger

logger = get_logger(__name__)


def tcp_address(host: str, port: str) -> str:
    return f"tcp://{host}:{port}"


class _Channel:
    """
    Holds one nng socket. Closing is idempotent and works whether or not the
    socket was ever opened.
    """
    kind = "channel"

    def __init__(self, address: str, timeout: float, socket_factory: Optional[Callable] = None):
        """
        :param address: nng address to dial, e.g. ``tcp://127.0.0.1:32768``.
        :param timeout: Receive wait window in seconds.
        :param socket_factory: Builds the socket; tests pass a fake.
        """
        self.address = address
        self.timeout = timeout
        self._socket_factory = socket_factory
        self._socket = None
        self._closed = False

    @property
    def is_open(self) -> bool:
        return self._socket is not None and not self._closed

    def _make_socket(self):
        raise NotImplementedError

    def open(self):
        if self._closed:
            raise ChannelError(f"{self.kind} channel already closed")
        if self._socket is not None:
            return
        try:
            self._socket = self._make_socket()
        except pynng.NNGException as e:
            raise ChannelError(f"cannot open {self.kind} channel to {self.address}: {e}") from e
        logger.debug("channel open", channel=self.kind, address=self.address)

    def close(self):
        if self._closed:
            return
        self._closed = True
        socket, self._socket = self._socket, None
        if socket is None:
            return
        try:
            socket.close()
        except pynng.NNGException as e:
            logger.warning("channel close failed", channel=self.kind, error=str(e))

    def _recv(self) -> bytes:
        if not self.is_open:
            raise ChannelError(f"{self.kind} channel is not open")
        try:
            return self._socket.recv()
        except pynng.Timeout as e:
            raise ChannelTimeoutError(self.kind, self.timeout) from e
        except pynng.NNGException as e:
            raise ChannelError(f"{self.kind} channel receive failed: {e}") from e

    @property
    def _timeout_ms(self) -> int:
        return int(self.timeout * 1000)


class CommandChannel(_Channel):
    """Request/response channel bound to the sensor's command endpoint."""
    kind = "command"

    def _make_socket(self):
        if self._socket_factory is not None:
            return self._socket_factory(self.address, self._timeout_ms)
        return pynng.Req0(dial=self.address,
                          block_on_dial=False,
                          send_timeout=self._timeout_ms,
                          recv_timeout=self._timeout_ms)

    def request(self, payload: bytes) -> bytes:
        """
        Sends one request and blocks until the reply or the timeout.

        :raises ChannelTimeoutError: No reply within the wait window.
        :raises ChannelError: Any other transport failure.
        """
        if not self.is_open:
            raise ChannelError("command channel is not open")
        try:
            self._socket.send(payload)
        except pynng.Timeout as e:
            raise ChannelTimeoutError(self.kind, self.timeout) from e
        except pynng.NNGException as e:
            raise ChannelError(f"command channel send failed: {e}") from e
        return self._recv()


class EventChannel(_Channel):
    """Subscribe-only channel bound to the sensor's event endpoint."""
    kind = "event"

    def _make_socket(self):
        if self._socket_factory is not None:
            return self._socket_factory(self.address, self._timeout_ms)
        socket = pynng.Sub0(dial=self.address,
                            block_on_dial=False,
                            recv_timeout=self._timeout_ms)
        socket.subscribe(b"")
        return socket

    def receive(self) -> bytes:
        """
        Waits once, up to the channel timeout, for the next event.

        :raises ChannelTimeoutError: Nothing arrived in time.
        """
        return self._recv()
