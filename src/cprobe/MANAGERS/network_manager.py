"""
Network handling for the probed container: finding the host-side endpoints of
the sensor's comms ports and opening the channels to them.
"""
import os
from typing import Callable, Dict, List, Mapping, Optional
from urllib.parse import urlparse

from ..errors import ChannelError, MissingCommsPortsError
from ..IPC.sensor_client import SensorClient, SensorEndpoints
from .container_launcher import validate_network
from ..MODELS.inspector_config import InspectorConfig
from ..MODELS.launch_spec import ContainerHandle
from ..UTILS.logger import get_logger

logger = get_logger(__name__)

_UNROUTABLE = ("", "0.0.0.0", "::")


def docker_host_ip(env: Optional[Mapping[str, str]] = None, binding_ip: str = "") -> str:
    """
    Returns the address the host uses to reach published container ports.

    A remote ``tcp://`` DOCKER_HOST wins, then a concrete binding address,
    then loopback.
    """
    env = os.environ if env is None else env
    docker_host = env.get("DOCKER_HOST", "")
    if docker_host.startswith("tcp://"):
        host = urlparse(docker_host).hostname
        if host:
            return host
    if binding_ip not in _UNROUTABLE:
        return binding_ip
    return "127.0.0.1"


class NetworkManager:
    """
    Derives sensor endpoints from an inspected container and opens the channels.
    """
    def __init__(self,
                 config: InspectorConfig,
                 env: Optional[Mapping[str, str]] = None,
                 socket_factory: Optional[Callable] = None):
        """
        :param config: Supplies the reserved ports and channel timeouts.
        :param env: Environment used to find DOCKER_HOST, defaults to os.environ.
        :param socket_factory: Passed to the channels; tests use a fake.
        """
        self.config = config
        self.env = env
        self.socket_factory = socket_factory

    def _host_binding(self, ports: Dict[str, List[Dict[str, str]]], port: str, container_id: str) -> Dict[str, str]:
        bindings = ports.get(port)
        if not bindings:
            raise MissingCommsPortsError(container_id, len(ports), len(self.config.reserved_ports))
        return bindings[0]

    def endpoints(self, handle: ContainerHandle) -> SensorEndpoints:
        """
        Reads the host ports bound to the reserved command and event ports.
        Fails before any network call when the container is not reachable.

        :raises FatalLaunchError: Missing network info or comms port bindings.
        """
        validate_network(handle, self.config.reserved_ports)
        ports = handle.port_bindings()
        cmd_binding = self._host_binding(ports, self.config.cmd_port, handle.id)
        evt_binding = self._host_binding(ports, self.config.evt_port, handle.id)
        host = docker_host_ip(self.env, cmd_binding.get("HostIp", ""))
        return SensorEndpoints(host=host,
                               cmd_port=cmd_binding["HostPort"],
                               evt_port=evt_binding["HostPort"])

    def init_channels(self, handle: ContainerHandle) -> SensorClient:
        """
        Opens the command and event channels for the container's sensor.

        If opening fails half way through, whatever was opened is closed
        before the error propagates.

        :raises ChannelError: A channel could not be opened.
        """
        endpoints = self.endpoints(handle)
        client = SensorClient(endpoints,
                              command_timeout=self.config.command_timeout,
                              event_timeout=self.config.event_timeout,
                              socket_factory=self.socket_factory)
        try:
            client.open()
        except ChannelError:
            client.shutdown()
            raise
        return client
