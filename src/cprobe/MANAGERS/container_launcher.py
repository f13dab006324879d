# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Building the launch specification for the probed container and driving
create/start/inspect against the runtime.
"""
import os
import time
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from ..errors import MissingCommsPortsError, MissingNetworkInfoError
from ..MODELS.container_overrides import ContainerOverrides, VolumeMount
from ..MODELS.inspector_config import InspectorConfig
from ..MODELS.launch_spec import ContainerHandle, LaunchSpec
from ..RUNNERS.docker_runtime import DockerRuntime
from ..UTILS.logger import get_logger

logger = get_logger(__name__)


def generate_container_name(prefix: str, pid: Optional[int] = None, now: Optional[datetime] = None) -> str:
    """
    Builds a container name unique per process and timestamp.

    :param prefix: Name prefix from the inspector config.
    :param pid: Process id, defaults to the current one.
    :param now: Timestamp, defaults to the current UTC time.
    :return: ``<prefix>_<pid>_<YYYYmmddHHMMSS>``
    """
    pid = os.getpid() if pid is None else pid
    now = now or datetime.now(timezone.utc)
    return f"{prefix}_{pid}_{now.strftime('%Y%m%d%H%M%S')}"


def merge_exposed_ports(user_ports: Dict[str, Dict[str, str]],
                        reserved_ports: List[str]) -> Tuple[Dict[str, Dict[str, str]], List[str]]:
    """
    Merges user-exposed ports with the reserved comms ports.

    The reserved entry always wins on a key collision; each colliding key is
    reported back so the caller can warn about it.

    :return: The merged port map and the list of colliding keys.
    """
    merged = {port: dict(opts) for port, opts in user_ports.items()}
    conflicts = []
    for port in reserved_ports:
        if port in merged:
            conflicts.append(port)
        merged[port] = {}
    return merged, conflicts


class LaunchSpecBuilder:
    """
    Turns overrides, mounts and network options into an immutable LaunchSpec.
    """
    def __init__(self,
                 config: InspectorConfig,
                 image_ref: str,
                 local_volume_path: str,
                 overrides: Optional[ContainerOverrides] = None,
                 volume_mounts: Optional[List[VolumeMount]] = None,
                 links: Optional[List[str]] = None,
                 extra_hosts: Optional[List[str]] = None,
                 dns_servers: Optional[List[str]] = None,
                 dns_search_domains: Optional[List[str]] = None,
                 debug: bool = False):
        """
        :param config: Ports, paths and labels for the run.
        :param image_ref: The image to instrument.
        :param local_volume_path: Per-run host directory holding ``artifacts``.
        :param overrides: User overrides for env, labels, ports and networking.
        :param volume_mounts: User-requested binds.
        :param links: Container links (``name:alias``).
        :param extra_hosts: Extra /etc/hosts entries (``host:ip``).
        :param dns_servers: DNS servers, overriding the ones in ``overrides``.
        :param dns_search_domains: DNS search domains, likewise.
        :param debug: Start the sensor in debug mode.
        """
        self.config = config
        self.image_ref = image_ref
        self.local_volume_path = local_volume_path
        self.overrides = overrides or ContainerOverrides()
        self.volume_mounts = volume_mounts or []
        self.links = links if links is not None else list(self.overrides.links)
        self.extra_hosts = extra_hosts if extra_hosts is not None else list(self.overrides.extra_hosts)
        self.dns_servers = dns_servers if dns_servers is not None else list(self.overrides.dns_servers)
        self.dns_search_domains = (dns_search_domains if dns_search_domains is not None
                                   else list(self.overrides.dns_search_domains))
        self.debug = debug

    @property
    def artifacts_path(self) -> str:
        return os.path.join(self.local_volume_path, self.config.artifacts_dir)

    def binds(self) -> List[str]:
        """User binds followed by the forced artifacts (rw) and sensor (ro) binds."""
        binds = [mount.bind_spec() for mount in self.volume_mounts]
        binds.append(f"{self.artifacts_path}:{self.config.artifacts_mount_path}")
        binds.append(f"{self.config.sensor_bin_local}:{self.config.sensor_bin_path}:ro")
        return binds

    def build(self, name: str) -> LaunchSpec:
        """
        Builds the launch specification.

        :param name: The container name to use.
        :return: A frozen LaunchSpec.
        """
        exposed_ports, conflicts = merge_exposed_ports(self.overrides.exposed_ports,
                                                       self.config.reserved_ports)
        for port in conflicts:
            logger.warning("comms port conflict", port=port)
        logger.debug("exposed ports", ports=sorted(exposed_ports))

        labels = dict(self.overrides.labels)
        labels["type"] = self.config.label_name

        spec = LaunchSpec(
            image=self.image_ref,
            name=name,
            entrypoint=[self.config.sensor_bin_path],
            cmd=["-d"] if self.debug else [],
            env=list(self.overrides.env),
            labels=labels,
            hostname=self.overrides.hostname or None,
            binds=self.binds(),
            exposed_ports=exposed_ports,
            publish_all_ports=True,
            network_mode=self.overrides.network or None,
            links=self.links,
            extra_hosts=self.extra_hosts,
            dns=self.dns_servers,
            dns_search=self.dns_search_domains,
            cap_add=list(self.config.cap_add),
            privileged=True,
            port_conflicts=conflicts,
        )
        if spec.network_mode:
            logger.debug("network mode", network_mode=spec.network_mode)
        return spec


def validate_network(handle: ContainerHandle, reserved_ports: List[str]):
    """
    Checks that the inspected container can be reached by the comms channels.

    :raises MissingNetworkInfoError: No network settings were inspected.
    :raises MissingCommsPortsError: Fewer published bindings than reserved ports.
    """
    if handle.network_settings() is None:
        raise MissingNetworkInfoError(handle.id)
    bindings = handle.port_bindings()
    if len(bindings) < len(reserved_ports):
        raise MissingCommsPortsError(handle.id, len(bindings), len(reserved_ports))


class ContainerLauncher:
    """
    Creates, starts and inspects the probed container.
    """
    def __init__(self, runtime: DockerRuntime, config: InspectorConfig):
        self.runtime = runtime
        self.config = config
        self.handle: Optional[ContainerHandle] = None

    def launch(self, spec: LaunchSpec) -> ContainerHandle:
        """
        Runs create -> start -> inspect and validates the result.

        Runtime API errors propagate unchanged. Once the container exists the
        returned handle is also reachable through ``self.handle`` so a caller
        can still tear it down when a later step fails.

        :raises FatalLaunchError: The container has no usable comms ports.
        """
        started = time.monotonic()

        container_id = self.runtime.create(spec)
        self.handle = ContainerHandle(id=container_id, name=spec.name)
        logger.info("created container", container_id=container_id, name=spec.name)

        self.runtime.start(container_id)
        self.handle.info = self.runtime.inspect(container_id)

        validate_network(self.handle, self.config.reserved_ports)
        logger.debug("container ports", ports=self.handle.port_bindings(),
                     elapsed=round(time.monotonic() - started, 3))
        return self.handle
