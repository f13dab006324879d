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
Thin adapter over the Docker Engine API used to run the probed container.
"""
from typing import Any, Dict, List, Optional, Tuple

import docker

from ..errors import ContainerNotRunning
from ..MODELS.launch_spec import LaunchSpec
from ..UTILS.logger import get_logger

logger = get_logger(__name__)


def port_tuple(port_key: str) -> Tuple[int, str]:
    """
    Splits a ``"65501/tcp"`` style port key into ``(65501, "tcp")``.
    A key without a protocol defaults to tcp.
    """
    port, _, proto = port_key.partition("/")
    return int(port), proto or "tcp"


def links_dict(links: List[str]) -> Dict[str, str]:
    """Turns ``name:alias`` link strings into the mapping the API client expects."""
    result = {}
    for link in links:
        name, _, alias = link.partition(":")
        result[name] = alias or name
    return result


class DockerRuntime:
    """
    Container runtime operations needed for one probing run:
    create, start, inspect, stop, remove and logs.

    API errors from the Docker client are not caught here; callers decide
    whether they are fatal.
    """

    def __init__(self, api: Optional["docker.APIClient"] = None):
        """
        :param api: A low-level Docker API client. Defaults to one built from
            the environment (DOCKER_HOST and friends).
        """
        self.api = api if api is not None else docker.from_env().api

    def create(self, spec: LaunchSpec) -> str:
        """
        Creates the container described by ``spec``.

        :return: The runtime-assigned container id.
        """
        host_config = self.api.create_host_config(
            binds=list(spec.binds),
            publish_all_ports=spec.publish_all_ports,
            cap_add=list(spec.cap_add),
            privileged=spec.privileged,
            network_mode=spec.network_mode,
            links=links_dict(spec.links) if spec.links else None,
            extra_hosts=list(spec.extra_hosts) if spec.extra_hosts else None,
            dns=list(spec.dns) if spec.dns else None,
            dns_search=list(spec.dns_search) if spec.dns_search else None,
        )
        result = self.api.create_container(
            image=spec.image,
            name=spec.name,
            entrypoint=list(spec.entrypoint),
            command=list(spec.cmd),
            environment=list(spec.env),
            labels=dict(spec.labels),
            hostname=spec.hostname or None,
            ports=[port_tuple(p) for p in spec.exposed_ports],
            host_config=host_config,
        )
        for warning in result.get("Warnings") or []:
            logger.warning("create container warning", warning=warning)
        return result["Id"]

    def start(self, container_id: str):
        self.api.start(container_id)

    def inspect(self, container_id: str) -> Dict[str, Any]:
        return self.api.inspect_container(container_id)

    def inspect_image(self, image_ref: str) -> Dict[str, Any]:
        return self.api.inspect_image(image_ref)

    def is_running(self, container_id: str) -> bool:
        state = self.inspect(container_id).get("State") or {}
        return bool(state.get("Running"))

    def stop(self, container_id: str, timeout: int):
        """
        Stops the container, waiting ``timeout`` seconds before killing it.

        :raises ContainerNotRunning: The container had already exited.
        """
        if not self.is_running(container_id):
            raise ContainerNotRunning(container_id)
        self.api.stop(container_id, timeout=timeout)

    def remove(self, container_id: str):
        """Force-removes the container together with its anonymous volumes."""
        self.api.remove_container(container_id, v=True, force=True)

    def logs(self, container_id: str) -> Tuple[str, str]:
        """
        Fetches everything the container wrote so far.

        :return: A ``(stdout, stderr)`` pair.
        """
        out = self.api.logs(container_id, stdout=True, stderr=False)
        err = self.api.logs(container_id, stdout=False, stderr=True)
        return _text(out), _text(err)


def _text(data: Any) -> str:
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return str(data or "")
