"""
Models for the container launch specification and the launched container handle.
"""
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict


class LaunchSpec(BaseModel):
    """
    Everything the runtime needs to create the probed container.
    Built and validated before any runtime call is made.
    """
    model_config = ConfigDict(frozen=True)

    image: str
    name: str

    # Execution
    entrypoint: List[str]
    cmd: List[str] = []

    # Environment
    env: List[str] = []
    labels: Dict[str, str] = {}
    hostname: Optional[str] = None

    # Storage
    binds: List[str] = []

    # Networking
    exposed_ports: Dict[str, Dict[str, str]] = {}
    publish_all_ports: bool = True
    network_mode: Optional[str] = None
    links: List[str] = []
    extra_hosts: List[str] = []
    dns: List[str] = []
    dns_search: List[str] = []

    # Privileges
    cap_add: List[str] = []
    privileged: bool = True

    # Port keys that collided with the reserved ones
    port_conflicts: List[str] = []


class ContainerHandle(BaseModel):
    """
    A created container: its runtime id, generated name and inspected state.
    """
    id: str
    name: str
    info: Dict[str, Any] = {}
    valid: bool = True

    def network_settings(self) -> Optional[Dict[str, Any]]:
        """Returns the inspected NetworkSettings block, if any."""
        return self.info.get("NetworkSettings") or None

    def port_bindings(self) -> Dict[str, List[Dict[str, str]]]:
        """
        Returns the published port bindings keyed by container port.
        Ports without a host binding are left out.
        """
        settings = self.network_settings() or {}
        ports = settings.get("Ports") or {}
        return {port: bindings for port, bindings in ports.items() if bindings}

    def invalidate(self):
        """Marks the handle as torn down."""
        self.valid = False
