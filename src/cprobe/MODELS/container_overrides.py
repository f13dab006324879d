"""
Models for user-supplied container overrides, volume mounts and image defaults.
"""
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict


class ContainerOverrides(BaseModel):
    """
    Runtime overrides requested by the user for the probed container.
    Never mutated once constructed.
    """
    model_config = ConfigDict(frozen=True)

    entrypoint: List[str] = []
    cmd: List[str] = []
    clear_entrypoint: bool = False
    clear_cmd: bool = False

    env: List[str] = []  # KEY=VALUE entries
    labels: Dict[str, str] = {}
    hostname: str = ""

    # port key ("8080/tcp") -> options
    exposed_ports: Dict[str, Dict[str, str]] = {}
    network: str = ""
    links: List[str] = []
    extra_hosts: List[str] = []
    dns_servers: List[str] = []
    dns_search_domains: List[str] = []


class VolumeMount(BaseModel):
    """
    Defines a bind between a host path and a container path.
    """
    model_config = ConfigDict(frozen=True)

    source: str
    destination: str
    options: str = "rw"

    def bind_spec(self) -> str:
        """Renders the mount in ``source:destination:options`` form."""
        return f"{self.source}:{self.destination}:{self.options}"

    @classmethod
    def parse(cls, value: str) -> "VolumeMount":
        """
        Parses a ``SRC:DST[:OPTS]`` string.

        :param value: The mount string.
        :return: A VolumeMount instance.
        """
        parts = value.split(":")
        if len(parts) == 2:
            return cls(source=parts[0], destination=parts[1])
        if len(parts) == 3:
            return cls(source=parts[0], destination=parts[1], options=parts[2])
        raise ValueError(f"invalid volume mount: {value!r}")


class ImageDefaults(BaseModel):
    """
    ENTRYPOINT and CMD recorded in the image configuration.
    """
    entrypoint: List[str] = []
    cmd: List[str] = []


class ImageInfo(BaseModel):
    """
    What the image inspector hands over: the image reference, its defaults and
    where artifacts and generated profiles live.
    """
    ref: str
    image_id: Optional[str] = None
    defaults: ImageDefaults = ImageDefaults()
    artifact_location: str
    apparmor_profile_name: str
    seccomp_profile_name: str
