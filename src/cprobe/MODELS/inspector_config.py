"""
Immutable configuration shared by the launcher, channels and teardown.
"""
import os
import sys
from typing import List
from pydantic import BaseModel, ConfigDict, Field


def _default_sensor_bin_local() -> str:
    exe_dir = os.path.dirname(os.path.abspath(sys.argv[0] or "."))
    return os.path.join(exe_dir, "docker-slim-sensor")


class InspectorConfig(BaseModel):
    """
    Fixed ports, paths and timeouts for one inspection run.

    The defaults match what the sensor expects; tests and the YAML config file
    may vary them per instance.
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    cmd_port: str = "65501/tcp"
    evt_port: str = "65502/tcp"

    sensor_bin_path: str = "/opt/dockerslim/bin/sensor"
    sensor_bin_local: str = Field(default_factory=_default_sensor_bin_local)
    artifacts_mount_path: str = "/opt/dockerslim/artifacts"
    artifacts_dir: str = "artifacts"
    report_file_name: str = "creport.json"

    container_name_prefix: str = "dockerslimk"
    label_name: str = "dockerslim"
    cap_add: List[str] = ["SYS_ADMIN"]

    stop_timeout: int = 9
    command_timeout: float = Field(default=10.0, gt=0)
    event_timeout: float = Field(default=120.0, gt=0)

    @property
    def reserved_ports(self) -> List[str]:
        """The command and event ports, in that order."""
        return [self.cmd_port, self.evt_port]
