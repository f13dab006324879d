"""
Seccomp profile generation from the collected container report.
"""
import json
import os
from typing import Any, Dict

from ..MODELS.container_report import ContainerReport

ARCHITECTURES = ["SCMP_ARCH_X86_64", "SCMP_ARCH_X86", "SCMP_ARCH_X32"]


def build_seccomp_profile(report: ContainerReport) -> Dict[str, Any]:
    """Deny-by-default profile allowing only the observed syscalls."""
    return {
        "defaultAction": "SCMP_ACT_ERRNO",
        "architectures": ARCHITECTURES,
        "syscalls": [
            {
                "names": sorted(set(report.syscalls)),
                "action": "SCMP_ACT_ALLOW",
            }
        ],
    }


def generate_seccomp_profile(artifact_location: str, profile_name: str,
                             report_file_name: str) -> str:
    """
    Writes a Docker seccomp profile next to the sensor report.

    :return: Path of the written profile.
    """
    report = ContainerReport.load(artifact_location, report_file_name)
    path = os.path.join(artifact_location, profile_name)
    with open(path, "w") as f:
        json.dump(build_seccomp_profile(report), f, indent=2)
    return path
