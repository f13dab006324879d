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
AppArmor profile generation from the collected container report.
"""
import os
from jinja2 import Template

from ..MODELS.container_report import ContainerReport

APPARMOR_TEMPLATE = """
#include <tunables/global>

profile {{ name }} flags=(attach_disconnected,mediate_deleted) {
  #include <abstractions/base>

  network,
  capability,
  umount,

  deny @{PROC}/* w,
  deny /sys/[^f]*/** wklx,
  deny /sys/firmware/** rwklx,
  deny /sys/kernel/security/** rwklx,
{% for exe in executables %}
  {{ exe }} ix,
{%- endfor %}
{% for f in files %}
  {{ f.file_path }} {{ f.mode }},
{%- endfor %}
}
"""


def _mode(read: bool, write: bool) -> str:
    mode = ""
    if read:
        mode += "r"
    if write:
        mode += "w"
    return mode or "r"


def generate_apparmor_profile(artifact_location: str, profile_name: str,
                              report_file_name: str) -> str:
    """
    Writes an AppArmor profile allowing what the application was seen doing.

    :param artifact_location: Directory holding the sensor report.
    :param profile_name: File and profile name of the generated profile.
    :param report_file_name: Name of the sensor report.
    :return: Path of the written profile.
    """
    report = ContainerReport.load(artifact_location, report_file_name)

    executables = sorted(set(report.executables) |
                         {f.file_path for f in report.files if f.execute})
    files = [
        {"file_path": f.file_path, "mode": _mode(f.read, f.write)}
        for f in sorted(report.files, key=lambda f: f.file_path)
        if not f.execute
    ]

    content = Template(APPARMOR_TEMPLATE).render(
        name=profile_name,
        executables=executables,
        files=files,
    )

    path = os.path.join(artifact_location, profile_name)
    with open(path, "w") as f:
        f.write(content.lstrip())
    return path
