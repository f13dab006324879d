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
Container inspection run: launch the instrumented container, monitor it with
the sensor, tear it down and post-process what was collected.
"""
from typing import Callable, Iterable, List, Mapping, Optional

from ..errors import EmptyCommandError, InspectorStateError
from ..MODELS.container_overrides import ContainerOverrides, ImageInfo, VolumeMount
from ..MODELS.inspector_config import InspectorConfig
from ..MODELS.launch_spec import ContainerHandle
from ..MODELS.reports import FinishReport, RunReport, StepReport, TeardownReport
from ..RUNNERS.docker_runtime import DockerRuntime
from ..RUNNERS.entrypoint_executor import EntrypointExecutor
from ..UTILS.logger import get_logger
from .container_launcher import ContainerLauncher, LaunchSpecBuilder, generate_container_name
from .network_manager import NetworkManager
from .post_processor import PostProcessor
from .session_controller import MonitoringSession, SessionState
from .teardown_controller import TeardownController

logger = get_logger(__name__)


class Inspector:
    """
    One container inspection run. Construct a new instance per run; the
    launch, monitor and teardown phases run once, in order.
    """
    def __init__(self,
                 runtime: DockerRuntime,
                 image: ImageInfo,
                 local_volume_path: str,
                 overrides: Optional[ContainerOverrides] = None,
                 config: Optional[InspectorConfig] = None,
                 volume_mounts: Optional[List[VolumeMount]] = None,
                 links: Optional[List[str]] = None,
                 extra_hosts: Optional[List[str]] = None,
                 dns_servers: Optional[List[str]] = None,
                 dns_search_domains: Optional[List[str]] = None,
                 show_container_logs: bool = False,
                 exclude_paths: Optional[Iterable[str]] = None,
                 include_paths: Optional[Iterable[str]] = None,
                 debug: bool = False,
                 env: Optional[Mapping[str, str]] = None,
                 socket_factory: Optional[Callable] = None):
        """
        Initializes the inspector.

        :param runtime: Container runtime.
        :param image: Image defaults and artifact locations.
        :param local_volume_path: Per-run host directory shared with the sensor.
        :param overrides: User overrides for the container.
        :param config: Ports, paths and timeouts; defaults apply if omitted.
        :param volume_mounts: Extra binds requested by the user.
        :param links: Container links.
        :param extra_hosts: Extra /etc/hosts entries.
        :param dns_servers: DNS servers.
        :param dns_search_domains: DNS search domains.
        :param show_container_logs: Print the container output during teardown.
        :param exclude_paths: Paths the sensor should ignore.
        :param include_paths: Paths the sensor should keep.
        :param debug: Run the sensor in debug mode.
        :param env: Environment used to locate the Docker host.
        :param socket_factory: Channel socket factory (tests).
        """
        self.runtime = runtime
        self.image = image
        self.local_volume_path = local_volume_path
        self.overrides = overrides
        self.config = config or InspectorConfig()

        self.fat_container_cmd = EntrypointExecutor().resolve(image.defaults, overrides)
        logger.debug("fat container command", cmd=self.fat_container_cmd)

        self.spec_builder = LaunchSpecBuilder(
            self.config,
            image.ref,
            local_volume_path,
            overrides=overrides,
            volume_mounts=volume_mounts,
            links=links,
            extra_hosts=extra_hosts,
            dns_servers=dns_servers,
            dns_search_domains=dns_search_domains,
            debug=debug,
        )
        self.launcher = ContainerLauncher(runtime, self.config)
        self.network = NetworkManager(self.config, env=env, socket_factory=socket_factory)
        self.session = MonitoringSession(self.network, self.fat_container_cmd,
                                         exclude_paths=exclude_paths,
                                         include_paths=include_paths)
        self.teardown = TeardownController(runtime, self.config, show_logs=show_container_logs)
        self.post_processor = PostProcessor(image, self.config)

        self.container_name = ""
        self.warnings: List[str] = []

    @property
    def handle(self) -> Optional[ContainerHandle]:
        return self.launcher.handle

    def run_container(self):
        """
        Launches the container and starts monitoring.

        Runtime API errors propagate unchanged; launch precondition failures
        raise FatalLaunchError. Either way the container, if created, is left
        for shutdown_container() to remove.
        """
        if self.session.state != SessionState.IDLE or self.teardown.done:
            raise InspectorStateError("inspector instances are single-use")

        if not self.fat_container_cmd:
            error = EmptyCommandError("no entrypoint or cmd to monitor")
            self.session.fail(error)
            raise error

        self.container_name = generate_container_name(self.config.container_name_prefix)
        spec = self.spec_builder.build(self.container_name)
        for port in spec.port_conflicts:
            self.warnings.append(f"comms port conflict: {port}")

        try:
            handle = self.launcher.launch(spec)
        except Exception as e:
            self.session.fail(e)
            raise

        self.session.mark_launched(handle)
        self.session.start()

    def finish_monitoring(self) -> FinishReport:
        """Stops the sensor. Never raises for sensor-side problems."""
        report = self.session.finish()
        self._collect(report)
        return report

    def shutdown_container(self) -> TeardownReport:
        """Closes channels and removes the container. Safe to call repeatedly."""
        report = self.teardown.shutdown_container(self.handle, self.session.client)
        self._collect(report)
        return report

    def has_collected_data(self) -> bool:
        return self.post_processor.has_collected_data()

    def process_collected_data(self) -> List[str]:
        return self.post_processor.process_collected_data()

    def run(self, wait: Optional[Callable[[], None]] = None) -> RunReport:
        """
        Runs the whole inspection: launch, monitor, wait, finish, teardown and
        profile generation. Teardown always happens once a launch was tried.

        :param wait: Called while the sensor observes the application, e.g.
            to sleep or wait for the user.
        :return: The outcome of the run.
        """
        report = RunReport()
        try:
            self.run_container()
            report.container_name = self.container_name
            if wait is not None:
                wait()
            report.finish = self.finish_monitoring()
        finally:
            report.teardown = self.shutdown_container()

        report.has_collected_data = self.has_collected_data()
        if report.has_collected_data:
            report.profiles = self.process_collected_data()
        else:
            logger.warning("no data collected", artifacts=self.image.artifact_location)
        report.warnings = list(self.warnings)
        return report

    def _collect(self, report: StepReport):
        for outcome in report.warnings:
            self.warnings.append(f"{outcome.step}: {outcome.detail}")
