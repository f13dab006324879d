"""
Teardown of the probed container and its comms channels.
"""
from typing import Callable, List, Optional, Tuple

from docker.errors import DockerException

from ..errors import ContainerNotRunning, ProbeError
from ..IPC.sensor_client import SensorClient
from ..MODELS.inspector_config import InspectorConfig
from ..MODELS.launch_spec import ContainerHandle
from ..MODELS.reports import StepStatus, TeardownReport
from ..RUNNERS.docker_runtime import DockerRuntime
from ..UTILS.logger import get_logger
from .log_aggregator import LogAggregator

logger = get_logger(__name__)

# errors a teardown step records instead of raising
_STEP_ERRORS = (DockerException, ProbeError, OSError)


class TeardownController:
    """
    Runs the teardown steps in a fixed order: close channels, show logs,
    stop, remove. Every step runs even when an earlier one failed, and a
    second shutdown is a no-op.
    """

    def __init__(self,
                 runtime: DockerRuntime,
                 config: InspectorConfig,
                 show_logs: bool = False,
                 log_aggregator: Optional[LogAggregator] = None):
        """
        :param runtime: Container runtime.
        :param config: Supplies the stop grace period.
        :param show_logs: Print container logs before stopping it.
        :param log_aggregator: Log printer, defaults to one over ``runtime``.
        """
        self.runtime = runtime
        self.config = config
        self.show_logs = show_logs
        self.log_aggregator = log_aggregator or LogAggregator(runtime)
        self._done = False

    @property
    def done(self) -> bool:
        return self._done

    def shutdown_container(self,
                           handle: Optional[ContainerHandle],
                           client: Optional[SensorClient] = None) -> TeardownReport:
        """
        Tears everything down.

        :param handle: The launched container, or None if creation failed.
        :param client: The sensor client, or None if channels never opened.
        :return: One outcome per executed step; empty on repeated calls.
        """
        report = TeardownReport()
        if self._done:
            return report
        self._done = True

        steps: List[Tuple[str, Callable[[], None]]] = [
            ("shutdown_channels", lambda: self._shutdown_channels(client)),
        ]
        if handle is not None:
            if self.show_logs:
                steps.append(("show_logs", lambda: self._show_logs(handle, report)))
            steps.append(("stop_container",
                          lambda: self.runtime.stop(handle.id, timeout=self.config.stop_timeout)))
            steps.append(("remove_container", lambda: self.runtime.remove(handle.id)))

        for name, step in steps:
            try:
                step()
            except ContainerNotRunning as e:
                report.record(name, StepStatus.INFO, str(e))
                logger.info("can't stop the container (container is not running)")
                if not report.logs_shown:
                    self._run_late_logs(handle, report)
            except _STEP_ERRORS as e:
                report.record(name, StepStatus.WARNING, str(e))
                logger.warning("teardown step failed", step=name, error=str(e))
            else:
                report.record(name)

        if handle is not None:
            handle.invalidate()
            logger.info("container teardown finished", container_id=handle.id, warnings=len(report.warnings))
        return report

    def _shutdown_channels(self, client: Optional[SensorClient]):
        if client is not None:
            client.shutdown()

    def _show_logs(self, handle: ContainerHandle, report: TeardownReport):
        self.log_aggregator.show_logs(handle.id)
        report.logs_shown = True

    def _run_late_logs(self, handle: ContainerHandle, report: TeardownReport):
        try:
            self._show_logs(handle, report)
        except _STEP_ERRORS as e:
            report.record("show_logs", StepStatus.WARNING, str(e))
            logger.info("error getting container logs", container_id=handle.id, error=str(e))
        else:
            report.record("show_logs")
