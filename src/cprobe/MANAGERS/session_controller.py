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
Monitoring session with the in-container sensor: start monitoring, then stop,
wait for the sensor to report completion and shut it down.
"""
from enum import Enum
from typing import Dict, Iterable, List, Optional, Set

from ..errors import (
    ChannelError,
    ChannelTimeoutError,
    EmptyCommandError,
    FatalLaunchError,
    InspectorStateError,
    StartMonitorError,
)
from ..IPC.sensor_client import SensorClient
from ..MODELS.ipc_messages import ShutdownSensor, StartMonitor, StopMonitor
from ..MODELS.launch_spec import ContainerHandle
from ..MODELS.reports import FinishReport, StepStatus
from ..UTILS.logger import get_logger
from .network_manager import NetworkManager

logger = get_logger(__name__)


class SessionState(str, Enum):
    """Phases of one monitoring session."""

    IDLE = "idle"
    LAUNCHED = "launched"
    CHANNELS_READY = "channels_ready"
    MONITORING = "monitoring"
    FINISHING = "finishing"
    FINISHED = "finished"
    FAILED = "failed"


_TRANSITIONS: Dict[SessionState, Set[SessionState]] = {
    SessionState.IDLE: {SessionState.LAUNCHED, SessionState.FAILED},
    SessionState.LAUNCHED: {SessionState.CHANNELS_READY, SessionState.FAILED},
    SessionState.CHANNELS_READY: {SessionState.MONITORING, SessionState.FAILED},
    SessionState.MONITORING: {SessionState.FINISHING},
    SessionState.FINISHING: {SessionState.FINISHED},
    SessionState.FINISHED: set(),
    SessionState.FAILED: set(),
}


def sorted_paths(paths: Optional[Iterable[str]]) -> Optional[List[str]]:
    """Sorted list of path keys, or None when there are none."""
    if not paths:
        return None
    return sorted(set(paths))


class MonitoringSession:
    """
    Drives the sensor through one session.

    Only the start phase can fail the run. The finish phase is best-effort:
    every step runs, problems are recorded as warnings, and an event timeout
    counts as completion since the container is torn down right after.
    """

    def __init__(self,
                 network: NetworkManager,
                 fat_container_cmd: List[str],
                 exclude_paths: Optional[Iterable[str]] = None,
                 include_paths: Optional[Iterable[str]] = None):
        """
        :param network: Opens the channels to the sensor.
        :param fat_container_cmd: The application command to monitor.
        :param exclude_paths: Paths the sensor should ignore.
        :param include_paths: Paths the sensor should always keep.
        """
        self.network = network
        self.fat_container_cmd = list(fat_container_cmd)
        self.exclude_paths = exclude_paths
        self.include_paths = include_paths
        self.state = SessionState.IDLE
        self.handle: Optional[ContainerHandle] = None
        self.client: Optional[SensorClient] = None
        self.failure: Optional[Exception] = None

    def _transition(self, new_state: SessionState):
        if new_state not in _TRANSITIONS[self.state]:
            raise InspectorStateError(f"cannot go from {self.state.value} to {new_state.value}")
        logger.debug("session state", old=self.state.value, new=new_state.value)
        self.state = new_state

    def fail(self, error: Exception):
        """Moves the session to FAILED, recording why."""
        self._transition(SessionState.FAILED)
        self.failure = error

    def mark_launched(self, handle: ContainerHandle):
        self._transition(SessionState.LAUNCHED)
        self.handle = handle

    def start_monitor_command(self) -> StartMonitor:
        """
        Builds the StartMonitor command from the resolved application command.

        :raises EmptyCommandError: There is nothing to run.
        """
        if not self.fat_container_cmd:
            raise EmptyCommandError("no entrypoint or cmd to monitor")
        return StartMonitor(
            app_name=self.fat_container_cmd[0],
            app_args=self.fat_container_cmd[1:] or None,
            excludes=sorted_paths(self.exclude_paths),
            includes=sorted_paths(self.include_paths),
        )

    def start(self):
        """
        Opens the channels and tells the sensor to start monitoring.

        :raises FatalLaunchError: Channels could not be set up or the sensor
            did not accept the command. The session is FAILED afterwards.
        """
        if self.state != SessionState.LAUNCHED:
            raise InspectorStateError(f"cannot start monitoring in state {self.state.value}")

        try:
            self.client = self.network.init_channels(self.handle)
        except (FatalLaunchError, ChannelError) as e:
            self.fail(e)
            raise
        self._transition(SessionState.CHANNELS_READY)

        try:
            command = self.start_monitor_command()
            response = self.client.send(command)
        except EmptyCommandError as e:
            self.fail(e)
            raise
        except ChannelError as e:
            error = StartMonitorError(f"start monitor command failed: {e}")
            self.fail(error)
            raise error from e

        if not response.ok:
            error = StartMonitorError(f"sensor rejected start monitor: {response.message or 'error'}")
            self.fail(error)
            raise error

        self._transition(SessionState.MONITORING)
        logger.info("monitoring started", app=command.app_name, args=command.app_args)

    def finish(self) -> FinishReport:
        """
        Stops monitoring, waits for the "done" event and shuts the sensor down.

        :return: What happened at each step.
        """
        if self.state != SessionState.MONITORING:
            raise InspectorStateError(f"cannot finish monitoring in state {self.state.value}")
        self._transition(SessionState.FINISHING)
        report = FinishReport()

        self._send_best_effort(report, "stop_monitor", StopMonitor())

        logger.info("waiting for the sensor to finish its work")
        try:
            report.event = self.client.receive_event()
            if report.event.is_done:
                report.record("wait_event")
            else:
                report.record("wait_event", StepStatus.WARNING, f"unexpected event {report.event.name}")
        except ChannelTimeoutError as e:
            # a slow workload and a dead sensor look the same from here
            report.event_timed_out = True
            report.record("wait_event", StepStatus.INFO, str(e))
            logger.info("timeout waiting for the sensor, assuming it finished")
        except ChannelError as e:
            report.record("wait_event", StepStatus.WARNING, str(e))
            logger.warning("waiting for sensor event failed", error=str(e))

        self._send_best_effort(report, "shutdown_sensor", ShutdownSensor())

        self._transition(SessionState.FINISHED)
        return report

    def _send_best_effort(self, report: FinishReport, step: str, command):
        try:
            response = self.client.send(command)
        except ChannelError as e:
            report.record(step, StepStatus.WARNING, str(e))
            logger.warning("sensor command failed", step=step, error=str(e))
            return
        if response.ok:
            report.record(step)
        else:
            report.record(step, StepStatus.WARNING, response.message or "error response")
            logger.warning("sensor command rejected", step=step, message=response.message)
