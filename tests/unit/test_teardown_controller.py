"""
Unit tests for container teardown.
"""
import io

from docker.errors import APIError, NotFound

from cprobe.MANAGERS.log_aggregator import LogAggregator
from cprobe.MANAGERS.teardown_controller import TeardownController
from cprobe.MODELS.launch_spec import ContainerHandle
from cprobe.MODELS.reports import StepStatus

from conftest import FakeRuntime


class FakeClient:
    def __init__(self):
        self.shutdown_calls = 0

    def shutdown(self):
        self.shutdown_calls += 1


def make_controller(runtime, config, show_logs=False):
    out = io.StringIO()
    controller = TeardownController(runtime, config, show_logs=show_logs,
                                    log_aggregator=LogAggregator(runtime, out=out))
    return controller, out


def make_handle():
    return ContainerHandle(id="c0ffee", name="probe")


class TestTeardownController:
    """Tests for TeardownController."""

    def test_steps_in_order(self, config):
        """Channels first, then stop, then remove."""
        runtime = FakeRuntime()
        controller, _ = make_controller(runtime, config)
        client = FakeClient()
        report = controller.shutdown_container(make_handle(), client)
        assert report.steps() == ["shutdown_channels", "stop_container", "remove_container"]
        assert runtime.calls == ["stop", "remove"]
        assert client.shutdown_calls == 1
        assert report.warnings == []

    def test_logs_shown_before_stop(self, config):
        runtime = FakeRuntime()
        controller, out = make_controller(runtime, config, show_logs=True)
        report = controller.shutdown_container(make_handle())
        assert runtime.calls == ["logs", "stop", "remove"]
        assert report.logs_shown
        assert "app out" in out.getvalue()
        assert "app err" in out.getvalue()

    def test_not_running_is_informational(self, config):
        """An exited container still gets its logs shown and is removed."""
        runtime = FakeRuntime(running=False)
        controller, out = make_controller(runtime, config)
        report = controller.shutdown_container(make_handle())
        assert runtime.calls == ["stop", "logs", "remove"]
        assert report.warnings == []
        statuses = {o.step: o.status for o in report.outcomes}
        assert statuses["stop_container"] == StepStatus.INFO
        assert statuses["remove_container"] == StepStatus.OK
        assert "app out" in out.getvalue()

    def test_not_running_logs_not_repeated(self, config):
        runtime = FakeRuntime(running=False)
        controller, _ = make_controller(runtime, config, show_logs=True)
        controller.shutdown_container(make_handle())
        assert runtime.calls.count("logs") == 1

    def test_stop_failure_still_removes(self, config):
        runtime = FakeRuntime(stop_error=APIError("stop failed"))
        controller, _ = make_controller(runtime, config)
        report = controller.shutdown_container(make_handle())
        assert runtime.calls == ["stop", "remove"]
        assert [o.step for o in report.warnings] == ["stop_container"]

    def test_remove_and_log_failures_are_warnings(self, config):
        runtime = FakeRuntime(remove_error=NotFound("gone"), logs_error=APIError("no logs"))
        controller, _ = make_controller(runtime, config, show_logs=True)
        report = controller.shutdown_container(make_handle())
        assert [o.step for o in report.warnings] == ["show_logs", "remove_container"]

    def test_idempotent(self, config):
        """A second teardown does nothing."""
        runtime = FakeRuntime()
        controller, _ = make_controller(runtime, config)
        handle = make_handle()
        client = FakeClient()
        controller.shutdown_container(handle, client)
        second = controller.shutdown_container(handle, client)
        assert second.outcomes == []
        assert runtime.calls.count("remove") == 1
        assert client.shutdown_calls == 1
        assert not handle.valid

    def test_no_container(self, config):
        """Without a handle only the channels are closed."""
        runtime = FakeRuntime()
        controller, _ = make_controller(runtime, config)
        report = controller.shutdown_container(None, None)
        assert report.steps() == ["shutdown_channels"]
        assert runtime.calls == []
