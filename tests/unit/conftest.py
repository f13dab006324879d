"""
Fakes for the container runtime and the sensor sockets.
"""
import json
import pytest
import pynng

from cprobe.errors import ContainerNotRunning
from cprobe.MODELS.container_overrides import ImageDefaults, ImageInfo
from cprobe.MODELS.inspector_config import InspectorConfig

CMD_HOST_PORT = "32768"
EVT_HOST_PORT = "32769"

SUCCESS = b'{"status": "success"}'
DONE = b'{"name": "monitor.finish.completed"}'


def timeout_error():
    return pynng.Timeout("Timed out", 5)


def default_container_info():
    return {
        "Id": "c0ffee",
        "State": {"Running": True},
        "NetworkSettings": {
            "Ports": {
                "65501/tcp": [{"HostIp": "0.0.0.0", "HostPort": CMD_HOST_PORT}],
                "65502/tcp": [{"HostIp": "0.0.0.0", "HostPort": EVT_HOST_PORT}],
            }
        },
    }


class FakeRuntime:
    """Records every runtime call in order."""

    def __init__(self, info=None, running=True, start_error=None, stop_error=None,
                 remove_error=None, logs_error=None, image_config=None):
        self.info = default_container_info() if info is None else info
        self.running = running
        self.start_error = start_error
        self.stop_error = stop_error
        self.remove_error = remove_error
        self.logs_error = logs_error
        self.image_config = image_config or {"Entrypoint": None, "Cmd": ["/bin/app", "--flag"]}
        self.calls = []
        self.spec = None

    def create(self, spec):
        self.calls.append("create")
        self.spec = spec
        return "c0ffee"

    def start(self, container_id):
        self.calls.append("start")
        if self.start_error:
            raise self.start_error

    def inspect(self, container_id):
        self.calls.append("inspect")
        return self.info

    def inspect_image(self, image_ref):
        self.calls.append("inspect_image")
        return {"Id": "sha256:abc123", "Config": self.image_config}

    def stop(self, container_id, timeout):
        self.calls.append("stop")
        if not self.running:
            raise ContainerNotRunning(container_id)
        if self.stop_error:
            raise self.stop_error

    def remove(self, container_id):
        self.calls.append("remove")
        if self.remove_error:
            raise self.remove_error

    def logs(self, container_id):
        self.calls.append("logs")
        if self.logs_error:
            raise self.logs_error
        return "app out\n", "app err\n"


class FakeSocket:
    """Plays back scripted replies; a reply may be an exception to raise."""

    def __init__(self, address, replies):
        self.address = address
        self.replies = replies
        self.sent = []
        self.close_calls = 0

    def send(self, payload):
        self.sent.append(payload)

    def recv(self):
        if not self.replies:
            raise timeout_error()
        item = self.replies.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def close(self):
        self.close_calls += 1


class FakeSensor:
    """
    Socket factory standing in for the sensor. Hands out the command socket
    for the command port and the event socket for the event port.
    """

    def __init__(self, cmd_replies=None, events=None, open_error=None):
        self.cmd_replies = list(cmd_replies) if cmd_replies is not None else [SUCCESS] * 3
        self.events = list(events) if events is not None else [DONE]
        self.open_error = open_error
        self.sockets = {}
        self.open_calls = 0

    def __call__(self, address, timeout_ms):
        self.open_calls += 1
        if address.endswith(":" + CMD_HOST_PORT):
            kind, replies = "cmd", self.cmd_replies
        else:
            kind, replies = "evt", self.events
            if self.open_error is not None:
                raise self.open_error
        self.sockets[kind] = FakeSocket(address, replies)
        return self.sockets[kind]

    def sent_commands(self):
        sock = self.sockets.get("cmd")
        if sock is None:
            return []
        return [json.loads(raw) for raw in sock.sent]

    def sent_names(self):
        return [c["name"] for c in self.sent_commands()]


@pytest.fixture
def config(tmp_path):
    return InspectorConfig(sensor_bin_local=str(tmp_path / "sensor"),
                           command_timeout=0.1, event_timeout=0.1)


@pytest.fixture
def runtime():
    return FakeRuntime()


@pytest.fixture
def sensor():
    return FakeSensor()


@pytest.fixture
def image_info(tmp_path):
    artifacts = tmp_path / "images" / "abc123" / "artifacts"
    artifacts.mkdir(parents=True)
    return ImageInfo(
        ref="example/app:latest",
        image_id="sha256:abc123",
        defaults=ImageDefaults(cmd=["/bin/app", "--flag"]),
        artifact_location=str(artifacts),
        apparmor_profile_name="app-apparmor-profile",
        seccomp_profile_name="app-seccomp.json",
    )
