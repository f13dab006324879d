"""
Unit tests for the launch spec builder and container launcher.
"""
import re
from datetime import datetime, timezone

import pytest
from docker.errors import APIError

from cprobe.errors import FatalLaunchError, MissingCommsPortsError, MissingNetworkInfoError
from cprobe.MANAGERS.container_launcher import (
    ContainerLauncher,
    LaunchSpecBuilder,
    generate_container_name,
    merge_exposed_ports,
)
from cprobe.MODELS.container_overrides import ContainerOverrides, VolumeMount
from cprobe.MODELS.inspector_config import InspectorConfig

from conftest import FakeRuntime, default_container_info


def make_builder(config, **kwargs):
    return LaunchSpecBuilder(config, "example/app:latest", "/state/images/abc", **kwargs)


class TestLaunchSpecBuilder:
    """Tests for LaunchSpecBuilder."""

    def test_forced_binds_follow_user_binds(self, config):
        """Artifacts (rw) and sensor (ro) binds are always added last."""
        mounts = [VolumeMount(source="/data", destination="/var/data", options="ro")]
        spec = make_builder(config, volume_mounts=mounts).build("probe")
        assert spec.binds == [
            "/data:/var/data:ro",
            "/state/images/abc/artifacts:/opt/dockerslim/artifacts",
            f"{config.sensor_bin_local}:/opt/dockerslim/bin/sensor:ro",
        ]

    def test_sensor_entrypoint_and_privileges(self, config):
        """The sensor runs as entrypoint with elevated privileges."""
        spec = make_builder(config).build("probe")
        assert spec.entrypoint == ["/opt/dockerslim/bin/sensor"]
        assert spec.cmd == []
        assert spec.publish_all_ports is True
        assert spec.privileged is True
        assert spec.cap_add == ["SYS_ADMIN"]

    def test_debug_flag(self, config):
        """Debug mode passes -d to the sensor."""
        assert make_builder(config, debug=True).build("probe").cmd == ["-d"]

    def test_env_hostname_and_labels(self, config):
        """Env and hostname are copied; the type label is always set."""
        overrides = ContainerOverrides(env=["A=1"], hostname="box", labels={"team": "x", "type": "mine"})
        spec = make_builder(config, overrides=overrides).build("probe")
        assert spec.env == ["A=1"]
        assert spec.hostname == "box"
        assert spec.labels == {"team": "x", "type": "dockerslim"}

    def test_reserved_ports_only(self, config):
        """Without user ports only the comms ports are exposed."""
        spec = make_builder(config).build("probe")
        assert set(spec.exposed_ports) == {"65501/tcp", "65502/tcp"}
        assert spec.port_conflicts == []

    def test_user_port_collision(self, config):
        """A colliding user port is replaced by the reserved one and reported."""
        overrides = ContainerOverrides(exposed_ports={"8080/tcp": {}, "65501/tcp": {"x": "y"}})
        spec = make_builder(config, overrides=overrides).build("probe")
        assert sorted(spec.exposed_ports) == ["65501/tcp", "65502/tcp", "8080/tcp"]
        assert spec.exposed_ports["65501/tcp"] == {}
        assert spec.port_conflicts == ["65501/tcp"]

    def test_custom_reserved_ports(self, tmp_path):
        """Reserved ports come from the config."""
        config = InspectorConfig(cmd_port="7001/tcp", evt_port="7002/tcp",
                                 sensor_bin_local=str(tmp_path / "sensor"))
        spec = make_builder(config).build("probe")
        assert set(spec.exposed_ports) == {"7001/tcp", "7002/tcp"}

    def test_optional_network_settings(self, config):
        """Network options are only set when given."""
        spec = make_builder(config).build("probe")
        assert spec.network_mode is None
        assert spec.links == [] and spec.extra_hosts == [] and spec.dns == [] and spec.dns_search == []

        overrides = ContainerOverrides(network="host")
        spec = make_builder(config, overrides=overrides, links=["db:database"],
                            extra_hosts=["api:10.0.0.1"], dns_servers=["8.8.8.8"],
                            dns_search_domains=["corp"]).build("probe")
        assert spec.network_mode == "host"
        assert spec.links == ["db:database"]
        assert spec.extra_hosts == ["api:10.0.0.1"]
        assert spec.dns == ["8.8.8.8"]
        assert spec.dns_search == ["corp"]


class TestHelpers:
    """Tests for module helpers."""

    def test_merge_exposed_ports_no_duplicates(self):
        """One entry per distinct key."""
        merged, conflicts = merge_exposed_ports({"65502/tcp": {}}, ["65501/tcp", "65502/tcp"])
        assert len(merged) == 2
        assert conflicts == ["65502/tcp"]

    def test_container_name(self):
        """Names carry the pid and a UTC timestamp."""
        now = datetime(2024, 5, 1, 12, 30, 45, tzinfo=timezone.utc)
        assert generate_container_name("dockerslimk", pid=42, now=now) == "dockerslimk_42_20240501123045"
        assert re.match(r"^dockerslimk_\d+_\d{14}$", generate_container_name("dockerslimk"))


class TestContainerLauncher:
    """Tests for ContainerLauncher."""

    def test_launch_order_and_handle(self, config):
        """create, start, inspect run in order and fill the handle."""
        runtime = FakeRuntime()
        spec = make_builder(config).build("probe")
        handle = ContainerLauncher(runtime, config).launch(spec)
        assert runtime.calls == ["create", "start", "inspect"]
        assert handle.id == "c0ffee"
        assert handle.name == "probe"
        assert "65501/tcp" in handle.port_bindings()

    def test_missing_network_info(self, config):
        """No network settings is fatal."""
        info = default_container_info()
        info["NetworkSettings"] = None
        launcher = ContainerLauncher(FakeRuntime(info=info), config)
        with pytest.raises(MissingNetworkInfoError):
            launcher.launch(make_builder(config).build("probe"))
        assert launcher.handle is not None

    def test_missing_comms_ports(self, config):
        """Fewer bindings than reserved ports is fatal."""
        info = default_container_info()
        info["NetworkSettings"]["Ports"]["65502/tcp"] = None
        launcher = ContainerLauncher(FakeRuntime(info=info), config)
        with pytest.raises(MissingCommsPortsError) as exc:
            launcher.launch(make_builder(config).build("probe"))
        assert isinstance(exc.value, FatalLaunchError)
        assert exc.value.found == 1

    def test_runtime_errors_propagate(self, config):
        """API errors from start are not wrapped."""
        runtime = FakeRuntime(start_error=APIError("boom"))
        launcher = ContainerLauncher(runtime, config)
        with pytest.raises(APIError):
            launcher.launch(make_builder(config).build("probe"))
        assert runtime.calls == ["create", "start"]
        assert launcher.handle.id == "c0ffee"
