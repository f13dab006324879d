"""
Command Line Interface for cprobe.
"""
import os
import shlex
import time

import click
from docker.errors import DockerException

from ..errors import ProbeError
from ..MANAGERS.image_inspector import ImageInspector
from ..MANAGERS.inspector import Inspector
from ..MODELS.container_overrides import ContainerOverrides, VolumeMount
from ..PARSERS.config_parser import ConfigParser
from ..PARSERS.env_parser import EnvParser
from ..RUNNERS.docker_runtime import DockerRuntime


def _port_key(port: str) -> str:
    return port if "/" in port else f"{port}/tcp"


def build_overrides(entrypoint, cmd, clear_entrypoint, clear_cmd, env, env_file, label,
                    hostname, expose, network) -> ContainerOverrides:
    """Collects the container override options into a ContainerOverrides."""
    env_vars = {}
    if env_file:
        env_vars.update(EnvParser.parse(env_file))
    env_vars.update(EnvParser.parse_pairs(env))

    return ContainerOverrides(
        entrypoint=shlex.split(entrypoint) if entrypoint else [],
        cmd=shlex.split(cmd) if cmd else [],
        clear_entrypoint=clear_entrypoint,
        clear_cmd=clear_cmd,
        env=EnvParser.to_env_list(env_vars),
        labels=EnvParser.parse_pairs(label),
        hostname=hostname or "",
        exposed_ports={_port_key(p): {} for p in expose},
        network=network or "",
    )


@click.group()
def cli():
    """
    cprobe - Container Probe.

    Runs an instrumented copy of a container image, observes the application
    with the sensor and generates AppArmor and seccomp profiles.
    """


@cli.command()
@click.argument('image')
@click.option('--entrypoint', help='Override the image ENTRYPOINT')
@click.option('--cmd', help='Override the image CMD')
@click.option('--clear-entrypoint', is_flag=True, help='Drop the image ENTRYPOINT')
@click.option('--clear-cmd', is_flag=True, help='Drop the image CMD')
@click.option('--env', '-e', multiple=True, help='KEY=VALUE environment variable')
@click.option('--env-file', type=click.Path(exists=True, dir_okay=False), help='.env file with environment variables')
@click.option('--label', '-l', multiple=True, help='KEY=VALUE container label')
@click.option('--hostname', help='Container hostname')
@click.option('--expose', multiple=True, help='Extra port to expose (PORT[/PROTO])')
@click.option('--network', help='Container network mode')
@click.option('--link', multiple=True, help='Container link (NAME:ALIAS)')
@click.option('--etc-hosts-map', multiple=True, help='Extra /etc/hosts entry (HOST:IP)')
@click.option('--dns', multiple=True, help='DNS server')
@click.option('--dns-search', multiple=True, help='DNS search domain')
@click.option('--mount', multiple=True, help='Volume bind (SRC:DST[:OPTS])')
@click.option('--exclude', multiple=True, help='Path the sensor should ignore')
@click.option('--include', multiple=True, help='Path the sensor should always keep')
@click.option('--state-path', default='.cprobe', show_default=True, help='State directory')
@click.option('--config', 'config_path', type=click.Path(dir_okay=False), help='Inspector config YAML')
@click.option('--show-clogs', is_flag=True, help='Print container logs during teardown')
@click.option('--debug', is_flag=True, help='Run the sensor in debug mode')
@click.option('--continue-after', default=0, show_default=True,
              help='Seconds to monitor before finishing; 0 waits for Enter')
@click.pass_context
def run(ctx, image, entrypoint, cmd, clear_entrypoint, clear_cmd, env, env_file, label, hostname,
        expose, network, link, etc_hosts_map, dns, dns_search, mount, exclude, include,
        state_path, config_path, show_clogs, debug, continue_after):
    """Probe IMAGE and generate its security profiles."""
    click.echo("cprobe[run]: state=started")
    click.echo(f"cprobe[run]: info=params target={image} continue.mode={continue_after or 'enter'}")

    try:
        config = ConfigParser().parse(config_path)
        overrides = build_overrides(entrypoint, cmd, clear_entrypoint, clear_cmd, env, env_file,
                                    label, hostname, expose, network)
        volume_mounts = [VolumeMount.parse(m) for m in mount]

        runtime = DockerRuntime()
        image_inspector = ImageInspector(runtime, state_path)
        image_info = image_inspector.inspect(image, artifacts_dir=config.artifacts_dir)
        local_volume_path = os.path.dirname(image_info.artifact_location)

        inspector = Inspector(
            runtime,
            image_info,
            local_volume_path,
            overrides=overrides,
            config=config,
            volume_mounts=volume_mounts,
            links=list(link),
            extra_hosts=list(etc_hosts_map),
            dns_servers=list(dns),
            dns_search_domains=list(dns_search),
            show_container_logs=show_clogs,
            exclude_paths=exclude,
            include_paths=include,
            debug=debug,
        )

        def wait():
            click.echo("cprobe[run]: state=monitoring")
            if continue_after > 0:
                time.sleep(continue_after)
            else:
                try:
                    click.prompt("cprobe[run]: press Enter when you are done using the container",
                                 default="", show_default=False, prompt_suffix="...")
                except click.Abort:
                    # stdin closed
                    click.echo()

        report = inspector.run(wait=wait)
    except (ProbeError, DockerException, ValueError) as e:
        click.echo(f"cprobe[run]: error => {e}")
        click.echo("cprobe[run]: state=exited")
        ctx.exit(1)
        return

    for warning in report.warnings:
        click.echo(f"cprobe[run]: warning => {warning}")
    if report.finish is not None and report.finish.event_timed_out:
        click.echo("cprobe[run]: info=sensor did not report completion in time")
    if not report.has_collected_data:
        click.echo("cprobe[run]: info=no data collected")
    for path in report.profiles:
        click.echo(f"cprobe[run]: info=profile path={path}")
    click.echo("cprobe[run]: state=done")


def main():
    """
    Main entry point for the CLI.
    """
    cli()


if __name__ == '__main__':
    main()
