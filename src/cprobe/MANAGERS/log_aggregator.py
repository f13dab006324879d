"""
Fetching and printing the probed container's output.
"""
import sys
from typing import Optional, TextIO

from ..RUNNERS.docker_runtime import DockerRuntime


class LogAggregator:
    """
    Collects stdout and stderr of a container and prints them.
    """
    def __init__(self, runtime: DockerRuntime, out: Optional[TextIO] = None):
        """
        Initializes the log aggregator.

        :param runtime: Runtime the logs are fetched from.
        :param out: Where to print, defaults to sys.stdout.
        """
        self.runtime = runtime
        self.out = out

    def show_logs(self, container_id: str):
        """
        Prints the container's stdout and stderr.
        Fetch errors propagate so the caller can record them.

        :param container_id: The container to read from.
        """
        stdout, stderr = self.runtime.logs(container_id)
        out = self.out or sys.stdout
        print("cprobe: container stdout:", file=out)
        out.write(stdout)
        print("cprobe: container stderr:", file=out)
        out.write(stderr)
        print("cprobe: end of container logs =============", file=out)
