"""
Reading the target image's metadata and preparing its state directories.
"""
import os
import re
from typing import Any, Dict

from ..MODELS.container_overrides import ImageDefaults, ImageInfo
from ..RUNNERS.docker_runtime import DockerRuntime


def _profile_base(image_ref: str) -> str:
    name = image_ref.rsplit("/", 1)[-1]
    return re.sub(r"[^A-Za-z0-9_.-]", "-", name)


class ImageInspector:
    """
    Supplies image defaults and artifact paths for a run.
    """
    def __init__(self, runtime: DockerRuntime, state_path: str):
        """
        :param runtime: Used to inspect the image.
        :param state_path: Root of the per-image state directories.
        """
        self.runtime = runtime
        self.state_path = os.path.abspath(state_path)

    def local_volume_path(self, image_id: str) -> str:
        return os.path.join(self.state_path, "images", image_id.replace("sha256:", ""))

    def inspect(self, image_ref: str, artifacts_dir: str = "artifacts") -> ImageInfo:
        """
        Inspects the image and creates its artifact directory.

        :param image_ref: Image name or id.
        :param artifacts_dir: Name of the artifacts subdirectory.
        :return: Image defaults and output locations.
        """
        data: Dict[str, Any] = self.runtime.inspect_image(image_ref)
        config = data.get("Config") or {}
        image_id = data.get("Id", image_ref)

        artifact_location = os.path.join(self.local_volume_path(image_id), artifacts_dir)
        os.makedirs(artifact_location, exist_ok=True)

        base = _profile_base(image_ref)
        return ImageInfo(
            ref=image_ref,
            image_id=image_id,
            defaults=ImageDefaults(
                entrypoint=config.get("Entrypoint") or [],
                cmd=config.get("Cmd") or [],
            ),
            artifact_location=artifact_location,
            apparmor_profile_name=f"{base}-apparmor-profile",
            seccomp_profile_name=f"{base}-seccomp.json",
        )
