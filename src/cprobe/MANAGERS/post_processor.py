"""
Post-processing of the artifacts collected by the sensor.
"""
import os
from typing import Callable, List, Optional, Tuple

from ..errors import ProfileGenerationError
from ..MODELS.container_overrides import ImageInfo
from ..MODELS.inspector_config import InspectorConfig
from ..SECURITY.apparmor import generate_apparmor_profile
from ..SECURITY.seccomp import generate_seccomp_profile
from ..UTILS.logger import get_logger

logger = get_logger(__name__)

# (artifact_location, profile_name, report_file_name) -> written path
ProfileGenerator = Callable[[str, str, str], str]


class PostProcessor:
    """
    Hands the collected artifacts to the profile generators, in order.
    """
    def __init__(self,
                 image: ImageInfo,
                 config: InspectorConfig,
                 generators: Optional[List[Tuple[str, ProfileGenerator]]] = None):
        """
        :param image: Supplies the artifact location and profile names.
        :param config: Supplies the report file name.
        :param generators: ``(kind, generator)`` pairs; kind is ``apparmor``
            or ``seccomp``. Defaults to the built-in generators.
        """
        self.image = image
        self.config = config
        self.generators = generators if generators is not None else [
            ("apparmor", generate_apparmor_profile),
            ("seccomp", generate_seccomp_profile),
        ]

    @property
    def report_path(self) -> str:
        return os.path.join(self.image.artifact_location, self.config.report_file_name)

    def has_collected_data(self) -> bool:
        """True if the sensor wrote its report."""
        return os.path.exists(self.report_path)

    def _profile_name(self, kind: str) -> str:
        if kind == "apparmor":
            return self.image.apparmor_profile_name
        return self.image.seccomp_profile_name

    def process_collected_data(self) -> List[str]:
        """
        Runs every generator; the first failure stops the rest.

        :return: Paths of the generated profiles.
        :raises ProfileGenerationError: A generator failed.
        """
        paths = []
        for kind, generator in self.generators:
            logger.info("generating profile", kind=kind)
            try:
                path = generator(self.image.artifact_location,
                                 self._profile_name(kind),
                                 self.config.report_file_name)
            except Exception as e:
                raise ProfileGenerationError(kind, e) from e
            paths.append(path)
        return paths
