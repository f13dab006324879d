"""
Utilities for resolving the full command of the probed application.
"""
from typing import List, Optional

from ..MODELS.container_overrides import ContainerOverrides, ImageDefaults


class EntrypointExecutor:
    """
    Handles the merging of ENTRYPOINT and CMD with user overrides.
    """
    def get_full_command(self, entrypoint: List[str], cmd: List[str]) -> List[str]:
        """
        Combines entrypoint and cmd into a single command list.

        :param entrypoint: The ENTRYPOINT list.
        :param cmd: The CMD list.
        :return: The full command list.
        """
        return list(entrypoint) + list(cmd)

    def resolve(self, defaults: ImageDefaults, overrides: Optional[ContainerOverrides]) -> List[str]:
        """
        Resolves the "fat" container command.

        Entrypoint and cmd are decided independently: a non-empty override or
        an explicit clear request wins (clearing with no replacement yields an
        empty list), otherwise the image default is kept.

        :param defaults: ENTRYPOINT/CMD recorded in the image.
        :param overrides: User overrides, or None.
        :return: entrypoint followed by cmd.
        """
        entrypoint = defaults.entrypoint
        cmd = defaults.cmd

        if overrides is not None:
            if overrides.entrypoint or overrides.clear_entrypoint:
                entrypoint = overrides.entrypoint
            if overrides.cmd or overrides.clear_cmd:
                cmd = overrides.cmd

        return self.get_full_command(entrypoint, cmd)


def resolve_fat_container_cmd(defaults: ImageDefaults,
                              overrides: Optional[ContainerOverrides]) -> List[str]:
    """Module-level shortcut for EntrypointExecutor().resolve()."""
    return EntrypointExecutor().resolve(defaults, overrides)
