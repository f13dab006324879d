"""
Model of the report the sensor writes into the artifacts directory.
"""
import json
import os
from typing import List
from pydantic import BaseModel, ConfigDict


class ReportFile(BaseModel):
    """A file the application touched."""
    model_config = ConfigDict(extra="ignore")

    file_path: str
    read: bool = True
    write: bool = False
    execute: bool = False


class ContainerReport(BaseModel):
    """
    Collected runtime behaviour of the probed application. Sections the
    profile generators do not use are ignored.
    """
    model_config = ConfigDict(extra="ignore")

    executables: List[str] = []
    files: List[ReportFile] = []
    syscalls: List[str] = []

    @classmethod
    def load(cls, artifact_location: str, file_name: str) -> "ContainerReport":
        """
        Reads the report from the artifact location.

        :param artifact_location: Directory holding the sensor artifacts.
        :param file_name: Report file name.
        """
        path = os.path.join(artifact_location, file_name)
        with open(path, "r") as f:
            data = json.load(f)
        return cls.model_validate(data)
