"""
Messages exchanged with the in-container sensor.

Commands travel over the command channel as ``{"name": ..., "data": {...}}``
JSON documents; the sensor answers each with a response document. Events
arrive on the event channel as ``{"name": ...}`` documents.
"""
import json
from enum import Enum
from typing import ClassVar, List, Optional
from pydantic import BaseModel, ConfigDict, ValidationError

from ..errors import ChannelError


class Command(BaseModel):
    """Base class for commands sent to the sensor."""
    model_config = ConfigDict(frozen=True)

    name: ClassVar[str] = ""

    def encode(self) -> bytes:
        """Serializes the command, leaving out unset optional fields."""
        data = self.model_dump(exclude_none=True)
        return json.dumps({"name": self.name, "data": data}).encode("utf-8")


class StartMonitor(Command):
    """Start observing the target application."""
    name: ClassVar[str] = "cmd.monitor.start"

    app_name: str
    app_args: Optional[List[str]] = None
    excludes: Optional[List[str]] = None
    includes: Optional[List[str]] = None


class StopMonitor(Command):
    """Stop observing and flush collected data."""
    name: ClassVar[str] = "cmd.monitor.stop"


class ShutdownSensor(Command):
    """Ask the sensor process to exit."""
    name: ClassVar[str] = "cmd.sensor.shutdown"


class ResponseStatus(str, Enum):
    """Status carried by a command response."""

    SUCCESS = "success"
    ERROR = "error"


class CommandResponse(BaseModel):
    """The sensor's reply to a command."""
    status: ResponseStatus
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == ResponseStatus.SUCCESS

    @classmethod
    def decode(cls, raw: bytes) -> "CommandResponse":
        try:
            return cls.model_validate_json(raw)
        except ValidationError as e:
            raise ChannelError(f"malformed command response: {e}") from e


class Event(BaseModel):
    """
    A notification from the sensor. Only the terminal "done" event is defined;
    other names decode fine and are reported as-is.
    """
    DONE: ClassVar[str] = "monitor.finish.completed"

    name: str

    @property
    def is_done(self) -> bool:
        return self.name == self.DONE

    @classmethod
    def decode(cls, raw: bytes) -> "Event":
        try:
            return cls.model_validate_json(raw)
        except ValidationError as e:
            raise ChannelError(f"malformed sensor event: {e}") from e
