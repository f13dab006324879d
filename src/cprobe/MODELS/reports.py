"""
Outcome records for the best-effort phases of a run.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .ipc_messages import Event


class StepStatus(str, Enum):
    """Result of a single best-effort step."""

    OK = "ok"
    INFO = "info"  # expected non-success, e.g. container already exited
    WARNING = "warning"


@dataclass
class StepOutcome:
    """What happened when one step ran."""

    step: str
    status: StepStatus = StepStatus.OK
    detail: str = ""


@dataclass
class StepReport:
    """Ordered outcomes of a sequence of steps."""

    outcomes: List[StepOutcome] = field(default_factory=list)

    def record(self, step: str, status: StepStatus = StepStatus.OK, detail: str = "") -> StepOutcome:
        outcome = StepOutcome(step=step, status=status, detail=detail)
        self.outcomes.append(outcome)
        return outcome

    @property
    def warnings(self) -> List[StepOutcome]:
        return [o for o in self.outcomes if o.status == StepStatus.WARNING]

    def steps(self) -> List[str]:
        return [o.step for o in self.outcomes]


@dataclass
class FinishReport(StepReport):
    """Outcome of the stop-monitor / wait / shutdown-sensor handshake."""

    event: Optional[Event] = None
    event_timed_out: bool = False


@dataclass
class TeardownReport(StepReport):
    """Outcome of container and channel teardown."""

    logs_shown: bool = False


@dataclass
class RunReport:
    """Everything a completed inspection run produced."""

    container_name: str = ""
    finish: Optional[FinishReport] = None
    teardown: Optional[TeardownReport] = None
    has_collected_data: bool = False
    profiles: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
