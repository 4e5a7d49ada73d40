"""Service interfaces the round-trip driver talks to, and the handles they exchange."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Union, TYPE_CHECKING

if TYPE_CHECKING:
    from af_roundtrip.plan import AutomationPlan

PathLike = Union[str, Path]


@dataclass
class Context:
    """Handle to a context held in the active session."""

    name: str
    id: Optional[str] = None
    definition: Dict[str, Any] = field(default_factory=dict)


@dataclass
class PlanProgress:
    """Progress report of a plan run."""

    plan_id: str
    started: Optional[str] = None
    finished: Optional[str] = None
    info: List[str] = field(default_factory=list)
    warn: List[str] = field(default_factory=list)
    error: List[str] = field(default_factory=list)

    @property
    def done(self) -> bool:
        return bool(self.finished)

    @property
    def succeeded(self) -> bool:
        return self.done and not self.error


class SessionService(Protocol):
    """Context management of the session the contexts live in."""

    def import_context(self, path: PathLike) -> Context:
        """Import a context file and return the registered context."""
        ...

    def delete_context(self, context: Context) -> None:
        ...

    def get_context(self, name: str) -> Context:
        """Look up a context by name; raises ContextNotFoundError if absent."""
        ...

    def export_context(self, context: Context, out_path: PathLike) -> None:
        ...


class PlanService(Protocol):
    """Construction, registration and execution of automation plans."""

    def create_plan(self) -> "AutomationPlan":
        ...

    def register_plan(self, plan: "AutomationPlan") -> None:
        ...

    def run_plan(self, plan: "AutomationPlan", wait: bool = True) -> Optional[PlanProgress]:
        """Run a registered plan, blocking until it finishes when wait is set."""
        ...
