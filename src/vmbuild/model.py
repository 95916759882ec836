# model.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


def _freeze(value: Any) -> Any:
    if isinstance(value, dict):
        return tuple(sorted((k, _freeze(v)) for k, v in value.items()))
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    return value


class Privilege(str, Enum):
    """Who a step runs as inside the environment."""
    ELEVATED = "elevated"
    UNPRIVILEGED = "unprivileged"


@dataclass(frozen=True)
class Step:
    """
    A single named unit of provisioning work.

    kind:
      - "sh"          run each instruction in `run`, in order
      - "toolchain"   run the toolchain installer described by `data`
      - "build-test"  run the build/test stage described by `data`
    """
    name: str
    run: tuple[str, ...] = ()
    privilege: Privilege = Privilege.UNPRIVILEGED
    cwd: str | None = None
    kind: str = "sh"
    data: Tuple[Tuple[str, Any], ...] = ()

    def __post_init__(self):
        # accept lists/dicts at definition time, store them frozen
        object.__setattr__(self, "run", tuple(self.run))
        data = self.data.items() if isinstance(self.data, dict) else (self.data or ())
        object.__setattr__(self, "data", tuple(sorted((k, _freeze(v)) for k, v in data)))

    @property
    def config(self) -> Dict[str, Any]:
        """`data` as a fresh dict (mutating it doesn't touch the step)."""
        return dict(self.data)


class PipelineState(str, Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class PipelineResult:
    """Outcome of one pipeline run."""
    state: PipelineState
    executed: List[str] = field(default_factory=list)
    error: Optional[Exception] = None   # PipelineError when state is FAILED
    failed_index: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.state is PipelineState.SUCCEEDED

    def exit_code(self) -> int:
        """
        Process exit code for this result:
          0       every step succeeded
          3       environment unavailable before any step ran
          10 + i  step i failed (capped at 255 so it never wraps to 0)
        """
        if self.ok:
            return 0
        if self.failed_index is None:
            return 3
        return min(10 + self.failed_index, 255)
