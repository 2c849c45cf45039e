"""Best-effort outbound notifications performed after a local commit.

Callers commit their own state first, then run each dependent call through
:meth:`SideEffectReport.attempt`. A failing call is logged and recorded on the
report; it is never raised, so the committed primary action still succeeds.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class SideEffectOutcome:
    target: str
    ok: bool
    error: Optional[str] = None


@dataclass
class SideEffectReport:
    outcomes: List[SideEffectOutcome] = field(default_factory=list)

    def attempt(self, target: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        try:
            result = fn(*args, **kwargs)
        except Exception as exc:  # downstream failures must not undo committed work
            logger.warning("Downstream notification '%s' failed: %s", target, exc)
            self.outcomes.append(SideEffectOutcome(target=target, ok=False, error=str(exc)))
            return None
        if result is False:
            logger.warning("Downstream notification '%s' was refused", target)
            self.outcomes.append(SideEffectOutcome(target=target, ok=False, error="refused"))
            return result
        self.outcomes.append(SideEffectOutcome(target=target, ok=True))
        return result

    def record_failure(self, target: str, error: str) -> None:
        self.outcomes.append(SideEffectOutcome(target=target, ok=False, error=error))

    @property
    def ok(self) -> bool:
        return all(outcome.ok for outcome in self.outcomes)

    @property
    def failures(self) -> List[SideEffectOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.ok]

    @property
    def succeeded(self) -> List[SideEffectOutcome]:
        return [outcome for outcome in self.outcomes if outcome.ok]

    def as_dict(self) -> dict:
        return {
            "ok": self.ok,
            "succeeded": [o.target for o in self.succeeded],
            "failures": [{"target": o.target, "error": o.error} for o in self.failures],
        }
