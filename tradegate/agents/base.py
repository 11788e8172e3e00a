"""Check registry and risk aggregation shared by every agent.

A check is an explicit :class:`Check` record: an id, a pass label and an
``evaluate(context)`` callable returning a :class:`Finding`, a
:class:`Pass` or ``None``.  Registries are ordered tuples of checks and
compose by concatenation.

Checks fail open: an exception inside a check is logged and the check is
recorded as passed with its registry label.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Union

logger = logging.getLogger("tradegate")

MAX_RISK_SCORE = 100


@dataclass(frozen=True)
class Finding:
    """A triggered check."""

    id: str
    severity: str
    title: str
    detail: str
    risk_score: int


@dataclass(frozen=True)
class Pass:
    """A passed check with a context-specific label."""

    title: str


CheckReturn = Optional[Union[Finding, Pass]]


@dataclass(frozen=True)
class Check:
    id: str
    evaluate: Callable[[Any], CheckReturn]
    pass_label: str


Registry = tuple[Check, ...]


@dataclass(frozen=True)
class CheckOutcome:
    """Result of running one check: exactly one of the fields is meaningful."""

    finding: Optional[Finding] = None
    passed_title: Optional[str] = None
    error: Optional[BaseException] = None


def evaluate_check(check: Check, context: Any) -> CheckOutcome:
    """Run *check* against *context*, turning an exception into an outcome."""
    try:
        result = check.evaluate(context)
    except Exception as exc:
        return CheckOutcome(error=exc)
    if isinstance(result, Finding):
        return CheckOutcome(finding=result)
    if isinstance(result, Pass):
        return CheckOutcome(passed_title=result.title)
    return CheckOutcome(passed_title=check.pass_label)


@dataclass(frozen=True)
class CheckResult:
    """One row of an agent report.

    ``id`` is the finding id when triggered and the check id otherwise.
    """

    id: str
    check_id: str
    passed: bool
    title: str
    severity: Optional[str] = None
    detail: Optional[str] = None
    risk_score: int = 0

    def to_dict(self) -> dict:
        data: dict[str, Any] = {
            "id": self.id,
            "checkId": self.check_id,
            "passed": self.passed,
            "title": self.title,
        }
        if not self.passed:
            data["severity"] = self.severity
            data["detail"] = self.detail
            data["riskScore"] = self.risk_score
        return data


@dataclass(frozen=True)
class AgentResult:
    checks: tuple[CheckResult, ...] = ()
    triggered: tuple[CheckResult, ...] = ()
    risk_score: int = 0
    verdict: str = "clear"
    unavailable: bool = False
    extras: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        data = {
            "checks": [c.to_dict() for c in self.checks],
            "triggered": [c.to_dict() for c in self.triggered],
            "riskScore": self.risk_score,
            "verdict": self.verdict,
        }
        if self.unavailable:
            data["unavailable"] = True
        data.update(self.extras)
        return data


def score_to_verdict(score: int) -> str:
    """Map a clamped risk score to a verdict.

    0 is clear, 1-19 caution, 20-44 warning, 45 and above danger.
    """
    if score <= 0:
        return "clear"
    if score < 20:
        return "caution"
    if score < 45:
        return "warning"
    return "danger"


def clamp_score(total: int) -> int:
    return max(0, min(MAX_RISK_SCORE, total))


def unavailable_result() -> AgentResult:
    """Neutral result for an agent whose inputs could not be fetched."""
    return AgentResult(unavailable=True)


def run_checks(registry: Registry, context: Any, agent: str = "agent") -> AgentResult:
    """Evaluate every check in *registry* against the same *context*.

    Returns all results in registry order plus the triggered subset.  The
    risk score is the sum of triggered scores clamped to 0-100.
    """
    results: list[CheckResult] = []
    for check in registry:
        outcome = evaluate_check(check, context)

        if outcome.error is not None:
            logger.warning(
                "%s check %s failed, recording as passed: %s",
                agent, check.id, outcome.error,
                exc_info=outcome.error,
            )
            results.append(CheckResult(id=check.id, check_id=check.id, passed=True, title=check.pass_label))
        elif outcome.finding is not None:
            f = outcome.finding
            results.append(
                CheckResult(
                    id=f.id,
                    check_id=check.id,
                    passed=False,
                    title=f.title,
                    severity=f.severity,
                    detail=f.detail,
                    risk_score=max(0, f.risk_score),
                )
            )
        else:
            results.append(
                CheckResult(id=check.id, check_id=check.id, passed=True, title=outcome.passed_title or check.pass_label)
            )

    triggered = tuple(r for r in results if not r.passed)
    score = clamp_score(sum(r.risk_score for r in triggered))
    logger.debug("%s: %d/%d checks triggered, risk %d", agent, len(triggered), len(results), score)

    return AgentResult(
        checks=tuple(results),
        triggered=triggered,
        risk_score=score,
        verdict=score_to_verdict(score),
    )
