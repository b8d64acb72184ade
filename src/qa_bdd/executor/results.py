"""
Result tree returned by a run: Run -> Feature -> Scenario -> Step.

Every node is a frozen dataclass built once the element finishes. Durations
are in seconds.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple


class Status(Enum):
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"
    PENDING = "pending"
    UNDEFINED = "undefined"


@dataclass(frozen=True)
class Attachment:
    data: Any
    media_type: str = "text/plain"

    def to_dict(self) -> Dict[str, Any]:
        data = self.data
        if isinstance(data, (bytes, bytearray)):
            data = f"<{len(data)} bytes>"
        return {'data': data, 'media_type': self.media_type}


def _error_dict(error: Optional[BaseException]) -> Optional[Dict[str, str]]:
    if error is None:
        return None
    return {'type': type(error).__name__, 'message': str(error)}


@dataclass(frozen=True)
class StepResult:
    keyword: str
    text: str
    status: Status
    duration: float = 0.0
    line: Optional[int] = None
    error: Optional[BaseException] = None
    suggestions: Tuple[str, ...] = ()
    attachments: Tuple[Attachment, ...] = ()
    logs: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'keyword': self.keyword,
            'text': self.text,
            'status': self.status.value,
            'duration': self.duration,
            'line': self.line,
            'error': _error_dict(self.error),
            'suggestions': list(self.suggestions),
            'attachments': [a.to_dict() for a in self.attachments],
            'logs': list(self.logs),
        }


@dataclass(frozen=True)
class ScenarioResult:
    name: str
    status: Status
    steps: Tuple[StepResult, ...] = ()
    tags: Tuple[str, ...] = ()
    duration: float = 0.0
    line: Optional[int] = None
    example_index: Optional[int] = None
    example_values: Optional[Mapping[str, str]] = None
    hook_error: Optional[BaseException] = None

    @property
    def failed_steps(self) -> List[StepResult]:
        return [step for step in self.steps if step.status is Status.FAILED]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'status': self.status.value,
            'tags': list(self.tags),
            'duration': self.duration,
            'line': self.line,
            'example_index': self.example_index,
            'example_values': dict(self.example_values) if self.example_values is not None else None,
            'hook_error': _error_dict(self.hook_error),
            'steps': [step.to_dict() for step in self.steps],
        }


@dataclass(frozen=True)
class FeatureResult:
    name: str
    status: Status
    scenarios: Tuple[ScenarioResult, ...] = ()
    tags: Tuple[str, ...] = ()
    duration: float = 0.0
    uri: Optional[str] = None
    hook_error: Optional[BaseException] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'status': self.status.value,
            'tags': list(self.tags),
            'duration': self.duration,
            'uri': self.uri,
            'hook_error': _error_dict(self.hook_error),
            'scenarios': [scenario.to_dict() for scenario in self.scenarios],
        }


@dataclass(frozen=True)
class StatusCounts:
    total: int = 0
    passed: int = 0
    failed: int = 0
    skipped: int = 0
    pending: int = 0
    undefined: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            'total': self.total,
            'passed': self.passed,
            'failed': self.failed,
            'skipped': self.skipped,
            'pending': self.pending,
            'undefined': self.undefined,
        }


@dataclass(frozen=True)
class Summary:
    features: StatusCounts = field(default_factory=StatusCounts)
    scenarios: StatusCounts = field(default_factory=StatusCounts)
    steps: StatusCounts = field(default_factory=StatusCounts)

    def to_dict(self) -> Dict[str, Dict[str, int]]:
        return {
            'features': self.features.to_dict(),
            'scenarios': self.scenarios.to_dict(),
            'steps': self.steps.to_dict(),
        }


@dataclass(frozen=True)
class RunResult:
    features: Tuple[FeatureResult, ...] = ()
    summary: Summary = field(default_factory=Summary)
    duration: float = 0.0
    hook_error: Optional[BaseException] = None

    @property
    def success(self) -> bool:
        return self.hook_error is None and all(feature.status is not Status.FAILED for feature in self.features)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': self.success,
            'duration': self.duration,
            'hook_error': _error_dict(self.hook_error),
            'summary': self.summary.to_dict(),
            'features': [feature.to_dict() for feature in self.features],
        }


def _count(statuses: Sequence[Status], other: str) -> StatusCounts:
    """
    Tally statuses. Anything outside passed/failed/skipped lands in ``other``
    unless it has its own field at this level.
    """
    counts = {'total': 0, 'passed': 0, 'failed': 0, 'skipped': 0, 'pending': 0, 'undefined': 0}
    for status in statuses:
        counts['total'] += 1
        key = status.value
        if key not in ('passed', 'failed', 'skipped') and other != 'own':
            key = other
        counts[key] += 1
    return StatusCounts(**counts)


def compute_summary(features: Sequence[FeatureResult]) -> Summary:
    """
    Count features, scenarios and steps by status.

    Features are passed/failed/skipped; scenarios add pending (which includes
    scenarios held up by undefined steps); steps keep all five statuses.
    """
    scenarios = [scenario for feature in features for scenario in feature.scenarios]
    steps = [step for scenario in scenarios for step in scenario.steps]
    return Summary(
        features=_count([feature.status for feature in features], other='skipped'),
        scenarios=_count([scenario.status for scenario in scenarios], other='pending'),
        steps=_count([step.status for step in steps], other='own'),
    )
