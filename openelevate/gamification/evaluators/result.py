"""Evaluation Result Model"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any


@dataclass
class EvaluationResult:
    """Result of a badge condition check"""

    satisfied: bool
    evidence: dict[str, Any] = field(default_factory=dict)  # audit trail
    message: str | None = None  # human readable description
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __bool__(self) -> bool:
        return self.satisfied
