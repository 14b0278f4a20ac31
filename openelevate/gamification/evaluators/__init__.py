"""Badge Rule Evaluators"""

from openelevate.gamification.evaluators.base import BaseEvaluator
from openelevate.gamification.evaluators.registry import (
    create_evaluator,
    get_evaluator_class,
    list_registered_evaluators,
    register_evaluator,
)
from openelevate.gamification.evaluators.result import EvaluationResult

__all__ = [
    "BaseEvaluator",
    "EvaluationResult",
    "create_evaluator",
    "get_evaluator_class",
    "list_registered_evaluators",
    "register_evaluator",
]
