"""Evaluator Registry - Maps condition kinds to implementations"""

import logging
from typing import Type

from openelevate.gamification.evaluators.base import BaseEvaluator
from openelevate.gamification.schemas.conditions import BadgeCondition, ConditionKind

logger = logging.getLogger(__name__)


# Registry of evaluator classes
_EVALUATOR_REGISTRY: dict[ConditionKind, Type[BaseEvaluator]] = {}


def register_evaluator(kind: ConditionKind):
    """Decorator to register the evaluator for a condition kind.

    Usage:
    @register_evaluator(ConditionKind.PROJECT_COUNT)
    class ProjectCountEvaluator(BaseEvaluator):
        ...
    """

    def decorator(cls: Type[BaseEvaluator]) -> Type[BaseEvaluator]:
        if kind in _EVALUATOR_REGISTRY:
            logger.warning("Overwriting evaluator registration: %s", kind)
        _EVALUATOR_REGISTRY[kind] = cls
        logger.debug("Registered evaluator: %s -> %s", kind, cls.__name__)
        return cls

    return decorator


def get_evaluator_class(kind: ConditionKind | str) -> Type[BaseEvaluator]:
    """Get the evaluator class for a condition kind.
    Raises ValueError if no evaluator handles the kind.
    """
    try:
        return _EVALUATOR_REGISTRY[ConditionKind(kind)]
    except (KeyError, ValueError):
        raise ValueError(f"Evaluator not found: {kind}") from None


def create_evaluator(badge_id: str, condition: BadgeCondition) -> BaseEvaluator | None:
    """Create an evaluator instance for a parsed condition.
    Args:
        badge_id: The ID of the badge this evaluator is associated with
        condition: The parsed badge condition
    Returns:
        Evaluator instance or None if no evaluator handles the condition
    """
    try:
        evaluator_class = get_evaluator_class(condition.type)
        return evaluator_class(badge_id=badge_id, condition=condition)
    except ValueError as e:
        logger.error("Failed to create evaluator for badge %s: %s", badge_id, e)
        return None


def list_registered_evaluators() -> list[str]:
    """List all registered condition kinds"""
    return [str(kind) for kind in _EVALUATOR_REGISTRY]


def _register_all_evaluators():
    """Import all evaluator implementations to trigger registration"""
    # pylint: disable=import-outside-toplevel,unused-import
    from openelevate.gamification.evaluators.implementations import (
        contribution_count,
        project_count,
        skill_level,
        special,
        time_active,
    )

    missing = set(ConditionKind) - set(_EVALUATOR_REGISTRY)
    if missing:
        raise RuntimeError(
            f"No evaluator registered for condition kinds: {sorted(missing)}"
        )
    logger.info("Registered %d evaluators", len(_EVALUATOR_REGISTRY))


# Auto-register on import
_register_all_evaluators()
