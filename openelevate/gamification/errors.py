"""Gamification error taxonomy"""


class GamificationError(Exception):
    """Base class for errors raised by the badge engine"""


class NotFoundError(GamificationError):
    """A referenced user, badge or contribution does not exist"""

    def __init__(self, entity: str, entity_id: object):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found with ID: {entity_id}")


class EvaluationError(GamificationError):
    """A single badge could not be evaluated - recovered per badge"""

    def __init__(self, badge_id: str, reason: str):
        self.badge_id = badge_id
        self.reason = reason
        super().__init__(f"Badge {badge_id} could not be evaluated: {reason}")


class PersistenceError(GamificationError):
    """The award write failed; none of the batch was granted"""


class InvalidTransitionError(GamificationError):
    """A contribution status change is not allowed"""


class DuplicateBadgeError(GamificationError):
    """A badge with the same id or title already exists"""
