"""Domain events that can make a user eligible for new badges"""

from enum import StrEnum


class GamificationEvent(StrEnum):
    """Event types understood by BadgeService.process_event"""

    CONTRIBUTION_VERIFIED = "contribution_verified"
    PROJECT_CREATED = "project_created"
    SKILL_UPDATED = "skill_updated"
    PROFILE_UPDATED = "profile_updated"
    MENTORSHIP_ACCEPTED = "mentorship_accepted"
    GITHUB_SYNCED = "github_synced"

    @classmethod
    def is_known(cls, event_type: str) -> bool:
        """Whether the event type is one of the declared events"""
        return event_type in cls._value2member_map_
