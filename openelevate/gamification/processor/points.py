"""Contribution point table"""

BASE_POINTS: dict[str, int] = {
    "PR": 10,
    "issue": 3,
    "review": 5,
    "documentation": 7,
    "other": 2,
}

# statuses that double the base rate
BONUS_STATUSES = frozenset({"merged", "approved"})


def calculate_contribution_points(contribution_type: str, status: str) -> int:
    """Points earned by a contribution of the given type in the given status.

    Unknown types earn the "other" rate.
    """
    points = BASE_POINTS.get(contribution_type, BASE_POINTS["other"])
    if status in BONUS_STATUSES:
        points *= 2
    return points
