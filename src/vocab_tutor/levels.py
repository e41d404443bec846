"""Level progression from accumulated reward points."""

POINTS_PER_LEVEL_STEP = 100


def level_threshold(level: int) -> int:
    """Total points needed to reach ``level`` (level 1 starts at 0).

    Leaving level n costs n * 100 points: 100, 300, 600, 1000, ...
    """
    n = level - 1
    return POINTS_PER_LEVEL_STEP * n * (n + 1) // 2


def calculate_level(total_points: int) -> dict:
    """Return level, exp into the current level and exp spanning it."""
    total_points = max(0, total_points)
    level = 1
    while total_points >= level_threshold(level + 1):
        level += 1
    return {
        "level": level,
        "current_level_exp": total_points - level_threshold(level),
        "next_level_exp": level * POINTS_PER_LEVEL_STEP,
    }


def level_progress(current_level_exp: int, next_level_exp: int) -> float:
    if next_level_exp <= 0:
        return 1.0
    return round(current_level_exp / next_level_exp, 3)
