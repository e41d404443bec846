"""Achievement catalogue and evaluation against a progress snapshot."""
import logging
from dataclasses import replace

from vocab_tutor.models import (
    ACCURACY_RATE, CATEGORY_MASTER, IN_PROGRESS, LOCKED, PRACTICE_COUNT, STUDY_STREAK,
    STUDY_TIME, UNLOCKED, WORDS_MASTERED, Achievement, UserProgress,
)

logger = logging.getLogger(__name__)


def default_achievements() -> list[Achievement]:
    """Achievements every new learner starts with, all locked."""
    return [
        Achievement("first_word", "First Steps", WORDS_MASTERED, 1, 10,
                    description="Master your first term"),
        Achievement("ten_words", "Vocabulary Rookie", WORDS_MASTERED, 10, 50,
                    description="Master 10 terms"),
        Achievement("fifty_words", "Vocabulary Pro", WORDS_MASTERED, 50, 200,
                    description="Master 50 terms"),
        Achievement("hundred_words", "Vocabulary Expert", WORDS_MASTERED, 100, 500,
                    description="Master 100 terms"),
        Achievement("seven_day_streak", "Persistent", STUDY_STREAK, 7, 100,
                    description="Study 7 days in a row"),
        Achievement("thirty_day_streak", "Unstoppable", STUDY_STREAK, 30, 1000,
                    description="Study 30 days in a row"),
        Achievement("ten_sessions", "Practice Makes Perfect", PRACTICE_COUNT, 10, 100,
                    description="Finish 10 practice sessions"),
        Achievement("high_accuracy", "Sharpshooter", ACCURACY_RATE, 90, 300,
                    description="Reach 90% overall accuracy"),
        Achievement("study_time_10h", "Time Keeper", STUDY_TIME, 600, 400,
                    description="Study for 10 hours in total"),
        Achievement("defi_master", "DeFi Native", CATEGORY_MASTER, 10, 250,
                    description="Master 10 DeFi terms", category="defi"),
    ]


def overall_accuracy(progress: UserProgress) -> float:
    correct = sum(d.correct_answers for d in progress.daily_stats)
    total = sum(d.total_answers for d in progress.daily_stats)
    return correct / total if total else 0.0


def metric_for(achievement: Achievement, progress: UserProgress) -> float:
    """Current value of the metric an achievement tracks."""
    kind = achievement.type
    if kind == STUDY_STREAK:
        return progress.streak_days
    elif kind == WORDS_MASTERED:
        return len(progress.mastered_words)
    elif kind == PRACTICE_COUNT:
        return sum(1 for s in progress.study_sessions if s.session_type == "practice")
    elif kind == ACCURACY_RATE:
        return round(overall_accuracy(progress) * 100, 1)
    elif kind == STUDY_TIME:
        return progress.total_study_time
    elif kind == CATEGORY_MASTER:
        return sum(
            1 for word_id in progress.mastered_words
            if progress.word_categories.get(word_id) == achievement.category
        )
    logger.warning("Unknown achievement type %r on %s", kind, achievement.id)
    return 0


def _status_for(progress: float, target: float) -> str:
    if progress >= target:
        return UNLOCKED
    if progress > 0:
        return IN_PROGRESS
    return LOCKED


def evaluate(achievements: list[Achievement], progress: UserProgress,
             now: str) -> tuple[list[Achievement], list[Achievement]]:
    """Recompute every achievement from ``progress``.

    Returns (updated achievements, newly unlocked ones). Progress is clamped
    to the target and never goes down; unlocked achievements are left as is,
    so evaluating twice on the same snapshot changes nothing.
    """
    updated = []
    newly_unlocked = []
    for achievement in achievements:
        if achievement.status == UNLOCKED:
            updated.append(achievement)
            continue
        if achievement.target <= 0:
            value = achievement.target
            status = UNLOCKED
        else:
            value = max(achievement.progress, min(metric_for(achievement, progress), achievement.target))
            status = _status_for(value, achievement.target)
        changed = replace(achievement, progress=value, status=status)
        if status == UNLOCKED:
            changed.unlocked_at = now
            newly_unlocked.append(changed)
            logger.info("Achievement unlocked: %s (+%d points)", changed.id, changed.reward_points)
        updated.append(changed)
    return updated, newly_unlocked
