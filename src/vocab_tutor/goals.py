"""Learning goals measured against daily stats."""
import uuid
from dataclasses import replace
from datetime import date, timedelta
from typing import Optional

from vocab_tutor.models import DailyStats, LearningGoal, now_iso

DAILY_WORDS = "daily_words"
DAILY_TIME = "daily_time"
WEEKLY_WORDS = "weekly_words"
ACCURACY_GOAL = "accuracy_rate"
GOAL_TYPES = (DAILY_WORDS, DAILY_TIME, WEEKLY_WORDS, ACCURACY_GOAL)


def week_start(today: date) -> date:
    """Sunday on or before ``today``."""
    return today - timedelta(days=(today.weekday() + 1) % 7)


def new_goal(goal_type: str, name: str, target: int, deadline: Optional[str] = None) -> LearningGoal:
    if goal_type not in GOAL_TYPES:
        raise ValueError(f"Unknown goal type: {goal_type}")
    return LearningGoal(
        id=f"goal_{uuid.uuid4().hex[:12]}",
        type=goal_type,
        name=name,
        target=target,
        deadline=deadline,
        created_at=now_iso(),
    )


def goal_value(goal: LearningGoal, daily_stats: list[DailyStats], today: date) -> float:
    today_key = today.isoformat()
    if goal.type == DAILY_WORDS:
        return sum(d.words_studied for d in daily_stats if d.date == today_key)
    elif goal.type == DAILY_TIME:
        return sum(d.study_time_minutes for d in daily_stats if d.date == today_key)
    elif goal.type == WEEKLY_WORDS:
        start = week_start(today).isoformat()
        return sum(d.words_studied for d in daily_stats if start <= d.date <= today_key)
    elif goal.type == ACCURACY_GOAL:
        correct = sum(d.correct_answers for d in daily_stats)
        total = sum(d.total_answers for d in daily_stats)
        return round(correct / total * 100, 1) if total else 0.0
    return 0


def refresh_goals(goals: list[LearningGoal], daily_stats: list[DailyStats], today: date) -> list[LearningGoal]:
    """Recompute each goal's current value; reached goals become completed."""
    refreshed = []
    for goal in goals:
        value = goal_value(goal, daily_stats, today)
        refreshed.append(replace(goal, current=value, completed=goal.completed or value >= goal.target))
    return refreshed
