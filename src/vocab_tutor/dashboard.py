"""Progress dashboard statistics."""
from datetime import date
from typing import Optional

from vocab_tutor.goals import week_start
from vocab_tutor.ledger import compute_streak, find_daily_stats
from vocab_tutor.levels import level_progress
from vocab_tutor.models import DailyStats, UserProgress


def get_accuracy_label(score: float) -> str:
    if score >= 90:
        return "EXCELLENT"
    elif score >= 75:
        return "GOOD"
    elif score >= 50:
        return "NEEDS WORK"
    return "STRUGGLING"


def get_accuracy_color(score: float) -> str:
    if score >= 90:
        return "green"
    elif score >= 75:
        return "yellow"
    elif score >= 50:
        return "dark_orange"
    return "red"


def aggregate(stats: list[DailyStats]) -> dict:
    correct = sum(d.correct_answers for d in stats)
    total = sum(d.total_answers for d in stats)
    return {
        "total_words": sum(d.words_studied for d in stats),
        "total_time": sum(d.study_time_minutes for d in stats),
        "average_accuracy": round(correct / total * 100, 1) if total else 0.0,
        "sessions_count": sum(d.practice_sessions for d in stats),
    }


def get_stats(progress: UserProgress, today: Optional[date] = None) -> dict:
    """Summary for the progress page: today, this week, this month and level."""
    today = today or date.today()
    today_key = today.isoformat()
    week_key = week_start(today).isoformat()
    month_key = today.replace(day=1).isoformat()
    todays = find_daily_stats(progress.daily_stats, today) or DailyStats(date=today_key)
    return {
        "today": todays,
        "this_week": aggregate([d for d in progress.daily_stats if week_key <= d.date <= today_key]),
        "this_month": aggregate([d for d in progress.daily_stats if month_key <= d.date <= today_key]),
        "all_time": aggregate(progress.daily_stats),
        "streak_days": compute_streak(progress.daily_stats, today),
        "max_streak_days": progress.max_streak_days,
        "total_mastered": len(progress.mastered_words),
        "total_weak": len(progress.weak_words),
        "total_study_time": progress.total_study_time,
        "level_info": {
            "level": progress.level,
            "total_points": progress.total_points,
            "current_exp": progress.current_level_exp,
            "next_level_exp": progress.next_level_exp,
            "progress": level_progress(progress.current_level_exp, progress.next_level_exp),
        },
    }
