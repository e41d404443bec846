"""Cumulative progress ledger: study history, daily stats, streaks and rewards."""
import copy
import logging
import uuid
from datetime import date, datetime, timedelta
from typing import Callable, Iterable, Optional

from vocab_tutor.achievements import default_achievements, evaluate
from vocab_tutor.goals import new_goal, refresh_goals
from vocab_tutor.levels import calculate_level
from vocab_tutor.models import (
    Achievement, DailyStats, LearningGoal, SessionResult, StudySession, UserProgress, now_iso,
)

logger = logging.getLogger(__name__)


def new_progress() -> UserProgress:
    """Fresh progress for a learner with no history."""
    now = now_iso()
    return UserProgress(achievements=default_achievements(), created_at=now, updated_at=now)


def find_daily_stats(daily_stats: list[DailyStats], day: date) -> Optional[DailyStats]:
    key = day.isoformat()
    for stats in daily_stats:
        if stats.date == key:
            return stats
    return None


def get_or_create_daily_stats(progress: UserProgress, day: date) -> DailyStats:
    stats = find_daily_stats(progress.daily_stats, day)
    if stats is None:
        stats = DailyStats(date=day.isoformat())
        progress.daily_stats.append(stats)
    return stats


def compute_streak(daily_stats: list[DailyStats], today: date) -> int:
    """Consecutive days with words studied, ending today or yesterday.

    A day without study today doesn't break the streak yet; counting starts
    from yesterday instead.
    """
    studied = {d.date for d in daily_stats if d.words_studied > 0}
    day = today if today.isoformat() in studied else today - timedelta(days=1)
    streak = 0
    while day.isoformat() in studied:
        streak += 1
        day -= timedelta(days=1)
    return streak


def apply_level(progress: UserProgress) -> None:
    info = calculate_level(progress.total_points)
    progress.level = info["level"]
    progress.current_level_exp = info["current_level_exp"]
    progress.next_level_exp = info["next_level_exp"]


class ProgressLedger:
    """Owns one learner's UserProgress and every mutation of it.

    Each operation works on a deep copy and only swaps it in once the whole
    update has been computed, so a failure part-way leaves the previous state
    untouched.
    """

    def __init__(self, progress: Optional[UserProgress] = None):
        self.progress = progress if progress is not None else new_progress()

    def _apply(self, mutate: Callable[[UserProgress], None], now: Optional[str] = None) -> list[Achievement]:
        now = now or now_iso()
        nxt = copy.deepcopy(self.progress)
        mutate(nxt)
        unlocked = self._award(nxt, now)
        nxt.updated_at = now
        self.progress = nxt
        return unlocked

    @staticmethod
    def _award(progress: UserProgress, now: str) -> list[Achievement]:
        progress.achievements, unlocked = evaluate(progress.achievements, progress, now)
        if unlocked:
            progress.total_points += sum(a.reward_points for a in unlocked)
        apply_level(progress)
        return unlocked

    @staticmethod
    def _mark_mastered(progress: UserProgress, word_id: str) -> bool:
        if word_id in progress.weak_words:
            progress.weak_words.remove(word_id)
        if word_id in progress.mastered_words:
            return False
        progress.mastered_words.append(word_id)
        return True

    @staticmethod
    def _mark_weak(progress: UserProgress, word_id: str) -> None:
        if word_id not in progress.mastered_words and word_id not in progress.weak_words:
            progress.weak_words.append(word_id)

    def record_session(self, result: SessionResult, words_studied: Iterable[str], end_time: datetime,
                       mastered: Iterable[str] = (), weak: Iterable[str] = (),
                       session_type: str = "practice") -> list[Achievement]:
        """Fold a finished session into the ledger.

        Appends the study session, updates the day's stats, streak and word
        sets, then re-evaluates achievements. Returns newly unlocked ones.
        """
        words = sorted(set(words_studied))
        mastered = list(dict.fromkeys(mastered))
        weak = list(dict.fromkeys(weak))
        if result.started_at:
            start = datetime.fromisoformat(result.started_at)
        else:
            start = end_time - timedelta(seconds=result.elapsed_seconds)
        duration = max(0, int((end_time - start).total_seconds()))
        minutes = duration // 60
        end_iso = end_time.isoformat(timespec="seconds")
        today = end_time.date()

        def mutate(p: UserProgress) -> None:
            p.study_sessions.append(StudySession(
                id=f"session_{uuid.uuid4().hex[:12]}",
                start_time=start.isoformat(timespec="seconds"),
                end_time=end_iso,
                duration=duration,
                words_studied=words,
                session_type=session_type,
            ))
            newly_mastered = sum(1 for w in mastered if self._mark_mastered(p, w))
            for word_id in weak:
                self._mark_weak(p, word_id)
            p.word_categories.update(result.word_categories)

            stats = get_or_create_daily_stats(p, today)
            stats.words_studied += len(words)
            if session_type == "practice":
                stats.practice_sessions += 1
            stats.correct_answers += result.correct
            stats.total_answers += result.total
            stats.study_time_minutes += minutes
            stats.new_mastered_words += newly_mastered

            p.total_study_time += minutes
            p.last_study_time = end_iso
            p.streak_days = compute_streak(p.daily_stats, today)
            p.max_streak_days = max(p.max_streak_days, p.streak_days)
            p.goals = refresh_goals(p.goals, p.daily_stats, today)

        unlocked = self._apply(mutate, now=end_iso)
        logger.info(
            "Recorded %s session: %d/%d correct, %ds, streak %d",
            session_type, result.correct, result.total, duration, self.progress.streak_days,
        )
        return unlocked

    def current_streak(self, today: Optional[date] = None) -> int:
        """Streak as of ``today``, without modifying the ledger."""
        return compute_streak(self.progress.daily_stats, today or date.today())

    def refresh_streak(self, today: Optional[date] = None) -> int:
        """Store the streak as of ``today`` (e.g. after days without study)."""
        today = today or date.today()

        def mutate(p: UserProgress) -> None:
            p.streak_days = compute_streak(p.daily_stats, today)
            p.max_streak_days = max(p.max_streak_days, p.streak_days)

        self._apply(mutate)
        return self.progress.streak_days

    def evaluate_achievements(self, now: Optional[str] = None) -> list[Achievement]:
        return self._apply(lambda p: None, now=now)

    def add_points(self, points: int) -> None:
        def mutate(p: UserProgress) -> None:
            p.total_points += points

        self._apply(mutate)

    def add_mastered_word(self, word_id: str, today: Optional[date] = None) -> list[Achievement]:
        today = today or date.today()

        def mutate(p: UserProgress) -> None:
            if self._mark_mastered(p, word_id):
                get_or_create_daily_stats(p, today).new_mastered_words += 1

        return self._apply(mutate)

    def remove_mastered_word(self, word_id: str) -> None:
        def mutate(p: UserProgress) -> None:
            if word_id in p.mastered_words:
                p.mastered_words.remove(word_id)

        self._apply(mutate)

    def add_weak_word(self, word_id: str) -> None:
        self._apply(lambda p: self._mark_weak(p, word_id))

    def remove_weak_word(self, word_id: str) -> None:
        def mutate(p: UserProgress) -> None:
            if word_id in p.weak_words:
                p.weak_words.remove(word_id)

        self._apply(mutate)

    def toggle_favorite(self, word_id: str) -> bool:
        """Flip a word's favourite flag; returns the new state."""
        def mutate(p: UserProgress) -> None:
            if word_id in p.favorite_words:
                p.favorite_words.remove(word_id)
            else:
                p.favorite_words.append(word_id)

        self._apply(mutate)
        return word_id in self.progress.favorite_words

    def today_stats(self, today: Optional[date] = None) -> Optional[DailyStats]:
        return find_daily_stats(self.progress.daily_stats, today or date.today())

    def add_goal(self, goal_type: str, name: str, target: int, deadline: Optional[str] = None) -> LearningGoal:
        goal = new_goal(goal_type, name, target, deadline)
        self._apply(lambda p: p.goals.append(goal))
        return goal

    def update_goal(self, goal: LearningGoal) -> bool:
        if not any(g.id == goal.id for g in self.progress.goals):
            logger.warning("No goal with id %s", goal.id)
            return False

        def mutate(p: UserProgress) -> None:
            p.goals = [copy.deepcopy(goal) if g.id == goal.id else g for g in p.goals]

        self._apply(mutate)
        return True

    def complete_goal(self, goal_id: str) -> bool:
        if not any(g.id == goal_id for g in self.progress.goals):
            logger.warning("No goal with id %s", goal_id)
            return False

        def mutate(p: UserProgress) -> None:
            for g in p.goals:
                if g.id == goal_id:
                    g.completed = True

        self._apply(mutate)
        return True

    def delete_goal(self, goal_id: str) -> None:
        def mutate(p: UserProgress) -> None:
            p.goals = [g for g in p.goals if g.id != goal_id]

        self._apply(mutate)

    def refresh_goals(self, today: Optional[date] = None) -> list[LearningGoal]:
        today = today or date.today()

        def mutate(p: UserProgress) -> None:
            p.goals = refresh_goals(p.goals, p.daily_stats, today)

        self._apply(mutate)
        return self.progress.goals

    def reset(self) -> None:
        self.progress = new_progress()
