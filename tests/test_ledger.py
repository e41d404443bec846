# tests/test_ledger.py
from dataclasses import replace
from datetime import date, datetime, timedelta
from unittest.mock import patch

import pytest

from vocab_tutor.ledger import ProgressLedger, compute_streak, new_progress
from vocab_tutor.models import UNLOCKED, Answer, DailyStats
from vocab_tutor.scoring import summarize

TODAY = date(2024, 5, 10)


def _result(make_question, correct=2, total=3, start=None, category="defi"):
    questions = [make_question(qid=f"q{i}", word_id=f"w{i}", category=category) for i in range(total)]
    answers = [
        Answer(question_id=q.id, value="0", time_spent=10, is_correct=i < correct,
               points=10 if i < correct else 0)
        for i, q in enumerate(questions)
    ]
    started_at = start.isoformat(timespec="seconds") if start else None
    return summarize(questions, answers, started_at=started_at)


def _end(day, hour=12):
    return datetime(day.year, day.month, day.day, hour, 0, 0)


def _record(ledger, make_question, day, words=("w1",), minutes=5, **kwargs):
    end = _end(day)
    result = _result(make_question, start=end - timedelta(minutes=minutes))
    return ledger.record_session(result, set(words), end, **kwargs)


def test_new_progress_defaults():
    progress = new_progress()
    assert progress.level == 1
    assert progress.next_level_exp == 100
    assert progress.achievements
    assert progress.created_at is not None


def test_record_session_appends_study_session(make_question):
    ledger = ProgressLedger()
    _record(ledger, make_question, TODAY, words=("w1", "w2"), minutes=5)
    sessions = ledger.progress.study_sessions
    assert len(sessions) == 1
    assert sessions[0].duration == 300
    assert sessions[0].words_studied == ["w1", "w2"]
    assert sessions[0].session_type == "practice"
    assert ledger.progress.last_study_time == "2024-05-10T12:00:00"


def test_record_session_updates_daily_stats(make_question):
    ledger = ProgressLedger()
    _record(ledger, make_question, TODAY, words=("w1", "w2"), minutes=5)
    stats = ledger.today_stats(TODAY)
    assert stats.words_studied == 2
    assert stats.practice_sessions == 1
    assert stats.correct_answers == 2
    assert stats.total_answers == 3
    assert stats.study_time_minutes == 5
    assert ledger.progress.total_study_time == 5


def test_same_day_updates_in_place(make_question):
    ledger = ProgressLedger()
    _record(ledger, make_question, TODAY, minutes=5)
    _record(ledger, make_question, TODAY, minutes=3)
    assert len(ledger.progress.daily_stats) == 1
    stats = ledger.today_stats(TODAY)
    assert stats.practice_sessions == 2
    assert stats.correct_answers == 4
    assert stats.total_answers == 6
    assert stats.study_time_minutes == 8


def test_study_minutes_floor(make_question):
    ledger = ProgressLedger()
    end = _end(TODAY)
    result = _result(make_question, start=end - timedelta(seconds=119))
    ledger.record_session(result, {"w1"}, end)
    assert ledger.today_stats(TODAY).study_time_minutes == 1


def test_end_before_start_gives_zero_duration(make_question):
    ledger = ProgressLedger()
    end = _end(TODAY)
    result = _result(make_question, start=end + timedelta(minutes=5))
    ledger.record_session(result, {"w1"}, end)
    assert ledger.progress.study_sessions[0].duration == 0


def test_streak_counts_today(make_question):
    """Studying D-2 and D-1, then today, makes a 3-day streak."""
    ledger = ProgressLedger()
    _record(ledger, make_question, TODAY - timedelta(days=2))
    _record(ledger, make_question, TODAY - timedelta(days=1))
    assert ledger.current_streak(TODAY) == 2
    _record(ledger, make_question, TODAY)
    assert ledger.progress.streak_days == 3
    assert ledger.current_streak(TODAY) == 3


def test_streak_not_broken_until_tomorrow(make_question):
    ledger = ProgressLedger()
    _record(ledger, make_question, TODAY - timedelta(days=1))
    assert ledger.current_streak(TODAY) == 1
    assert ledger.current_streak(TODAY + timedelta(days=1)) == 0


def test_streak_resets_after_gap(make_question):
    ledger = ProgressLedger()
    _record(ledger, make_question, TODAY - timedelta(days=5))
    _record(ledger, make_question, TODAY - timedelta(days=4))
    _record(ledger, make_question, TODAY)
    assert ledger.progress.streak_days == 1
    assert ledger.progress.max_streak_days == 2


def test_session_without_words_does_not_count_for_streak(make_question):
    ledger = ProgressLedger()
    _record(ledger, make_question, TODAY, words=())
    assert ledger.progress.streak_days == 0


def test_max_streak_never_decreases(make_question):
    ledger = ProgressLedger()
    days = [TODAY - timedelta(days=n) for n in (9, 8, 7, 3, 0)]
    previous = 0
    for day in days:
        _record(ledger, make_question, day)
        assert ledger.progress.max_streak_days >= previous
        previous = ledger.progress.max_streak_days
    assert previous == 3


def test_compute_streak_ignores_zero_days():
    stats = [
        DailyStats(date="2024-05-08", words_studied=3),
        DailyStats(date="2024-05-09", words_studied=0),
        DailyStats(date="2024-05-10", words_studied=1),
    ]
    assert compute_streak(stats, TODAY) == 1


def test_mastered_and_weak_are_disjoint(make_question):
    ledger = ProgressLedger()
    _record(ledger, make_question, TODAY, weak=["w1", "w2"])
    assert ledger.progress.weak_words == ["w1", "w2"]
    _record(ledger, make_question, TODAY, mastered=["w1"], weak=["w1"])
    assert ledger.progress.mastered_words == ["w1"]
    assert ledger.progress.weak_words == ["w2"]
    assert ledger.today_stats(TODAY).new_mastered_words == 1


def test_word_categories_recorded(make_question):
    ledger = ProgressLedger()
    _record(ledger, make_question, TODAY)
    assert ledger.progress.word_categories["w0"] == "defi"


def test_achievement_unlock_awards_points_and_level(make_question):
    ledger = ProgressLedger()
    unlocked = _record(ledger, make_question, TODAY, mastered=["w1"])
    assert [a.id for a in unlocked] == ["first_word"]
    assert ledger.progress.total_points == 10
    assert ledger.progress.current_level_exp == 10
    first = next(a for a in ledger.progress.achievements if a.id == "first_word")
    assert first.status == UNLOCKED
    assert first.unlocked_at == "2024-05-10T12:00:00"


def test_reevaluation_does_not_double_award(make_question):
    ledger = ProgressLedger()
    _record(ledger, make_question, TODAY, mastered=["w1"])
    before = ledger.progress.achievements
    assert ledger.evaluate_achievements() == []
    assert ledger.evaluate_achievements() == []
    assert ledger.progress.achievements == before
    assert ledger.progress.total_points == 10


def test_daily_stats_round_trip_additive(make_question):
    ledger = ProgressLedger()
    _record(ledger, make_question, TODAY, minutes=2)
    before = ledger.today_stats(TODAY)
    before_correct, before_total, before_time = before.correct_answers, before.total_answers, before.study_time_minutes
    end = _end(TODAY, hour=18)
    result = _result(make_question, correct=1, total=4, start=end - timedelta(minutes=7))
    ledger.record_session(result, {"w3"}, end)
    after = ledger.today_stats(TODAY)
    assert after.correct_answers == before_correct + 1
    assert after.total_answers == before_total + 4
    assert after.study_time_minutes == before_time + 7


def test_failed_update_leaves_state_untouched(make_question):
    ledger = ProgressLedger()
    _record(ledger, make_question, TODAY)
    snapshot = ledger.progress
    with patch("vocab_tutor.ledger.refresh_goals", side_effect=RuntimeError("boom")):
        with pytest.raises(RuntimeError):
            _record(ledger, make_question, TODAY)
    assert ledger.progress is snapshot
    assert len(ledger.progress.study_sessions) == 1
    assert ledger.today_stats(TODAY).practice_sessions == 1


def test_add_points_recomputes_level():
    ledger = ProgressLedger()
    ledger.add_points(350)
    assert ledger.progress.level == 3
    assert ledger.progress.current_level_exp == 50
    assert ledger.progress.next_level_exp == 300


def test_word_operations():
    ledger = ProgressLedger()
    ledger.add_weak_word("w1")
    ledger.add_mastered_word("w1", today=TODAY)
    assert ledger.progress.weak_words == []
    assert ledger.progress.mastered_words == ["w1"]
    assert ledger.today_stats(TODAY).new_mastered_words == 1
    ledger.add_weak_word("w1")
    assert ledger.progress.weak_words == []
    ledger.remove_mastered_word("w1")
    assert ledger.progress.mastered_words == []
    ledger.add_weak_word("w1")
    ledger.remove_weak_word("w1")
    assert ledger.progress.weak_words == []


def test_toggle_favorite():
    ledger = ProgressLedger()
    assert ledger.toggle_favorite("w1") is True
    assert ledger.toggle_favorite("w1") is False
    assert ledger.progress.favorite_words == []


def test_refresh_streak_after_idle_days(make_question):
    ledger = ProgressLedger()
    _record(ledger, make_question, TODAY - timedelta(days=1))
    _record(ledger, make_question, TODAY)
    assert ledger.refresh_streak(TODAY + timedelta(days=5)) == 0
    assert ledger.progress.max_streak_days == 2


def test_goal_operations(make_question):
    ledger = ProgressLedger()
    goal = ledger.add_goal("daily_words", "Two words a day", 2)
    assert ledger.progress.goals[0].id == goal.id
    _record(ledger, make_question, TODAY, words=("w1", "w2"))
    assert ledger.progress.goals[0].current == 2
    assert ledger.progress.goals[0].completed is True

    other = ledger.add_goal("daily_time", "Ten minutes", 10)
    assert ledger.update_goal(replace(other, name="Renamed")) is True
    assert ledger.progress.goals[1].name == "Renamed"
    assert ledger.update_goal(replace(other, id="missing")) is False
    assert ledger.complete_goal(other.id) is True
    assert ledger.progress.goals[1].completed is True
    assert ledger.complete_goal("missing") is False
    ledger.delete_goal(goal.id)
    assert [g.id for g in ledger.progress.goals] == [other.id]


def test_reset():
    ledger = ProgressLedger()
    ledger.add_points(500)
    ledger.reset()
    assert ledger.progress.total_points == 0
