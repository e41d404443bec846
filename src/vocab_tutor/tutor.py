"""Tutor facade: the operations a front end drives a practice session with."""
import logging
import random
import sqlite3
from datetime import date, datetime
from typing import Optional

from vocab_tutor.dashboard import get_stats
from vocab_tutor.db import (
    DEFAULT_DB_PATH, export_progress, get_setting, get_word_stats, import_progress, init_db, load_progress,
    save_progress, save_session,
)
from vocab_tutor.ledger import ProgressLedger, new_progress
from vocab_tutor.models import QUESTION_KINDS, Achievement, Answer, Question, SessionResult
from vocab_tutor.questions import build_questions
from vocab_tutor.session import PracticeSession
from vocab_tutor.vocabulary import (
    VocabularyEntry, classify_words, export_vocabulary, load_default_vocabulary, update_word_accuracy,
    vocabulary_stats,
)

logger = logging.getLogger(__name__)

DEFAULT_QUESTIONS_PER_SESSION = 10


class Tutor:
    """Wires the session engine, the progress ledger and persistence together.

    Everything is synchronous and owned by one caller. Failing to save a
    session leaves both the stored and the in-memory progress as they were.
    """

    def __init__(self, db_path: str = DEFAULT_DB_PATH, vocabulary: Optional[list[VocabularyEntry]] = None):
        self.db_path = db_path
        self.vocabulary = vocabulary if vocabulary is not None else load_default_vocabulary()
        try:
            init_db(db_path)
        except sqlite3.Error as e:
            logger.warning("Database %s could not be opened: %s", db_path, e)
            progress, self.load_warning = new_progress(), "Progress could not be loaded; starting fresh."
        else:
            progress, self.load_warning = load_progress(db_path)
        self.ledger = ProgressLedger(progress)
        self.session: Optional[PracticeSession] = None
        self.last_result: Optional[SessionResult] = None
        self.save_warning: Optional[str] = None
        self._newly_unlocked: list[Achievement] = []

    def _settings(self) -> tuple[int, list[str]]:
        try:
            count = int(get_setting(self.db_path, "questions_per_session", str(DEFAULT_QUESTIONS_PER_SESSION)))
            raw = get_setting(self.db_path, "question_kinds", ",".join(QUESTION_KINDS))
        except (sqlite3.Error, ValueError) as e:
            logger.warning("Settings could not be read, using defaults: %s", e)
            return DEFAULT_QUESTIONS_PER_SESSION, list(QUESTION_KINDS)
        kinds = [k.strip() for k in raw.split(",") if k.strip() in QUESTION_KINDS]
        return count, kinds or list(QUESTION_KINDS)

    def start_session(self, questions: Optional[list[Question]] = None, count: Optional[int] = None,
                      kinds: Optional[list[str]] = None, rng: Optional[random.Random] = None) -> PracticeSession:
        """Start a new session, discarding any session still in progress."""
        if self.session is not None and self.session.is_active():
            logger.info("Discarding unfinished session")
            self.session.abandon()
        if questions is None:
            default_count, default_kinds = self._settings()
            questions = build_questions(self.vocabulary, count or default_count, kinds or default_kinds, rng)
        self.session = PracticeSession(questions)
        self.last_result = None
        self._newly_unlocked = []
        return self.session

    def submit_answer(self, value, index: Optional[int] = None, time_spent: Optional[int] = None) -> Optional[Answer]:
        if self.session is None:
            logger.warning("No session to submit to")
            return None
        return self.session.submit(value, index=index, time_spent=time_spent)

    def timeout_current_question(self) -> Optional[Answer]:
        if self.session is None:
            return None
        return self.session.timeout()

    def tick(self, seconds: int = 1) -> Optional[Answer]:
        if self.session is None:
            return None
        return self.session.tick(seconds)

    def pause(self) -> None:
        if self.session is not None:
            self.session.pause()

    def resume(self) -> None:
        if self.session is not None:
            self.session.resume()

    def get_session_result(self) -> Optional[SessionResult]:
        """Result of the current session once complete, else of the last recorded one."""
        if self.session is not None and self.session.is_complete():
            return self.session.result()
        return self.last_result

    def record_session_into_ledger(self, end_time: Optional[datetime] = None) -> list[Achievement]:
        """Fold the completed session into progress and save it.

        Returns the achievements it unlocked. A session that isn't complete,
        or was already recorded, is not recorded.
        """
        if self.session is None or not self.session.is_complete():
            logger.warning("Only a completed session can be recorded")
            return []
        return self._record(self.session, end_time or datetime.now(), completed=True)

    def exit_session(self, record_partial: bool = False, end_time: Optional[datetime] = None) -> list[Achievement]:
        """Leave the current session.

        By default the session is discarded without touching progress. With
        ``record_partial`` the answered questions are recorded and the
        unanswered tail counts as incorrect. If that save fails the abandoned
        session is kept, and calling this again with ``record_partial`` retries.
        """
        session = self.session
        if session is None:
            return []
        if session.is_complete():
            return self.record_session_into_ledger(end_time)
        session.abandon()
        if record_partial and session.answers:
            return self._record(session, end_time or datetime.now(), completed=False)
        self.session = None
        return []

    def _record(self, session: PracticeSession, end_time: datetime, completed: bool) -> list[Achievement]:
        result = session.result()
        answered = list(zip(session.questions, session.answers))
        studied = list(dict.fromkeys(q.word_id for q, _ in answered if q.word_id))

        previous = self.ledger.progress
        try:
            word_stats = get_word_stats(self.db_path, studied)
            for question, answer in answered:
                if not question.word_id:
                    continue
                count, accuracy = word_stats.get(question.word_id, (0, 0.0))
                word_stats[question.word_id] = update_word_accuracy(count, accuracy, answer.is_correct)
            mastered, weak = classify_words(word_stats)
            unlocked = self.ledger.record_session(
                result, studied, end_time, mastered=sorted(mastered), weak=sorted(weak),
            )
            save_session(self.db_path, self.ledger.progress, result, session.questions, word_stats,
                         end_time.isoformat(timespec="seconds"), completed=completed)
        except sqlite3.Error as e:
            logger.error("Session could not be saved: %s", e)
            self.ledger.progress = previous
            self.save_warning = "This session could not be saved."
            return []
        self.save_warning = None
        self.session = None
        self.last_result = result
        self._newly_unlocked = unlocked
        return unlocked

    def get_achievements_newly_unlocked(self) -> list[Achievement]:
        return list(self._newly_unlocked)

    def get_current_streak(self, today: Optional[date] = None) -> int:
        return self.ledger.current_streak(today)

    def get_stats(self, today: Optional[date] = None) -> dict:
        return get_stats(self.ledger.progress, today)

    def save(self) -> bool:
        """Persist the ledger after direct edits (favourites, goals)."""
        try:
            save_progress(self.db_path, self.ledger.progress)
        except sqlite3.Error as e:
            logger.error("Progress could not be saved: %s", e)
            self.save_warning = "Progress could not be saved."
            return False
        self.save_warning = None
        return True

    def word_stats(self) -> dict[str, tuple[int, float]]:
        try:
            return get_word_stats(self.db_path)
        except sqlite3.Error as e:
            logger.warning("Word stats could not be read: %s", e)
            return {}

    def vocabulary_stats(self) -> dict:
        return vocabulary_stats(self.vocabulary, self.word_stats())

    def export_vocabulary(self, fmt: str = "json") -> str:
        return export_vocabulary(self.vocabulary, fmt, self.word_stats())

    def export_backup(self) -> Optional[str]:
        """JSON backup of the stored progress, or None if it can't be read."""
        try:
            return export_progress(self.db_path)
        except (sqlite3.Error, ValueError) as e:
            logger.error("Backup could not be created: %s", e)
            self.save_warning = "Backup could not be created."
            return None

    def import_backup(self, raw: str) -> Optional[str]:
        """Replace progress with a backup. Returns a warning when nothing was restored."""
        progress, warning = import_progress(self.db_path, raw)
        if progress is None:
            return warning
        if self.session is not None:
            self.session.abandon()
            self.session = None
        self.ledger.progress = progress
        self.last_result = None
        self._newly_unlocked = []
        return None
