"""Database initialization, connection management and progress persistence."""
import json
import logging
import sqlite3
from pathlib import Path
from typing import Optional

from vocab_tutor.achievements import default_achievements
from vocab_tutor.ledger import new_progress
from vocab_tutor.models import (
    Question, SessionResult, UserProgress, now_iso, progress_from_dict, progress_to_dict,
)

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = str(Path.home() / ".vocab_tutor" / "tutor.db")

PROGRESS_KEY = "user_progress"

SCHEMA = """
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT
);

CREATE TABLE IF NOT EXISTS practice_results (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    started_at TEXT,
    ended_at TEXT NOT NULL,
    total_score INTEGER NOT NULL,
    max_score INTEGER NOT NULL,
    correct INTEGER NOT NULL,
    total INTEGER NOT NULL,
    elapsed_seconds INTEGER NOT NULL,
    completed INTEGER NOT NULL DEFAULT 1
);

CREATE TABLE IF NOT EXISTS answer_log (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    practice_result_id INTEGER NOT NULL REFERENCES practice_results(id),
    question_id TEXT NOT NULL,
    word_id TEXT,
    question_type TEXT NOT NULL,
    category TEXT,
    difficulty TEXT,
    user_answer TEXT NOT NULL,
    is_correct INTEGER NOT NULL,
    points INTEGER NOT NULL,
    time_spent INTEGER NOT NULL,
    timed_out INTEGER NOT NULL DEFAULT 0,
    answered_at TEXT
);

CREATE TABLE IF NOT EXISTS word_stats (
    word_id TEXT PRIMARY KEY,
    study_count INTEGER NOT NULL DEFAULT 0,
    accuracy REAL NOT NULL DEFAULT 0,
    last_studied TEXT
);

CREATE TABLE IF NOT EXISTS user_settings (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    key TEXT NOT NULL UNIQUE,
    value TEXT
);
"""


def get_connection(db_path: str = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Return a SQLite connection with row factory and foreign keys enabled."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def init_db(db_path: str = DEFAULT_DB_PATH) -> None:
    """Initialize the database, creating all tables if they don't exist."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = get_connection(db_path)
    conn.executescript(SCHEMA)
    conn.commit()
    conn.close()


def get_setting(db_path: str, key: str, default: str = None) -> str | None:
    conn = get_connection(db_path)
    row = conn.execute("SELECT value FROM user_settings WHERE key = ?", (key,)).fetchone()
    conn.close()
    return row["value"] if row else default


def set_setting(db_path: str, key: str, value: str) -> None:
    conn = get_connection(db_path)
    conn.execute(
        "INSERT INTO user_settings (key, value) VALUES (?, ?) ON CONFLICT(key) DO UPDATE SET value=?",
        (key, value, value),
    )
    conn.commit()
    conn.close()


def _with_missing_achievements(progress: UserProgress) -> UserProgress:
    known = {a.id for a in progress.achievements}
    for achievement in default_achievements():
        if achievement.id not in known:
            progress.achievements.append(achievement)
    return progress


def load_progress(db_path: str) -> tuple[UserProgress, Optional[str]]:
    """Load the stored progress.

    Returns (progress, warning). A missing record yields fresh progress and
    no warning; an unreadable or corrupt one yields fresh progress and a
    warning for the caller to display.
    """
    try:
        conn = get_connection(db_path)
        try:
            row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (PROGRESS_KEY,)).fetchone()
        finally:
            conn.close()
    except sqlite3.Error as e:
        logger.warning("Progress could not be read from %s: %s", db_path, e)
        return new_progress(), "Progress could not be loaded; starting fresh."
    if row is None:
        return new_progress(), None
    try:
        progress = progress_from_dict(json.loads(row["value"]))
    except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
        logger.warning("Stored progress is corrupt: %s", e)
        return new_progress(), "Saved progress was corrupt; starting fresh."
    return _with_missing_achievements(progress), None


def _write_progress(conn: sqlite3.Connection, progress: UserProgress) -> None:
    conn.execute(
        "INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?) "
        "ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at",
        (PROGRESS_KEY, json.dumps(progress_to_dict(progress)), now_iso()),
    )


def save_progress(db_path: str, progress: UserProgress) -> None:
    conn = get_connection(db_path)
    try:
        with conn:
            _write_progress(conn, progress)
    finally:
        conn.close()


def get_word_stats(db_path: str, word_ids: Optional[list[str]] = None) -> dict[str, tuple[int, float]]:
    """Study count and accuracy per word, optionally limited to ``word_ids``."""
    conn = get_connection(db_path)
    rows = conn.execute("SELECT word_id, study_count, accuracy FROM word_stats").fetchall()
    conn.close()
    stats = {r["word_id"]: (r["study_count"], r["accuracy"]) for r in rows}
    if word_ids is not None:
        stats = {w: stats[w] for w in word_ids if w in stats}
    return stats


def save_session(db_path: str, progress: UserProgress, result: SessionResult, questions: list[Question],
                 word_stats: dict[str, tuple[int, float]], ended_at: str, completed: bool = True) -> int:
    """Persist a finished session and the progress it produced in one transaction.

    Returns the practice_results row id. On any error nothing is written.
    """
    conn = get_connection(db_path)
    try:
        with conn:
            cur = conn.execute(
                """INSERT INTO practice_results
                (started_at, ended_at, total_score, max_score, correct, total, elapsed_seconds, completed)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                (result.started_at, ended_at, result.total_score, result.max_score, result.correct,
                 result.total, result.elapsed_seconds, int(completed)),
            )
            result_id = cur.lastrowid
            for question, answer in zip(questions, result.answers):
                conn.execute(
                    """INSERT INTO answer_log
                    (practice_result_id, question_id, word_id, question_type, category, difficulty,
                     user_answer, is_correct, points, time_spent, timed_out, answered_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                    (result_id, question.id, question.word_id, question.kind, question.category,
                     question.difficulty, json.dumps(answer.value), int(answer.is_correct), answer.points,
                     answer.time_spent, int(answer.timed_out), answer.answered_at),
                )
            for word_id, (count, accuracy) in word_stats.items():
                conn.execute(
                    "INSERT INTO word_stats (word_id, study_count, accuracy, last_studied) VALUES (?, ?, ?, ?) "
                    "ON CONFLICT(word_id) DO UPDATE SET study_count=excluded.study_count, "
                    "accuracy=excluded.accuracy, last_studied=excluded.last_studied",
                    (word_id, count, accuracy, ended_at),
                )
            _write_progress(conn, progress)
    finally:
        conn.close()
    return result_id


def get_practice_history(db_path: str, limit: int = 10) -> list[dict]:
    conn = get_connection(db_path)
    rows = conn.execute(
        "SELECT * FROM practice_results ORDER BY id DESC LIMIT ?", (limit,)
    ).fetchall()
    conn.close()
    return [dict(r) for r in rows]


def get_category_accuracy(db_path: str) -> dict:
    """Answer accuracy per category across all sessions, as a percentage."""
    conn = get_connection(db_path)
    rows = conn.execute(
        """SELECT category, COUNT(*) as total, SUM(is_correct) as correct
        FROM answer_log GROUP BY category"""
    ).fetchall()
    conn.close()
    return {
        row["category"]: round((row["correct"] / row["total"]) * 100, 1)
        for row in rows
    }


BACKUP_VERSION = 1


def export_progress(db_path: str) -> str:
    """Back up progress, word stats and settings as a JSON document."""
    progress, warning = load_progress(db_path)
    if warning:
        raise ValueError(warning)
    conn = get_connection(db_path)
    settings = conn.execute("SELECT key, value FROM user_settings ORDER BY key").fetchall()
    conn.close()
    backup = {
        "version": BACKUP_VERSION,
        "exported_at": now_iso(),
        "progress": progress_to_dict(progress),
        "word_stats": {w: [count, acc] for w, (count, acc) in get_word_stats(db_path).items()},
        "settings": {r["key"]: r["value"] for r in settings},
    }
    return json.dumps(backup, ensure_ascii=False, indent=2)


def _parse_backup(raw: str) -> tuple[UserProgress, dict[str, tuple[int, float]], dict[str, str]]:
    data = json.loads(raw)
    if not isinstance(data, dict) or data.get("version") != BACKUP_VERSION:
        raise ValueError("Not a progress backup")
    progress = progress_from_dict(data["progress"])
    word_stats = {}
    for word_id, (count, accuracy) in data.get("word_stats", {}).items():
        if isinstance(count, bool) or not isinstance(count, int) or not isinstance(accuracy, (int, float)):
            raise TypeError(f"Bad word stats for {word_id}")
        word_stats[str(word_id)] = (count, float(accuracy))
    settings = {str(k): str(v) for k, v in data.get("settings", {}).items()}
    return progress, word_stats, settings


def import_progress(db_path: str, raw: str) -> tuple[Optional[UserProgress], Optional[str]]:
    """Restore a backup made by export_progress, replacing what is stored.

    Returns (progress, None) on success. A malformed backup or a database
    error leaves the stored data untouched and returns (None, warning).
    """
    try:
        progress, word_stats, settings = _parse_backup(raw)
    except (json.JSONDecodeError, KeyError, TypeError, ValueError, AttributeError) as e:
        logger.warning("Backup is not valid: %s", e)
        return None, "Backup file is not valid; nothing was restored."
    progress = _with_missing_achievements(progress)
    try:
        conn = get_connection(db_path)
        try:
            with conn:
                conn.execute("DELETE FROM word_stats")
                for word_id, (count, accuracy) in word_stats.items():
                    conn.execute(
                        "INSERT INTO word_stats (word_id, study_count, accuracy) VALUES (?, ?, ?)",
                        (word_id, count, accuracy),
                    )
                for key, value in settings.items():
                    conn.execute(
                        "INSERT INTO user_settings (key, value) VALUES (?, ?) "
                        "ON CONFLICT(key) DO UPDATE SET value=excluded.value",
                        (key, value),
                    )
                _write_progress(conn, progress)
        finally:
            conn.close()
    except sqlite3.Error as e:
        logger.error("Backup could not be restored: %s", e)
        return None, "Backup could not be restored."
    return progress, None
