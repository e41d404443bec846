"""Data classes for the practice and progress domain model."""
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime
from typing import Any, Optional, Union, get_args, get_origin, get_type_hints

BEGINNER = "beginner"
INTERMEDIATE = "intermediate"
ADVANCED = "advanced"
DIFFICULTIES = (BEGINNER, INTERMEDIATE, ADVANCED)

MULTIPLE_CHOICE = "multiple_choice"
FILL_BLANK = "fill_blank"
LISTENING = "listening"
DRAG_ORDER = "drag_order"
QUESTION_KINDS = (MULTIPLE_CHOICE, FILL_BLANK, LISTENING, DRAG_ORDER)

BLANK_MARKER = "___"

LOCKED = "locked"
IN_PROGRESS = "in_progress"
UNLOCKED = "unlocked"

STUDY_STREAK = "study_streak"
WORDS_MASTERED = "words_mastered"
PRACTICE_COUNT = "practice_count"
ACCURACY_RATE = "accuracy_rate"
STUDY_TIME = "study_time"
CATEGORY_MASTER = "category_master"
ACHIEVEMENT_TYPES = (
    STUDY_STREAK, WORDS_MASTERED, PRACTICE_COUNT, ACCURACY_RATE, STUDY_TIME, CATEGORY_MASTER,
)


@dataclass
class MultipleChoice:
    options: list[str]
    correct_index: int
    kind = MULTIPLE_CHOICE


@dataclass
class Blank:
    answer: str
    hints: list[str] = field(default_factory=list)


@dataclass
class FillBlank:
    template: str
    blanks: list[Blank]
    kind = FILL_BLANK


@dataclass
class Listening:
    audio_url: str
    transcript: str
    play_limit: Optional[int] = None
    kind = LISTENING


@dataclass
class DragItem:
    id: str
    content: str
    correct_position: int


@dataclass
class DragOrder:
    items: list[DragItem]
    kind = DRAG_ORDER

    def correct_order(self) -> list[str]:
        return [item.id for item in sorted(self.items, key=lambda i: i.correct_position)]


@dataclass
class Question:
    id: str
    prompt: str
    word_id: str
    difficulty: str
    category: str
    points: int
    time_limit: int
    body: Any  # MultipleChoice | FillBlank | Listening | DragOrder
    explanation: str = ""

    @property
    def kind(self) -> str:
        return self.body.kind


@dataclass
class Answer:
    question_id: str
    value: Any  # str, list[str] or dict[str, str]
    time_spent: int
    is_correct: bool
    points: int
    answered_at: Optional[str] = None
    timed_out: bool = False


@dataclass
class Bucket:
    correct: int = 0
    total: int = 0

    @property
    def accuracy(self) -> float:
        return self.correct / self.total if self.total else 0.0


@dataclass
class SessionResult:
    total_score: int
    max_score: int
    correct: int
    total: int
    wrong: int
    timed_out: int
    accuracy: float
    elapsed_seconds: int
    average_seconds: float
    by_category: dict[str, Bucket]
    by_difficulty: dict[str, Bucket]
    by_kind: dict[str, Bucket]
    weak_categories: list[str]
    review_suggestions: list[str]
    word_categories: dict[str, str]
    answers: list[Answer]
    started_at: Optional[str] = None


@dataclass
class DailyStats:
    date: str  # YYYY-MM-DD
    words_studied: int = 0
    practice_sessions: int = 0
    correct_answers: int = 0
    total_answers: int = 0
    study_time_minutes: int = 0
    new_mastered_words: int = 0


@dataclass
class StudySession:
    id: str
    start_time: str
    end_time: str
    duration: int  # seconds
    words_studied: list[str] = field(default_factory=list)
    session_type: str = "practice"


@dataclass
class Achievement:
    id: str
    name: str
    type: str
    target: int
    reward_points: int
    description: str = ""
    progress: float = 0
    status: str = LOCKED
    unlocked_at: Optional[str] = None
    category: Optional[str] = None


@dataclass
class LearningGoal:
    id: str
    type: str
    name: str
    target: int
    current: float = 0
    completed: bool = False
    deadline: Optional[str] = None
    created_at: Optional[str] = None


@dataclass
class UserProgress:
    user_id: str = "local"
    study_sessions: list[StudySession] = field(default_factory=list)
    daily_stats: list[DailyStats] = field(default_factory=list)
    streak_days: int = 0
    max_streak_days: int = 0
    mastered_words: list[str] = field(default_factory=list)
    weak_words: list[str] = field(default_factory=list)
    favorite_words: list[str] = field(default_factory=list)
    word_categories: dict[str, str] = field(default_factory=dict)
    total_study_time: int = 0  # minutes
    total_points: int = 0
    level: int = 1
    current_level_exp: int = 0
    next_level_exp: int = 100
    achievements: list[Achievement] = field(default_factory=list)
    goals: list[LearningGoal] = field(default_factory=list)
    last_study_time: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


def now_iso() -> str:
    return datetime.now().isoformat(timespec="seconds")


def progress_to_dict(progress: UserProgress) -> dict:
    """Serialize a UserProgress into a JSON-ready dict."""
    return asdict(progress)


def _matches(value, expected) -> bool:
    if expected is Any:
        return True
    origin = get_origin(expected)
    if origin is Union:
        return any(_matches(value, option) for option in get_args(expected))
    if origin is list:
        (item_type,) = get_args(expected)
        return isinstance(value, list) and all(_matches(v, item_type) for v in value)
    if origin is dict:
        key_type, value_type = get_args(expected)
        return isinstance(value, dict) and all(
            _matches(k, key_type) and _matches(v, value_type) for k, v in value.items()
        )
    if expected is type(None):
        return value is None
    if expected is bool:
        return isinstance(value, bool)
    if isinstance(value, bool):
        return False
    if expected is float:
        return isinstance(value, (int, float))
    return isinstance(value, expected)


def check_types(record) -> None:
    """Raise TypeError if any field of a dataclass holds a value of the wrong type."""
    hints = get_type_hints(type(record))
    for f in fields(record):
        value = getattr(record, f.name)
        if not _matches(value, hints[f.name]):
            raise TypeError(f"{type(record).__name__}.{f.name} has unexpected value {value!r}")


def progress_from_dict(data: dict) -> UserProgress:
    """Rebuild a UserProgress from the dict produced by progress_to_dict.

    Raises KeyError/TypeError/ValueError on records that don't have the
    expected shape or hold values of the wrong type.
    """
    if not isinstance(data, dict):
        raise TypeError(f"Progress record must be an object, got {type(data).__name__}")
    data = dict(data)
    data["study_sessions"] = [StudySession(**s) for s in data.get("study_sessions", [])]
    data["daily_stats"] = [DailyStats(**d) for d in data.get("daily_stats", [])]
    data["achievements"] = [Achievement(**a) for a in data.get("achievements", [])]
    data["goals"] = [LearningGoal(**g) for g in data.get("goals", [])]
    progress = UserProgress(**data)
    for record in (*progress.study_sessions, *progress.daily_stats, *progress.achievements, *progress.goals):
        check_types(record)
    check_types(progress)
    return progress


def question_from_dict(d: dict) -> Question:
    """Build a Question from a plain dict with a ``type`` discriminant."""
    kind = d["type"]
    if kind == MULTIPLE_CHOICE:
        body = MultipleChoice(options=list(d["options"]), correct_index=int(d["correct_index"]))
    elif kind == FILL_BLANK:
        body = FillBlank(
            template=d["template"],
            blanks=[Blank(answer=b["answer"], hints=list(b.get("hints", []))) for b in d["blanks"]],
        )
    elif kind == LISTENING:
        body = Listening(
            audio_url=d["audio_url"], transcript=d["transcript"], play_limit=d.get("play_limit"),
        )
    elif kind == DRAG_ORDER:
        body = DragOrder(items=[
            DragItem(id=str(i["id"]), content=i.get("content", ""), correct_position=int(i["correct_position"]))
            for i in d["items"]
        ])
    else:
        raise ValueError(f"Unknown question type: {kind}")
    return Question(
        id=str(d["id"]),
        prompt=d["prompt"],
        word_id=str(d.get("word_id", "")),
        difficulty=d.get("difficulty", BEGINNER),
        category=d.get("category", ""),
        points=int(d.get("points", 10)),
        time_limit=int(d.get("time_limit", 30)),
        body=body,
        explanation=d.get("explanation", ""),
    )
