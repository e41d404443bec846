"""Practice session engine: question sequencing, timing and answer recording."""
import logging
from datetime import datetime
from typing import Optional

from vocab_tutor.checker import is_correct
from vocab_tutor.models import Answer, Question, SessionResult
from vocab_tutor.scoring import summarize

logger = logging.getLogger(__name__)

ACTIVE = "active"
COMPLETE = "complete"
ABANDONED = "abandoned"


class PracticeSession:
    """A single run through a fixed list of questions.

    The index only moves forward, one question per submit or timeout. Once
    complete or abandoned, every further transition is rejected and returns
    None. Discarding the object at any point has no side effects.
    """

    def __init__(self, questions: list[Question], started_at: Optional[datetime] = None):
        if not questions:
            raise ValueError("A practice session needs at least one question")
        self.questions = list(questions)
        self.answers: list[Answer] = []
        self.index = 0
        self.started_at = (started_at or datetime.now()).isoformat(timespec="seconds")
        self.remaining = self.questions[0].time_limit
        self.paused = False
        self.status = ACTIVE

    @property
    def current_question(self) -> Optional[Question]:
        if self.status != ACTIVE:
            return None
        return self.questions[self.index]

    def is_complete(self) -> bool:
        return self.status == COMPLETE

    def is_active(self) -> bool:
        return self.status == ACTIVE

    def submit(self, value, index: Optional[int] = None, time_spent: Optional[int] = None,
               timed_out: bool = False) -> Optional[Answer]:
        """Record an answer for the current question and advance.

        ``index`` pins the submission to the question it was made for; a
        submission for an index that has already moved on is ignored.
        """
        if self.status != ACTIVE:
            logger.warning("Ignoring submission: session is %s", self.status)
            return None
        if index is not None and index != self.index:
            logger.warning("Ignoring late submission for question %d (now at %d)", index, self.index)
            return None
        question = self.questions[self.index]
        if time_spent is None:
            time_spent = question.time_limit - self.remaining
        correct = False if timed_out else is_correct(question, value)
        answer = Answer(
            question_id=question.id,
            value=value,
            time_spent=max(0, int(time_spent)),
            is_correct=correct,
            points=question.points if correct else 0,
            answered_at=datetime.now().isoformat(timespec="seconds"),
            timed_out=timed_out,
        )
        self.answers.append(answer)
        self.index += 1
        if self.index >= len(self.questions):
            self.status = COMPLETE
            self.remaining = 0
        else:
            self.remaining = self.questions[self.index].time_limit
        return answer

    def timeout(self) -> Optional[Answer]:
        """Record an empty, incorrect answer for the current question."""
        if self.status != ACTIVE:
            return None
        question = self.questions[self.index]
        return self.submit("", time_spent=question.time_limit, timed_out=True)

    def tick(self, seconds: int = 1) -> Optional[Answer]:
        """Advance the countdown; fires timeout() when it reaches zero."""
        if self.status != ACTIVE or self.paused:
            return None
        self.remaining = max(0, self.remaining - seconds)
        if self.remaining == 0:
            return self.timeout()
        return None

    def pause(self) -> None:
        self.paused = True

    def resume(self) -> None:
        self.paused = False

    def abandon(self) -> None:
        if self.status == ACTIVE:
            self.status = ABANDONED
            self.remaining = 0

    def result(self) -> SessionResult:
        return summarize(self.questions, self.answers, started_at=self.started_at)
