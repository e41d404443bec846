"""Session scoring and result breakdowns."""
from typing import Optional

from vocab_tutor.models import Answer, Bucket, Question, SessionResult

WEAK_CATEGORY_THRESHOLD = 0.6


def empty_answer(question: Question) -> Answer:
    """Placeholder for a question that was never answered."""
    return Answer(
        question_id=question.id, value="", time_spent=0,
        is_correct=False, points=0, timed_out=True,
    )


def _bucket(buckets: dict, key: str, correct: bool) -> None:
    bucket = buckets.setdefault(key, Bucket())
    bucket.total += 1
    if correct:
        bucket.correct += 1


def summarize(questions: list[Question], answers: list[Answer], started_at: Optional[str] = None) -> SessionResult:
    """Reduce a session's questions and answers into a SessionResult.

    An answers list shorter than the question list (abandoned session) is
    padded with empty incorrect answers; surplus answers are ignored.
    """
    answers = list(answers[:len(questions)])
    for question in questions[len(answers):]:
        answers.append(empty_answer(question))

    by_category: dict[str, Bucket] = {}
    by_difficulty: dict[str, Bucket] = {}
    by_kind: dict[str, Bucket] = {}
    review: list[str] = []
    word_categories: dict[str, str] = {}
    for question, answer in zip(questions, answers):
        _bucket(by_category, question.category, answer.is_correct)
        _bucket(by_difficulty, question.difficulty, answer.is_correct)
        _bucket(by_kind, question.kind, answer.is_correct)
        if question.word_id:
            word_categories[question.word_id] = question.category
            if not answer.is_correct and question.word_id not in review:
                review.append(question.word_id)

    total = len(answers)
    correct = sum(1 for a in answers if a.is_correct)
    timed_out = sum(1 for a in answers if a.timed_out)
    elapsed = sum(a.time_spent for a in answers)
    return SessionResult(
        total_score=sum(a.points for a in answers),
        max_score=sum(q.points for q in questions),
        correct=correct,
        total=total,
        wrong=total - correct - timed_out,
        timed_out=timed_out,
        accuracy=correct / total if total else 0.0,
        elapsed_seconds=elapsed,
        average_seconds=round(elapsed / total, 1) if total else 0.0,
        by_category=by_category,
        by_difficulty=by_difficulty,
        by_kind=by_kind,
        weak_categories=[
            name for name, b in by_category.items() if b.accuracy < WEAK_CATEGORY_THRESHOLD
        ],
        review_suggestions=review,
        word_categories=word_categories,
        answers=answers,
        started_at=started_at,
    )
