"""Answer checking for each question variant."""
import logging

from vocab_tutor.models import DragOrder, FillBlank, Listening, MultipleChoice, Question

logger = logging.getLogger(__name__)


def is_empty(value) -> bool:
    """True for omitted submissions: None, blank strings and empty containers."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple, dict)):
        return len(value) == 0
    return False


def _normalize(text: str) -> str:
    return text.strip().lower()


def _check_multiple_choice(body: MultipleChoice, value) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return value == body.correct_index
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip()) == body.correct_index
    return False


def _check_fill_blank(body: FillBlank, value) -> bool:
    if not isinstance(value, (list, tuple)) or len(value) != len(body.blanks):
        return False
    for blank, given in zip(body.blanks, value):
        if not isinstance(given, str) or _normalize(given) != _normalize(blank.answer):
            return False
    return True


def _check_listening(body: Listening, value) -> bool:
    if not isinstance(value, str):
        return False
    return _normalize(value) == _normalize(body.transcript)


def _check_drag_order(body: DragOrder, value) -> bool:
    if not isinstance(value, (list, tuple)) or len(value) != len(body.items):
        return False
    return list(value) == body.correct_order()


def is_correct(question: Question, value) -> bool:
    """Return whether ``value`` is a correct answer to ``question``.

    Never raises: wrong-shaped or empty submissions are simply incorrect.
    """
    if is_empty(value):
        return False
    body = question.body
    if isinstance(body, MultipleChoice):
        return _check_multiple_choice(body, value)
    elif isinstance(body, FillBlank):
        return _check_fill_blank(body, value)
    elif isinstance(body, Listening):
        return _check_listening(body, value)
    elif isinstance(body, DragOrder):
        return _check_drag_order(body, value)
    logger.warning("Question %s has unsupported body %r", question.id, type(body).__name__)
    return False


def correct_answer_text(question: Question) -> str:
    """Human-readable correct answer, for feedback after a submission."""
    body = question.body
    if isinstance(body, MultipleChoice):
        if 0 <= body.correct_index < len(body.options):
            return body.options[body.correct_index]
        return ""
    elif isinstance(body, FillBlank):
        return ", ".join(b.answer for b in body.blanks)
    elif isinstance(body, Listening):
        return body.transcript
    elif isinstance(body, DragOrder):
        by_id = {item.id: item.content for item in body.items}
        return " ".join(by_id[item_id] for item_id in body.correct_order())
    return ""
