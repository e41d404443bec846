"""Build practice questions from vocabulary entries."""
import random
import re
from typing import Optional

from vocab_tutor.models import (
    ADVANCED, BEGINNER, BLANK_MARKER, DRAG_ORDER, FILL_BLANK, INTERMEDIATE, LISTENING,
    MULTIPLE_CHOICE, QUESTION_KINDS, Blank, DragItem, DragOrder, FillBlank, Listening,
    MultipleChoice, Question,
)
from vocab_tutor.vocabulary import VocabularyEntry

POINTS = {BEGINNER: 10, INTERMEDIATE: 15, ADVANCED: 20}
TIME_LIMITS = {MULTIPLE_CHOICE: 30, FILL_BLANK: 45, LISTENING: 60, DRAG_ORDER: 60}
MAX_DRAG_WORDS = 8
LISTENING_PLAY_LIMIT = 3


def _question(entry: VocabularyEntry, kind: str, prompt: str, body, explanation: str = "") -> Question:
    return Question(
        id=f"{kind}-{entry.id}",
        prompt=prompt,
        word_id=entry.id,
        difficulty=entry.difficulty,
        category=entry.category,
        points=POINTS.get(entry.difficulty, POINTS[BEGINNER]),
        time_limit=TIME_LIMITS[kind],
        body=body,
        explanation=explanation or f"{entry.word}: {entry.definition}",
    )


def build_multiple_choice(entry: VocabularyEntry, pool: list[VocabularyEntry],
                          rng: random.Random, option_count: int = 4) -> Optional[Question]:
    distractors = [e.word for e in pool if e.id != entry.id and e.word != entry.word]
    if not distractors:
        return None
    options = rng.sample(distractors, min(option_count - 1, len(distractors))) + [entry.word]
    rng.shuffle(options)
    return _question(
        entry, MULTIPLE_CHOICE,
        f"Which term matches this definition?\n{entry.definition}",
        MultipleChoice(options=options, correct_index=options.index(entry.word)),
    )


def build_fill_blank(entry: VocabularyEntry) -> Optional[Question]:
    pattern = re.compile(re.escape(entry.word), re.IGNORECASE)
    for example in entry.examples:
        if pattern.search(example):
            template = pattern.sub(BLANK_MARKER, example, count=1)
            hints = [f"Starts with '{entry.word[0]}'", f"Category: {entry.category}"]
            return _question(
                entry, FILL_BLANK, "Fill in the missing term.",
                FillBlank(template=template, blanks=[Blank(answer=entry.word, hints=hints)]),
            )
    return None


def build_listening(entry: VocabularyEntry) -> Optional[Question]:
    if not entry.audio_url:
        return None
    return _question(
        entry, LISTENING, "Listen and type the term you hear.",
        Listening(audio_url=entry.audio_url, transcript=entry.word, play_limit=LISTENING_PLAY_LIMIT),
    )


def build_drag_order(entry: VocabularyEntry) -> Optional[Question]:
    for example in entry.examples:
        words = example.split()
        if 3 <= len(words) <= MAX_DRAG_WORDS:
            items = [DragItem(id=f"{entry.id}-{i}", content=w, correct_position=i) for i, w in enumerate(words)]
            return _question(entry, DRAG_ORDER, "Put the words in the right order.", DragOrder(items=items))
    return None


def build_question(entry: VocabularyEntry, kind: str, pool: list[VocabularyEntry],
                   rng: random.Random) -> Optional[Question]:
    """Build one question of ``kind``; None when the entry can't support it."""
    if kind == MULTIPLE_CHOICE:
        return build_multiple_choice(entry, pool, rng)
    elif kind == FILL_BLANK:
        return build_fill_blank(entry)
    elif kind == LISTENING:
        return build_listening(entry)
    elif kind == DRAG_ORDER:
        return build_drag_order(entry)
    raise ValueError(f"Unknown question type: {kind}")


def build_questions(entries: list[VocabularyEntry], count: int = 10, kinds: Optional[list[str]] = None,
                    rng: Optional[random.Random] = None) -> list[Question]:
    """Build up to ``count`` questions, rotating through ``kinds``.

    Entries that can't support the requested kind fall back to multiple
    choice. Each entry is used at most once.
    """
    rng = rng or random.Random()
    kinds = list(kinds or QUESTION_KINDS)
    shuffled = list(entries)
    rng.shuffle(shuffled)
    questions = []
    for entry in shuffled:
        if len(questions) >= count:
            break
        kind = kinds[len(questions) % len(kinds)]
        question = build_question(entry, kind, entries, rng)
        if question is None and kind != MULTIPLE_CHOICE:
            question = build_multiple_choice(entry, entries, rng)
        if question is not None:
            questions.append(question)
    return questions
