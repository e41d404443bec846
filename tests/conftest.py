import pytest

from vocab_tutor.models import (
    Blank, DragItem, DragOrder, FillBlank, Listening, MultipleChoice, Question,
)


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_tutor.db")
    return db_path


@pytest.fixture
def make_question():
    """Factory for questions of each kind with sensible defaults."""
    def _make(kind="multiple_choice", qid="q1", word_id="w1", category="defi",
              difficulty="beginner", points=10, time_limit=30):
        if kind == "multiple_choice":
            body = MultipleChoice(options=["DeFi", "NFT", "DAO", "Oracle"], correct_index=0)
        elif kind == "fill_blank":
            body = FillBlank(template="___ lets anyone lend.", blanks=[Blank(answer="DeFi")])
        elif kind == "listening":
            body = Listening(audio_url="audio/defi.mp3", transcript="Liquidity Pool")
        else:
            body = DragOrder(items=[
                DragItem(id="C", content="three", correct_position=2),
                DragItem(id="A", content="one", correct_position=0),
                DragItem(id="B", content="two", correct_position=1),
            ])
        return Question(
            id=qid, prompt="prompt", word_id=word_id, difficulty=difficulty,
            category=category, points=points, time_limit=time_limit, body=body,
        )
    return _make
