import json
from unittest.mock import patch

import pytest

from vocab_tutor.app import (
    SessionExitRequested, ask_answer, cmd_backup, cmd_dashboard, cmd_export, cmd_import, cmd_restore, cmd_search,
    cmd_words, console, run_practice_session, session_int_prompt, session_prompt,
)
from vocab_tutor.db import get_practice_history
from vocab_tutor.tutor import Tutor


def test_session_exit_requested_is_exception():
    with pytest.raises(SessionExitRequested):
        raise SessionExitRequested()


def test_session_prompt_raises_on_q():
    with patch("vocab_tutor.app.Prompt.ask", return_value="q"):
        with pytest.raises(SessionExitRequested):
            session_prompt("test prompt")


def test_session_prompt_raises_on_menu():
    with patch("vocab_tutor.app.Prompt.ask", return_value="menu"):
        with pytest.raises(SessionExitRequested):
            session_prompt("test prompt")


def test_session_prompt_returns_normal_input():
    with patch("vocab_tutor.app.Prompt.ask", return_value="hello"):
        result = session_prompt("test prompt")
        assert result == "hello"


def test_session_int_prompt_raises_on_q():
    with patch("vocab_tutor.app.Prompt.ask", return_value="q"):
        with pytest.raises(SessionExitRequested):
            session_int_prompt("answer", choices=["1", "2", "3", "4"])


def test_session_int_prompt_returns_normal_input():
    with patch("vocab_tutor.app.Prompt.ask", return_value="3"):
        result = session_int_prompt("answer", choices=["1", "2", "3", "4"])
        assert result == 3


def test_ask_answer_multiple_choice_is_zero_based(make_question):
    with patch("vocab_tutor.app.Prompt.ask", return_value="2"):
        assert ask_answer(make_question()) == 1


def test_ask_answer_fill_blank(make_question):
    with patch("vocab_tutor.app.Prompt.ask", return_value="DeFi"):
        assert ask_answer(make_question(kind="fill_blank")) == ["DeFi"]


def test_ask_answer_drag_order(make_question):
    # Items show unshuffled as a) three  b) one  c) two
    with patch("vocab_tutor.app.random.shuffle"):
        with patch("vocab_tutor.app.Prompt.ask", return_value="b, c a"):
            assert ask_answer(make_question(kind="drag_order")) == ["A", "B", "C"]


def _questions(make_question):
    return [
        make_question(qid="q1", word_id="w1"),
        make_question(kind="fill_blank", qid="q2", word_id="w2"),
        make_question(kind="listening", qid="q3", word_id="w3"),
    ]


def test_run_practice_session_records_result(tmp_db, make_question):
    tutor = Tutor(tmp_db)
    with patch("vocab_tutor.app.Prompt.ask", side_effect=["1", "defi", "liquidity pool"]):
        result = run_practice_session(tutor, _questions(make_question))
    assert result.correct == 3
    assert result.total_score == 30
    assert len(tutor.ledger.progress.study_sessions) == 1
    assert len(get_practice_history(tmp_db)) == 1


def test_run_practice_session_times_out_slow_answers(tmp_db, make_question):
    tutor = Tutor(tmp_db)
    with patch("vocab_tutor.app.time") as clock:
        clock.monotonic.side_effect = [0, 100, 200, 201, 300, 301]
        with patch("vocab_tutor.app.Prompt.ask", side_effect=["1", "defi", "liquidity pool"]):
            result = run_practice_session(tutor, _questions(make_question))
    assert result.timed_out == 1
    assert result.correct == 2
    assert result.answers[0].time_spent == 30


def test_run_practice_session_exit_discards(tmp_db, make_question):
    """User answers the first question, then types 'q' and declines recording."""
    tutor = Tutor(tmp_db)
    with patch("vocab_tutor.app.Prompt.ask", side_effect=["1", "q"]):
        with patch("vocab_tutor.app.Confirm.ask", return_value=False):
            with pytest.raises(SessionExitRequested):
                run_practice_session(tutor, _questions(make_question))
    assert tutor.session is None
    assert tutor.ledger.progress.study_sessions == []
    assert get_practice_history(tmp_db) == []


def test_run_practice_session_exit_records_partial(tmp_db, make_question):
    tutor = Tutor(tmp_db)
    with patch("vocab_tutor.app.Prompt.ask", side_effect=["1", "q"]):
        with patch("vocab_tutor.app.Confirm.ask", return_value=True):
            with pytest.raises(SessionExitRequested):
                run_practice_session(tutor, _questions(make_question))
    history = get_practice_history(tmp_db)
    assert history[0]["completed"] == 0
    assert history[0]["correct"] == 1
    assert history[0]["total"] == 3


def test_cmd_import_adds_new_terms(tmp_db, tmp_path):
    tutor = Tutor(tmp_db)
    known = len(tutor.vocabulary)
    f = tmp_path / "extra.json"
    f.write_text(json.dumps([
        {"id": "mev", "word": "MEV", "definition": "Value extracted by reordering transactions."},
        {"id": "dao", "word": "DAO", "definition": "Duplicate of a built-in term."},
    ]))
    with patch("vocab_tutor.app.Prompt.ask", return_value=str(f)):
        cmd_import(tutor)
    assert len(tutor.vocabulary) == known + 1
    assert tutor.vocabulary[-1].id == "mev"


def test_cmd_import_missing_file(tmp_db, tmp_path):
    tutor = Tutor(tmp_db)
    known = len(tutor.vocabulary)
    with patch("vocab_tutor.app.Prompt.ask", return_value=str(tmp_path / "missing.json")):
        cmd_import(tutor)
    assert len(tutor.vocabulary) == known


def test_cmd_dashboard_shows_category_accuracy_and_history(tmp_db, make_question):
    tutor = Tutor(tmp_db)
    questions = [make_question(qid="q1", word_id="w1", category="defi"),
                 make_question(qid="q2", word_id="w2", category="nft")]
    with patch("vocab_tutor.app.Prompt.ask", side_effect=["1", "2"]):
        run_practice_session(tutor, questions)
    with console.capture() as capture:
        cmd_dashboard(tutor)
    output = capture.get()
    assert "Accuracy by Category" in output
    assert "nft" in output
    assert "Recent Sessions" in output


def test_cmd_search(tmp_db):
    tutor = Tutor(tmp_db)
    with patch("vocab_tutor.app.Prompt.ask", side_effect=["pool", "defi"]):
        with console.capture() as capture:
            cmd_search(tutor)
    assert "Liquidity" in capture.get()


def test_cmd_words(tmp_db):
    tutor = Tutor(tmp_db)
    with console.capture() as capture:
        cmd_words(tutor)
    assert f"Not started: {len(tutor.vocabulary)}" in capture.get()


def test_cmd_export_csv(tmp_db, tmp_path):
    tutor = Tutor(tmp_db)
    out = tmp_path / "words.csv"
    with patch("vocab_tutor.app.Prompt.ask", side_effect=["csv", str(out)]):
        cmd_export(tutor)
    assert out.read_text().startswith("id,word,definition")


def test_cmd_backup_and_restore(tmp_db, tmp_path, make_question):
    tutor = Tutor(tmp_db)
    with patch("vocab_tutor.app.Prompt.ask", side_effect=["1", "defi", "liquidity pool"]):
        run_practice_session(tutor, _questions(make_question))
    backup = tmp_path / "backup.json"
    with patch("vocab_tutor.app.Prompt.ask", return_value=str(backup)):
        cmd_backup(tutor)
    assert backup.exists()

    fresh = Tutor(str(tmp_path / "fresh.db"))
    with patch("vocab_tutor.app.Prompt.ask", return_value=str(backup)):
        with patch("vocab_tutor.app.Confirm.ask", return_value=True):
            cmd_restore(fresh)
    assert len(fresh.ledger.progress.study_sessions) == 1


def test_cmd_restore_bad_file_keeps_progress(tmp_db, tmp_path):
    tutor = Tutor(tmp_db)
    before = tutor.ledger.progress
    bad = tmp_path / "bad.json"
    bad.write_text("not a backup")
    with patch("vocab_tutor.app.Prompt.ask", return_value=str(bad)):
        with patch("vocab_tutor.app.Confirm.ask", return_value=True):
            with console.capture() as capture:
                cmd_restore(tutor)
    assert "nothing was restored" in capture.get()
    assert tutor.ledger.progress is before
