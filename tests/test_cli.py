"""Tests for the study-cli entry point."""

import json

import pytest

from app.modules.ai.service import StudyAssistant
from app.modules.study.cli import main
from conftest import deck_payload, quiz_payload, structured_model, text_model


@pytest.fixture
def notes(tmp_path):
    path = tmp_path / "notes.txt"
    path.write_text("Queues are FIFO.", encoding="utf-8")
    return path


def test_summarize(notes, capsys):
    calls: list = []
    code = main(
        ["summarize", "--file", str(notes)],
        assistant=StudyAssistant(text_model("FIFO queues", calls)),
    )
    assert code == 0
    out = json.loads(capsys.readouterr().out)
    assert out == {"name": "notes.txt", "summary": "FIFO queues"}
    assert len(calls) == 1


def test_quiz(notes, capsys):
    main(
        ["quiz", "-f", str(notes), "-n", "2"],
        assistant=StudyAssistant(structured_model(quiz_payload("Q1", "Q2", "Q3"))),
    )
    out = json.loads(capsys.readouterr().out)
    assert [q["question"] for q in out] == ["Q1", "Q2"]
    assert out[0]["correctAnswer"] == "A"


def test_flashcards(notes, capsys):
    main(
        ["flashcards", "-f", str(notes)],
        assistant=StudyAssistant(structured_model(deck_payload("Queue"))),
    )
    out = json.loads(capsys.readouterr().out)
    assert out == [{"term": "Queue", "definition": "Queue defined"}]


def test_missing_file(tmp_path):
    with pytest.raises(SystemExit):
        main(["summarize", "--file", str(tmp_path / "nope.txt")], assistant=StudyAssistant(text_model()))
