import io

import pytest

from talisman.prompt import Prompt, PromptContext


@pytest.mark.parametrize(
    ("answer", "expected"),
    [("y\n", True), ("yes\n", True), ("n\n", False), ("\n", False)],
)
def test_confirm_reads_answer(monkeypatch, answer, expected):
    monkeypatch.setattr("sys.stdin", io.StringIO(answer))
    assert Prompt().confirm("Proceed?") is expected


def test_confirm_on_end_of_input_is_false(monkeypatch):
    monkeypatch.setattr("sys.stdin", io.StringIO(""))
    assert Prompt().confirm("Proceed?") is False


def test_empty_message_uses_default_question(monkeypatch, capsys):
    monkeypatch.setattr("sys.stdin", io.StringIO("y\n"))
    assert Prompt().confirm("") is True
    assert "Confirm?" in capsys.readouterr().out


def test_given_message_is_shown(monkeypatch, capsys):
    monkeypatch.setattr("sys.stdin", io.StringIO("n\n"))
    assert Prompt().confirm("Add ignores?") is False
    assert "Add ignores?" in capsys.readouterr().out


def test_prompt_context_uses_its_prompt(monkeypatch):
    monkeypatch.setattr("sys.stdin", io.StringIO("y\n"))
    context = PromptContext(interactive=True, prompt=Prompt())
    assert context.interactive is True
    assert context.prompt.confirm("Proceed?") is True