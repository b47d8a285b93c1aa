"""Tests for the command line interface."""

import pytest
from click.testing import CliRunner

from assessment_engine.cli import cli


QUESTIONS_YAML = """
questions:
  - question_id: sd-cache
    content: "Design a read-through cache for a product catalog."
    type: system-design
    difficulty: medium
    category: Caching
    explanation: "Cache aside with TTLs and invalidation on writes."
  - question_id: tech-locks
    content: "When would you use a lock instead of a queue?"
    type: technical
    difficulty: medium
    hints:
      - "Think about shared mutable state."
  - question_id: mc-status
    content: "Which status code means the resource was created?"
    type: multiple-choice
    difficulty: medium
    company: Acme Corp
    options:
      - {option_id: a, text: "200 OK"}
      - {option_id: b, text: "201 Created", is_correct: true}
"""


@pytest.fixture
def config_dir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("ENVIRONMENT", "test")

    (tmp_path / "questions.yaml").write_text(QUESTIONS_YAML, encoding="utf-8")
    directory = tmp_path / "config"
    directory.mkdir()
    (directory / "config.yaml").write_text(f"""
logging:
  level: WARNING
  console: false
storage:
  backend: file
  base_path: "{tmp_path / 'data'}"
engine:
  question_bank_path: "{tmp_path / 'questions.yaml'}"
  analytics_backend: none
""", encoding="utf-8")
    return directory


@pytest.fixture
def runner():
    return CliRunner()


def invoke(runner, config_dir, *args, input=None):
    return runner.invoke(cli, ["--config", str(config_dir), *args], input=input)


def stored_session_ids(config_dir):
    return [path.stem for path in (config_dir.parent / "data" / "sessions").glob("*.json")]


def test_help_lists_commands(runner):
    result = runner.invoke(cli, ["--help"])

    assert result.exit_code == 0
    for command in ("start", "resume", "show", "sessions", "stats", "metadata", "housekeeping", "status"):
        assert command in result.output


def test_start_runs_session_to_completion(runner, config_dir):
    result = invoke(
        runner, config_dir, "start", "--type", "system-design", "--count", "1", "--user", "u1", "--no-ai",
        input="Cache aside with a TTL\n",
    )

    assert result.exit_code == 0, result.output
    assert "Design a read-through cache" in result.output
    assert "Final Report" in result.output
    assert "Overall score: 100" in result.output

    stats = invoke(runner, config_dir, "stats", "--user", "u1")
    assert stats.exit_code == 0, stats.output
    assert "Completed sessions: 1" in stats.output


def test_hint_then_answer(runner, config_dir):
    result = invoke(
        runner, config_dir, "start", "--type", "technical", "--count", "1", "--no-ai",
        input=":hint\n:hint\nUse a lock for shared state\n",
    )

    assert result.exit_code == 0, result.output
    assert "Hint 1:" in result.output
    assert "Think about shared mutable state." in result.output
    assert "No more hints available" in result.output
    assert "Final Report" in result.output


def test_options_are_displayed(runner, config_dir):
    result = invoke(
        runner, config_dir, "start", "--type", "mixed", "--difficulty", "medium", "--count", "3", "--no-ai",
        input="b\nanswer\nanswer\n",
    )

    assert result.exit_code == 0, result.output
    assert "[b] 201 Created" in result.output


def test_pause_and_resume(runner, config_dir):
    paused = invoke(runner, config_dir, "start", "--type", "technical", "--count", "1", "--user", "u1", "--no-ai",
                    input=":quit\n")

    assert paused.exit_code == 0, paused.output
    assert "Session paused" in paused.output
    [session_id] = stored_session_ids(config_dir)

    listing = invoke(runner, config_dir, "sessions", "--user", "u1", "--status", "in-progress")
    assert listing.exit_code == 0, listing.output
    assert "1 session(s) in total" in listing.output

    resumed = invoke(runner, config_dir, "resume", session_id, "--no-ai", input="Use a lock\n")
    assert resumed.exit_code == 0, resumed.output
    assert "Final Report" in resumed.output

    shown = invoke(runner, config_dir, "show", session_id)
    assert shown.exit_code == 0, shown.output
    assert "completed" in shown.output


def test_housekeeping_abandons_idle_sessions(runner, config_dir):
    invoke(runner, config_dir, "start", "--type", "technical", "--count", "1", "--no-ai", input=":quit\n")

    result = invoke(runner, config_dir, "housekeeping", "--idle-minutes", "0")

    assert result.exit_code == 0, result.output
    assert "Abandoned 1 idle session(s)" in result.output


def test_metadata(runner, config_dir):
    result = invoke(runner, config_dir, "metadata")

    assert result.exit_code == 0, result.output
    assert "Acme Corp" in result.output
    assert "system-design" in result.output


def test_unknown_session_exits_with_error(runner, config_dir):
    result = invoke(runner, config_dir, "show", "missing")

    assert result.exit_code == 1
    assert "NOT_FOUND" in result.output


def test_invalid_count_exits_with_error(runner, config_dir):
    result = invoke(runner, config_dir, "start", "--count", "0", "--no-ai")

    assert result.exit_code == 1
    assert "INVALID_REQUEST" in result.output


def test_status(runner, config_dir):
    result = invoke(runner, config_dir, "status")

    assert result.exit_code == 0, result.output
    assert "Questions in bank: 3" in result.output
    assert "question_source" in result.output
    assert "No LLM providers configured" in result.output
