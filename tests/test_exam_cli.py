from __future__ import annotations

import json
import re
from datetime import datetime, timedelta, timezone

import pytest

from exam_trainer import exam_cli
from exam_trainer.engine.history import HistoryStore, build_record
from exam_trainer.engine.identity import question_id
from exam_trainer.engine.models import TestDefinition, TestSession

from fixtures.exams import numbered_questions

START = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)


def feed_input(monkeypatch: pytest.MonkeyPatch, commands: list[str]) -> None:
    iterator = iter(commands)

    def _input(*_args: object) -> str:
        try:
            return next(iterator)
        except StopIteration:
            raise EOFError from None

    monkeypatch.setattr("builtins.input", _input)


def record_attempt(
    exam_home, questions, selections, *, started: datetime, seconds: int
) -> None:
    session = TestSession(
        definition=TestDefinition(max_time_seconds=600, required_correct_to_pass=2),
        questions=questions,
        selections=selections,
        max_time=timedelta(seconds=600),
        started_at=started,
    )
    HistoryStore(exam_home.history_dir).append_attempt(
        exam_home.tests_dir / "exam.json",
        build_record(session, started + timedelta(seconds=seconds)),
    )


def test_tests_lists_definitions_with_attempt_counts(exam_home, capsys) -> None:
    exam_home.write_test("ccna", [("net", 2)], display_name="CCNA")

    rc = exam_cli.tests_main([])

    out = capsys.readouterr().out
    assert rc == 0
    assert "CCNA" in out
    assert "ccna.json" in out


def test_tests_reports_empty_directory(exam_home, capsys) -> None:
    rc = exam_cli.tests_main([])

    assert rc == 1
    assert "No test definitions found" in capsys.readouterr().out


def test_start_records_attempt_and_updates_weights(
    exam_home, monkeypatch, capsys
) -> None:
    questions = numbered_questions("net", 2)
    exam_home.write_list("net", questions)
    exam_home.write_test("exam", [("net", 2)], required=2)
    feed_input(monkeypatch, ["1", "n", "1", "finish"])

    rc = exam_cli.start_main(["exam"])

    assert rc == 0
    out = capsys.readouterr().out
    assert "PASSED" in out
    history = json.loads(
        (exam_home.history_dir / "exam.json").read_text(encoding="utf-8")
    )
    assert len(history) == 1
    assert history[0]["correct_count"] == 2
    weights = json.loads(
        (exam_home.history_dir / "QuestionStats.json").read_text(encoding="utf-8")
    )
    assert weights == {question_id(q): 9 for q in questions}


def test_start_quit_records_nothing(exam_home, monkeypatch) -> None:
    exam_home.write_list("net", numbered_questions("net", 2))
    exam_home.write_test("exam", [("net", 2)])
    feed_input(monkeypatch, ["1", "quit"])

    rc = exam_cli.start_main(["exam", "--no-review"])

    assert rc == 1
    assert not (exam_home.history_dir / "exam.json").exists()
    assert not (exam_home.history_dir / "QuestionStats.json").exists()


def test_start_with_no_loadable_questions_fails(exam_home, capsys) -> None:
    exam_home.write_test("exam", [("missing", 3)])

    rc = exam_cli.start_main(["exam"])

    assert rc == 1
    assert "Cannot start test" in capsys.readouterr().err


def test_start_unknown_test(exam_home, capsys) -> None:
    rc = exam_cli.start_main(["nope"])

    assert rc == 1
    assert "Test 'nope' not found." in capsys.readouterr().err


def test_history_lists_recorded_attempts(exam_home, monkeypatch, capsys) -> None:
    exam_home.write_list("net", numbered_questions("net", 1))
    exam_home.write_test("exam", [("net", 1)], display_name="Networking")
    feed_input(monkeypatch, ["2", "finish"])
    exam_cli.start_main(["exam", "--no-review"])
    capsys.readouterr()

    rc = exam_cli.history_main(["Networking"])

    out = capsys.readouterr().out
    assert rc == 0
    assert "failed" in out
    assert "0/1" in out


def test_lists_show_per_question_weights(exam_home, capsys) -> None:
    questions = numbered_questions("net", 2)
    exam_home.write_list("net", questions)
    exam_home.history_dir.mkdir(parents=True, exist_ok=True)
    (exam_home.history_dir / "QuestionStats.json").write_text(
        json.dumps({question_id(questions[1]): 3}), encoding="utf-8"
    )

    assert exam_cli.lists_main([]) == 0
    overview = capsys.readouterr().out
    rc = exam_cli.lists_main(["net", "--sort", "weight"])

    detail = capsys.readouterr().out
    assert "net" in overview
    assert rc == 0
    assert detail.index("net question 1") < detail.index("net question 2")
    assert "20" in detail
    assert "3" in detail


def test_lists_unknown_name(exam_home, capsys) -> None:
    rc = exam_cli.lists_main(["ghost"])

    assert rc == 1
    assert "Question list 'ghost' not found." in capsys.readouterr().err


def test_config_init_writes_template_once(tmp_path, capsys) -> None:
    workspace = tmp_path / "ws"

    assert exam_cli.config_main(["init", "--workspace", str(workspace)]) == 0
    target = workspace / "config" / "exam.toml"
    assert target.exists()
    assert "Wrote config template" in capsys.readouterr().out

    assert exam_cli.config_main(["init", "--workspace", str(workspace)]) == 1
    assert "already exists" in capsys.readouterr().err
    assert (
        exam_cli.config_main(
            ["init", "--workspace", str(workspace), "--force"]
        )
        == 0
    )


def test_invalid_config_exits_with_usage_error(exam_home, tmp_path) -> None:
    bad = tmp_path / "bad.toml"
    bad.write_text("[nope]\nvalue = 1\n", encoding="utf-8")

    with pytest.raises(SystemExit) as excinfo:
        exam_cli.tests_main(["--config", str(bad)])

    assert excinfo.value.code == 2


def test_tests_describe_definition_without_attempts(exam_home, capsys) -> None:
    exam_home.write_test("exam", [("net", 2), ("os", 3)], required=4)

    rc = exam_cli.tests_main(["exam"])

    out = capsys.readouterr().out
    assert rc == 0
    assert re.search(r"Total questions\s+5", out)
    assert "2 from net.json" in out
    assert "3 from os.json" in out
    assert re.search(r"Required correct to pass\s+4", out)
    assert re.search(r"Available time\s+10:00", out)
    assert "No attempts yet." in out


def test_tests_and_history_summarise_attempts(exam_home, capsys) -> None:
    questions = numbered_questions("net", 2)
    exam_home.write_list("net", questions)
    exam_home.write_test("exam", [("net", 2)], required=2)
    record_attempt(exam_home, questions, [{0}, {0}], started=START, seconds=90)
    record_attempt(
        exam_home,
        questions,
        [{0}, {1}],
        started=START + timedelta(days=1),
        seconds=30,
    )

    assert exam_cli.tests_main(["exam"]) == 0
    described = capsys.readouterr().out
    assert exam_cli.tests_main([]) == 0
    overview = capsys.readouterr().out
    assert exam_cli.history_main(["exam"]) == 0
    history = capsys.readouterr().out

    for out in (described, history):
        assert re.search(r"Attempts\s+2", out)
        assert re.search(r"Passed\s+1 \(50%\)", out)
        assert re.search(r"Last taken\s+2024-05-02 09:00", out)
        assert re.search(r"Last duration\s+0:30", out)
        assert re.search(r"Average duration\s+1:00", out)
        assert re.search(r"Best score\s+2/2", out)
    assert "1 (50%)" in overview
    assert "2/2" in overview
    assert history.index("2024-05-02 09:00") < history.index("2024-05-01 09:00")


def test_lists_sort_lightest_first_with_accuracy(exam_home, capsys) -> None:
    questions = numbered_questions("net", 2)
    exam_home.write_list("net", questions)
    record_attempt(exam_home, questions, [{0}, {1}], started=START, seconds=30)
    (exam_home.history_dir / "QuestionStats.json").write_text(
        json.dumps({question_id(questions[0]): 12, question_id(questions[1]): 2}),
        encoding="utf-8",
    )

    rc = exam_cli.lists_main(["net", "--sort", "weight-asc"])

    out = capsys.readouterr().out
    assert rc == 0
    assert "Accuracy" in out
    second_row = next(line for line in out.splitlines() if "net question 2" in line)
    first_row = next(line for line in out.splitlines() if "net question 1" in line)
    assert out.index("net question 2") < out.index("net question 1")
    assert re.search(r"\s0\.0%\s+2\s*$", second_row)
    assert re.search(r"100\.0%\s+12\s*$", first_row)
