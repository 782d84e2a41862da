from __future__ import annotations

import pytest

from exam_trainer.core import config as core_config


def test_load_toml_reads_document(workspace):
    path = workspace.write("exam.toml", '[session]\nshow_review = false\n')

    assert core_config.load_toml(path) == {"session": {"show_review": False}}


@pytest.mark.parametrize("content", [None, "[broken"])
def test_load_toml_errors(workspace, content):
    path = workspace.root / "exam.toml"
    if content is not None:
        path.write_text(content, encoding="utf-8")

    with pytest.raises(core_config.TomlConfigError):
        core_config.load_toml(path)


def test_merge_defaults_overrides_known_keys():
    base = {"paths": {"tests_dir": None}, "logging": {"level": "INFO"}}

    core_config.merge_defaults(base, {"logging": {"level": "DEBUG"}})

    assert base == {"paths": {"tests_dir": None}, "logging": {"level": "DEBUG"}}


@pytest.mark.parametrize(
    ("override", "message"),
    [
        ({"extra": 1}, "Unknown configuration key 'extra'"),
        ({"logging": {"format": "x"}}, "'logging.format'"),
        ({"logging": "DEBUG"}, "Expected table for 'logging'"),
    ],
)
def test_merge_defaults_rejects_invalid_overrides(override, message):
    base = {"logging": {"level": "INFO"}}

    with pytest.raises(core_config.TomlConfigError, match=message):
        core_config.merge_defaults(base, override)


def test_write_toml_template_respects_overwrite(tmp_path):
    target = tmp_path / "config" / "exam.toml"

    assert core_config.write_toml_template(target, template="a = 1\n") == target
    with pytest.raises(core_config.TomlConfigError):
        core_config.write_toml_template(target, template="a = 2\n")
    core_config.write_toml_template(target, template="a = 2\n", overwrite=True)

    assert target.read_text(encoding="utf-8") == "a = 2\n"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("yes", True), (" ON ", True), ("0", False), ("False", False), ("", None)],
)
def test_env_bool_parses_common_spellings(raw, expected):
    assert core_config.env_bool({"FLAG": raw}, "FLAG") is expected
    assert core_config.env_bool({}, "FLAG") is None


def test_env_bool_rejects_other_values():
    with pytest.raises(core_config.TomlConfigError, match="FLAG"):
        core_config.env_bool({"FLAG": "sometimes"}, "FLAG")
