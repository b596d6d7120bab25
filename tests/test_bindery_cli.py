import io
import json
import logging
import pytest

from bindery.bindery_cli import main, Session, repl, load_model
from bindery.bindery_datatypes import to_model


@pytest.fixture(autouse=True)
def reset_logging(monkeypatch):
    for name in ("BINDERY_DELIMITER", "BINDERY_LOG_LEVEL", "BINDERY_DEBUG", "BINDERY_LOG_FILE"):
        monkeypatch.delenv(name, raising=False)
    yield
    logger = logging.getLogger("bindery")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def model_file(tmp_path):
    path = tmp_path / "model.json"
    path.write_text(json.dumps({"a": {"b": [10, 20, 30]}}), encoding="utf-8")
    return path


def test_resolve_once(model_file, capsys):
    assert main([str(model_file), "a.b.1"]) == 0
    assert capsys.readouterr().out.strip() == "20"

def test_resolve_miss_prints_none(model_file, capsys):
    assert main([str(model_file), "a.c.d"]) == 0
    assert capsys.readouterr().out.strip() == "none"

def test_assign_once(model_file, capsys):
    assert main([str(model_file), "a.b.1", "99"]) == 0
    assert capsys.readouterr().out.strip() == "true"
    # Not saved without --save
    assert load_model(str(model_file))["a"]["b"][1] == 20

def test_assign_and_save(model_file):
    assert main([str(model_file), "a.b.1", "99", "--save"]) == 0
    assert json.loads(model_file.read_text(encoding="utf-8")) == {"a": {"b": [10, 99, 30]}}

def test_failed_assign_exit_code(model_file, capsys):
    assert main([str(model_file), "a.c.d", "5"]) == 1
    assert capsys.readouterr().out.strip() == "false"

def test_custom_delimiter(model_file, capsys):
    assert main([str(model_file), "a/b/2", "--delimiter", "/"]) == 0
    assert capsys.readouterr().out.strip() == "30"

def test_delimiter_from_environment(model_file, capsys, monkeypatch):
    monkeypatch.setenv("BINDERY_DELIMITER", ":")
    assert main([str(model_file), "a:b:0"]) == 0
    assert capsys.readouterr().out.strip() == "10"

def test_yaml_model_file(tmp_path, capsys):
    path = tmp_path / "model.yaml"
    path.write_text("user:\n  name: ada\n", encoding="utf-8")
    assert main([str(path), "user.name"]) == 0
    assert capsys.readouterr().out.strip() == "'ada'"

def test_missing_file(tmp_path, capsys):
    assert main([str(tmp_path / "nope.json")]) == 1
    assert "file not found" in capsys.readouterr().err

def test_invalid_file(tmp_path, capsys):
    path = tmp_path / "bad.yaml"
    path.write_text("a: [1, 2", encoding="utf-8")
    assert main([str(path)]) == 1
    assert "Error" in capsys.readouterr().err


# --- Session and REPL ---

def test_session_handles_resolve_and_assign():
    out = io.StringIO()
    session = Session(to_model({"a": {"b": [1, 2]}}), out=out)
    assert session.handle("a.b.0: 5") is True
    assert session.handle("a.b.0") is None
    assert out.getvalue().splitlines() == ["true", "5"]

def test_assigned_values_are_parsed_as_yaml():
    session = Session(to_model({"a": {}}), out=io.StringIO())
    session.handle("a.flag: true")
    session.handle("a.list: [1, 2]")
    session.handle("a.text: hello world")
    assert session.model["a"] == {"flag": True, "list": [1, 2], "text": "hello world"}

def test_repl_loop():
    out = io.StringIO()
    session = Session(to_model({"x": 1}), out=out)
    repl(session, io.StringIO("x\n\nx: 2\nx\nexit\nx\n"))
    lines = out.getvalue().splitlines()
    assert lines[0] == "bindery REPL v0.1"
    text = out.getvalue()
    assert ">> 1" in text
    assert ">> true" in text
    assert ">> 2" in text
    assert "Exiting." not in text

def test_repl_ends_on_eof():
    out = io.StringIO()
    repl(Session(to_model({}), out=out), io.StringIO(""))
    assert "Exiting." in out.getvalue()
