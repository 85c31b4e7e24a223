"""
Tests for the fiblang command line
"""

import logging
import re
import pytest
import parsing
from main import (
    EXIT_OK, EXIT_PARSE_ERROR, EXIT_RUNTIME_ERROR, EXIT_UNREADABLE, EXIT_USAGE, VERSION, main
)


@pytest.fixture
def script(tmp_path):
  """Write source text to a temporary .fib file and return its path"""
  def write(code: str) -> str:
    path = tmp_path / "prog.fib"
    path.write_text(code, encoding="utf-8")
    return str(path)
  return write


class TestUsage:

  def test_no_arguments(self, capsys):
    assert main([]) == EXIT_USAGE
    assert "usage: fiblang [source file path]" in capsys.readouterr().err

  def test_version(self, capsys):
    with pytest.raises(SystemExit) as exc_info:
      main(["--version"])
    assert exc_info.value.code == 0
    assert VERSION in capsys.readouterr().out

  @pytest.mark.parametrize("argv", [
      ["--max-depth", "abc", "prog.fib"],
      ["--timeout", "0", "prog.fib"],
      ["--timeout", "-2", "prog.fib"],
      ["--timeout", "soon", "prog.fib"],
      ["--no-such-flag"],
  ])
  def test_bad_arguments(self, argv, capsys):
    with pytest.raises(SystemExit) as exc_info:
      main(argv)
    assert exc_info.value.code == EXIT_USAGE
    assert "fiblang: error:" in capsys.readouterr().err


class TestUnreadableSource:

  def test_missing_file(self, tmp_path, capsys):
    assert main([str(tmp_path / "missing.fib")]) == EXIT_UNREADABLE
    assert "can't open the source file" in capsys.readouterr().err

  def test_directory(self, tmp_path, capsys):
    assert main([str(tmp_path)]) == EXIT_UNREADABLE
    assert "can't open the source file" in capsys.readouterr().err

  def test_invalid_utf8(self, tmp_path, capsys):
    path = tmp_path / "bad.fib"
    path.write_bytes(b"puts(\xff)")
    assert main([str(path)]) == EXIT_UNREADABLE
    assert "can't open the source file" in capsys.readouterr().err


class TestExitCodes:

  def test_success(self, script, capsys):
    assert main([script("puts(1 + 2)")]) == EXIT_OK
    assert capsys.readouterr().out == "3\n"

  def test_empty_program(self, script, capsys):
    assert main([script("")]) == EXIT_OK
    assert capsys.readouterr().out == ""

  def test_parse_error(self, script, capsys):
    assert main([script("puts(1)\nputs(2 * 3)")]) == EXIT_PARSE_ERROR
    captured = capsys.readouterr()
    assert re.match(r"^\d+:\d+: ", captured.err)
    assert captured.out == ""

  def test_parse_error_runs_nothing(self, script, capsys):
    assert main([script("puts(1)\ndef (x) x")]) == EXIT_PARSE_ERROR
    assert capsys.readouterr().out == ""

  def test_runtime_error(self, script, capsys):
    assert main([script("puts(1)\nnope(1)")]) == EXIT_RUNTIME_ERROR
    captured = capsys.readouterr()
    assert captured.out == "1\n"
    assert "undefined variable 'nope'" in captured.err

  def test_type_error(self, script, capsys):
    assert main([script("1(2)")]) == EXIT_RUNTIME_ERROR
    assert "expected function" in capsys.readouterr().err

  def test_literal_out_of_range(self, script, capsys):
    assert main([script("puts(99999999999999999999)")]) == EXIT_RUNTIME_ERROR
    assert "internal error: integer literal out of range" in capsys.readouterr().err


class TestOptions:

  def test_ast(self, script, capsys):
    assert main(["--ast", script("def f(x) x")]) == EXIT_OK
    assert capsys.readouterr().out == (
        "Definition\n"
        "  Identifier (f)\n"
        "  Identifier (x)\n"
        "  Identifier (x)\n"
    )

  def test_ast_does_not_run(self, script, capsys):
    assert main(["--ast", script("puts(1)")]) == EXIT_OK
    assert capsys.readouterr().out == "Call\n  Identifier (puts)\n  Number (1)\n"

  def test_raw_ast(self, script, capsys):
    assert main(["--ast", "--raw", script("def f(x) x")]) == EXIT_OK
    out = capsys.readouterr().out
    assert out.startswith("Statements\n  Definition\n")
    assert "Ternary" in out
    assert "Call" in out

  def test_raw_program_runs(self, script, capsys):
    assert main(["--raw", script("puts(10 - 3 - 2)")]) == EXIT_OK
    assert capsys.readouterr().out == "5\n"

  def test_max_depth(self, script, capsys):
    code = "def down(n) n < 1 ? 0 : down(n - 1)\nputs(down(30))"
    assert main(["--max-depth", "10", script(code)]) == EXIT_RUNTIME_ERROR
    assert "maximum call depth exceeded (10)" in capsys.readouterr().err
    assert main(["--max-depth", "100", script(code)]) == EXIT_OK

  def test_timeout(self, script, capsys):
    code = "def down(n) n < 1 ? 0 : down(n - 1)\nfor i from 1 to 100000000 down(10)"
    assert main(["--timeout", "0.001", script(code)]) == EXIT_RUNTIME_ERROR
    assert "timed out" in capsys.readouterr().err

  def test_timeout_not_reached(self, script, capsys):
    assert main(["--timeout", "30", script("puts(7)")]) == EXIT_OK
    assert capsys.readouterr().out == "7\n"

  def test_debug_traces_parser_and_evaluator(self, script, capsys, caplog):
    caplog.set_level(logging.DEBUG, logger="fiblang")
    assert main(["--debug", script("puts(1)")]) == EXIT_OK
    assert capsys.readouterr().out == "1\n"
    names = {record.name for record in caplog.records}
    assert {"fiblang.parsing", "fiblang.interpreter"} <= names

  def test_debug_reports_details(self, script, capsys):
    assert main(["--debug", script("puts(1 * 2)")]) == EXIT_PARSE_ERROR
    assert "Suggestions:" in capsys.readouterr().err


class TestDeepNesting:

  def test_deep_parentheses_run(self, script, capsys):
    code = "puts(" + "(" * 200 + "1" + ")" * 200 + ")"
    assert main([script(code)]) == EXIT_OK
    assert capsys.readouterr().out == "1\n"

  def test_deep_parentheses_raw(self, script, capsys):
    code = "puts(" + "(" * 200 + "1" + ")" * 200 + ")"
    assert main(["--raw", script(code)]) == EXIT_OK
    assert capsys.readouterr().out == "1\n"

  def test_deep_calls_run(self, script, capsys):
    code = "def id(x) x\nputs(" + "id(" * 200 + "5" + ")" * 200 + ")"
    assert main([script(code)]) == EXIT_OK
    assert capsys.readouterr().out == "5\n"

  def test_nesting_beyond_the_stack(self, script, capsys, monkeypatch):
    monkeypatch.setattr(parsing, "PARSE_RECURSION_LIMIT", 0)
    code = "puts(" + "(" * 400 + "1" + ")" * 400 + ")"
    assert main([script(code)]) == EXIT_PARSE_ERROR
    captured = capsys.readouterr()
    assert captured.err.startswith("1:405: expression nested too deeply")
    assert captured.out == ""
