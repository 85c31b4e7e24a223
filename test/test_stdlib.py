"""
Tests for the builtin registry
"""

import io
import pytest
from error_handling import FibUndefinedVariable
from interpreter import apply_closure
from stdlib import make_root_environment, register_builtin
from values import Bool, Closure, Integer, NIL


class TestRootEnvironment:

  def test_puts_is_bound(self):
    env = make_root_environment()
    puts = env.lookup("puts")
    assert isinstance(puts, Closure)
    assert puts.is_builtin
    assert env.parent is None

  def test_puts_writes_display_string(self, capsys):
    env = make_root_environment()
    result = apply_closure(env.lookup("puts"), Integer(42))
    assert result is NIL
    assert capsys.readouterr().out == "42\n"

  def test_puts_display_forms(self, capsys):
    puts = make_root_environment().lookup("puts")
    for value in (NIL, Bool(True), Bool(False), puts):
      apply_closure(puts, value)
    assert capsys.readouterr().out == "nil\ntrue\nfalse\n[function]\n"

  def test_output_stream_injection(self, capsys):
    stream = io.StringIO()
    env = make_root_environment(stream)
    apply_closure(env.lookup("puts"), Integer(-1))
    assert stream.getvalue() == "-1\n"
    assert capsys.readouterr().out == ""

  def test_each_root_is_fresh(self):
    first = make_root_environment()
    second = make_root_environment()
    first.define("fib", Integer(0))
    with pytest.raises(FibUndefinedVariable):
      second.lookup("fib")


class TestRegisterBuiltin:

  def test_custom_builtin_follows_calling_convention(self):
    env = make_root_environment()
    register_builtin(env, "double", "n", lambda frame: Integer(frame.lookup("n").as_integer() * 2))
    assert apply_closure(env.lookup("double"), Integer(21)) == Integer(42)
