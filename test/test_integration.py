"""
Integration tests running the example programs end to end
"""

import io
import pytest
from main import main
from interpreter import create_interpreter
from parsing import NodeKind, find_nodes_by_kind

FIRST_20_FIBONACCI = [
    1, 1, 2, 3, 5, 8, 13, 21, 34, 55,
    89, 144, 233, 377, 610, 987, 1597, 2584, 4181, 6765
]


class TestExamplePrograms:

  @pytest.fixture
  def fib_file(self, examples_dir):
    path = examples_dir / "fib.fib"
    if not path.exists():
      pytest.skip(f"Example file {path} not found")
    return path

  def test_fib_example_through_interpreter(self, fib_file):
    output = io.StringIO()
    interpreter = create_interpreter(output=output)
    interpreter.run_file(str(fib_file))
    assert [int(line) for line in output.getvalue().splitlines()] == FIRST_20_FIBONACCI

  def test_fib_example_through_cli(self, fib_file, capsys):
    assert main([str(fib_file)]) == 0
    captured = capsys.readouterr()
    assert captured.out == "".join(f"{n}\n" for n in FIRST_20_FIBONACCI)
    assert captured.err == ""

  def test_fib_example_structure(self, parser, fib_file):
    ast = parser.parse_file(str(fib_file))
    assert ast.kind == NodeKind.STATEMENTS
    assert [child.kind for child in ast.children] == [NodeKind.DEFINITION, NodeKind.FOR]
    assert len(find_nodes_by_kind(ast, NodeKind.TERNARY)) == 1
    assert ast.children[1].span.line == 4

  def test_every_example_parses(self, parser, raw_parser, examples_dir):
    for path in sorted(examples_dir.glob("*.fib")):
      content = path.read_text(encoding="utf-8")
      parser.parse_string(content, str(path))
      raw_parser.parse_string(content, str(path))


class TestPrograms:
  """Small whole programs mixing every construct"""

  def test_fibonacci_by_iteration_count(self, run, capsys):
    code = """
def fibstep(n)
  n < 2 ? n : fibstep(n - 1) + fibstep(n - 2)

def show(n)
  puts(fibstep(n))

for i from 0 to 6
  show(i)
"""
    assert run(code).to_display_string() == "nil"
    assert capsys.readouterr().out.split() == ["0", "1", "1", "2", "3", "5", "8"]

  def test_higher_order_functions(self, run, capsys):
    code = """
def twice(f)
  f
def apply(g)
  (twice(g))(21)
apply(puts)
"""
    run(code)
    assert capsys.readouterr().out == "21\n"

  def test_large_fibonacci_stays_exact(self, run):
    code = """
def fib(n) n < 2 ? n : fib(n - 1) + fib(n - 2)
fib(20)
"""
    assert run(code).as_integer() == 6765
