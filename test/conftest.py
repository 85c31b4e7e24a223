"""
Test configuration for fiblang tests
"""

import pytest
import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from parsing import create_parser
from interpreter import create_interpreter


@pytest.fixture
def parser():
  """Provide a fresh parser with AST simplification"""
  return create_parser()


@pytest.fixture
def raw_parser():
  """Provide a fresh parser that keeps the raw AST"""
  return create_parser(optimize=False)


@pytest.fixture
def interpreter():
  return create_interpreter()


@pytest.fixture
def run(interpreter):
  """Run source text and return the final value"""
  def run_source(code: str):
    return interpreter.run_source(code)
  return run_source


@pytest.fixture
def examples_dir():
  return project_root / "examples"
