"""
Utilities module for the fiblang interpreter
Integer helpers, AST shape checks and stack headroom shared by the parser and the evaluator
"""

from typing import Callable, Dict, Iterator
from contextlib import contextmanager
import operator
import sys

from error_handling import FibInternalError, FibLiteralError


INT64_MIN = -(1 << 63)
INT64_MAX = (1 << 63) - 1


# ==================== INTEGER UTILITIES ====================

def wrap_int64(value: int) -> int:
  """
  Reduce an arbitrary Python int to 64-bit two's complement

  Examples:
    wrap_int64(INT64_MAX + 1) -> INT64_MIN
    wrap_int64(-1) -> -1
  """
  return ((value - INT64_MIN) & 0xFFFFFFFFFFFFFFFF) + INT64_MIN


def parse_int64_literal(token: str) -> int:
  """
  Parse a digits-only Number token

  Raises:
    FibLiteralError: token is not digits or does not fit in 64 bits
  """
  if not token or not token.isdigit():
    raise FibLiteralError(token)
  value = int(token)
  if value > INT64_MAX:
    raise FibLiteralError(token)
  return value


def wrapping_op(op: Callable[[int, int], int]) -> Callable[[int, int], int]:
  """
  Factory for binary integer operations with 64-bit wraparound

  Examples:
    add = wrapping_op(operator.add)
    add(INT64_MAX, 1) -> INT64_MIN
  """
  def wrapped(x: int, y: int) -> int:
    return wrap_int64(op(x, y))

  return wrapped


INFIX_OPERATORS: Dict[str, Callable[[int, int], int]] = {
    '+': wrapping_op(operator.add),
    '-': wrapping_op(operator.sub),
}


# ==================== AST SHAPE UTILITIES ====================

def expect_children(node, count: int) -> tuple:
  """
  Return node.children, checking there are exactly `count` of them

  Raises:
    FibInternalError: child count does not match
  """
  if len(node.children) != count:
    raise FibInternalError(
        f"{node.kind.value} node expects {count} children, got {len(node.children)}")
  return node.children


def token_text(node) -> str:
  """
  Return the literal text carried by a token-bearing node

  Raises:
    FibInternalError: node carries no token
  """
  if node.token is None:
    raise FibInternalError(f"{node.kind.value} node carries no token")
  return node.token


# ==================== STACK UTILITIES ====================

@contextmanager
def recursion_headroom(frames: int) -> Iterator[None]:
  """Raise the interpreter recursion limit to at least `frames` for the block"""
  previous = sys.getrecursionlimit()
  if frames > previous:
    sys.setrecursionlimit(frames)
  try:
    yield
  finally:
    sys.setrecursionlimit(previous)
