"""Scope frames for fiblang name resolution."""

from typing import Dict, Optional

from error_handling import FibUndefinedVariable
from values import Value


class Environment:
  """
  A scope frame: local bindings plus an optional parent frame.

  Frames only ever point outward to their parent, so chains are acyclic and
  a frame lives as long as the closures and active calls that hold it.
  """

  def __init__(self, parent: Optional['Environment'] = None,
               bindings: Optional[Dict[str, Value]] = None):
    self.parent = parent
    self.bindings: Dict[str, Value] = dict(bindings) if bindings else {}

  def lookup(self, name: str) -> Value:
    """
    Look up a name in this frame, then in the parent chain.

    Raises:
      FibUndefinedVariable: no frame in the chain binds the name
    """
    if name in self.bindings:
      return self.bindings[name]
    if self.parent is not None:
      return self.parent.lookup(name)
    raise FibUndefinedVariable(name)

  def define(self, name: str, value: Value) -> None:
    """Bind a name in this frame, overwriting any local binding"""
    self.bindings[name] = value

  def child_scope(self) -> 'Environment':
    return Environment(parent=self)

  def depth(self) -> int:
    return 0 if self.parent is None else self.parent.depth() + 1

  def __repr__(self) -> str:
    return f"Environment(bindings={sorted(self.bindings)}, depth={self.depth()})"
