"""
fiblang runtime values
A closed set of four immutable cases: Nil, Bool, Integer and Closure
"""

from typing import Callable, TYPE_CHECKING, Union
from dataclasses import dataclass, field

from error_handling import FibTypeError
from utilities import wrap_int64

if TYPE_CHECKING:
  from environment import Environment
  from parsing import AstNode


@dataclass(frozen=True, eq=False)
class Value:
  """Base of the value variant; subclasses override what they support"""

  @property
  def type_name(self) -> str:
    return type(self).__name__

  def as_bool(self) -> bool:
    raise FibTypeError(f"expected Bool or Integer, got {self.type_name}")

  def as_integer(self) -> int:
    raise FibTypeError(f"expected Integer, got {self.type_name}")

  def as_closure(self) -> 'Closure':
    raise FibTypeError(f"expected function, got {self.type_name}")

  def less_than(self, other: 'Value') -> bool:
    raise FibTypeError(f"cannot compare {self.type_name} and {other.type_name}")

  def to_display_string(self) -> str:
    raise NotImplementedError


@dataclass(frozen=True)
class Nil(Value):
  """Absence of a meaningful result"""

  def less_than(self, other: Value) -> bool:
    return False

  def to_display_string(self) -> str:
    return "nil"


@dataclass(frozen=True)
class Bool(Value):
  value: bool

  def as_bool(self) -> bool:
    return self.value

  def less_than(self, other: Value) -> bool:
    if not isinstance(other, Bool):
      return super().less_than(other)
    return self.value < other.value

  def to_display_string(self) -> str:
    return "true" if self.value else "false"


@dataclass(frozen=True)
class Integer(Value):
  """64-bit signed integer; construction wraps out-of-range results"""
  value: int

  def __post_init__(self):
    object.__setattr__(self, 'value', wrap_int64(self.value))

  def as_bool(self) -> bool:
    return self.value != 0

  def as_integer(self) -> int:
    return self.value

  def less_than(self, other: Value) -> bool:
    if not isinstance(other, Integer):
      return super().less_than(other)
    return self.value < other.value

  def to_display_string(self) -> str:
    return str(self.value)


@dataclass(frozen=True)
class Builtin:
  """Host-provided function body; `func` receives the call frame"""
  name: str
  func: Callable[['Environment'], Value] = field(compare=False)

  def __str__(self) -> str:
    return f"<builtin {self.name}>"


@dataclass(frozen=True, eq=False)
class Closure(Value):
  """Function value: parameter name, shared body, defining environment"""
  param: str
  body: Union['AstNode', Builtin] = field(repr=False)
  env: 'Environment' = field(repr=False)

  def as_closure(self) -> 'Closure':
    return self

  @property
  def is_builtin(self) -> bool:
    return isinstance(self.body, Builtin)

  def to_display_string(self) -> str:
    return "[function]"


NIL = Nil()

