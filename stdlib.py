"""
fiblang Standard Library
Builtin functions bound into the root environment
Every builtin takes a single parameter and is called like any other function
"""

from typing import Callable, Dict, IO, Optional, Tuple
import sys

from environment import Environment
from values import Builtin, Closure, NIL, Value


# ============================================================================
# PRINT FUNCTIONS
# ============================================================================

def make_puts(output: Optional[IO[str]] = None) -> Callable[[Environment], Value]:
  """Build `puts`: print the argument's display string and a newline"""
  def fib_puts(env: Environment) -> Value:
    value = env.lookup("arg")
    stream = output if output is not None else sys.stdout
    print(value.to_display_string(), file=stream)
    return NIL

  return fib_puts


# ============================================================================
# REGISTRY
# ============================================================================

# name -> (parameter name, factory taking the output stream)
BUILTIN_FUNCTIONS: Dict[str, Tuple[str, Callable[[Optional[IO[str]]], Callable[[Environment], Value]]]] = {
    'puts': ('arg', make_puts),
}


def register_builtin(env: Environment, name: str, param: str,
                     func: Callable[[Environment], Value]) -> Closure:
  """Bind a host function in `env`; its call frame holds `param`"""
  closure = Closure(param, Builtin(name, func), env)
  env.define(name, closure)
  return closure


def make_root_environment(output: Optional[IO[str]] = None) -> Environment:
  """Create a fresh root environment with every builtin bound"""
  env = Environment()
  for name, (param, factory) in BUILTIN_FUNCTIONS.items():
    register_builtin(env, name, param, factory(output))
  return env
