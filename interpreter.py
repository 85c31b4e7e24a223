"""
fiblang Interpreter
Recursive tree-walking evaluator over the AST produced by parsing.py
Side effects (output) only happen inside builtins
"""

from typing import Any, Callable, Dict, Optional, IO
import logging
import time

from environment import Environment
from error_handling import FibInternalError, FibInterrupted, FibRecursionError
from parsing import PARSE_RECURSION_LIMIT, AstNode, FibParser, NodeKind, create_parser
from stdlib import make_root_environment
from utilities import (
    INFIX_OPERATORS, expect_children, parse_int64_literal, recursion_headroom, token_text
)
from values import Bool, Closure, Integer, NIL, Value

logger = logging.getLogger("fiblang.interpreter")

DEFAULT_MAX_CALL_DEPTH = 1000

# Python frames used per language-level call, deepest case (call inside for inside parens)
FRAMES_PER_CALL = 12


# ============================================================================
# EXECUTION CONTEXT
# ============================================================================

def make_execution_context(max_call_depth: int = DEFAULT_MAX_CALL_DEPTH,
                           interrupt_check: Optional[Callable[[], None]] = None) -> Dict[str, Any]:
  """Create the mutable state threaded through one evaluation"""
  return {
      'depth': 0,
      'peak_depth': 0,
      'max_call_depth': max_call_depth,
      'interrupt_check': interrupt_check
  }


def make_deadline_check(seconds: float) -> Callable[[], None]:
  """Interrupt check that fails once `seconds` have passed since creation"""
  deadline = time.monotonic() + seconds

  def check() -> None:
    if time.monotonic() > deadline:
      raise FibInterrupted(f"evaluation timed out after {seconds:g}s")

  return check


# ============================================================================
# EVALUATION FUNCTIONS
# ============================================================================

def eval_ast(ast_node: AstNode, env: Environment, debug: bool = False,
             context: Optional[Dict[str, Any]] = None) -> Value:
  """
  Evaluate an AST node in `env` and return its value.
  Errors propagate unchanged; there is no recovery inside the language.
  """
  if context is None:
    context = make_execution_context()

  check = context['interrupt_check']
  if check is not None:
    check()

  if debug:
    logger.debug("evaluating %s at %s", ast_node.kind.value, ast_node.span)

  evaluator = NODE_EVALUATORS.get(ast_node.kind)
  if evaluator is None:
    if ast_node.kind == NodeKind.OPERATOR:
      raise FibInternalError(f"operator '{ast_node.token}' evaluated outside an expression")
    raise FibInternalError(f"unknown node kind: {ast_node.kind}")
  return evaluator(ast_node, env, debug, context)


def eval_statements(ast_node: AstNode, env: Environment, debug: bool, context: Dict) -> Value:
  """Evaluate children in order; the last one's value is the result"""
  result: Value = NIL
  for child in ast_node.children:
    result = eval_ast(child, env, debug, context)
  return result


def eval_definition(ast_node: AstNode, env: Environment, debug: bool, context: Dict) -> Value:
  """Bind a closure over the current environment, so the body can see its own name"""
  name_node, param_node, body = expect_children(ast_node, 3)
  name = token_text(name_node)
  env.define(name, Closure(token_text(param_node), body, env))
  if debug:
    logger.debug("defined %s(%s)", name, param_node.token)
  return NIL


def eval_ternary(ast_node: AstNode, env: Environment, debug: bool, context: Dict) -> Value:
  """Evaluate the condition, then exactly one branch"""
  if len(ast_node.children) == 1:
    return eval_ast(ast_node.children[0], env, debug, context)

  cond, if_true, if_false = expect_children(ast_node, 3)
  if eval_ast(cond, env, debug, context).as_bool():
    return eval_ast(if_true, env, debug, context)
  return eval_ast(if_false, env, debug, context)


def eval_condition(ast_node: AstNode, env: Environment, debug: bool, context: Dict) -> Value:
  if len(ast_node.children) == 1:
    return eval_ast(ast_node.children[0], env, debug, context)

  lhs_node, op_node, rhs_node = expect_children(ast_node, 3)
  op = token_text(op_node)
  if op != '<':
    raise FibInternalError(f"unknown condition operator '{op}'")

  lhs = eval_ast(lhs_node, env, debug, context)
  rhs = eval_ast(rhs_node, env, debug, context)
  return Bool(lhs.less_than(rhs))


def eval_infix(ast_node: AstNode, env: Environment, debug: bool, context: Dict) -> Value:
  """Fold '+' and '-' left to right over the operands"""
  children = ast_node.children
  if len(children) == 1:
    return eval_ast(children[0], env, debug, context)
  if len(children) % 2 == 0:
    raise FibInternalError(f"Infix node has an even number of children ({len(children)})")

  total = eval_ast(children[0], env, debug, context).as_integer()
  for i in range(1, len(children), 2):
    op = token_text(children[i])
    apply_op = INFIX_OPERATORS.get(op)
    if apply_op is None:
      raise FibInternalError(f"unknown infix operator '{op}'")
    operand = eval_ast(children[i + 1], env, debug, context).as_integer()
    total = apply_op(total, operand)
  return Integer(total)


def eval_call(ast_node: AstNode, env: Environment, debug: bool, context: Dict) -> Value:
  """Evaluate callee and argument in the caller's scope, then apply"""
  if len(ast_node.children) == 1:
    return eval_ast(ast_node.children[0], env, debug, context)

  callee_node, arg_node = expect_children(ast_node, 2)
  closure = eval_ast(callee_node, env, debug, context).as_closure()
  arg = eval_ast(arg_node, env, debug, context)
  return apply_closure(closure, arg, debug, context)


def apply_closure(closure: Closure, arg: Value, debug: bool = False,
                  context: Optional[Dict[str, Any]] = None) -> Value:
  """
  Call a closure with one argument.
  The call frame is a child of the closure's captured environment, never the caller's.
  """
  if context is None:
    context = make_execution_context()

  depth = context['depth'] + 1
  if depth > context['max_call_depth']:
    raise FibRecursionError(context['max_call_depth'])

  call_env = closure.env.child_scope()
  call_env.define(closure.param, arg)

  if debug:
    logger.debug("call %s=%s depth=%d", closure.param, arg.to_display_string(), depth)

  context['depth'] = depth
  context['peak_depth'] = max(context['peak_depth'], depth)
  try:
    if closure.is_builtin:
      return closure.body.func(call_env)
    return eval_ast(closure.body, call_env, debug, context)
  finally:
    context['depth'] = depth - 1


def eval_for(ast_node: AstNode, env: Environment, debug: bool, context: Dict) -> Value:
  """Run the body once per integer in [from, to], each in a fresh scope"""
  ident_node, from_node, to_node, body = expect_children(ast_node, 4)
  ident = token_text(ident_node)
  start = eval_ast(from_node, env, debug, context).as_integer()
  stop = eval_ast(to_node, env, debug, context).as_integer()

  for i in range(start, stop + 1):
    loop_env = env.child_scope()
    loop_env.define(ident, Integer(i))
    eval_ast(body, loop_env, debug, context)
  return NIL


def eval_identifier(ast_node: AstNode, env: Environment, debug: bool, context: Dict) -> Value:
  return env.lookup(token_text(ast_node))


def eval_number(ast_node: AstNode, env: Environment, debug: bool, context: Dict) -> Value:
  return Integer(parse_int64_literal(token_text(ast_node)))


NODE_EVALUATORS: Dict[NodeKind, Callable[[AstNode, Environment, bool, Dict], Value]] = {
    NodeKind.STATEMENTS: eval_statements,
    NodeKind.DEFINITION: eval_definition,
    NodeKind.TERNARY: eval_ternary,
    NodeKind.CONDITION: eval_condition,
    NodeKind.INFIX: eval_infix,
    NodeKind.CALL: eval_call,
    NodeKind.FOR: eval_for,
    NodeKind.IDENTIFIER: eval_identifier,
    NodeKind.NUMBER: eval_number,
}

# Every evaluable kind must have a handler; fail at import time otherwise
_unhandled = set(NodeKind) - set(NODE_EVALUATORS) - {NodeKind.OPERATOR}
if _unhandled:
  raise ImportError(f"no evaluator for node kinds: {sorted(k.value for k in _unhandled)}")


# ============================================================================
# HOST FACADE
# ============================================================================

class FibInterpreter:
  """Parser, root environment and evaluator bundled for a host"""

  def __init__(self, parser: Optional[FibParser] = None, debug: bool = False,
               max_call_depth: int = DEFAULT_MAX_CALL_DEPTH,
               interrupt_check: Optional[Callable[[], None]] = None,
               output: Optional[IO[str]] = None):
    self.parser = parser if parser is not None else create_parser(debug=debug)
    self.debug = debug
    self.max_call_depth = max_call_depth
    self.interrupt_check = interrupt_check
    self.output = output

  def new_environment(self) -> Environment:
    """Fresh root environment; one per run unless the caller shares one"""
    return make_root_environment(self.output)

  def run(self, ast: AstNode, env: Optional[Environment] = None) -> Value:
    """Evaluate a whole tree and return its final value"""
    if env is None:
      env = self.new_environment()
    context = make_execution_context(self.max_call_depth, self.interrupt_check)

    # Trees the parser accepts stay evaluable whatever the call depth limit
    frames = max(self.max_call_depth * FRAMES_PER_CALL + 200, PARSE_RECURSION_LIMIT)
    with recursion_headroom(frames):
      try:
        return eval_ast(ast, env, self.debug, context)
      except RecursionError:
        raise FibRecursionError(context['peak_depth']) from None

  def run_source(self, text: str, filename: str = "<input>",
                 env: Optional[Environment] = None) -> Value:
    return self.run(self.parser.parse_string(text, filename), env)

  def run_file(self, path: str, env: Optional[Environment] = None) -> Value:
    return self.run(self.parser.parse_file(path), env)


# ============================================================================
# FACTORY FUNCTIONS
# ============================================================================

def create_interpreter(debug: bool = False, **kwargs) -> FibInterpreter:
  """Factory function returning an interpreter"""
  return FibInterpreter(debug=debug, **kwargs)


def create_debug_interpreter(**kwargs) -> FibInterpreter:
  """Factory function returning a debug interpreter"""
  return FibInterpreter(debug=True, **kwargs)
