"""
fiblang - Main Entry Point
A programming language just for writing Fibonacci number programs
"""

import sys
import argparse
import logging
from typing import List, Optional

from error_handling import FibError, FibParseError, FibRuntimeError
from interpreter import (
    DEFAULT_MAX_CALL_DEPTH, create_debug_interpreter, create_interpreter, make_deadline_check
)
from parsing import PARSE_RECURSION_LIMIT, create_debug_parser, create_parser, pretty_print_ast
from utilities import recursion_headroom

VERSION = "fiblang 0.1.0"

EXIT_OK = 0
EXIT_USAGE = 1
EXIT_UNREADABLE = 2
EXIT_PARSE_ERROR = 3
EXIT_RUNTIME_ERROR = 4


class FibArgumentParser(argparse.ArgumentParser):
  """Argument parser that reports bad arguments with the usage exit code"""

  def error(self, message: str):
    self.print_usage(sys.stderr)
    self.exit(EXIT_USAGE, f"{self.prog}: error: {message}\n")


def positive_float(text: str) -> float:
  try:
    value = float(text)
  except ValueError:
    raise argparse.ArgumentTypeError(f"invalid number: '{text}'") from None
  if not value > 0:
    raise argparse.ArgumentTypeError(f"must be greater than 0: '{text}'")
  return value


def create_arg_parser() -> argparse.ArgumentParser:
  """Create command line argument parser"""
  parser = FibArgumentParser(
      prog='fiblang',
      description='fiblang - a language just for writing Fibonacci programs',
      formatter_class=argparse.RawDescriptionHelpFormatter,
      epilog="""
Examples:
  %(prog)s fib.fib                  # Run a program
  %(prog)s --ast fib.fib            # Parse and show the AST
  %(prog)s --ast --raw fib.fib      # Show the AST without simplification
  %(prog)s --max-depth 5000 fib.fib # Allow deeper recursion
  %(prog)s --timeout 5 fib.fib      # Stop evaluation after 5 seconds
        """
  )

  parser.add_argument(
      'script',
      nargs='?',
      help='fiblang source file to execute'
  )

  parser.add_argument(
      '--ast',
      action='store_true',
      help='Parse file and print the AST instead of running it'
  )

  parser.add_argument(
      '--raw',
      action='store_true',
      help='Skip AST simplification'
  )

  parser.add_argument(
      '--max-depth',
      type=int,
      default=DEFAULT_MAX_CALL_DEPTH,
      help=f'Maximum function call depth (default: {DEFAULT_MAX_CALL_DEPTH})'
  )

  parser.add_argument(
      '--timeout',
      type=positive_float,
      default=None,
      help='Abort evaluation after this many seconds'
  )

  parser.add_argument(
      '--debug',
      action='store_true',
      help='Trace evaluation to stderr'
  )

  parser.add_argument(
      '--version',
      action='version',
      version=VERSION
  )

  return parser


def read_source(script_path: str) -> Optional[str]:
  """Read the whole source file, or report why it could not be read"""
  try:
    with open(script_path, 'r', encoding='utf-8') as f:
      return f.read()
  except FileNotFoundError:
    print(f"can't open the source file: '{script_path}' not found", file=sys.stderr)
  except PermissionError:
    print(f"can't open the source file: permission denied reading '{script_path}'", file=sys.stderr)
  except IsADirectoryError:
    print(f"can't open the source file: '{script_path}' is a directory", file=sys.stderr)
  except UnicodeDecodeError as e:
    print(f"can't open the source file: cannot decode '{script_path}': {e}", file=sys.stderr)
  except OSError as e:
    print(f"can't open the source file: {e}", file=sys.stderr)
  return None


def run_script(source: str, script_path: str, args: argparse.Namespace) -> int:
  """Parse and evaluate a program, mapping failures to exit codes"""
  if args.debug:
    parser = create_debug_parser(optimize=not args.raw)
  else:
    parser = create_parser(optimize=not args.raw)

  try:
    ast = parser.parse_string(source, script_path)
  except FibParseError as e:
    print(str(e), file=sys.stderr)
    if args.debug:
      print(e.detailed(), file=sys.stderr)
    return EXIT_PARSE_ERROR

  if args.ast:
    with recursion_headroom(PARSE_RECURSION_LIMIT):
      print(pretty_print_ast(ast), end='')
    return EXIT_OK

  interrupt_check = make_deadline_check(args.timeout) if args.timeout is not None else None
  factory = create_debug_interpreter if args.debug else create_interpreter
  interpreter = factory(
      parser=parser,
      max_call_depth=args.max_depth,
      interrupt_check=interrupt_check
  )

  try:
    interpreter.run(ast)
  except FibRuntimeError as e:
    print(e.message, file=sys.stderr)
    return EXIT_RUNTIME_ERROR
  except FibError as e:
    print(f"internal error: {e}", file=sys.stderr)
    if args.debug:
      import traceback
      traceback.print_exc()
    return EXIT_RUNTIME_ERROR

  return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
  """Main entry point for fiblang"""
  arg_parser = create_arg_parser()
  args = arg_parser.parse_args(argv)

  if args.debug:
    logging.basicConfig(level=logging.DEBUG, stream=sys.stderr,
                        format="%(name)s: %(message)s")

  if not args.script:
    print("usage: fiblang [source file path]", file=sys.stderr)
    return EXIT_USAGE

  source = read_source(args.script)
  if source is None:
    return EXIT_UNREADABLE

  return run_script(source, args.script, args)


if __name__ == "__main__":
  sys.exit(main())
