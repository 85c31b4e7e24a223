"""
Error taxonomy and diagnostic formatting for fiblang
Parse diagnostics are built as plain dictionaries first, then wrapped in exceptions
"""

from typing import List, Optional, Dict, Tuple
from pyparsing import ParseException, col, lineno
import re


RESERVED_WORDS = ('def', 'for', 'from', 'to')


# ============================================================================
# EXCEPTIONS
# ============================================================================

class FibError(Exception):
    """Base class for every error raised by fiblang"""
    pass


class FibParseError(FibError):
    """Source text could not be parsed; str() is 'line:column: message'"""
    def __init__(self, message: str, line: int = 0, column: int = 0,
                 context: Optional[str] = None, got: Optional[str] = None,
                 suggestions: Optional[List[str]] = None):
        self.message = message
        self.line = line
        self.column = column
        self.context = context
        self.got = got
        self.suggestions = suggestions or []
        super().__init__(message)

    def __str__(self) -> str:
        return f"{self.line}:{self.column}: {self.message}"

    def detailed(self) -> str:
        """Multi-line report with source context and suggestions"""
        return format_parse_error(make_parse_error(
            self.message, self.line, self.column, self.got, self.context, self.suggestions
        ))


class FibRuntimeError(FibError):
    """Error raised while evaluating a program"""
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class FibTypeError(FibRuntimeError):
    """An operation was applied to a value of the wrong kind"""
    pass


class FibUndefinedVariable(FibRuntimeError):
    """Identifier lookup exhausted the environment chain"""
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"undefined variable '{name}'")


class FibRecursionError(FibRuntimeError):
    """Call depth exceeded the configured limit"""
    def __init__(self, depth: int):
        self.depth = depth
        super().__init__(f"maximum call depth exceeded ({depth})")


class FibInterrupted(FibRuntimeError):
    """Evaluation was stopped by the host's interrupt check"""
    pass


class FibInternalError(FibError):
    """The AST handed to the evaluator breaks the node-shape contract"""
    pass


class FibLiteralError(FibInternalError):
    """A Number token does not fit in a 64-bit signed integer"""
    def __init__(self, token: str):
        self.token = token
        super().__init__(f"integer literal out of range: {token}")


# ============================================================================
# DIAGNOSTIC STRUCTURES (plain dictionaries)
# ============================================================================

def make_parse_error(
    message: str,
    line: int,
    column: int,
    got: Optional[str] = None,
    context: Optional[str] = None,
    suggestions: Optional[List[str]] = None
) -> Dict:
    """Create a parse error structure"""
    return {
        'message': message,
        'line': line,
        'column': column,
        'got': got,
        'context': context,
        'suggestions': suggestions or []
    }


def format_parse_error(error: Dict) -> str:
    """Format parse error as a line:column diagnostic followed by details"""
    error_msg = f"{error['line']}:{error['column']}: {error['message']}\n"

    if error['got']:
        error_msg += f"  Got: {error['got']}\n"

    if error['context']:
        error_msg += f"{error['context']}\n"

    if error['suggestions']:
        error_msg += "  Suggestions:\n"
        for suggestion in error['suggestions']:
            error_msg += f"    - {suggestion}\n"

    return error_msg


# ============================================================================
# PURE FUNCTIONS
# ============================================================================

def get_context_lines(source_text: str, line_num: int, col_num: int, context_lines: int = 1) -> str:
    """Get numbered source lines around the error with a caret under the column"""
    lines = source_text.split('\n')
    start_line = max(0, line_num - context_lines - 1)
    end_line = min(len(lines), line_num + context_lines)

    context_parts = []
    for i in range(start_line, end_line):
        context_parts.append(f"{i+1:4d}: {lines[i]}")
        if i == line_num - 1:
            context_parts.append(f"{'':6}{' ' * (col_num - 1)}^")

    return '\n'.join(context_parts)


def extract_got(source_text: str, line_num: int, col_num: int) -> str:
    """Extract what was actually found at the error location"""
    lines = source_text.split('\n')

    if 0 < line_num <= len(lines):
        error_line = lines[line_num - 1]
        if col_num <= len(error_line):
            start = max(0, col_num - 1)
            end = min(len(error_line), col_num + 10)
            got_text = error_line[start:end].strip()
            if got_text:
                return f"'{got_text}'"
        if line_num < len(lines):
            return "end of line"
    return "end of input"


def generate_suggestions(message: str, got: str) -> List[str]:
    """Generate hints for the mistakes people make most often"""
    suggestions = []

    for keyword in RESERVED_WORDS:
        if re.search(rf"\b{keyword}\s*\(", got):
            suggestions.append(f"'{keyword}' is a reserved word and cannot be used as a name")

    if any(op in got for op in ('*', '/', '>', '=')):
        suggestions.append("Only '+', '-' and '<' are supported operators")

    if ',' in got:
        suggestions.append("Functions take exactly one parameter: def name(param) expression")

    if got == "end of input" and "Expected" in message:
        suggestions.append("The program ends in the middle of an expression")

    return suggestions


def enhance_parse_exception(exc: ParseException, source_text: str) -> FibParseError:
    """Convert a pyparsing exception to a FibParseError"""
    line_num = exc.lineno
    col_num = exc.column
    got = extract_got(source_text, line_num, col_num)

    return FibParseError(
        message=exc.msg,
        line=line_num,
        column=col_num,
        context=get_context_lines(source_text, line_num, col_num),
        got=got,
        suggestions=generate_suggestions(exc.msg, got)
    )


def find_deepest_nesting(source_text: str) -> Tuple[int, int]:
    """Line and column of the innermost opening parenthesis, or 1:1 without any"""
    depth = deepest = 0
    deepest_loc = 0
    for loc, char in enumerate(source_text):
        if char == '(':
            depth += 1
            if depth > deepest:
                deepest, deepest_loc = depth, loc
        elif char == ')':
            depth -= 1
    if deepest == 0:
        return 1, 1
    return lineno(deepest_loc, source_text), col(deepest_loc, source_text)


def make_nesting_error(source_text: str) -> FibParseError:
    """Parse error for input whose nesting exhausted the parser's stack"""
    line_num, col_num = find_deepest_nesting(source_text)
    return FibParseError(
        message="expression nested too deeply",
        line=line_num,
        column=col_num,
        context=get_context_lines(source_text, line_num, col_num),
        got=extract_got(source_text, line_num, col_num),
        suggestions=["Split the expression into smaller functions"]
    )
