"""
fiblang Parser
pyparsing grammar producing an AST of typed, tagged nodes with source spans
"""

from typing import List, Optional, Tuple
from dataclasses import dataclass
from enum import Enum
import logging

from pyparsing import (
    Forward, Keyword, Literal, Optional as PyParsingOptional, ParseException,
    ParserElement, Regex, StringEnd, Suppress, ZeroOrMore, alphas, col, lineno
)

from error_handling import enhance_parse_exception, make_nesting_error
from utilities import recursion_headroom

# Enable packrat parsing for performance
ParserElement.enable_packrat()

logger = logging.getLogger("fiblang.parsing")

# Recursive descent uses a few dozen Python frames per nesting level
PARSE_RECURSION_LIMIT = 20000


class NodeKind(Enum):
    """Closed set of AST node kinds"""
    STATEMENTS = "Statements"
    DEFINITION = "Definition"
    TERNARY = "Ternary"
    CONDITION = "Condition"
    INFIX = "Infix"
    CALL = "Call"
    FOR = "For"
    IDENTIFIER = "Identifier"
    NUMBER = "Number"
    # Operator slot inside Infix/Condition; never evaluated on its own
    OPERATOR = "Operator"


# Kinds that carry a literal token instead of children
TOKEN_KINDS = frozenset({NodeKind.IDENTIFIER, NodeKind.NUMBER, NodeKind.OPERATOR})

# Kinds collapsed into their only child by simplify_ast
COLLAPSIBLE_KINDS = frozenset({
    NodeKind.STATEMENTS, NodeKind.TERNARY, NodeKind.CONDITION, NodeKind.INFIX, NodeKind.CALL
})


@dataclass(frozen=True)
class SourceSpan:
    """Source location of the first character of a node"""
    filename: str
    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.filename}:{self.line}:{self.column}"


@dataclass(frozen=True)
class AstNode:
    """Immutable syntax tree node; shared read-only by closures"""
    kind: NodeKind
    children: Tuple['AstNode', ...] = ()
    token: Optional[str] = None
    span: Optional[SourceSpan] = None

    def __str__(self) -> str:
        if self.token is not None:
            return f"{self.kind.value}({self.token})"
        children_str = ", ".join(str(child) for child in self.children)
        return f"{self.kind.value}([{children_str}])"


class FibGrammar:
    """fiblang grammar definition using pyparsing"""

    def __init__(self, filename: str = "<input>"):
        self.filename = filename
        self._setup_grammar()

    def _span(self, s: str, loc: int) -> SourceSpan:
        return SourceSpan(self.filename, lineno(loc, s), col(loc, s))

    def _token_action(self, kind: NodeKind):
        def action(s, loc, toks):
            return AstNode(kind, (), toks[0], self._span(s, loc))
        return action

    def _node_action(self, kind: NodeKind):
        def action(s, loc, toks):
            return AstNode(kind, tuple(toks), None, self._span(s, loc))
        return action

    def _setup_grammar(self):
        """Setup the grammar, one pyparsing element per rule"""

        expression = Forward()

        # A keyword ends at the first non-letter: 'format' is an identifier, 'for1' is not
        def_kw = Keyword("def", ident_chars=alphas)
        for_kw = Keyword("for", ident_chars=alphas)
        from_kw = Keyword("from", ident_chars=alphas)
        to_kw = Keyword("to", ident_chars=alphas)
        keyword = def_kw | for_kw | from_kw | to_kw

        # Tokens
        identifier = (~keyword + Regex(r"[a-zA-Z][a-zA-Z0-9_]*")).set_parse_action(
            self._token_action(NodeKind.IDENTIFIER))
        number = Regex(r"[0-9]+").set_parse_action(self._token_action(NodeKind.NUMBER))
        condition_operator = Literal("<").set_parse_action(self._token_action(NodeKind.OPERATOR))
        infix_operator = Regex(r"[+-]").set_parse_action(self._token_action(NodeKind.OPERATOR))

        # 'for' Identifier 'from' Number 'to' Number EXPRESSION
        for_expr = (
            Suppress(for_kw) + identifier +
            Suppress(from_kw) + number +
            Suppress(to_kw) + number +
            expression
        ).set_parse_action(self._node_action(NodeKind.FOR))

        parenthesized = Suppress("(") + expression + Suppress(")")
        primary = for_expr | identifier | parenthesized | number

        # PRIMARY ('(' EXPRESSION ')')?
        call = (
            primary + PyParsingOptional(Suppress("(") + expression + Suppress(")"))
        ).set_parse_action(self._node_action(NodeKind.CALL))

        # CALL (InfixOperator CALL)*
        infix = (
            call + ZeroOrMore(infix_operator + call)
        ).set_parse_action(self._node_action(NodeKind.INFIX))

        # INFIX (ConditionOperator INFIX)?
        condition = (
            infix + PyParsingOptional(condition_operator + infix)
        ).set_parse_action(self._node_action(NodeKind.CONDITION))

        # CONDITION ('?' EXPRESSION ':' EXPRESSION)?
        ternary = (
            condition + PyParsingOptional(Suppress("?") + expression + Suppress(":") + expression)
        ).set_parse_action(self._node_action(NodeKind.TERNARY))

        expression <<= ternary

        # 'def' Identifier '(' Identifier ')' EXPRESSION
        definition = (
            Suppress(def_kw) + identifier + Suppress("(") + identifier + Suppress(")") + expression
        ).set_parse_action(self._node_action(NodeKind.DEFINITION))

        statement = definition | expression
        program = ZeroOrMore(statement) + StringEnd()

        self.program = program
        self.expression = expression

    def parse_program(self, text: str) -> AstNode:
        """Parse a complete program into a raw Statements node"""
        try:
            with recursion_headroom(PARSE_RECURSION_LIMIT):
                result = self.program.parse_string(text, parse_all=True)
        except ParseException as e:
            raise enhance_parse_exception(e, text) from e
        except RecursionError:
            raise make_nesting_error(text) from None
        return AstNode(NodeKind.STATEMENTS, tuple(result), None, SourceSpan(self.filename, 1, 1))

    def parse_expression(self, text: str) -> AstNode:
        """Parse a single expression"""
        try:
            with recursion_headroom(PARSE_RECURSION_LIMIT):
                result = self.expression.parse_string(text, parse_all=True)
        except ParseException as e:
            raise enhance_parse_exception(e, text) from e
        except RecursionError:
            raise make_nesting_error(text) from None
        return result[0]


def simplify_ast(node: AstNode) -> AstNode:
    """Collapse every single-child Statements/Ternary/Condition/Infix/Call node into its child"""
    if node.kind in TOKEN_KINDS:
        return node
    children = tuple(simplify_ast(child) for child in node.children)
    if node.kind in COLLAPSIBLE_KINDS and len(children) == 1:
        return children[0]
    return AstNode(node.kind, children, node.token, node.span)


class FibParser:
    """Main fiblang parser: grammar plus optional AST simplification"""

    def __init__(self, optimize: bool = True, debug: bool = False):
        self.optimize = optimize
        self.debug = debug

    def parse_string(self, text: str, filename: str = "<input>") -> AstNode:
        """Parse fiblang source code from a string"""
        ast = FibGrammar(filename).parse_program(text)
        if self.debug:
            logger.debug("parsed %s: %d top-level statements", filename, len(ast.children))
        return self._finish(ast)

    def parse_file(self, filepath: str) -> AstNode:
        """Parse a fiblang source file; OSError propagates to the caller"""
        with open(filepath, 'r', encoding='utf-8') as f:
            content = f.read()
        return self.parse_string(content, filepath)

    def parse_expression(self, text: str, filename: str = "<input>") -> AstNode:
        return self._finish(FibGrammar(filename).parse_expression(text))

    def _finish(self, ast: AstNode) -> AstNode:
        if not self.optimize:
            return ast
        # Raw trees are several nodes deep per nesting level
        with recursion_headroom(PARSE_RECURSION_LIMIT):
            return simplify_ast(ast)


# Factory functions for creating parsers
def create_parser(optimize: bool = True, debug: bool = False) -> FibParser:
    """Create a fiblang parser"""
    return FibParser(optimize=optimize, debug=debug)


def create_debug_parser(optimize: bool = True) -> FibParser:
    """Create a fiblang parser with debug enabled"""
    return FibParser(optimize=optimize, debug=True)


# Utility functions for working with the AST
def find_nodes_by_kind(ast: AstNode, kind: NodeKind) -> List[AstNode]:
    """Find all nodes of a specific kind, in pre-order"""
    result = []

    def search(node: AstNode):
        if node.kind == kind:
            result.append(node)
        for child in node.children:
            search(child)

    search(ast)
    return result


def pretty_print_ast(ast: AstNode, indent: int = 0) -> str:
    """Pretty print an AST node for debugging"""
    result = "  " * indent + ast.kind.value
    if ast.token is not None:
        result += f" ({ast.token})"
    result += "\n"

    for child in ast.children:
        result += pretty_print_ast(child, indent + 1)

    return result
