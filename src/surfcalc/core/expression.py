"""
Expression compiler: formula text → CompiledField.

Pipeline: tokenize → recursive-descent parse → AST → numpy tree walk.

The AST is a small tagged variant (Number, Constant, Variable, UnaryOp,
BinaryOp, Call). Only arithmetic and the vocabulary in
surfcalc.core.functions are reachable; there is no host-language evaluation
anywhere in the pipeline.

Grammar (lowest to highest precedence):

    expression := term (("+" | "-") term)*
    term       := unary (("*" | "/") unary)*
    unary      := ("+" | "-") unary | power
    power      := atom (("^" | "**") unary)?
    atom       := NUMBER | NAME | NAME "(" [expression ("," expression)*] ")"
                | "(" expression ")"

so "^" is right associative and binds tighter than unary minus:
-x^2 == -(x^2), 2^-1 == 0.5, 2^3^2 == 2^9.

Compilation never raises: a malformed formula yields a field that is invalid
(nan) everywhere, and records why in CompiledField.error.
"""

from __future__ import annotations
import logging
import re
from dataclasses import dataclass
from typing import NamedTuple, Union

import numpy as np

from surfcalc.core.functions import CONSTANTS, FUNCTIONS, canonical_name, is_constant, is_function

logger = logging.getLogger(__name__)

VARIABLES = {2: ("x", "y"), 3: ("x", "y", "t")}

# Limits that keep parsing and the recursive tree walks well inside the
# interpreter's recursion limit
MAX_NESTING = 100  # parentheses, unary signs, exponents and call arguments
MAX_TREE_DEPTH = 200  # e.g. a chain of 200 "+" terms

ArrayLike = Union[float, np.ndarray]


class ExpressionError(ValueError):
    """Raised by the tokenizer/parser for malformed formula text."""


# ═══════════════════════════════════════════════════════════════
# AST
# ═══════════════════════════════════════════════════════════════

# Rendering precedence (higher binds tighter)
_PREC_ADD = 1
_PREC_MUL = 2
_PREC_UNARY = 3
_PREC_POW = 4
_PREC_ATOM = 5

_BINARY_PREC = {"+": _PREC_ADD, "-": _PREC_ADD, "*": _PREC_MUL, "/": _PREC_MUL, "^": _PREC_POW}

_BINARY_UFUNCS = {
    "+": np.add,
    "-": np.subtract,
    "*": np.multiply,
    "/": np.true_divide,
    "^": np.power,
}


def _format_number(value: float) -> str:
    if value.is_integer() and abs(value) < 1e16:
        return str(int(value))
    return repr(value)


@dataclass(frozen=True)
class Number:
    value: float
    precedence = _PREC_ATOM

    def evaluate(self, env: dict[str, np.ndarray]) -> ArrayLike:
        return self.value

    def __str__(self) -> str:
        return _format_number(self.value)


@dataclass(frozen=True)
class Constant:
    name: str
    value: float
    precedence = _PREC_ATOM

    def evaluate(self, env: dict[str, np.ndarray]) -> ArrayLike:
        return self.value

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Variable:
    name: str
    precedence = _PREC_ATOM

    def evaluate(self, env: dict[str, np.ndarray]) -> ArrayLike:
        return env[self.name]

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class UnaryOp:
    op: str  # only "-"; unary "+" is dropped by the parser
    operand: "Node"
    precedence = _PREC_UNARY

    def evaluate(self, env: dict[str, np.ndarray]) -> ArrayLike:
        return np.negative(self.operand.evaluate(env))

    def __str__(self) -> str:
        inner = str(self.operand)
        if self.operand.precedence < _PREC_UNARY:
            inner = f"({inner})"
        return f"{self.op}{inner}"


@dataclass(frozen=True)
class BinaryOp:
    op: str
    left: "Node"
    right: "Node"

    @property
    def precedence(self) -> int:
        return _BINARY_PREC[self.op]

    def evaluate(self, env: dict[str, np.ndarray]) -> ArrayLike:
        return _BINARY_UFUNCS[self.op](self.left.evaluate(env), self.right.evaluate(env))

    def __str__(self) -> str:
        prec = self.precedence
        left, right = str(self.left), str(self.right)

        if self.op == "^":
            # Right associative: the left operand needs parens at equal precedence
            if self.left.precedence <= prec:
                left = f"({left})"
            if self.right.precedence < prec:
                right = f"({right})"
            return f"{left}^{right}"

        if self.left.precedence < prec:
            left = f"({left})"
        if self.right.precedence <= prec:
            right = f"({right})"
        return f"{left} {self.op} {right}"


@dataclass(frozen=True)
class Call:
    name: str
    args: tuple["Node", ...]
    precedence = _PREC_ATOM

    def evaluate(self, env: dict[str, np.ndarray]) -> ArrayLike:
        fn, _ = FUNCTIONS[self.name]
        return fn(*(arg.evaluate(env) for arg in self.args))

    def __str__(self) -> str:
        return f"{self.name}({', '.join(str(a) for a in self.args)})"


Node = Union[Number, Constant, Variable, UnaryOp, BinaryOp, Call]


def _children(node: Node) -> tuple[Node, ...]:
    if isinstance(node, UnaryOp):
        return (node.operand,)
    if isinstance(node, BinaryOp):
        return (node.left, node.right)
    if isinstance(node, Call):
        return node.args
    return ()


def tree_depth(node: Node) -> int:
    """Depth of an AST (a leaf has depth 1), computed without recursion."""
    depth = 0
    stack = [(node, 1)]
    while stack:
        current, level = stack.pop()
        depth = max(depth, level)
        stack.extend((child, level + 1) for child in _children(current))
    return depth


# ═══════════════════════════════════════════════════════════════
# Tokenizer
# ═══════════════════════════════════════════════════════════════


class Token(NamedTuple):
    kind: str  # "num", "name", "op", "(", ")", ",", "end"
    text: str
    pos: int


_NUMBER_RE = re.compile(r"(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_NAME_RE = re.compile(r"[^\W\d]\w*")


def tokenize(text: str) -> list[Token]:
    """Split formula text into tokens, ending with an "end" token."""
    tokens: list[Token] = []
    i = 0
    n = len(text)

    while i < n:
        ch = text[i]

        if ch.isspace():
            i += 1
            continue

        match = _NUMBER_RE.match(text, i)
        if match:
            tokens.append(Token("num", match.group(), i))
            i = match.end()
            continue

        match = _NAME_RE.match(text, i)
        if match:
            tokens.append(Token("name", match.group(), i))
            i = match.end()
            continue

        if text.startswith("**", i):
            tokens.append(Token("op", "^", i))
            i += 2
            continue

        if ch in "+-*/^":
            tokens.append(Token("op", ch, i))
        elif ch in "(),":
            tokens.append(Token(ch, ch, i))
        else:
            raise ExpressionError(f"Unexpected character {ch!r} at position {i}")
        i += 1

    tokens.append(Token("end", "", n))
    return tokens


# ═══════════════════════════════════════════════════════════════
# Parser
# ═══════════════════════════════════════════════════════════════


class Parser:
    """Recursive-descent parser over a token list."""

    def __init__(self, tokens: list[Token], variables: tuple[str, ...]):
        self.tokens = tokens
        self.variables = variables
        self.pos = 0
        self.depth = 0

    def parse(self) -> Node:
        node = self.expression()
        tok = self.peek()
        if tok.kind != "end":
            raise ExpressionError(f"Unexpected {tok.text!r} at position {tok.pos}")
        if tree_depth(node) > MAX_TREE_DEPTH:
            raise ExpressionError(f"Formula is too long (more than {MAX_TREE_DEPTH} levels deep)")
        return node

    def peek(self) -> Token:
        return self.tokens[self.pos]

    def advance(self) -> Token:
        tok = self.tokens[self.pos]
        self.pos += 1
        return tok

    def expect(self, kind: str) -> Token:
        tok = self.peek()
        if tok.kind != kind:
            found = tok.text or "end of formula"
            raise ExpressionError(f"Expected {kind!r} at position {tok.pos}, found {found!r}")
        return self.advance()

    def _at_op(self, ops: str) -> bool:
        tok = self.peek()
        return tok.kind == "op" and tok.text in ops

    def expression(self) -> Node:
        node = self.term()
        while self._at_op("+-"):
            op = self.advance().text
            node = BinaryOp(op, node, self.term())
        return node

    def term(self) -> Node:
        node = self.unary()
        while self._at_op("*/"):
            op = self.advance().text
            node = BinaryOp(op, node, self.unary())
        return node

    def unary(self) -> Node:
        # Every nested construct passes through here
        self.depth += 1
        if self.depth > MAX_NESTING:
            raise ExpressionError(
                f"Formula is nested too deeply at position {self.peek().pos} (limit {MAX_NESTING})"
            )
        try:
            if self._at_op("+-"):
                op = self.advance().text
                operand = self.unary()
                return operand if op == "+" else UnaryOp("-", operand)
            return self.power()
        finally:
            self.depth -= 1

    def power(self) -> Node:
        base = self.atom()
        if self._at_op("^"):
            self.advance()
            return BinaryOp("^", base, self.unary())
        return base

    def atom(self) -> Node:
        tok = self.advance()

        if tok.kind == "num":
            return Number(float(tok.text))

        if tok.kind == "(":
            node = self.expression()
            self.expect(")")
            return node

        if tok.kind == "name":
            if self.peek().kind == "(":
                return self.call(tok)
            if tok.text in self.variables:
                return Variable(tok.text)
            name = canonical_name(tok.text)
            if is_constant(name):
                return Constant(name, float(CONSTANTS[name]))
            if is_function(name):
                raise ExpressionError(f"Function {name!r} at position {tok.pos} needs arguments")
            raise ExpressionError(f"Unknown identifier {tok.text!r} at position {tok.pos}")

        found = tok.text or "end of formula"
        raise ExpressionError(f"Unexpected {found!r} at position {tok.pos}")

    def call(self, name_tok: Token) -> Node:
        name = canonical_name(name_tok.text)
        if not is_function(name):
            raise ExpressionError(f"Unknown function {name_tok.text!r} at position {name_tok.pos}")

        self.expect("(")
        args: list[Node] = []
        if self.peek().kind != ")":
            args.append(self.expression())
            while self.peek().kind == ",":
                self.advance()
                args.append(self.expression())
        self.expect(")")

        _, arity = FUNCTIONS[name]
        if arity is None:
            if not args:
                raise ExpressionError(f"{name}() needs at least one argument")
        elif len(args) != arity:
            raise ExpressionError(f"{name}() takes {arity} argument(s), got {len(args)}")

        return Call(name, tuple(args))


def parse(text: str, arity: int = 3) -> Node:
    """Parse formula text into an AST. Raises ExpressionError on malformed input."""
    if arity not in VARIABLES:
        raise ValueError(f"Unsupported arity: {arity}")
    return Parser(tokenize(text), VARIABLES[arity]).parse()


# ═══════════════════════════════════════════════════════════════
# Compiled fields
# ═══════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class CompiledField:
    """
    A pure numeric field f(x, y[, t]).

    Accepts scalars or numpy arrays (broadcast together). Returns a float for
    scalar input, otherwise a float array. Points outside the analytic domain
    come back as nan; evaluation never raises.
    """

    source: str
    arity: int
    tree: Node | None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.tree is not None

    @property
    def canonical(self) -> str | None:
        """Normalized formula text (aliases resolved), or None if compilation failed."""
        return None if self.tree is None else str(self.tree)

    def __call__(self, x: ArrayLike, y: ArrayLike, t: ArrayLike = 0.0) -> ArrayLike:
        x = np.asarray(x, dtype=np.float64)
        y = np.asarray(y, dtype=np.float64)
        t = np.asarray(t, dtype=np.float64)
        shape = np.broadcast_shapes(x.shape, y.shape, t.shape)

        if self.tree is None:
            values = np.full(shape, np.nan)
        else:
            env = {"x": x, "y": y, "t": t}
            try:
                with np.errstate(all="ignore"):
                    raw = self.tree.evaluate(env)
                values = np.broadcast_to(np.asarray(raw, dtype=np.float64), shape)
            except (ArithmeticError, ValueError, TypeError, RecursionError) as exc:
                logger.debug("Evaluation of %r failed: %s", self.source, exc)
                values = np.full(shape, np.nan)
            values = np.where(np.isfinite(values), values, np.nan)

        if values.ndim == 0:
            return float(values)
        return values


def compile_field(formula: str, arity: int = 3) -> CompiledField:
    """
    Compile formula text into a CompiledField.

    Never raises for bad formula text: on failure the returned field is
    invalid everywhere and carries the parser message in `error`.
    Empty text compiles to the constant 0.

    Args:
        formula: Formula text, e.g. "sin(x*2 + y) - 0.5*sin(t*2)"
        arity: 3 for f(x, y, t), 2 for f(x, y)
    """
    if arity not in VARIABLES:
        raise ValueError(f"Unsupported arity: {arity}")

    text = formula.strip() if formula else ""
    if not text:
        return CompiledField(source="", arity=arity, tree=Number(0.0))

    try:
        tree = parse(text, arity)
    except (ExpressionError, RecursionError) as exc:
        logger.debug("Formula %r failed to compile: %s", formula, exc)
        message = str(exc) if isinstance(exc, ExpressionError) else "Formula is nested too deeply"
        return CompiledField(source=formula, arity=arity, tree=None, error=message)

    return CompiledField(source=formula, arity=arity, tree=tree)


def compile_optional_field(formula: str | None, arity: int = 2) -> CompiledField | None:
    """Compile an optional auxiliary field (density, constraint, domain); None when blank."""
    if formula is None or not formula.strip():
        return None
    return compile_field(formula, arity)


def evaluate_formula(formula: str, x: ArrayLike, y: ArrayLike, t: ArrayLike = 0.0) -> ArrayLike:
    """One-shot compile and evaluate."""
    return compile_field(formula)(x, y, t)
