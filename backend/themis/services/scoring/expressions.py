"""
Gate expression evaluation without eval().

Two notations are accepted:

- JSON logic: {"and": [{">=": [{"var": "scores.impact"}, 3]}, {"var": "approved"}]}
  Operators: and, or, not / !, var (dotted path, optional default), ==, ===,
  !=, !==, >, >=, <, <=, in. Operands are evaluated recursively.

- Text: scores.impact >= 3 and (region in ["EU", "US"] or not flagged)
  Grammar:
      expr       := or_expr
      or_expr    := and_expr (("or" | "||") and_expr)*
      and_expr   := not_expr (("and" | "&&") not_expr)*
      not_expr   := ("not" | "!") not_expr | comparison
      comparison := operand (CMP operand)?
      operand    := NUMBER | STRING | true | false | null | path
                  | "(" expr ")" | "[" [expr ("," expr)*] "]"

Equality is strict: booleans never equal numbers. Ordering comparisons need
two numbers or two strings. Unknown variables, unknown operators and type
mismatches raise GateEvaluationError.
"""
import json
import re
from typing import Any, List, Mapping, Optional, Tuple

from themis.core.errors import GateEvaluationError

_MISSING = object()

# ---------------------------------------------------------------------------
# Shared semantics
# ---------------------------------------------------------------------------


def lookup(context: Mapping[str, Any], path: str, default: Any = _MISSING) -> Any:
    """Resolve a dotted path ("scores.compliance") against nested mappings."""
    if path == "":
        return context
    current: Any = context
    for part in path.split("."):
        if isinstance(current, Mapping) and part in current:
            current = current[part]
        elif isinstance(current, list) and part.isascii() and part.isdigit() and int(part) < len(current):
            current = current[int(part)]
        else:
            if default is not _MISSING:
                return default
            raise GateEvaluationError(f"Unknown variable: {path}")
    return current


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def strict_equals(left: Any, right: Any) -> bool:
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if _is_number(left) and _is_number(right):
        return left == right
    return type(left) is type(right) and left == right


def compare(operator: str, left: Any, right: Any) -> bool:
    if operator in ("==", "==="):
        return strict_equals(left, right)
    if operator in ("!=", "!=="):
        return not strict_equals(left, right)
    if operator == "in":
        if isinstance(right, str) and isinstance(left, str):
            return left in right
        if isinstance(right, list):
            return any(strict_equals(left, item) for item in right)
        raise GateEvaluationError(f"'in' needs a list or string on the right, got {type(right).__name__}")

    comparable = (_is_number(left) and _is_number(right)) or (
        isinstance(left, str) and isinstance(right, str)
    )
    if not comparable:
        raise GateEvaluationError(
            f"Cannot compare {type(left).__name__} {operator} {type(right).__name__}"
        )
    if operator == ">":
        return left > right
    if operator == ">=":
        return left >= right
    if operator == "<":
        return left < right
    if operator == "<=":
        return left <= right
    raise GateEvaluationError(f"Unsupported operator: {operator}")


COMPARISON_OPERATORS = ("==", "===", "!=", "!==", ">", ">=", "<", "<=", "in")

# ---------------------------------------------------------------------------
# JSON logic
# ---------------------------------------------------------------------------


def evaluate_json_logic(node: Any, context: Mapping[str, Any]) -> Any:
    if isinstance(node, list):
        return [evaluate_json_logic(item, context) for item in node]
    if not isinstance(node, dict):
        return node
    if len(node) != 1:
        raise GateEvaluationError(f"JSON logic rule must have exactly one operator, got {len(node)}")

    operator, raw_args = next(iter(node.items()))
    args = raw_args if isinstance(raw_args, list) else [raw_args]

    if operator == "and":
        return all(bool(evaluate_json_logic(arg, context)) for arg in args)
    if operator == "or":
        return any(bool(evaluate_json_logic(arg, context)) for arg in args)
    if operator in ("not", "!"):
        _expect_arity(operator, args, 1)
        return not bool(evaluate_json_logic(args[0], context))
    if operator == "var":
        if not args:
            raise GateEvaluationError("'var' needs a path")
        path = evaluate_json_logic(args[0], context)
        default = evaluate_json_logic(args[1], context) if len(args) > 1 else _MISSING
        return lookup(context, "" if path is None else str(path), default)
    if operator in COMPARISON_OPERATORS:
        _expect_arity(operator, args, 2)
        left = evaluate_json_logic(args[0], context)
        right = evaluate_json_logic(args[1], context)
        return compare(operator, left, right)

    raise GateEvaluationError(f"Unsupported JSON Logic operator: {operator}")


def _expect_arity(operator: str, args: List[Any], count: int) -> None:
    if len(args) != count:
        raise GateEvaluationError(f"'{operator}' expects {count} argument(s), got {len(args)}")

# ---------------------------------------------------------------------------
# Text expressions
# ---------------------------------------------------------------------------


TOKEN_PATTERN = re.compile(
    r"""
    (?P<ws>\s+)
  | (?P<number>-?\d+(?:\.\d+)?)
  | (?P<string>"(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*')
  | (?P<op>===|!==|==|!=|>=|<=|&&|\|\||>|<|!)
  | (?P<punct>[()\[\],])
  | (?P<name>[A-Za-z_][A-Za-z0-9_]*(?:\.[A-Za-z0-9_]+)*)
    """,
    re.VERBOSE,
)

KEYWORDS = {"and", "or", "not", "in", "true", "false", "null"}

Token = Tuple[str, str]


def tokenize(text: str) -> List[Token]:
    tokens: List[Token] = []
    position = 0
    while position < len(text):
        match = TOKEN_PATTERN.match(text, position)
        if match is None:
            raise GateEvaluationError(f"Unexpected character at {position}: {text[position]!r}")
        kind = match.lastgroup
        value = match.group()
        position = match.end()
        if kind == "ws":
            continue
        if kind == "name" and value in KEYWORDS:
            kind = "keyword"
        tokens.append((kind, value))
    return tokens


class ExpressionParser:
    """Recursive-descent evaluator; parsing and evaluation happen in one pass."""

    def __init__(self, text: str, context: Mapping[str, Any]):
        self.tokens = tokenize(text)
        self.position = 0
        self.context = context

    def evaluate(self) -> Any:
        if not self.tokens:
            raise GateEvaluationError("Empty expression")
        value = self._or()
        if self._peek() is not None:
            raise GateEvaluationError(f"Unexpected token: {self._peek()[1]}")
        return value

    def _peek(self) -> Optional[Token]:
        return self.tokens[self.position] if self.position < len(self.tokens) else None

    def _advance(self) -> Token:
        token = self._peek()
        if token is None:
            raise GateEvaluationError("Unexpected end of expression")
        self.position += 1
        return token

    def _accept(self, *values: str) -> bool:
        token = self._peek()
        if token is not None and token[0] in ("op", "keyword", "punct") and token[1] in values:
            self.position += 1
            return True
        return False

    def _expect(self, value: str) -> None:
        if not self._accept(value):
            found = self._peek()
            raise GateEvaluationError(f"Expected '{value}', found {found[1] if found else 'end of expression'}")

    def _or(self) -> Any:
        value = self._and()
        while self._accept("or", "||"):
            right = self._and()
            value = bool(value) or bool(right)
        return value

    def _and(self) -> Any:
        value = self._not()
        while self._accept("and", "&&"):
            right = self._not()
            value = bool(value) and bool(right)
        return value

    def _not(self) -> Any:
        if self._accept("not", "!"):
            return not bool(self._not())
        return self._comparison()

    def _comparison(self) -> Any:
        left = self._operand()
        token = self._peek()
        if token is not None and token[1] in COMPARISON_OPERATORS and token[0] in ("op", "keyword"):
            self.position += 1
            right = self._operand()
            return compare(token[1], left, right)
        return left

    def _operand(self) -> Any:
        kind, value = self._advance()
        if kind == "number":
            return float(value) if "." in value else int(value)
        if kind == "string":
            return _unquote(value)
        if kind == "keyword":
            if value == "true":
                return True
            if value == "false":
                return False
            if value == "null":
                return None
            raise GateEvaluationError(f"Unexpected keyword: {value}")
        if kind == "name":
            return lookup(self.context, value)
        if value == "(":
            inner = self._or()
            self._expect(")")
            return inner
        if value == "[":
            items = []
            if not self._accept("]"):
                items.append(self._or())
                while self._accept(","):
                    items.append(self._or())
                self._expect("]")
            return items
        raise GateEvaluationError(f"Unexpected token: {value}")


def _unquote(literal: str) -> str:
    return re.sub(r"\\(.)", r"\1", literal[1:-1])


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def evaluate_expression(expression: str, context: Mapping[str, Any]) -> bool:
    """
    Evaluate a gate expression to a boolean.

    JSON objects are treated as JSON logic; anything else that is not a JSON
    boolean goes through the text parser.

    Raises:
        GateEvaluationError
    """
    try:
        parsed = json.loads(expression)
    except json.JSONDecodeError:
        parsed = _MISSING

    if isinstance(parsed, dict):
        return bool(evaluate_json_logic(parsed, context))
    if isinstance(parsed, bool):
        return parsed
    return bool(ExpressionParser(expression, context).evaluate())
