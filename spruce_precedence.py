"""Operator precedence for Spruce expressions.

Forfeited into the public domain with NO WARRANTY. Read LICENSE for details.

The Spruce grammar gives all binary operators the same standing: the parser
records every expression as a flat, left-to-right sequence of terms and
operators (see `spruce_parser.Expr`). This module is the separate pass that
assigns conventional precedence and turns those sequences into trees of
`Binary` nodes, one node per operation, for type checkers and code generators
that would rather not deal with the flat form.

Precedence levels, from tightest to loosest binding:

   1. `^` (right-associative, so `a ^ b ^ c` is `a ^ (b ^ c)`)
   2. `*`, `/`, `%`
   3. `+`, `-`
   4. `==`, `!=`, `<=`, `>=`, `<`, `>`

All operators besides `^` are left-associative. Parentheses in the source
code always win; they show up as nested `Expr` terms, which are resolved
independently of their surroundings.

For consumers who want the literal meaning of the flat sequence as a tree,
`fold_left_to_right` groups strictly in source order instead.
"""

import dataclasses
import enum
import warnings

import spruce_descent
import spruce_parser

from typing import Callable, Optional, Union


class BinaryOp(enum.Enum):
  """Operations for Binary nodes."""
  ADD = 1
  SUBTRACT = 2
  MULTIPLY = 3
  DIVIDE = 4
  POWER = 5
  MODULO = 6
  COMPARE_EQ = 7
  COMPARE_NE = 8
  COMPARE_LE = 9
  COMPARE_GE = 10
  COMPARE_LT = 11
  COMPARE_GT = 12


@dataclasses.dataclass(frozen=True)
class Binary(spruce_parser.AstNode):
  """Node for a binary operation."""
  op: BinaryOp
  left: 'Resolved'
  right: 'Resolved'


Resolved = Union[Binary, spruce_parser.FnCall, spruce_parser.Identifier,
                 spruce_parser.NumericLiteral]


_OPS = {
    spruce_parser.Operator.ADD: BinaryOp.ADD,
    spruce_parser.Operator.SUBTRACT: BinaryOp.SUBTRACT,
    spruce_parser.Operator.MULTIPLY: BinaryOp.MULTIPLY,
    spruce_parser.Operator.DIVIDE: BinaryOp.DIVIDE,
    spruce_parser.Operator.POWER: BinaryOp.POWER,
    spruce_parser.Operator.MODULO: BinaryOp.MODULO,
    spruce_parser.Operator.EQUAL: BinaryOp.COMPARE_EQ,
    spruce_parser.Operator.NOT_EQUAL: BinaryOp.COMPARE_NE,
    spruce_parser.Operator.LESS_EQUAL: BinaryOp.COMPARE_LE,
    spruce_parser.Operator.GREATER_EQUAL: BinaryOp.COMPARE_GE,
    spruce_parser.Operator.LESS: BinaryOp.COMPARE_LT,
    spruce_parser.Operator.GREATER: BinaryOp.COMPARE_GT,
}

# Higher levels bind more tightly.
_LEVELS = {
    BinaryOp.POWER: 4,
    BinaryOp.MULTIPLY: 3, BinaryOp.DIVIDE: 3, BinaryOp.MODULO: 3,
    BinaryOp.ADD: 2, BinaryOp.SUBTRACT: 2,
    BinaryOp.COMPARE_EQ: 1, BinaryOp.COMPARE_NE: 1, BinaryOp.COMPARE_LE: 1,
    BinaryOp.COMPARE_GE: 1, BinaryOp.COMPARE_LT: 1, BinaryOp.COMPARE_GT: 1,
}

_RIGHT_ASSOCIATIVE = frozenset([BinaryOp.POWER])

COMPARISONS = frozenset(op for op, level in _LEVELS.items() if level == 1)


def resolve(expr: spruce_parser.Expr) -> Resolved:
  """Apply operator precedence to an expression.

  Args:
    expr: A flat expression from the parser.

  Returns:
    The expression as a tree of `Binary` nodes whose leaves are identifiers,
    numeric literals, and function calls (whose arguments are resolved too).
    An expression with a single term resolves to that term.
  """
  ops = [_OPS[operator] for operator in expr.operators]
  if sum(op in COMPARISONS for op in ops) > 1: warnings.warn(
      f'Comparisons chained without parentheses in the expression at '
      f'{_where(expr.span)} will be grouped from left to right')
  operands = [_resolve_term(term, resolve) for term in expr.terms]

  # Precedence climbing. `position` indexes both `operands` and `ops`: the
  # operator at ops[i] sits just after the operand at operands[i].
  position = 0

  def climb(min_level: int) -> Resolved:
    nonlocal position
    left = operands[position]
    while position < len(ops) and _LEVELS[ops[position]] >= min_level:
      op = ops[position]
      position += 1
      right = climb(
          _LEVELS[op] if op in _RIGHT_ASSOCIATIVE else _LEVELS[op] + 1)
      left = Binary(op, left, right, span=_join(left.span, right.span))
    return left

  return climb(0)


def fold_left_to_right(expr: spruce_parser.Expr) -> Resolved:
  """Turn an expression into a tree, grouping strictly in source order.

  `a + b * c` becomes `(a + b) * c`. Parenthesized sub-expressions and
  function call arguments are folded the same way.
  """
  result = _resolve_term(expr.terms[0], fold_left_to_right)
  for operator, term in zip(expr.operators, expr.terms[1:]):
    right = _resolve_term(term, fold_left_to_right)
    result = Binary(_OPS[operator], result, right,
                    span=_join(result.span, right.span))
  return result


def resolve_program(
    program: spruce_parser.Program,
    resolver: Callable[[spruce_parser.Expr], Resolved] = resolve,
) -> spruce_parser.Program:
  """Apply `resolver` to every expression in a program.

  Args:
    program: Abstract syntax tree for a Spruce program.
    resolver: `resolve` or `fold_left_to_right`.

  Returns:
    A copy of `program` where every `Expr` node (scrutinees, assigned values,
    trailing expressions, arm values, call arguments, and so on) has been
    replaced by its resolved tree. The original is untouched.
  """
  # Outermost expressions only: resolving one handles everything inside it.
  return spruce_descent.rebuild(
      program,
      lambda node: resolver(node) if isinstance(node, spruce_parser.Expr)
      else None)


def _resolve_term(
    term: spruce_parser.Term,
    resolver: Callable[[spruce_parser.Expr], Resolved],
) -> Resolved:
  """Resolve the expressions inside a term, or the term itself."""
  match term:
    case spruce_parser.Expr():
      return resolver(term)
    case spruce_parser.FnCall(callee=callee, arguments=arguments):
      return spruce_parser.FnCall(
          callee, tuple(resolver(a) for a in arguments), span=term.span)
    case spruce_parser.Identifier() | spruce_parser.NumericLiteral():
      return term
    case _:
      raise ValueError(f'Not a term: {term!r}')


def _join(
    left: Optional[spruce_parser.Span],
    right: Optional[spruce_parser.Span],
) -> Optional[spruce_parser.Span]:
  """A span covering two spans, the first preceding the second."""
  if left is None or right is None: return None
  return dataclasses.replace(left, end=right.end)


def _where(span: Optional[spruce_parser.Span]) -> str:
  if span is None: return 'an unknown location'
  where = f'{span.filename}:' if span.filename is not None else ''
  return f'{where}{span.line}:{span.column}'
