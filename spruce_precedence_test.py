"""Tests for the spruce_precedence module.

Forfeited into the public domain with NO WARRANTY. Read LICENSE for details.
"""

import textwrap
import unittest
import warnings

import spruce_parser
import spruce_precedence

from spruce_parser import FnCall, Identifier, NumericLiteral
from spruce_precedence import Binary, BinaryOp


a, b, c, d = (Identifier(name) for name in 'abcd')


def resolve(source_text: str) -> spruce_precedence.Resolved:
  """Parse an expression and apply operator precedence to it."""
  return spruce_precedence.resolve(
      spruce_parser.parse_expression(source_text))


def fold(source_text: str) -> spruce_precedence.Resolved:
  """Parse an expression and fold it from left to right."""
  return spruce_precedence.fold_left_to_right(
      spruce_parser.parse_expression(source_text))


class ResolveTest(unittest.TestCase):
  """Tests for conventional precedence."""

  def test_single_term(self):
    self.assertEqual(resolve('a'), a)

  def test_multiplication_before_addition(self):
    self.assertEqual(resolve('a + b * c'),
                     Binary(BinaryOp.ADD, a, Binary(BinaryOp.MULTIPLY, b, c)))
    self.assertEqual(resolve('a * b + c'),
                     Binary(BinaryOp.ADD, Binary(BinaryOp.MULTIPLY, a, b), c))

  def test_left_associativity(self):
    self.assertEqual(
        resolve('a - b - c'),
        Binary(BinaryOp.SUBTRACT, Binary(BinaryOp.SUBTRACT, a, b), c))
    self.assertEqual(
        resolve('a / b % c'),
        Binary(BinaryOp.MODULO, Binary(BinaryOp.DIVIDE, a, b), c))

  def test_power_is_right_associative_and_tightest(self):
    self.assertEqual(
        resolve('a ^ b ^ c'),
        Binary(BinaryOp.POWER, a, Binary(BinaryOp.POWER, b, c)))
    self.assertEqual(
        resolve('a * b ^ c'),
        Binary(BinaryOp.MULTIPLY, a, Binary(BinaryOp.POWER, b, c)))

  def test_comparisons_are_loosest(self):
    one, two = NumericLiteral('', '1', None, None), NumericLiteral(
        '', '2', None, None)
    self.assertEqual(
        resolve('a + 1 <= b * 2'),
        Binary(BinaryOp.COMPARE_LE,
               Binary(BinaryOp.ADD, a, one),
               Binary(BinaryOp.MULTIPLY, b, two)))

  def test_parentheses_win(self):
    self.assertEqual(resolve('(a + b) * c'),
                     Binary(BinaryOp.MULTIPLY, Binary(BinaryOp.ADD, a, b), c))

  def test_call_arguments_are_resolved(self):
    self.assertEqual(
        resolve('f(a + b * c) - d'),
        Binary(BinaryOp.SUBTRACT,
               FnCall('f', (
                   Binary(BinaryOp.ADD, a, Binary(BinaryOp.MULTIPLY, b, c)),)),
               d))

  def test_every_operator(self):
    for symbol, op in [('+', BinaryOp.ADD), ('-', BinaryOp.SUBTRACT),
                       ('*', BinaryOp.MULTIPLY), ('/', BinaryOp.DIVIDE),
                       ('^', BinaryOp.POWER), ('%', BinaryOp.MODULO),
                       ('==', BinaryOp.COMPARE_EQ), ('!=', BinaryOp.COMPARE_NE),
                       ('<=', BinaryOp.COMPARE_LE), ('>=', BinaryOp.COMPARE_GE),
                       ('<', BinaryOp.COMPARE_LT), ('>', BinaryOp.COMPARE_GT)]:
      with self.subTest(symbol=symbol):
        self.assertEqual(resolve(f'a {symbol} b'), Binary(op, a, b))

  def test_chained_comparisons_warn(self):
    with self.assertWarnsRegex(UserWarning, 'Comparisons chained'):
      result = resolve('a < b == c')
    self.assertEqual(
        result,
        Binary(BinaryOp.COMPARE_EQ, Binary(BinaryOp.COMPARE_LT, a, b), c))

  def test_parenthesized_comparisons_do_not_warn(self):
    with warnings.catch_warnings():
      warnings.simplefilter('error')
      resolve('(a < b) == c')

  def test_spans_cover_operands(self):
    result = resolve('a +  b * c')
    self.assertEqual((result.span.start, result.span.end), (0, 10))
    self.assertEqual((result.right.span.start, result.right.span.end), (5, 10))


class FoldLeftToRightTest(unittest.TestCase):
  """Tests for folding in source order."""

  def test_source_order(self):
    self.assertEqual(fold('a + b * c'),
                     Binary(BinaryOp.MULTIPLY, Binary(BinaryOp.ADD, a, b), c))
    self.assertEqual(fold('a ^ b ^ c'),
                     Binary(BinaryOp.POWER, Binary(BinaryOp.POWER, a, b), c))

  def test_parentheses_win(self):
    self.assertEqual(fold('a * (b + c)'),
                     Binary(BinaryOp.MULTIPLY, a, Binary(BinaryOp.ADD, b, c)))


class ResolveProgramTest(unittest.TestCase):
  """Tests for resolving whole programs."""

  SOURCE_TEXT = textwrap.dedent(
      """\
      scale(x) {
        y = x + 1 * 2
        r = case y > 3 {
          Big -> y * 2 + 1
          Small -> {
            show(y - 1 - 1)
          }
        }
        r
      }
      """)

  def test_every_expression_resolved(self):
    program = spruce_parser.parse(self.SOURCE_TEXT)
    resolved = spruce_precedence.resolve_program(program)

    body = resolved.items[0].body
    assign_y, assign_r = body.statements
    self.assertEqual(
        assign_y.value,
        Binary(BinaryOp.ADD, Identifier('x'),
               Binary(BinaryOp.MULTIPLY,
                      NumericLiteral('', '1', None, None),
                      NumericLiteral('', '2', None, None))))
    case = assign_r.value
    self.assertEqual(case.scrutinee.op, BinaryOp.COMPARE_GT)
    big, small = case.options
    self.assertEqual(big.value.op, BinaryOp.ADD)
    [show] = small.value.statements
    self.assertEqual(show.arguments[0].op, BinaryOp.SUBTRACT)
    self.assertEqual(body.trailing, Identifier('r'))

  def test_original_untouched(self):
    program = spruce_parser.parse(self.SOURCE_TEXT)
    spruce_precedence.resolve_program(program)
    self.assertEqual(program, spruce_parser.parse(self.SOURCE_TEXT))
    self.assertIsInstance(program.items[0].body.trailing, spruce_parser.Expr)

  def test_spans_kept(self):
    program = spruce_parser.parse(self.SOURCE_TEXT)
    resolved = spruce_precedence.resolve_program(program)
    self.assertEqual(resolved.items[0].span, program.items[0].span)

  def test_other_resolvers(self):
    program = spruce_parser.parse('x = a + b * c\n')
    resolved = spruce_precedence.resolve_program(
        program, spruce_precedence.fold_left_to_right)
    self.assertEqual(resolved.items[0].value.op, BinaryOp.MULTIPLY)


if __name__ == '__main__':
  unittest.main()
