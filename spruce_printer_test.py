"""Tests for the spruce_printer module.

Forfeited into the public domain with NO WARRANTY. Read LICENSE for details.
"""

import textwrap
import unittest

import spruce_parser
import spruce_printer


# Source code used by the round-trip tests: it tries to use every construct
# in the language at least once.
SOURCE_TEXT = """\
type Bool {
True
False
}

type Tree(K,V) {
Leaf
Node(Tree(K, V), K,V, Tree(K,V))
}

limit=10
mut counter = limit*2^3

size(tree) {
  case tree {
    Leaf -> 0
    Node(left, k, v, right) -> {
      total = size(left)+size(right)
      total: total + 1
      total
    }
  }
}

main() {
  mut n = -1.5e+3
  n: (n - 2.) / (4 % 3)
  flag = case n >= 0 { True -> {
  }
  False -> f()
  }
  print(size(Leaf), flag != True, n <= 1E2)
}

area(w, h) {
  w * h < limit == (w > h)
}
"""


class PrinterTest(unittest.TestCase):
  """Test harness for testing the spruce_printer module."""

  def test_round_trip(self):
    """Printing and reparsing yields the same tree."""
    program = spruce_parser.parse(SOURCE_TEXT)
    printed = spruce_printer.format_program(program)
    self.assertEqual(spruce_parser.parse(printed), program)

  def test_printing_is_idempotent(self):
    """Printed source code prints exactly the same way again."""
    printed = spruce_printer.format_program(spruce_parser.parse(SOURCE_TEXT))
    reprinted = spruce_printer.format_program(spruce_parser.parse(printed))
    self.assertEqual(printed, reprinted)

  def test_function(self):
    program = spruce_parser.parse('add(a,b) {\na+b\n}\n')
    self.assertEqual(spruce_printer.format_program(program),
                     'add(a, b) {\n  a + b\n}\n')

  def test_types(self):
    program = spruce_parser.parse(
        'type Bool {\nTrue\nFalse\n}\ntype List(T) {\nCons(T,List(T))\nNil\n}')
    self.assertEqual(spruce_printer.format_program(program), textwrap.dedent(
        """\
        type Bool {
          True
          False
        }
        type List(T) {
          Cons(T, List(T))
          Nil
        }
        """))

  def test_case_inside_function(self):
    program = spruce_parser.parse(textwrap.dedent(
        """\
        pick(m) {
        r = case m {
        Some(v) -> {
        v
        }
        None -> 0
        }
        r
        }
        """))
    self.assertEqual(spruce_printer.format_program(program), textwrap.dedent(
        """\
        pick(m) {
          r = case m {
            Some(v) -> {
              v
            }
            None -> 0
          }
          r
        }
        """))

  def test_assignment_targets(self):
    program = spruce_parser.parse('f() {\nmut x = 0\nx:x+1\ny=x\n}\n')
    self.assertEqual(spruce_printer.format_program(program),
                     'f() {\n  mut x = 0\n  x: x + 1\n  y = x\n}\n')

  def test_expressions(self):
    for source_text, expected in [
        ('a+b*c', 'a + b * c'),
        ('((a))', '((a))'),
        ('f( 1 , g() )', 'f(1, g())'),
        ('-2.E4-+3', '-2.e4 - +3'),
    ]:
      with self.subTest(source_text=source_text):
        expr = spruce_parser.parse_expression(source_text)
        self.assertEqual(spruce_printer.format_expr(expr), expected)
        self.assertEqual(spruce_parser.parse_expression(expected), expr)

  def test_type_expr(self):
    type_expr = spruce_parser.TypeExpr('Map', (
        spruce_parser.TypeExpr('K', ()),
        spruce_parser.TypeExpr('List', (spruce_parser.TypeExpr('V', ()),))))
    self.assertEqual(spruce_printer.format_type_expr(type_expr),
                     'Map(K, List(V))')

  def test_not_a_term(self):
    with self.assertRaises(ValueError):
      spruce_printer.format_term(spruce_parser.Body((), None))  # type: ignore


if __name__ == '__main__':
  unittest.main()
