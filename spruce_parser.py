"""Spruce parser.

Forfeited into the public domain with NO WARRANTY. Read LICENSE for details.

This parser uses the grammar in `spruce_grammar.lark` to derive an abstract
syntax tree for a Spruce program text supplied in a (long) string.

Abstract syntax tree nodes are instances of the frozen Python dataclasses
defined in the first part of this file. The second part assembles a Lark
Transformer class that transforms the Lark parser's own tree nodes into those
dataclasses, and the third translates Lark's parse failures into this module's
`ParseError` exceptions.

Expressions are kept exactly as written: an `Expr` is a flat sequence of terms
separated by operators, with no notion of operator precedence. Passes that
want conventional arithmetic grouping can run `spruce_precedence.resolve` over
the tree afterwards; parentheses are the only grouping the parser knows about.

At the bottom of the module is some rudimentary infrastructure for aiding
pretty-printing while debugging. For turning trees back into Spruce source
code, see `spruce_printer`.
"""

import collections
import dataclasses
import enum
import functools
import os
import re
import warnings

import lark

from typing import Optional, Union


def parse(
    source_text: str,
    *,
    filename: Optional[str] = None,
) -> 'Program':
  """Parse a Spruce source file.

  Args:
    source_text: Complete text of a Spruce program.
    filename: Name of the file `source_text` came from, if any. Used in error
        messages and recorded in the spans of the tree's nodes.

  Returns:
    An abstract syntax tree for the program text.

  Raises:
    ParseError: the program text is not valid Spruce. The exception will be
        one of the subclasses `LexicalFailure`, `StructuralFailure`, or
        `UnexpectedEnd`.
  """
  return _parse('program', source_text, filename)


def parse_expression(
    source_text: str,
    *,
    filename: Optional[str] = None,
) -> 'Expr':
  """Parse a single Spruce expression, e.g. `f(x) + 1`.

  Newlines may precede or follow the expression, but nothing else may.

  Args:
    source_text: Text of the expression.
    filename: As in `parse`.

  Returns:
    An `Expr` for the expression.

  Raises:
    ParseError: as in `parse`.
  """
  return _parse('lone_expression', source_text, filename)


def _parse(start: str, source_text: str, filename: Optional[str]):
  """Parse `source_text` starting from grammar rule `start`."""
  try:
    tree = _parser(start).parse(source_text)
  except lark.UnexpectedInput as e:
    raise _parse_error(e, source_text, filename) from None
  try:
    return _Transformer(filename).transform(tree)
  except lark.exceptions.VisitError as e:
    # Lark wraps exceptions raised by the transformer; unwrap our own.
    if isinstance(e.orig_exc, ParseError): raise e.orig_exc from None
    raise


@functools.cache
def _parser(start: str) -> lark.Lark:
  """Create/retrieve a singleton Lark parser for a grammar start rule.

  The grammar needs Earley: keywords double as names, and one token of
  lookahead can't tell `case (x) {`, a case construct, from `case(x)`, a call
  to a function named `case`. Expect a few milliseconds per line of source,
  so programs thousands of lines long take seconds to parse. The grammar is
  unambiguous, so the parser never has to weigh competing trees.
  """
  module_dir = os.path.dirname(os.path.realpath(__file__))
  return lark.Lark.open(os.path.join(module_dir, 'spruce_grammar.lark'),
                        start=start,
                        parser='earley',
                        lexer='basic',
                        propagate_positions=True,
                        maybe_placeholders=True)


### Generic AST node, for type checking.

@dataclasses.dataclass(frozen=True)
class Span:
  """Location of a node's text in the source."""
  start: int   # Offset of the first character.
  end: int     # Offset just past the last character.
  line: int    # 1-based line of the first character.
  column: int  # 1-based column of the first character.
  filename: Optional[str] = None

@dataclasses.dataclass(frozen=True)
class AstNode:
  """Base class for all parse tree nodes.

  Spans don't participate in comparisons: two trees are equal if they have
  the same structure, wherever their text sat in the source.
  """
  span: Optional[Span] = dataclasses.field(
      default=None, compare=False, repr=False, kw_only=True)


### _TransformerProgramMixin

@dataclasses.dataclass(frozen=True)
class Program(AstNode):
  """Node for programs: top-level items in source order."""
  items: tuple[Union['FunctionDecl', 'TypeDecl', 'Assign'], ...]


### _TransformerDeclarationMixin

@dataclasses.dataclass(frozen=True)
class FunctionDecl(AstNode):
  """Node for function declarations.

  Functions have no declared result type: whatever the body's trailing
  expression evaluates to (if it has one) is the function's result.
  """
  name: str
  parameters: tuple[str, ...]
  body: 'Body'

@dataclasses.dataclass(frozen=True)
class TypeDecl(AstNode):
  """Node for algebraic data type declarations."""
  name: str
  parameters: tuple[str, ...]
  options: tuple['TypeOption', ...]  # Never empty.

@dataclasses.dataclass(frozen=True)
class TypeOption(AstNode):
  """One constructor of an algebraic data type."""
  constructor: str
  arguments: tuple['TypeExpr', ...]

@dataclasses.dataclass(frozen=True)
class TypeExpr(AstNode):
  """A type name, possibly applied to type arguments, e.g. `List(T)`."""
  name: str
  arguments: tuple['TypeExpr', ...]


### _TransformerStatementMixin

class TargetKind(enum.Enum):
  """The three forms an assignment target can take."""
  BIND = 1          # x = ...      Establishes or shadows a binding.
  MUTABLE_BIND = 2  # mut x = ...  Establishes a mutable binding.
  UPDATE = 3        # x: ...       Changes an existing mutable binding.

@dataclasses.dataclass(frozen=True)
class Target(AstNode):
  """Leaf node for the left-hand side of an assignment."""
  kind: TargetKind
  name: str

@dataclasses.dataclass(frozen=True)
class Assign(AstNode):
  """Node for assignments."""
  target: Target
  value: Union['Case', 'Expr']

@dataclasses.dataclass(frozen=True)
class Body(AstNode):
  """Node for function bodies and the bodies of case arms.

  The trailing expression is the value of the body. Bodies whose last line
  is a statement have no trailing expression. That includes a last line
  holding a bare function call or a case construct: both are always read as
  statements, and whoever needs a value for such a body should take it from
  the final statement.
  """
  statements: tuple[Union[Assign, 'FnCall', 'Case'], ...]
  trailing: Optional['Expr']


### _TransformerCaseMixin

@dataclasses.dataclass(frozen=True)
class CasePattern(AstNode):
  """Pattern on the left-hand side of a case arm, e.g. `Cons(head, tail)`.

  The parser doesn't decide whether `name` refers to a constructor or is a
  catch-all binding, nor whether the number of bindings suits the
  constructor. Those are matters for whoever resolves names.
  """
  name: str
  bindings: tuple[str, ...]

@dataclasses.dataclass(frozen=True)
class CaseOption(AstNode):
  """Node for one arm of a case construct."""
  pattern: CasePattern
  value: Union['Expr', Body]

@dataclasses.dataclass(frozen=True)
class Case(AstNode):
  """Node for case constructs. Options appear in source order."""
  scrutinee: 'Expr'
  options: tuple[CaseOption, ...]  # Never empty.


### _TransformerExpressionMixin

class Operator(enum.Enum):
  """Binary operators. All of them share a single precedence level."""
  ADD = '+'
  SUBTRACT = '-'
  MULTIPLY = '*'
  DIVIDE = '/'
  POWER = '^'
  MODULO = '%'
  EQUAL = '=='
  NOT_EQUAL = '!='
  LESS_EQUAL = '<='
  GREATER_EQUAL = '>='
  LESS = '<'
  GREATER = '>'

@dataclasses.dataclass(frozen=True)
class Expr(AstNode):
  """Node for expressions: terms joined by operators, left to right.

  `terms` always has one more element than `operators`; `operators[i]` sits
  between `terms[i]` and `terms[i + 1]`. An expression in parentheses appears
  as an `Expr` among the terms of the enclosing expression.
  """
  terms: tuple['Term', ...]
  operators: tuple[Operator, ...]

  @property
  def pairs(self) -> tuple[tuple['Term', Operator], ...]:
    """The (term, operator) pairs that precede the final term."""
    return tuple(zip(self.terms, self.operators))

@dataclasses.dataclass(frozen=True)
class FnCall(AstNode):
  """Node for function calls."""
  callee: str
  arguments: tuple[Expr, ...]

@dataclasses.dataclass(frozen=True)
class Identifier(AstNode):
  """Leaf node for identifiers used as values."""
  name: str

@dataclasses.dataclass(frozen=True)
class NumericLiteral(AstNode):
  """Leaf node for numbers.

  The pieces are kept as they were written so that the literal can be
  reproduced: `-12.5e+3` has sign '-', integer '12', fraction '5', and
  exponent '+3'. A literal ending in a bare decimal point, like `3.`, has an
  empty fraction; a literal with no decimal point has a fraction of None.
  """
  sign: str                 # '', '+', or '-'.
  integer: str
  fraction: Optional[str]
  exponent: Optional[str]   # Includes the exponent's sign, if any.

  @property
  def text(self) -> str:
    """The literal in source form."""
    fraction = '' if self.fraction is None else f'.{self.fraction}'
    exponent = '' if self.exponent is None else f'e{self.exponent}'
    return f'{self.sign}{self.integer}{fraction}{exponent}'

  @property
  def value(self) -> float:
    return float(self.text)


Term = Union[FnCall, Identifier, NumericLiteral, Expr]


######################
#### TRANSFORMERS ####
######################


class _TransformerProgramMixin:

  @lark.v_args(inline=True, meta=True)
  def program(self, meta, *items):
    return Program(items, span=self._span(meta))

  @lark.v_args(inline=True)
  def lone_expression(self, expression):
    return expression


class _TransformerDeclarationMixin:

  @lark.v_args(inline=True, meta=True)
  def function_declaration(self, meta, name, parameters, body):
    parameters = parameters or ()
    for parameter in sorted(_duplicates(parameters)): warnings.warn(
        f'Parameter {parameter} appears more than once in function {name}')
    return FunctionDecl(name, parameters, body, span=self._span(meta))

  @lark.v_args(inline=True, meta=True)
  def type_declaration(self, meta, _keyword, name, parameters, *options):
    parameters = parameters or ()
    for parameter in sorted(_duplicates(parameters)): warnings.warn(
        f'Type parameter {parameter} appears more than once in type {name}')
    return TypeDecl(name, parameters, options, span=self._span(meta))

  @lark.v_args(inline=True)
  def type_parameters(self, names):
    return names or ()

  @lark.v_args(inline=True, meta=True)
  def type_option(self, meta, constructor, arguments):
    return TypeOption(constructor, arguments or (), span=self._span(meta))

  @lark.v_args(inline=True, meta=True)
  def type_expression(self, meta, name, arguments):
    return TypeExpr(name, arguments or (), span=self._span(meta))

  type_expressions = tuple

  names = tuple


class _TransformerStatementMixin:

  @lark.v_args(inline=True, meta=True)
  def assignment(self, meta, target, value):
    return Assign(target, value, span=self._span(meta))

  @lark.v_args(inline=True, meta=True)
  def bind(self, meta, name):
    return Target(TargetKind.BIND, name, span=self._span(meta))

  @lark.v_args(inline=True, meta=True)
  def mutable_bind(self, meta, _keyword, name):
    return Target(TargetKind.MUTABLE_BIND, name, span=self._span(meta))

  @lark.v_args(inline=True, meta=True)
  def update(self, meta, name):
    return Target(TargetKind.UPDATE, name, span=self._span(meta))

  @lark.v_args(meta=True)
  def body(self, meta, items):
    # Statements are never bare expressions, so an Expr at the end can only
    # be the trailing expression. None is the placeholder for its absence.
    items = [item for item in items if item is not None]
    trailing = items.pop() if items and isinstance(items[-1], Expr) else None
    return Body(tuple(items), trailing, span=self._span(meta))

  inline_body = body


class _TransformerCaseMixin:

  @lark.v_args(inline=True, meta=True)
  def case_expression(self, meta, _keyword, scrutinee, *options):
    return Case(scrutinee, options, span=self._span(meta))

  @lark.v_args(inline=True, meta=True)
  def case_option(self, meta, pattern, value):
    return CaseOption(pattern, value, span=self._span(meta))

  @lark.v_args(inline=True, meta=True)
  def pattern(self, meta, name, bindings):
    return CasePattern(name, bindings or (), span=self._span(meta))


class _TransformerExpressionMixin:

  @lark.v_args(meta=True)
  def expression(self, meta, items):
    return Expr(tuple(items[0::2]), tuple(items[1::2]), span=self._span(meta))

  trailing_expression = expression

  @lark.v_args(inline=True, meta=True)
  def function_call(self, meta, callee, arguments):
    return FnCall(callee, arguments or (), span=self._span(meta))

  arguments = tuple

  @lark.v_args(inline=True)
  def operator(self, token):
    return Operator(str(token))

  @lark.v_args(inline=True, meta=True)
  def variable(self, meta, name):
    return Identifier(name, span=self._span(meta))


class _TransformerLiteralMixin:

  @lark.v_args(inline=True, meta=True)
  def number(self, meta, sign, digits):
    # Signs are separate tokens in the grammar, but must touch their digits.
    if sign is not None and sign.end_pos != digits.start_pos: raise _error(
        StructuralFailure, f"space after the sign '{sign}'",
        offset=sign.start_pos, line=sign.line, column=sign.column,
        expected=frozenset([_describe('NUMBER')]), filename=self.filename)
    match = _NUMBER_PARTS.fullmatch(str(digits))
    if match is None: raise _InternalError(f'Malformed number {digits}')
    integer, fraction, exponent = match.groups()
    return NumericLiteral(
        str(sign or ''), integer, fraction, exponent, span=self._span(meta))

  @lark.v_args(inline=True)
  def sign(self, token):
    return token  # Still a Token, since number() needs its position.

  @lark.v_args(inline=True)
  def name(self, token):
    return str(token)


_NUMBER_PARTS = re.compile(r'([0-9]+)(?:\.([0-9]*))?(?:[eE]([+-]?[0-9]+))?')


class _Transformer(_TransformerProgramMixin,
                   _TransformerDeclarationMixin,
                   _TransformerStatementMixin,
                   _TransformerCaseMixin,
                   _TransformerExpressionMixin,
                   _TransformerLiteralMixin,
                   lark.Transformer):
  """Turns Lark parse trees into trees of the dataclasses above.

  Attributes:
    filename: Recorded in the span of every node built.
  """

  def __init__(self, filename: Optional[str] = None):
    super().__init__()
    self.filename = filename

  def _span(self, meta) -> Optional[Span]:
    """Make a Span from Lark's position information, if there is any."""
    if meta.empty: return None
    return Span(meta.start_pos, meta.end_pos, meta.line, meta.column,
                self.filename)


def _duplicates(names: tuple[str, ...]) -> set[str]:
  """Names that appear more than once in `names`."""
  return {name for name, count in collections.Counter(names).items()
          if count > 1}


################
#### ERRORS ####
################


class ParseError(ValueError):
  """A Spruce program text could not be parsed.

  Attributes:
    offset: Offset into the source text where parsing failed.
    line: 1-based line number where parsing failed.
    column: 1-based column number where parsing failed.
    expected: Descriptions of the tokens that could have appeared there.
    filename: The name of the file that failed to parse, if known.
  """

  def __init__(self, message: str, *, offset: int, line: int, column: int,
               expected: frozenset[str], filename: Optional[str] = None):
    super().__init__(message)
    self.offset = offset
    self.line = line
    self.column = column
    self.expected = expected
    self.filename = filename


class LexicalFailure(ParseError):
  """No token could be recognised at some position in the source text."""


class StructuralFailure(ParseError):
  """A token appeared where the grammar doesn't allow it."""


class UnexpectedEnd(ParseError):
  """The source text ended while the grammar required more."""


# Human-friendly descriptions of terminals in the grammar.
_TERMINAL_DESCRIPTIONS = {
    'ID': 'identifier',
    'NUMBER': 'number',
    'TYPE': "'type'",
    'CASE': "'case'",
    'MUT': "'mut'",
    '_ARROW': "'->'",
    '_LPAR': "'('",
    '_RPAR': "')'",
    '_LBRACE': "'{'",
    '_RBRACE': "'}'",
    '_COMMA': "','",
    '_COLON': "':'",
    '_EQUAL': "'='",
    '_NL': 'newline',
    'PLUS': "'+'",
    'MINUS': "'-'",
    'STAR': "'*'",
    'SLASH': "'/'",
    'CARET': "'^'",
    'PERCENT': "'%'",
    'EQUAL_EQUAL': "'=='",
    'NOT_EQUAL': "'!='",
    'LESS_EQUAL': "'<='",
    'GREATER_EQUAL': "'>='",
    'LESS': "'<'",
    'GREATER': "'>'",
    '$END': 'end of input',
}


def _parse_error(
    e: lark.UnexpectedInput,
    source_text: str,
    filename: Optional[str],
) -> ParseError:
  """Translate a Lark parsing exception into a ParseError."""
  match e:
    case lark.UnexpectedCharacters():
      character = source_text[e.pos_in_stream]
      error_class, what, expected = (
          LexicalFailure, f'unrecognised character {character!r}', e.allowed)
    case lark.UnexpectedEOF():
      error_class, what, expected = (
          UnexpectedEnd, 'unexpected end of input', e.expected)
    case lark.UnexpectedToken() if e.token.type == '$END':
      error_class, what, expected = (
          UnexpectedEnd, 'unexpected end of input', e.expected)
    case lark.UnexpectedToken():
      error_class, what, expected = (
          StructuralFailure, f'unexpected {_describe(e.token.type)}',
          e.expected)
    case _: raise _InternalError(f'Unhandled parser exception {e!r}')

  # End-of-input failures don't carry positions, so we supply our own.
  offset = getattr(e, 'pos_in_stream', None)
  if offset is None or offset < 0 or error_class is UnexpectedEnd:
    offset = len(source_text)
    line = source_text.count('\n') + 1
    column = offset - (source_text.rfind('\n') + 1) + 1
    context = ''
  else:
    line, column = e.line, e.column
    context = '\n' + e.get_context(source_text)

  expected = frozenset(
      _describe(t) for t in (expected or ()) if t != 'WHITESPACE')
  return _error(error_class, what, offset=offset, line=line, column=column,
                expected=expected, filename=filename, context=context)


def _error(
    error_class: type[ParseError],
    what: str,
    *,
    offset: int,
    line: int,
    column: int,
    expected: frozenset[str],
    filename: Optional[str],
    context: str = '',
) -> ParseError:
  """Build a ParseError with a message that locates the problem."""
  where = f'{filename}:' if filename is not None else ''
  message = (f'{where}{line}:{column}: {what}; expected one of: '
             f'{", ".join(sorted(expected))}{context}')
  return error_class(message, offset=offset, line=line, column=column,
                     expected=expected, filename=filename)


def _describe(terminal: str) -> str:
  """Describe a grammar terminal for an error message."""
  return _TERMINAL_DESCRIPTIONS.get(terminal, terminal)


#######################
#### ODDS AND ENDS ####
#######################


class _InternalError(RuntimeError):
  """An uninformative exception for "this shouldn't happen" errors."""


@dataclasses.dataclass
class Colour:
  """For coding and debugging: text that prints in colour.

  Uses ANSI escape codes to colour text; your terminal must support them.

  Attributes:
    colour_id: A numerical string that identifies a 3-bit or 4-bit foreground
        or background colour.
    item: Text to print in colour.
  """
  colour_id: str
  item: str
  def __repr__(self):
    return f'\033[{self.colour_id}m{self.item}\033[0m'


def asdict_rec(ast):
  """For parser coding and debugging: make a printable abstract syntax tree.

  Transforms an abstract syntax tree into nests of Python built-in types that
  pretty-print more compactly than the original AST, with the names of AST
  node types in green and any untransformed Lark trees on a red background.
  Spans are left out.

  Recommended usage:
     import pprint
     pprint.pprint(asdict_rec(parse(my_code)))

  Args:
    ast: An abstract syntax tree.

  Returns:
    A pretty-printable data structure as described.
  """
  match ast:
    case tuple():
      return tuple(asdict_rec(item) for item in ast)
    case list():
      return list(asdict_rec(item) for item in ast)
    case str():
      return ast
    case enum.Enum():
      return ast.name
    case lark.Tree(data=data, children=children):
      return Colour('41', data), asdict_rec(children)
  if isinstance(ast, AstNode):
    name = Colour('92', type(ast).__name__)
    items = {k: v for k, v in ast.__dict__.items() if k != 'span'}
    if items:
      return name, {k: asdict_rec(v) for k, v in items.items()}
    else:
      return name
  else:
    return ast
