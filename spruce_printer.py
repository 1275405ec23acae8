"""Turn Spruce abstract syntax trees back into Spruce source code.

Forfeited into the public domain with NO WARRANTY. Read LICENSE for details.

The output has a canonical shape: one top-level item or statement per line,
nested bodies indented by two spaces (indentation means nothing to the
parser), one space on either side of every operator, and `, ` between
arguments. Parsing the output of `format_program` yields a tree equal to the
one printed.

One kind of hand-made tree has no source form that parses back to the same
tree: a body whose trailing expression is a lone function call. The parser
always reads a bare call on a body's last line as a statement. Trees made by
`spruce_parser.parse` never contain one, but `format_body` will print it
without complaint.
"""

import spruce_parser

from typing import Union


_INDENT = '  '


def format_program(program: spruce_parser.Program) -> str:
  """Render a program as Spruce source code.

  Args:
    program: Abstract syntax tree for a Spruce program.

  Returns:
    Source code for `program`, ending with a newline if it's non-empty.
  """
  return ''.join(f'{item}\n' for item in map(format_item, program.items))


def format_item(
    item: Union[spruce_parser.FunctionDecl, spruce_parser.TypeDecl,
                spruce_parser.Assign],
    indent: str = '',
) -> str:
  """Render a top-level item (function, type, or assignment)."""
  match item:
    case spruce_parser.FunctionDecl(name=name, parameters=parameters,
                                    body=body):
      return (f'{indent}{name}({", ".join(parameters)}) {{\n'
              f'{format_body(body, indent + _INDENT)}{indent}}}')

    case spruce_parser.TypeDecl(name=name, parameters=parameters,
                                options=options):
      parameter_list = f'({", ".join(parameters)})' if parameters else ''
      option_lines = ''.join(
          f'{indent}{_INDENT}{format_type_option(option)}\n'
          for option in options)
      return (f'{indent}type {name}{parameter_list} {{\n'
              f'{option_lines}{indent}}}')

    case spruce_parser.Assign():
      return format_statement(item, indent)

    case _:
      raise ValueError(f'Not a top-level item: {item!r}')


def format_type_option(option: spruce_parser.TypeOption) -> str:
  """Render one constructor of a type declaration, e.g. `Cons(T, List(T))`."""
  return option.constructor + _type_arguments(option.arguments)


def format_type_expr(type_expr: spruce_parser.TypeExpr) -> str:
  """Render a type expression, e.g. `List(Maybe(T))`."""
  return type_expr.name + _type_arguments(type_expr.arguments)


def _type_arguments(arguments: tuple[spruce_parser.TypeExpr, ...]) -> str:
  if not arguments: return ''
  return f'({", ".join(map(format_type_expr, arguments))})'


def format_body(body: spruce_parser.Body, indent: str = '') -> str:
  """Render a body: one line per statement, then the trailing node.

  Args:
    body: The body to render.
    indent: Prefix for every line of the body.

  Returns:
    Source code for the body, with every line (including the last) ending
    in a newline.
  """
  lines = [format_statement(statement, indent)
           for statement in body.statements]
  if body.trailing is not None:
    lines.append(indent + _format_valued(body.trailing, indent))
  return ''.join(f'{line}\n' for line in lines)


def format_statement(
    statement: Union[spruce_parser.Assign, spruce_parser.FnCall,
                     spruce_parser.Case],
    indent: str = '',
) -> str:
  """Render a statement (without its terminating newline)."""
  match statement:
    case spruce_parser.Assign(target=target, value=value):
      match target.kind:
        case spruce_parser.TargetKind.BIND:
          prefix = f'{target.name} ='
        case spruce_parser.TargetKind.MUTABLE_BIND:
          prefix = f'mut {target.name} ='
        case spruce_parser.TargetKind.UPDATE:
          prefix = f'{target.name}:'
      return f'{indent}{prefix} {_format_valued(value, indent)}'

    case spruce_parser.FnCall() | spruce_parser.Case():
      return indent + _format_valued(statement, indent)

    case _:
      raise ValueError(f'Not a statement: {statement!r}')


def format_case(case: spruce_parser.Case, indent: str = '') -> str:
  """Render a case construct.

  The first line is not indented (it usually follows other text on the same
  line); arms are indented one level deeper than `indent`, and the closing
  brace sits at `indent`.
  """
  arm_indent = indent + _INDENT
  arms = []
  for option in case.options:
    pattern = option.pattern.name
    if option.pattern.bindings:
      pattern += f'({", ".join(option.pattern.bindings)})'
    if isinstance(option.value, spruce_parser.Body):
      value = (f'{{\n{format_body(option.value, arm_indent + _INDENT)}'
               f'{arm_indent}}}')
    else:
      value = format_expr(option.value)
    arms.append(f'{arm_indent}{pattern} -> {value}\n')
  return f'case {format_expr(case.scrutinee)} {{\n{"".join(arms)}{indent}}}'


def format_expr(expr: spruce_parser.Expr) -> str:
  """Render an expression, e.g. `a + f(b, 2) * (c - 1)`."""
  pieces = [format_term(expr.terms[0])]
  for operator, term in zip(expr.operators, expr.terms[1:]):
    pieces.append(operator.value)
    pieces.append(format_term(term))
  return ' '.join(pieces)


def format_term(term: spruce_parser.Term) -> str:
  """Render a single term of an expression."""
  match term:
    case spruce_parser.FnCall(callee=callee, arguments=arguments):
      return f'{callee}({", ".join(map(format_expr, arguments))})'
    case spruce_parser.Identifier(name=name):
      return name
    case spruce_parser.NumericLiteral():
      return term.text
    case spruce_parser.Expr():
      return f'({format_expr(term)})'
    case _:
      raise ValueError(f'Not a term: {term!r}')


def _format_valued(
    valued: Union[spruce_parser.Case, spruce_parser.Expr,
                  spruce_parser.FnCall],
    indent: str,
) -> str:
  """Render something that has a value: a case, expression, or call."""
  match valued:
    case spruce_parser.Case():
      return format_case(valued, indent)
    case spruce_parser.Expr():
      return format_expr(valued)
    case _:
      return format_term(valued)
