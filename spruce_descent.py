"""Utilities for recursive descent into Spruce parse trees.

Forfeited into the public domain with NO WARRANTY. Read LICENSE for details.

`children` knows which fields of each node type hold subtrees and lists them
in source order. `walk` builds on it to visit a whole tree, and `rebuild`
copies a tree while swapping out chosen nodes, which is how passes like
`spruce_precedence.resolve_program` derive new trees from old ones.

Nodes defined outside `spruce_parser` (for instance the `Binary` nodes made
by the precedence pass) are handled generically: any field holding a node, or
a tuple of nodes, is a child.
"""

import dataclasses

import spruce_parser

from typing import Callable, Iterator, Optional


def children(ast: spruce_parser.AstNode) -> list[spruce_parser.AstNode]:
  """Retrieve all parse tree node children of this parse tree node.

  Children are listed in the order they appear in the source code. Names
  stored as plain strings (parameters, pattern bindings, type parameters)
  aren't nodes and aren't included.
  """
  match ast:
    case spruce_parser.Program(items=items):
      return list(items)
    case spruce_parser.FunctionDecl(body=body):
      return [body]
    case spruce_parser.TypeDecl(options=options):
      return list(options)
    case (spruce_parser.TypeOption(arguments=arguments) |
          spruce_parser.TypeExpr(arguments=arguments) |
          spruce_parser.FnCall(arguments=arguments)):
      return list(arguments)
    case spruce_parser.Assign(target=target, value=value):
      return [target, value]
    case spruce_parser.Body(statements=statements, trailing=None):
      return list(statements)
    case spruce_parser.Body(statements=statements, trailing=trailing):
      return [*statements, trailing]
    case spruce_parser.Case(scrutinee=scrutinee, options=options):
      return [scrutinee, *options]
    case spruce_parser.CaseOption(pattern=pattern, value=value):
      return [pattern, value]
    case spruce_parser.Expr(terms=terms):
      return list(terms)
    case (spruce_parser.Target() | spruce_parser.CasePattern() |
          spruce_parser.Identifier() | spruce_parser.NumericLiteral()):
      return []
    case spruce_parser.AstNode():
      return _field_children(ast)
    case _:
      raise ValueError(f'Not a parse tree node: {ast!r}')


def walk(ast: spruce_parser.AstNode) -> Iterator[spruce_parser.AstNode]:
  """Yield `ast` and all of its descendants in depth-first preorder."""
  stack = [ast]
  while stack:
    node = stack.pop()
    yield node
    stack.extend(reversed(children(node)))


def rebuild(
    ast: spruce_parser.AstNode,
    replacement: Callable[[spruce_parser.AstNode],
                          Optional[spruce_parser.AstNode]],
) -> spruce_parser.AstNode:
  """Copy a parse tree, substituting some of its nodes.

  `replacement` is called on nodes in preorder. Where it returns a node, that
  node takes the place of the original and the original's descendants are not
  visited. Where it returns None, the node is kept, with its children rebuilt
  in the same way. Subtrees where nothing was replaced are shared with the
  original tree, not copied; spans are always carried over.

  Args:
    ast: Root of the parse tree to copy.
    replacement: As described.

  Returns:
    The root of the new tree. The original tree is unchanged.
  """
  substitute = replacement(ast)
  if substitute is not None: return substitute

  changes = {}
  for field in dataclasses.fields(ast):
    if field.name == 'span': continue
    value = getattr(ast, field.name)
    match value:
      case spruce_parser.AstNode():
        new_value = rebuild(value, replacement)
        if new_value is not value: changes[field.name] = new_value
      case tuple():
        new_items = tuple(
            rebuild(item, replacement)
            if isinstance(item, spruce_parser.AstNode) else item
            for item in value)
        if any(new is not old for new, old in zip(new_items, value)):
          changes[field.name] = new_items

  return dataclasses.replace(ast, **changes) if changes else ast


### Utilities ###


def _field_children(ast: spruce_parser.AstNode) -> list[spruce_parser.AstNode]:
  """Children of a node type that `children` has no special case for."""
  kids: list[spruce_parser.AstNode] = []
  for field in dataclasses.fields(ast):
    value = getattr(ast, field.name)
    if isinstance(value, tuple):
      kids.extend(v for v in value if isinstance(v, spruce_parser.AstNode))
    elif isinstance(value, spruce_parser.AstNode):
      kids.append(value)
  return kids
