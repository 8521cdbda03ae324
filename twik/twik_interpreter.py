"""
The core twik interpreter: a tree-walking Evaluator over the positioned AST.
"""
import os
import sys
from typing import Any, List as PyList, Optional, Sequence

from twik.twik_ast import Int, Float, String, Symbol, List, Root, Node
from twik.twik_datatypes import (
    Scope, TwikError, EvalError, Applicative, SpecialForm,
)
from twik.twik_printer import Printer
from twik.twik_source import SourceSet


class Evaluator:
    """The twik execution engine.

    Holds the SourceSet the evaluated nodes were parsed into so that failures
    can be reported as name:line:column.
    """
    def __init__(self, sources: Optional[SourceSet] = None):
        self.sources = sources if sources is not None else SourceSet()

    def _dbg(self, *parts):
        if os.environ.get("TWIK_DEBUG"):
            print("[DBG]", *parts, file=sys.stderr)

    def error_at(self, node: Node, err: BaseException) -> EvalError:
        """Stamps err with the position of node, unless it already carries one."""
        if isinstance(err, EvalError):
            return err
        return EvalError(err, node.pos, self.sources.resolve(node.pos))

    def eval(self, node: Node, scope: Scope) -> Any:
        """Evaluates node in scope and returns the resulting value."""
        match node:
            case Symbol():
                try:
                    return scope.get(node.name)
                except TwikError as e:
                    raise self.error_at(node, e) from e

            case Int() | Float() | String():
                return node.value

            case List():
                if not node.nodes:
                    return []
                head = node.nodes[0]
                try:
                    fn = self.eval(head, scope)
                    return self.call(fn, node.nodes[1:], scope)
                except (EvalError, RecursionError):
                    raise
                except Exception as e:
                    # Host natives may fail with any exception; position it like our own.
                    raise self.error_at(head, e) from e

            case Root():
                value = None
                for child in node.nodes:
                    value = self.eval(child, scope)
                return value

        raise TwikError(f"cannot evaluate {node!r}")

    def call(self, fn: Any, args: Sequence[Node], scope: Scope) -> Any:
        """Invokes fn with the argument nodes of a call expression."""
        match fn:
            case SpecialForm():
                self._dbg("form", fn.name, "argc", len(args))
                return fn.invoke(scope, args)

            case Applicative():
                values: PyList[Any] = []
                for arg in args:
                    values.append(self.eval(arg, scope))
                self._dbg("call", fn.name or "<anonymous>", "argc", len(values))
                return fn.apply(values)

            case _:
                raise TwikError(f"cannot use {Printer().pformat(fn)} as a function")
