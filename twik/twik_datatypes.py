"""
Defines the core data types for the twik language runtime.

Runtime values are plain Python objects (None, bool, int, float, str, list)
plus the three callable shapes defined here. Scopes form the lexical chain
that symbols are resolved against.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Sequence, TYPE_CHECKING

if TYPE_CHECKING:
    from twik.twik_ast import Node
    from twik.twik_interpreter import Evaluator
    from twik.twik_source import PosInfo


# =================================================================
# Errors
# =================================================================

class TwikError(Exception):
    """An evaluation or host failure that has not been positioned yet."""


class ParseError(TwikError):
    """A lexical or syntax error, positioned at the offending token."""
    def __init__(self, message: str, pos: int, pinfo: 'PosInfo'):
        super().__init__(f"{pinfo} {message}")
        self.message = message
        self.pos = pos
        self.pinfo = pinfo


class EvalError(TwikError):
    """An evaluation failure stamped with the position where it first surfaced.

    Once created it travels unchanged through enclosing calls.
    """
    def __init__(self, cause: BaseException, pos: int, pinfo: 'PosInfo'):
        super().__init__(f"{pinfo} {cause}")
        self.cause = cause
        self.pos = pos
        self.pinfo = pinfo

    @property
    def message(self) -> str:
        return str(self.cause)


# =================================================================
# Callables
# =================================================================

class TwikCallable(ABC):
    """Abstract base class for all values that can sit at the head of a call."""
    name: Optional[str] = None

    def __repr__(self) -> str:
        label = f" {self.name}" if self.name else ""
        return f"<{type(self).__name__}{label}>"


class Applicative(TwikCallable):
    """A callable that receives already-evaluated argument values."""

    @abstractmethod
    def apply(self, args: List[Any]) -> Any:
        raise NotImplementedError


class NativeFunction(Applicative):
    """A function implemented in Python: fn(args) -> value."""
    def __init__(self, fn: Callable[[List[Any]], Any], name: Optional[str] = None):
        self.fn = fn
        self.name = name or getattr(fn, "__name__", None)

    def apply(self, args: List[Any]) -> Any:
        return self.fn(args)


class SpecialForm(TwikCallable):
    """A prelude form that receives the caller's scope and unevaluated argument nodes."""
    def __init__(self, fn: Callable[['Scope', Sequence['Node']], Any], name: str):
        self.fn = fn
        self.name = name

    def invoke(self, scope: 'Scope', args: Sequence['Node']) -> Any:
        return self.fn(scope, args)


class Closure(Applicative):
    """A function defined in twik using `func`.

    Bundles the parameter names, the body nodes and the lexical scope in which
    the function was defined.
    """
    def __init__(self, params: Sequence[str], body: Sequence['Node'], scope: 'Scope', name: Optional[str] = None):
        self.params = tuple(params)
        self.body = tuple(body)
        self.scope = scope
        self.name = name

    def describe(self) -> str:
        return f'function "{self.name}"' if self.name else "anonymous function"

    def apply(self, args: List[Any]) -> Any:
        if len(args) != len(self.params):
            match len(self.params):
                case 0:
                    raise TwikError(f"{self.describe()} takes no arguments")
                case 1:
                    raise TwikError(f"{self.describe()} takes one argument")
                case n:
                    raise TwikError(f"{self.describe()} takes {n} arguments")
        call_scope = self.scope.branch()
        for param, arg in zip(self.params, args):
            call_scope.bindings[param] = arg
        value = None
        for node in self.body:
            value = call_scope.eval(node)
        return value

    def __repr__(self) -> str:
        from twik.twik_printer import Printer
        return Printer().pformat_function(self)


def twik_native(fn: Callable[[List[Any]], Any]) -> NativeFunction:
    """Decorator turning a plain function of an argument list into a NativeFunction."""
    return NativeFunction(fn, getattr(fn, "__name__", None))


# =================================================================
# Scope
# =================================================================

class Scope:
    """An environment where twik code is evaluated.

    Scopes form a singly linked chain through `parent`; children reference
    their parents, never the reverse.
    """
    def __init__(self, parent: Optional['Scope'] = None, evaluator: Optional['Evaluator'] = None):
        self.parent = parent
        self.bindings: Dict[str, Any] = {}
        if evaluator is None and parent is not None:
            evaluator = parent.evaluator
        self.evaluator = evaluator

    def create(self, name: str, value: Any) -> None:
        """Defines name in this scope. Redefining a name in the same scope is an error."""
        if name in self.bindings:
            raise TwikError(f"symbol already defined in current scope: {name}")
        self.bindings[name] = value

    def set(self, name: str, value: Any) -> None:
        """Sets name in the nearest scope that defines it."""
        owner = self.find_owner(name)
        if owner is None:
            raise TwikError(f"cannot set undefined symbol: {name}")
        owner.bindings[name] = value

    def get(self, name: str) -> Any:
        owner = self.find_owner(name)
        if owner is None:
            raise TwikError(f"undefined symbol: {name}")
        return owner.bindings[name]

    def find_owner(self, name: str) -> Optional['Scope']:
        s: Optional[Scope] = self
        while s is not None:
            if name in s.bindings:
                return s
            s = s.parent
        return None

    def branch(self) -> 'Scope':
        """Returns a new empty scope with this one as its parent."""
        return Scope(parent=self, evaluator=self.evaluator)

    def eval(self, node: 'Node') -> Any:
        """Evaluates node in this scope and returns the resulting value."""
        if self.evaluator is None:
            # Bare scopes built without a root get an evaluator with no sources.
            from twik.twik_interpreter import Evaluator
            self.evaluator = Evaluator()
        return self.evaluator.eval(node, self)

    def __contains__(self, name: str) -> bool:
        return self.find_owner(name) is not None

    def __repr__(self) -> str:
        keys = ', '.join(self.bindings.keys())
        parent_id = f", parent=#{id(self.parent)}" if self.parent else ""
        return f"<Scope bindings=[{keys}]{parent_id}>"
