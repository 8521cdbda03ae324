"""
The built-in twik globals: constants, special forms and arithmetic primitives.

Special forms take (scope, nodes) and decide themselves what to evaluate;
primitives take the already-evaluated argument values.
"""
import math
from typing import Any, List as PyList, Sequence, Tuple

from twik.twik_ast import Symbol, List, Node
from twik.twik_datatypes import (
    Scope, TwikError, Closure, NativeFunction, SpecialForm, TwikCallable,
)
from twik.twik_printer import Printer

_printer = Printer()


def _show(value: Any) -> str:
    return _printer.pformat(value)


# =================================================================
# Numbers
# =================================================================

def wrap_int64(n: int) -> int:
    """Reduces n to the signed 64-bit range with two's complement wraparound."""
    return ((n + (1 << 63)) % (1 << 64)) - (1 << 63)


def is_int(v: Any) -> bool:
    # bool is a subclass of int, but twik booleans are never numbers
    return type(v) is int


def is_float(v: Any) -> bool:
    return type(v) is float


def _check_numbers(args: Sequence[Any], verb: str) -> bool:
    """Validates args and reports whether any of them is a float."""
    has_float = False
    for arg in args:
        if is_float(arg):
            has_float = True
        elif not is_int(arg):
            raise TwikError(f"cannot {verb} {_show(arg)}")
    return has_float


def _int_div(a: int, b: int) -> int:
    if b == 0:
        raise TwikError("integer divide by zero")
    q = abs(a) // abs(b)
    return wrap_int64(q if (a < 0) == (b < 0) else -q)


def _float_div(a: float, b: float) -> float:
    if b == 0.0:
        if a == 0.0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a) * math.copysign(1.0, b)
    return a / b


def values_equal(a: Any, b: Any) -> bool:
    """Compares by type and value; numerically equal int and float are different."""
    if type(a) is not type(b):
        return False
    if isinstance(a, list):
        return len(a) == len(b) and all(values_equal(x, y) for x, y in zip(a, b))
    if isinstance(a, TwikCallable):
        return a is b
    return a == b


def plus(args: PyList[Any]) -> Any:
    if _check_numbers(args, "sum"):
        total = 0.0
        for arg in args:
            total += float(arg)
        return total
    return wrap_int64(sum(args))


def minus(args: PyList[Any]) -> Any:
    if not args:
        raise TwikError('function "-" takes one or more arguments')
    has_float = _check_numbers(args, "subtract")
    if len(args) == 1:
        return 0.0 - args[0] if has_float else wrap_int64(-args[0])
    if has_float:
        result = float(args[0])
        for arg in args[1:]:
            result -= float(arg)
        return result
    value = args[0]
    for arg in args[1:]:
        value = wrap_int64(value - arg)
    return value


def multiply(args: PyList[Any]) -> Any:
    if _check_numbers(args, "multiply"):
        product = 1.0
        for arg in args:
            product *= float(arg)
        return product
    value = 1
    for arg in args:
        value = wrap_int64(value * arg)
    return value


def divide(args: PyList[Any]) -> Any:
    if len(args) < 2:
        raise TwikError('function "/" takes two or more arguments')
    if _check_numbers(args, "divide with"):
        result = float(args[0])
        for arg in args[1:]:
            result = _float_div(result, float(arg))
        return result
    value = args[0]
    for arg in args[1:]:
        value = _int_div(value, arg)
    return value


def equal(args: PyList[Any]) -> bool:
    if len(args) != 2:
        raise TwikError("== takes two values")
    return values_equal(args[0], args[1])


def not_equal(args: PyList[Any]) -> bool:
    if len(args) != 2:
        raise TwikError("!= takes two values")
    return not values_equal(args[0], args[1])


def error(args: PyList[Any]) -> Any:
    if len(args) == 1 and isinstance(args[0], str):
        raise TwikError(args[0])
    raise TwikError("error function takes a single string argument")


# =================================================================
# Special forms
# =================================================================

def _eval_body(scope: Scope, body: Sequence[Node]) -> Any:
    value = None
    for node in body:
        value = scope.eval(node)
    return value


def and_form(scope: Scope, args: Sequence[Node]) -> Any:
    if not args:
        return True
    value = None
    for arg in args:
        value = scope.eval(arg)
        if value is False:
            return False
    return value


def or_form(scope: Scope, args: Sequence[Node]) -> Any:
    if not args:
        return False
    value = None
    for arg in args:
        value = scope.eval(arg)
        if value is not False:
            return value
    return value


def if_form(scope: Scope, args: Sequence[Node]) -> Any:
    if len(args) < 2 or len(args) > 3:
        raise TwikError('function "if" takes two or three arguments')
    # Only the boolean false is falsy: 0, "", () and nil all take the first branch.
    if scope.eval(args[0]) is False:
        if len(args) == 3:
            return scope.eval(args[2])
        return False
    return scope.eval(args[1])


def var_form(scope: Scope, args: Sequence[Node]) -> Any:
    if len(args) == 0 or len(args) > 2:
        raise TwikError("var takes one or two arguments")
    symbol = args[0]
    if not isinstance(symbol, Symbol):
        raise TwikError("var takes a symbol as first argument")
    value = scope.eval(args[1]) if len(args) == 2 else None
    scope.create(symbol.name, value)
    return None


def set_form(scope: Scope, args: Sequence[Node]) -> Any:
    if len(args) != 2:
        raise TwikError('function "set" takes two arguments')
    symbol = args[0]
    if not isinstance(symbol, Symbol):
        raise TwikError('function "set" takes a symbol as first argument')
    value = scope.eval(args[1])
    scope.set(symbol.name, value)
    return None


def do_form(scope: Scope, args: Sequence[Node]) -> Any:
    return _eval_body(scope.branch(), args)


def func_form(scope: Scope, args: Sequence[Node]) -> Any:
    if len(args) < 2:
        raise TwikError("func takes three or more arguments")
    i = 0
    name = None
    if isinstance(args[0], Symbol):
        name = args[0].name
        i += 1
    params = args[i]
    if not isinstance(params, List):
        raise TwikError("func takes a list of parameters")
    names = []
    for param in params.nodes:
        if not isinstance(param, Symbol):
            raise TwikError("func's list of parameters must be a list of symbols")
        names.append(param.name)
    body = args[i + 1:]
    if not body:
        raise TwikError("func takes a body sequence")
    fn = Closure(names, body, scope, name)
    if name is not None:
        scope.create(name, fn)
    return fn


def for_form(scope: Scope, args: Sequence[Node]) -> Any:
    if len(args) < 4:
        raise TwikError("for takes four or more arguments")
    init, test, step, body = args[0], args[1], args[2], args[3:]
    scope = scope.branch()
    scope.eval(init)
    value = None
    while scope.eval(test) is not False:
        value = _eval_body(scope, body)
        scope.eval(step)
    return value


def _range_names(target: Node) -> Tuple[str, str]:
    if isinstance(target, Symbol):
        return target.name, ""
    if isinstance(target, List) and len(target.nodes) == 2:
        first, second = target.nodes
        if isinstance(first, Symbol) and isinstance(second, Symbol):
            return first.name, second.name
    raise TwikError("range takes var name or (i elem) var name pair as first argument")


def range_form(scope: Scope, args: Sequence[Node]) -> Any:
    if len(args) < 3:
        raise TwikError("range takes three or more arguments")
    iname, ename = _range_names(args[0])
    scope = scope.branch()
    over = scope.eval(args[1])
    body = args[2:]
    value = None
    if is_int(over):
        scope.create(iname, 0)
        for i in range(over):
            scope.set(iname, i)
            value = _eval_body(scope, body)
        return value
    if isinstance(over, list):
        scope.create(iname, 0)
        if ename and ename not in scope.bindings:
            scope.create(ename, None)
        for i, elem in enumerate(over):
            scope.set(iname, i)
            if ename:
                scope.set(ename, elem)
            value = _eval_body(scope, body)
        return value
    raise TwikError("range takes an integer or a list as second argument")


def default_globals() -> PyList[Tuple[str, Any]]:
    """Returns a fresh table of the bindings installed into every root scope."""
    return [
        ("true", True),
        ("false", False),
        ("nil", None),
        ("error", NativeFunction(error, "error")),
        ("==", NativeFunction(equal, "==")),
        ("!=", NativeFunction(not_equal, "!=")),
        ("+", NativeFunction(plus, "+")),
        ("-", NativeFunction(minus, "-")),
        ("*", NativeFunction(multiply, "*")),
        ("/", NativeFunction(divide, "/")),
        ("or", SpecialForm(or_form, "or")),
        ("and", SpecialForm(and_form, "and")),
        ("if", SpecialForm(if_form, "if")),
        ("var", SpecialForm(var_form, "var")),
        ("set", SpecialForm(set_form, "set")),
        ("do", SpecialForm(do_form, "do")),
        ("func", SpecialForm(func_form, "func")),
        ("for", SpecialForm(for_form, "for")),
        ("range", SpecialForm(range_form, "range")),
    ]
