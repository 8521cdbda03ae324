# twik_runtime.py

import asyncio
import inspect
import re
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Literal, Optional

from twik.twik_config import RunnerConfig
from twik.twik_datatypes import Scope, TwikError, ParseError, EvalError, NativeFunction
from twik.twik_interpreter import Evaluator
from twik.twik_parser import parse, MISSING_PAREN
from twik.twik_printer import Printer
from twik.twik_source import SourceSet, PosInfo
from twik.twik_stdlib import default_globals

# ===================================================================
# 1. Root scopes
# ===================================================================


def new_root_scope(sources: Optional[SourceSet] = None) -> Scope:
    """Returns a fresh top-level scope holding every built-in global."""
    scope = Scope(evaluator=Evaluator(sources))
    for name, value in default_globals():
        scope.create(name, value)
    return scope


# ===================================================================
# 2. Host objects
# ===================================================================


# Per-thread side-effect sink; a ScriptRunner worker points it at its run's list.
_run_state = threading.local()


def twik_api_method(func):
    """A decorator to explicitly mark host methods as callable from twik."""
    func._is_twik_api = True
    return func


class TwikHost:
    """The base class for any Python object exposed to the twik interpreter.

    API methods receive the evaluated argument values as one list. Output is
    recorded as side effects: inside a ScriptRunner run they go to that run's
    result, otherwise to `side_effects`.
    """
    def __init__(self):
        self.side_effects: List[Dict[str, Any]] = []

    def emit(self, topic: str, message: str) -> None:
        sink = getattr(_run_state, "effects", None)
        if sink is None:
            sink = self.side_effects
        sink.append({'topics': [topic], 'message': message})

    def api_methods(self) -> Dict[str, Callable]:
        """Returns the @twik_api_method methods keyed by their twik name."""
        out = {}
        for name, member in inspect.getmembers(self):
            if not callable(member):
                continue
            # Decorator may mark the bound method or the underlying function
            is_api = getattr(member, "_is_twik_api", False)
            if not is_api:
                func = getattr(member, "__func__", None)
                if func is not None:
                    is_api = getattr(func, "_is_twik_api", False)
            if is_api:
                out[name.replace("_", "-")] = member
        return out


def format_values(fmt: str, args: List[Any]) -> str:
    """Applies printf-style formatting; %v prints any value in twik syntax."""
    printer = Printer()
    converted = []
    for arg in args:
        if type(arg) in (int, float, str):
            converted.append(arg)
        else:
            converted.append(printer.pformat(arg))
    try:
        pattern = re.sub(r"%(%|v)", lambda m: "%%" if m.group(1) == "%" else "%s", fmt)
        return pattern % tuple(converted)
    except (TypeError, ValueError) as e:
        raise TwikError(f"bad format {Printer().pformat(fmt)}: {e}") from e


class StandardHost(TwikHost):
    """The natives the twik command line installs: printf, sprintf, list and append."""

    @twik_api_method
    def printf(self, args):
        if args and isinstance(args[0], str):
            self.emit('stdout', format_values(args[0], args[1:]))
            return None
        raise TwikError("printf takes a format string")

    @twik_api_method
    def sprintf(self, args):
        if not args:
            raise TwikError("sprintf takes at least one format argument")
        if not isinstance(args[0], str):
            raise TwikError("sprintf takes format string as first argument")
        return format_values(args[0], args[1:])

    @twik_api_method
    def list(self, args):
        return list(args)

    @twik_api_method
    def append(self, args):
        if not args or not isinstance(args[0], list):
            raise TwikError("append takes list as first argument")
        return args[0] + args[1:]


# ===================================================================
# 3. Script Execution
# ===================================================================


@dataclass
class ExecutionResult:
    """The structured result of a script execution."""
    status: Literal['success', 'error']
    value: Any = None
    error_message: Optional[str] = None
    error_pos: Optional[PosInfo] = None
    error_context: str = ""
    # True when parsing stopped inside an open list; more input may complete it.
    incomplete: bool = False
    side_effects: List[Dict] = field(default_factory=list)

    def format_error(self) -> str:
        """Formats the positioned error message with the offending source line."""
        if self.status != 'error':
            return ""
        msg = str(self.error_message or "Unknown error")
        if self.error_context:
            return f"{msg}\n{self.error_context}"
        return msg


def _settle(fut: asyncio.Future, result: Any, exc: Optional[BaseException]) -> None:
    if fut.done():
        return
    if exc is not None:
        fut.set_exception(exc)
    else:
        fut.set_result(result)


def run_in_worker(fn: Callable[..., Any], *args) -> asyncio.Future:
    """Runs fn on a daemon thread and returns a future for its outcome.

    Cancelling the future abandons the thread rather than stopping it; being
    a daemon it never keeps the process alive.
    """
    loop = asyncio.get_running_loop()
    fut = loop.create_future()

    def _target():
        try:
            result, exc = fn(*args), None
        except BaseException as e:
            result, exc = None, e
        try:
            loop.call_soon_threadsafe(_settle, fut, result, exc)
        except RuntimeError:
            # The loop closed while this worker was abandoned; nobody is waiting.
            pass

    threading.Thread(target=_target, name="twik-eval", daemon=True).start()
    return fut


class ScriptRunner:
    """Parses and executes twik code against a persistent root scope."""

    def __init__(self, host_object: Optional[TwikHost] = None, config: Optional[RunnerConfig] = None):
        self.config = config or RunnerConfig()
        if host_object is None and self.config.standard_host:
            host_object = StandardHost()
        self.host_object = host_object
        self.sources = SourceSet()
        # Effects of the current run; replaced, never cleared, so an abandoned
        # worker keeps writing to the list of the run it belonged to.
        self._effects: List[Dict[str, Any]] = []
        self.root_scope = self._new_session_scope()

    @property
    def side_effects(self) -> List[Dict[str, Any]]:
        return self._effects

    def _new_session_scope(self) -> Scope:
        """Builds globals <- host API <- script scope, so each layer may shadow the one below."""
        globals_scope = new_root_scope(self.sources)
        host_scope = globals_scope.branch()
        if self.host_object is not None:
            for name, member in self.host_object.api_methods().items():
                host_scope.create(name, NativeFunction(member, name))
        return host_scope.branch()

    def _source_context(self, pos: int, pinfo: PosInfo, radius: int = 2) -> str:
        f = self.sources.file_at(pos)
        if f is None or not pinfo.line:
            return ""
        lines = f.text.splitlines()
        line, col = pinfo.line, pinfo.column
        if line > len(lines):
            return ""
        start = max(1, line - radius)
        end = min(len(lines), line + radius)
        width = len(str(end))
        out = []
        for i in range(start, end + 1):
            prefix = ">" if i == line else " "
            ln = str(i).rjust(width)
            out.append(f"{prefix} {ln} | {lines[i - 1]}")
            if i == line:
                caret = " " * max(col - 1, 0)
                out.append(f"  {' ' * width} | {caret}^")
        return "\n".join(out)

    def _error(self, message: str, pos: Optional[int] = None, pinfo: Optional[PosInfo] = None,
               incomplete: bool = False) -> ExecutionResult:
        context = self._source_context(pos, pinfo) if pos is not None and pinfo is not None else ""
        result = ExecutionResult(
            status='error',
            error_message=message,
            error_pos=pinfo,
            error_context=context,
            incomplete=incomplete,
        )
        # Emit consolidated stderr side-effect
        self.side_effects.append({'topics': ['stderr'], 'message': result.format_error()})
        result.side_effects = list(self.side_effects)
        return result

    @staticmethod
    def _eval_in_run(scope: Scope, node, effects: List[Dict[str, Any]]) -> Any:
        _run_state.effects = effects
        return scope.eval(node)

    async def evaluate(self, node) -> Any:
        """Evaluates node in the root scope on a worker, honouring the configured timeout."""
        fut = run_in_worker(self._eval_in_run, self.root_scope, node, self._effects)
        if self.config.timeout is None:
            return await fut
        return await asyncio.wait_for(fut, self.config.timeout)

    async def handle_script(self, source_code: str, name: Optional[str] = None) -> ExecutionResult:
        """The main entry point to execute a script."""
        self._effects = []
        if name is None:
            name = self.config.source_name

        # 1. Parse
        try:
            root = parse(self.sources.register(name, source_code))
        except ParseError as e:
            return self._error(str(e), e.pos, e.pinfo, incomplete=e.message == MISSING_PAREN)

        # 2. Evaluate
        try:
            value = await self.evaluate(root)
        except EvalError as e:
            return self._error(str(e), e.pos, e.pinfo)
        except asyncio.TimeoutError:
            # The abandoned worker may still be mutating the old scope chain.
            self.root_scope = self._new_session_scope()
            return self._error(f"evaluation timed out after {self.config.timeout:g}s")
        except RecursionError:
            return self._error("stack exhausted: maximum recursion depth exceeded")
        except TwikError as e:
            return self._error(str(e))

        return ExecutionResult(status='success', value=value, side_effects=list(self.side_effects))
