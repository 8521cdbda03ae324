from twik.twik_source import SourceSet, SourceFile, PosInfo, DEFAULT_SOURCE_NAME
from twik.twik_ast import Int, Float, String, Symbol, List, Root
from twik.twik_parser import parse, parse_string
from twik.twik_datatypes import (
    TwikError, ParseError, EvalError,
    Scope, NativeFunction, SpecialForm, Closure, twik_native,
)
from twik.twik_interpreter import Evaluator
from twik.twik_printer import Printer
from twik.twik_config import RunnerConfig, load_config, ConfigError
from twik.twik_runtime import (
    new_root_scope, TwikHost, StandardHost, twik_api_method,
    ExecutionResult, ScriptRunner,
)
