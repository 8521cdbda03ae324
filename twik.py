import asyncio
import sys
from pathlib import Path

from twik.twik_config import load_config, ConfigError
from twik.twik_runtime import ScriptRunner
from twik.twik_printer import Printer

USAGE = "usage: twik [<source file>]"


# A basic awaitable input prompt.
async def ainput(prompt: str) -> str:
    loop = asyncio.get_running_loop()
    sys.stdout.write(prompt)
    sys.stdout.flush()
    return await loop.run_in_executor(None, sys.stdin.readline)


def print_side_effects(result):
    for effect in result.side_effects:
        if effect.get('topics') == ['stdout']:
            sys.stdout.write(effect.get('message', ''))
    sys.stdout.flush()


async def run_script_file(file_path: str, config=None):
    """Run a twik script file non-interactively and exit with appropriate status."""
    runner = ScriptRunner(config=config)
    p = Path(file_path)
    try:
        source = p.read_text(encoding="utf-8")
    except FileNotFoundError:
        print(f"error: file not found: {file_path}", file=sys.stderr)
        raise SystemExit(1)
    result = await runner.handle_script(source, name=file_path)
    print_side_effects(result)
    if result.status == 'error':
        print(f"error: {result.format_error()}", file=sys.stderr)
        raise SystemExit(1)


async def main():
    """Run a script file when provided, otherwise start the interactive REPL."""
    try:
        config = load_config()
    except ConfigError as e:
        print(f"error: {e}", file=sys.stderr)
        raise SystemExit(2)

    if len(sys.argv) > 1:
        arg = sys.argv[1]
        if arg.startswith("-"):
            print(f"error: {USAGE}", file=sys.stderr)
            raise SystemExit(2)
        await run_script_file(arg, config)
        return

    runner = ScriptRunner(config=config)
    printer = Printer()
    unclosed = ""

    # REPL Loop
    while True:
        prompt = config.continuation_prompt if unclosed else config.prompt
        raw = await ainput(prompt)
        if raw == "":
            print()
            break
        line = raw.rstrip("\n")
        if not unclosed and line.strip() == "exit":
            break
        if unclosed:
            line = unclosed + "\n" + line
        unclosed = ""
        if not line.strip():
            continue

        result = await runner.handle_script(line)
        if result.incomplete:
            # Keep reading until the open list is closed.
            unclosed = line
            continue

        print_side_effects(result)
        if result.status == 'error':
            print(result.format_error(), file=sys.stderr)
            continue
        if result.value is not None:
            print(printer.pformat(result.value))


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print()
