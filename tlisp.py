import asyncio
import sys
from pathlib import Path

from tlisp.tlisp_runtime import ScriptRunner
from tlisp.tlisp_printer import Printer
from tlisp.tlisp_reader import read_all
from tlisp.tlisp_datatypes import UnexpectedEOF, TlispSyntaxError

# A basic awaitable input prompt.
async def ainput(prompt: str) -> str:
    loop = asyncio.get_running_loop()
    sys.stdout.write(prompt)
    sys.stdout.flush()
    return await loop.run_in_executor(None, sys.stdin.readline)

def needs_more_input(source: str) -> bool:
    """True while source is a prefix of a form whose lists are still open."""
    try:
        read_all(source)
    except UnexpectedEOF:
        return True
    except TlispSyntaxError:
        return False
    return False

async def run_script_file(file_path: str):
    """Run a tlisp script file non-interactively and exit with appropriate status."""
    runner = ScriptRunner()
    printer = Printer()
    p = Path(file_path)
    try:
        source = p.read_text(encoding="utf-8")
    except FileNotFoundError:
        print(f"Error: file not found: {file_path}", file=sys.stderr)
        raise SystemExit(1)
    result = runner.handle_script(source)
    if result.status == 'error':
        print(result.format_error(), file=sys.stderr)
        raise SystemExit(1)
    if result.value is not None:
        print(printer.pformat(result.value))

async def main():
    """Run a script file when provided, otherwise start the interactive REPL."""
    if len(sys.argv) > 1:
        arg = sys.argv[1]
        if not arg.startswith("-"):
            await run_script_file(arg)
            return

    print("tlisp REPL v0.1")
    print("Type 'exit' or press Ctrl+D to quit.")

    runner = ScriptRunner()
    printer = Printer()

    # REPL Loop
    buffer = ""
    while True:
        try:
            raw = await ainput(".. " if buffer else ">> ")
            if raw == "":
                raise EOFError
            line = raw.strip()

            if not buffer:
                if not line:
                    continue
                if line == "exit":
                    break

            buffer = f"{buffer}\n{line}" if buffer else line
            if needs_more_input(buffer):
                continue
            source, buffer = buffer, ""

            result = runner.handle_script(source)

            if result.status == 'error':
                print(result.format_error(), file=sys.stderr)
                continue

            if result.value is not None:
                print(printer.pformat(result.value))

        except EOFError:
            print("\nExiting.")
            break

if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nExiting.")
