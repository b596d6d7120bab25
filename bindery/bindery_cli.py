"""
Command-line driver: load a model file, then resolve or assign selectors.
"""
import argparse
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional, TextIO

from bindery.bindery_config import BinderyConfig, setup_logging
from bindery.bindery_printer import Printer
from bindery.bindery_selector import Selector
from bindery.bindery_serialize import deserialize, detect_format, parse_scalar, serialize

logger = logging.getLogger(__name__)


def load_model(path: str) -> Any:
    p = Path(path)
    return deserialize(p.read_text(encoding="utf-8"), filename=p.name)


def save_model(path: str, model: Any) -> None:
    p = Path(path)
    fmt = detect_format(filename=p.name)
    p.write_text(serialize(model, fmt), encoding="utf-8")


class Session:
    """Holds a loaded model and runs resolve/assign commands against it."""

    def __init__(self, model: Any, delimiter: str = ".", out: Optional[TextIO] = None):
        self.model = model
        self.delimiter = delimiter
        self.out = out or sys.stdout
        self.printer = Printer()

    def selector(self, text: str) -> Selector:
        return Selector.from_string(text.strip(), self.delimiter)

    def resolve(self, path: str) -> Any:
        value = self.selector(path).resolve(self.model)
        print(self.printer.pformat(value), file=self.out)
        return value

    def assign(self, path: str, raw_value: str) -> bool:
        ok = self.selector(path).assign(self.model, parse_scalar(raw_value))
        print(self.printer.pformat(ok), file=self.out)
        return ok

    def handle(self, line: str) -> Optional[bool]:
        """Runs one command: `a.b.c` resolves, `a.b.c: value` assigns."""
        path, sep, raw_value = line.partition(":")
        if sep:
            return self.assign(path, raw_value.strip())
        self.resolve(path)
        return None


def repl(session: Session, stdin: TextIO = None) -> None:
    stdin = stdin or sys.stdin
    print("bindery REPL v0.1", file=session.out)
    print("Type 'exit' or press Ctrl+D to quit.", file=session.out)
    while True:
        session.out.write(">> ")
        session.out.flush()
        raw = stdin.readline()
        if raw == "":
            print("\nExiting.", file=session.out)
            break
        line = raw.strip()
        if not line:
            continue
        if line == "exit":
            break
        try:
            session.handle(line)
        except Exception as e:
            print(f"Error: {e}", file=sys.stderr)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="bindery", description="Resolve and assign selectors against a model file.")
    parser.add_argument("model_file", help="JSON or YAML model file")
    parser.add_argument("selector", nargs="?", help="selector to resolve, e.g. a.b.1")
    parser.add_argument("value", nargs="?", help="value to assign at the selector (parsed as YAML)")
    parser.add_argument("--delimiter", default=None, help="selector delimiter (default from BINDERY_DELIMITER or '.')")
    parser.add_argument("--save", action="store_true", help="write the model back to the file after an assignment")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config = BinderyConfig.from_env()
    setup_logging(config.log_level, config.log_file)
    delimiter = args.delimiter or config.delimiter

    try:
        model = load_model(args.model_file)
    except FileNotFoundError:
        print(f"Error: file not found: {args.model_file}", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    session = Session(model, delimiter)
    if args.selector is None:
        repl(session)
        return 0
    if args.value is None:
        session.resolve(args.selector)
        return 0
    ok = session.assign(args.selector, args.value)
    if ok and args.save:
        save_model(args.model_file, session.model)
        logger.info("Saved %s", args.model_file)
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
