"""Command line tool printing the GraphQL SDL of declared records."""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from graphql.utilities import print_type

from recordql.config import PACKAGE_LOGGER, CompilerConfig
from recordql.errors import CompileError
from recordql.parsing import RecordParser
from recordql.schema import SchemaBuilder

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def compile_declarations(
    text: str,
    records: list[str] | None = None,
    input_mode: bool = False,
    config: CompilerConfig | None = None,
) -> SchemaBuilder:
    """Compile declared records (all of them by default) into a builder."""
    declarations = RecordParser().parse(text)
    builder = SchemaBuilder(describer=declarations, substitution=declarations, config=config)
    builder.declarations = declarations
    for name in records or declarations.list_records():
        if name not in declarations.records:
            raise KeyError(f"Unknown record: {name}")
        if input_mode:
            builder.compile_input(name)
        else:
            builder.compile_output(name)
    return builder


@contextmanager
def log_to_stderr(enabled: bool) -> Iterator[None]:
    """Send package log records to stderr while compiling."""
    if not enabled:
        yield
        return
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.addHandler(handler)
    try:
        yield
    finally:
        logger.removeHandler(handler)


def render_sdl(builder: SchemaBuilder) -> str:
    """SDL of every canonical compiled type, in registration order."""
    return "\n\n".join(print_type(compiled) for compiled in builder.objects())


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Compile record declarations into GraphQL types"
    )
    parser.add_argument(
        "file",
        type=Path,
        help="Path to the record declarations file",
    )
    parser.add_argument(
        "records",
        nargs="*",
        help="Names of the records to compile (omit to compile all)",
    )
    parser.add_argument(
        "-i", "--input",
        action="store_true",
        help="Compile input object types instead of object types",
    )
    parser.add_argument(
        "-l", "--log-level",
        choices=LOG_LEVELS,
        type=str.upper,
        default=None,
        help="Log compilation at this level to stderr",
    )

    args = parser.parse_args(argv)

    if not args.file.exists():
        print(f"Error: Declarations file not found: {args.file}", file=sys.stderr)
        return 1

    config = CompilerConfig.from_env()
    if args.log_level:
        config.log_level = args.log_level

    try:
        text = args.file.read_text()
    except OSError as e:
        print(f"Error reading declarations: {e}", file=sys.stderr)
        return 1

    try:
        with log_to_stderr(config.log_level is not None):
            builder = compile_declarations(text, args.records, args.input, config)
    except (SyntaxError, ValueError) as e:
        print(f"Error parsing declarations: {e}", file=sys.stderr)
        return 1
    except KeyError as e:
        print(f"Error: {e.args[0]}", file=sys.stderr)
        return 1
    except CompileError as e:
        print(f"Error compiling records: {e}", file=sys.stderr)
        return 1

    sdl = render_sdl(builder)
    if sdl:
        print(sdl)
    for diagnostic in builder.diagnostics:
        print(f"Warning: {diagnostic}", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
