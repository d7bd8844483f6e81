"""Command line entry point: compile and run a Quill source file."""

import argparse
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
import sys
from typing import List

from quill.quill import Quill
from quill.quill_error import QuillError
from quill.quill_trace import QuillStdoutTraceWatcher


def setup_logging(level: str, log_file: str | None) -> None:
    """Configure logging to stderr and, optionally, to a rotating log file."""
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        # Keep up to 5 log files, max 1MB each
        handlers.append(RotatingFileHandler(
            log_file,
            maxBytes=1024*1024,  # 1MB
            backupCount=4,
            encoding='utf-8'
        ))

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True
    )


def build_argument_parser() -> argparse.ArgumentParser:
    """Build the command line parser."""
    parser = argparse.ArgumentParser(
        prog="quill",
        description="Compile a Quill program to bytecode and run it"
    )
    parser.add_argument('file', help='Quill source file to run')
    parser.add_argument('--disassemble', '-d', action='store_true',
                        help='Print the compiled bytecode instead of running it')
    parser.add_argument('--trace', '-t', action='store_true',
                        help='Print each instruction as it executes')
    parser.add_argument('--max-call-depth', type=int, default=1000,
                        help='Maximum number of nested function calls (default: 1000)')
    parser.add_argument('--keep-expression-values', action='store_true',
                        help='Leave the value of each expression statement on the stack')
    parser.add_argument('--no-validate', action='store_true',
                        help='Skip bytecode validation before execution')
    parser.add_argument('--log-level', default='WARNING',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        help='Logging level (default: WARNING)')
    parser.add_argument('--log-file', help='Also write log messages to this file')
    return parser


def main(argv: List[str] | None = None) -> int:
    """Main entry point."""
    args = build_argument_parser().parse_args(argv)
    setup_logging(args.log_level, args.log_file)
    logger = logging.getLogger("QuillMain")

    source_path = Path(args.file)
    try:
        source = source_path.read_text(encoding='utf-8')

    except (OSError, UnicodeDecodeError) as e:
        print(f"Error: Cannot read {args.file}: {e}", file=sys.stderr)
        return 2

    quill = Quill(
        max_call_depth=args.max_call_depth,
        discard_expression_values=not args.keep_expression_values,
        validate=not args.no_validate
    )

    try:
        program = quill.compile(source, str(source_path))
        if args.disassemble:
            print(program.disassemble())
            return 0

        if args.trace:
            quill.set_trace_watcher(QuillStdoutTraceWatcher(sys.stderr))

        result = quill.execute(program)

    except QuillError as e:
        logger.debug("Run of %s failed", args.file, exc_info=True)
        print(e, file=sys.stderr)
        return 1

    logger.info("Program %s finished with result %s", args.file, result)
    return 0


if __name__ == "__main__":
    sys.exit(main())
