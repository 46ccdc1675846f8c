"""
CLI entrypoint for gptrepo package.
"""
import argparse
import sys
from pathlib import Path
from typing import List, Optional

from colorama import Fore

from . import __version__
from .core import (
    DEFAULT_OUTPUT,
    IGNORE_FILE_NAME,
    GptRepoError,
    default_ignore_path,
    echo,
    load_ignore_list,
    open_sink,
    read_preamble,
    resolve_root,
    write_repository,
)

def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="gptrepo",
        description="Yeet a Git repository into a text file.",
    )
    p.add_argument("repo_path", type=Path, help="The path to the Git repository")
    p.add_argument(
        "-p",
        "--preamble",
        type=Path,
        help="The path to the preamble file. If not given, uses a sensible default.",
    )
    p.add_argument(
        "-i",
        "--ignore",
        type=Path,
        help=f"Path to a custom ignore file (default: <repo_path>/{IGNORE_FILE_NAME})",
    )
    sink = p.add_mutually_exclusive_group()
    sink.add_argument(
        "-o",
        "--output",
        type=Path,
        default=Path(DEFAULT_OUTPUT),
        help=f"The path to the output file (default: {DEFAULT_OUTPUT})",
    )
    sink.add_argument(
        "-s",
        "--stdout",
        dest="print_to_stdout",
        action="store_true",
        help="Print repository contents to stdout",
    )
    sink.add_argument(
        "-r",
        "--stderr",
        dest="print_to_stderr",
        action="store_true",
        help="Print repository contents to stderr",
    )
    p.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return p.parse_args(argv)

def main(argv: Optional[List[str]] = None) -> None:
    try:
        ns = _parse_args(argv)

        if ns.print_to_stdout:
            target = "stdout"
        elif ns.print_to_stderr:
            target = "stderr"
        else:
            target = "file"
        # Keep the artifact stream free of progress notices.
        log_stream = sys.stderr if target == "stdout" else sys.stdout

        try:
            root = resolve_root(ns.repo_path)
            ignore_path = ns.ignore if ns.ignore else default_ignore_path(root)
            patterns = load_ignore_list(
                ignore_path, ns.output.name, verbose=ns.verbose, log_stream=log_stream
            )
            if ns.verbose:
                echo(
                    f"[gptrepo] {len(patterns)} ignore patterns from {ignore_path}",
                    stream=log_stream,
                )

            preamble = read_preamble(ns.preamble) if ns.preamble else None

            if ns.verbose:
                echo(f"[gptrepo] Scanning {root} …", stream=log_stream)
            with open_sink(target, ns.output) as sink:
                write_repository(
                    root,
                    patterns,
                    sink,
                    preamble=preamble,
                    verbose=ns.verbose,
                    log_stream=log_stream,
                )
        except GptRepoError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)

        if target == "file":
            echo(f"Repository contents written to {ns.output}.", Fore.GREEN)

    except KeyboardInterrupt:
        print("\nCancelled.", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Unexpected error: {e}", file=sys.stderr)
        sys.exit(1)

if __name__ == "__main__":
    main()
