"""
Core logic for gptrepo package.
"""

from __future__ import annotations

import fnmatch
import io
import os
import sys
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, TextIO, Tuple

import pathspec
from colorama import Fore, Style, just_fix_windows_console
from pathspec.pattern import RegexPattern

just_fix_windows_console()

# Exceptions
class GptRepoError(Exception): ...
class InvalidRootError(GptRepoError): ...
class PreambleError(GptRepoError): ...
class OutputError(GptRepoError): ...

# Defaults
IGNORE_FILE_NAME = ".gptignore"
DEFAULT_OUTPUT = "output.txt"
SEPARATOR = "----"
TERMINATOR = "--END--"
DEFAULT_PREAMBLE = (
    "The following text is a Git repository with code. The structure of the "
    "text are sections that begin with ----, followed by a single line "
    "containing the file path and file name, followed by a variable amount of "
    "lines containing the file contents. The text representing the Git "
    "repository ends when the symbols --END-- are encounted. Any further text "
    "beyond --END-- are meant to be interpreted as instructions using the "
    "aforementioned Git repository as context."
)

_BACKSLASH_PATHS = os.sep == "\\"


def echo(msg: str, color: str = "", stream: Optional[TextIO] = None) -> None:
    out = stream if stream is not None else sys.stdout
    if color:
        print(color + msg + Style.RESET_ALL, file=out)
    else:
        print(msg, file=out)


@dataclass
class WalkStats:
    written: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    chars_written: int = 0


# Wildcard matching
class WildcardPattern(RegexPattern):
    """
    A shell-style wildcard tested against the whole relative path.

    Unlike ``gitwildmatch`` there is no directory logic: ``*`` also crosses
    path separators, so ``*.log`` excludes ``logs/today.log`` as well as
    ``today.log``. Only ``*`` and ``?`` are special; ``[`` is literal.
    """

    @classmethod
    def pattern_to_regex(cls, pattern: str) -> Tuple[Optional[str], Optional[bool]]:
        if not pattern:
            return None, None
        # translate() only anchors the end; newer pathspec uses search().
        return r"\A" + fnmatch.translate(pattern.replace("[", "[[]")), True


def compile_ignore_spec(patterns: Sequence[str]) -> "pathspec.PathSpec":
    return pathspec.PathSpec.from_lines(WildcardPattern, patterns)


def should_ignore(rel_path: str, spec: "pathspec.PathSpec") -> bool:
    # Patterns are written with native separators, so paths are matched as-is.
    return spec.match_file(rel_path, separators=())


# Ignore-file utilities
def default_ignore_path(root: Path) -> Path:
    return root / IGNORE_FILE_NAME


def _native_pattern(pattern: str) -> str:
    if _BACKSLASH_PATHS:
        return pattern.replace("/", "\\")
    return pattern


def load_ignore_list(
    ignore_path: Optional[Path],
    output_name: str,
    verbose: bool = False,
    log_stream: Optional[TextIO] = None,
) -> List[str]:
    """
    Read wildcard patterns from *ignore_path*, one per line.

    A missing or unreadable ignore file yields no patterns. The base name of
    *output_name* is always appended so a generated artifact never ends up
    inside the next one.
    """
    patterns: List[str] = []
    if ignore_path is not None and ignore_path.is_file():
        try:
            with ignore_path.open("r", encoding="utf-8") as fh:
                patterns = [
                    _native_pattern(ln.rstrip("\r\n"))
                    for ln in fh
                    if ln.rstrip("\r\n")
                ]
        except (OSError, UnicodeDecodeError) as e:
            patterns = []
            if verbose:
                echo(
                    f"[gptrepo] ! Could not read ignore file {ignore_path}: {e}",
                    Fore.YELLOW,
                    log_stream,
                )

    patterns.append(Path(output_name).name)
    return patterns


# Preamble
def read_preamble(preamble_path: Path) -> str:
    try:
        return preamble_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise PreambleError(f"Could not read preamble file '{preamble_path}': {e}")


# File-scanning helpers
def resolve_root(root: Path) -> Path:
    try:
        root = root.resolve()
    except (OSError, RuntimeError) as e:
        raise InvalidRootError(f"Could not resolve root path '{root}': {e}")
    if not root.exists():
        raise InvalidRootError(f"Root directory '{root}' does not exist")
    if not root.is_dir():
        raise InvalidRootError(f"Root path '{root}' is not a directory")
    return root


def scan_files(root: Path) -> List[Path]:
    """Collect every regular file under *root*, skipping symlinks."""
    root = resolve_root(root)
    try:
        return sorted(
            p for p in root.rglob("*") if p.is_file() and not p.is_symlink()
        )
    except (OSError, PermissionError) as e:
        raise InvalidRootError(f"Could not scan directory '{root}': {e}")


# Output sinks
@contextmanager
def open_sink(target: str, out_path: Optional[Path] = None) -> Iterator[TextIO]:
    """
    Yield the stream the artifact is written to.

    *target* is ``"file"``, ``"stdout"`` or ``"stderr"``. Everything is
    written as UTF-8 with ``\\n`` newlines, whatever the locale of the
    process streams, and process streams are never closed.
    """
    if target in ("stdout", "stderr"):
        stream = sys.stdout if target == "stdout" else sys.stderr
        stream.flush()
        buffer = getattr(stream, "buffer", None)
        if buffer is None:
            yield stream
            stream.flush()
            return
        out_fh = io.TextIOWrapper(
            buffer, encoding="utf-8", newline="\n", write_through=True
        )
        try:
            yield out_fh
        finally:
            out_fh.flush()
            out_fh.detach()
        return
    if target != "file" or out_path is None:
        raise ValueError(f"Unknown output target '{target}'")

    if not out_path.parent.exists():
        try:
            out_path.parent.mkdir(parents=True, exist_ok=True)
        except (OSError, PermissionError) as e:
            raise OutputError(f"Could not create directory '{out_path.parent}': {e}")
    try:
        out_fh = out_path.open("w", encoding="utf-8", newline="\n")
    except (OSError, PermissionError) as e:
        raise OutputError(f"Could not create output file '{out_path}': {e}")
    try:
        with out_fh:
            yield out_fh
    except OSError as e:
        raise OutputError(f"Could not write to output file '{out_path}': {e}")


# Main writers
def process_repository(
    root: Path,
    patterns: Sequence[str],
    sink: TextIO,
    verbose: bool = False,
    log_stream: Optional[TextIO] = None,
) -> WalkStats:
    """Write one ``----`` / path / contents record per file that is not ignored."""
    spec = compile_ignore_spec(patterns)
    root = resolve_root(root)
    stats = WalkStats()

    for p in scan_files(root):
        rel = str(p.relative_to(root))
        if should_ignore(rel, spec):
            continue

        try:
            raw = p.read_bytes()
        except OSError as e:
            stats.skipped.append(rel)
            if verbose:
                echo(f"[gptrepo] ! Could not read {rel}: {e}", Fore.YELLOW, log_stream)
            continue

        text = raw.decode("utf-8", errors="replace")
        sink.write(f"{SEPARATOR}\n")
        sink.write(f"{rel}\n")
        sink.write(f"{text}\n")
        stats.written.append(rel)
        stats.chars_written += len(text)

    return stats


def write_repository(
    root: Path,
    patterns: Sequence[str],
    sink: TextIO,
    preamble: Optional[str] = None,
    verbose: bool = False,
    log_stream: Optional[TextIO] = None,
) -> WalkStats:
    """Write preamble, file records and the ``--END--`` terminator to *sink*."""
    sink.write((DEFAULT_PREAMBLE if preamble is None else preamble) + "\n")
    stats = process_repository(
        root, patterns, sink, verbose=verbose, log_stream=log_stream
    )
    sink.write(f"{TERMINATOR}\n")

    if verbose:
        echo(
            f"[gptrepo] Done. {len(stats.written)} files written, "
            f"{stats.chars_written} characters, {len(stats.skipped)} skipped.",
            Fore.GREEN,
            log_stream,
        )
    return stats
