"""Hydra evaluation history: parsing and cache freshness."""

import logging
import os
import re
import time
from typing import BinaryIO, Callable, Iterable, Optional, Set, Union

from .errors import BisectCIError
from .oid import Oid, OidParseError

logger = logging.getLogger("git-bisect-ci")

LAST_LINE_CHUNK_SIZE = 4096
DEFAULT_MAX_AGE_SECONDS = 15 * 60
BAD_REF = "refs/bisect/bad"

_LEADING_HEX = re.compile(r"[0-9A-Fa-f]*")


class HistoryError(BisectCIError):
    """Raised when the history file cannot be read or parsed."""
    pass


class HistoryParseError(HistoryError):
    """Raised when a history record does not start with a valid oid."""
    pass


class HistoryFileMissingError(HistoryError):
    """Raised when there is no history file to check or refresh."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(
            f"history file {path} does not exist; "
            "run 'git-bisect-ci scrape' to create it"
        )


def parse_history_line(line: Union[str, bytes]) -> Oid:
    """Return the oid at the start of a ``"<oid> <eval id>"`` record.

    Only the leading run of hex digits is parsed; the rest is ignored.

    Raises:
        HistoryParseError: If the record does not start with a hex oid.
    """
    if isinstance(line, bytes):
        line = line.decode("ascii", errors="replace")
    hex_run = _LEADING_HEX.match(line).group(0)
    if not hex_run:
        raise HistoryParseError(f"history record {line.rstrip()!r}: no leading oid")
    try:
        return Oid.parse(hex_run)
    except OidParseError as e:
        raise HistoryParseError(f"history record {line.rstrip()!r}: {e}") from e


def read_history(lines: Iterable[str]) -> Set[Oid]:
    """Collect the oids of every non-blank history record."""
    return {parse_history_line(line) for line in lines if line.strip()}


def load_history(path: str) -> Set[Oid]:
    """Read the history file at ``path``."""
    try:
        with open(path, "r", encoding="ascii", errors="replace") as f:
            return read_history(f)
    except OSError as e:
        raise HistoryError(f"reading history file {path}: {e}") from e


def last_line(f: BinaryIO, chunk_size: int = LAST_LINE_CHUNK_SIZE) -> bytes:
    """Return the last line of a seekable binary file.

    Reads backwards from the end one chunk at a time until a newline is
    found, so only the final line and a few chunks are ever read. A single
    trailing newline is not part of the line.
    """
    end = f.seek(0, os.SEEK_END)
    if end == 0:
        return b""

    f.seek(end - 1)
    if f.read(1) == b"\n":
        end -= 1

    start = 0
    pos = end
    while pos > 0:
        chunk_start = max(0, pos - chunk_size)
        f.seek(chunk_start)
        chunk = f.read(pos - chunk_start)
        newline = chunk.rfind(b"\n")
        if newline != -1:
            start = chunk_start + newline + 1
            break
        pos = chunk_start

    f.seek(start)
    return f.read(end - start)


class HistoryFreshnessPolicy:
    """Decides whether the cached history can be used or must be refreshed.

    The cache is fresh when the bad tip of the bisection is an ancestor of
    the newest evaluated commit, or when the file was written recently.
    Otherwise it is refreshed once through ``refresh``.
    """

    def __init__(
        self,
        path: str,
        is_ancestor: Callable[[str, str], bool],
        refresh: Callable[[str], None],
        max_age_seconds: float = DEFAULT_MAX_AGE_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the policy.

        Args:
            path: Path to the history file.
            is_ancestor: ``is_ancestor(a, b)`` answers whether ``a`` is an
                ancestor of, or equal to, ``b``.
            refresh: Rewrites the history file at the given path.
            max_age_seconds: Age below which a stale-looking cache is kept.
            clock: Returns the current time as a Unix timestamp.
        """
        self.path = path
        self.is_ancestor = is_ancestor
        self.refresh = refresh
        self.max_age_seconds = max_age_seconds
        self.clock = clock

    def newest_evaluation(self) -> Optional[Oid]:
        """Return the oid of the last record, or None for an empty file."""
        try:
            with open(self.path, "rb") as f:
                record = last_line(f)
        except FileNotFoundError as e:
            raise HistoryFileMissingError(self.path) from e
        except OSError as e:
            raise HistoryError(f"reading last line of history file: {e}") from e
        if not record.strip():
            return None
        return parse_history_line(record)

    def age(self) -> float:
        try:
            mtime = os.stat(self.path).st_mtime
        except OSError as e:
            raise HistoryError(f"checking history file modification time: {e}") from e
        return self.clock() - mtime

    def ensure_fresh(self, bad: Optional[Union[Oid, str]] = None) -> str:
        """Refresh the history file if needed and return its path.

        Args:
            bad: The bad tip of the bisection. Defaults to ``refs/bisect/bad``.

        Raises:
            HistoryFileMissingError: If the history file does not exist.
            HistoryError: If the file cannot be read or parsed.
        """
        bad_ref = str(bad) if bad is not None else BAD_REF
        newest = self.newest_evaluation()
        logger.debug(f"Newest evaluated commit: {newest}")

        # An empty history file has no newest commit to compare against
        if newest is not None and self.is_ancestor(bad_ref, str(newest)):
            logger.debug("History covers the bad commit")
            return self.path

        age = self.age()
        if age < self.max_age_seconds:
            logger.debug(
                f"History does not cover the bad commit but is only "
                f"{age:.0f}s old, not refreshing"
            )
            return self.path

        logger.info("Evaluation history is out of date, refreshing...")
        self.refresh(self.path)
        return self.path
