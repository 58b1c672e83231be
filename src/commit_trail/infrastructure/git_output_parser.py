"""Parsers for each shape of git output the reader consumes.

Every function here takes raw stdout text and nothing else, so format
drift in git shows up in the tests pinned to literal samples.
"""

from __future__ import annotations

from datetime import datetime

from commit_trail.domain.errors import ParseFailure
from commit_trail.domain.models import ChangedFile, ChangeStatus, Commit


FIELD_SEP = "\x1f"
RECORD_SEP = "\x1e"

# sha, short sha, author, email, ISO date, parents, raw body
COMMIT_FORMAT = "%x1f".join(["%H", "%h", "%an", "%ae", "%aI", "%P", "%B"]) + "%x1e"
_COMMIT_FIELDS = 7


def parse_lines(output: str) -> list[str]:
    """Non-empty lines, e.g. rev-list or ls-tree --name-only output."""
    return [line for line in output.splitlines() if line.strip()]


def parse_commit_record(record: str) -> Commit:
    record = record.strip("\n").rstrip(RECORD_SEP)
    parts = record.split(FIELD_SEP, _COMMIT_FIELDS - 1)
    if len(parts) != _COMMIT_FIELDS:
        raise ParseFailure(
            f"Expected {_COMMIT_FIELDS} commit fields, got {len(parts)}: {record[:80]!r}"
        )
    sha, short_sha, author_name, author_email, date_str, parents, body = parts
    if not sha:
        raise ParseFailure(f"Missing commit hash: {record[:80]!r}")
    try:
        date = datetime.fromisoformat(date_str)
    except ValueError as e:
        raise ParseFailure(f"Bad commit date {date_str!r} for {sha}") from e
    return Commit(
        sha=sha,
        short_sha=short_sha,
        author_name=author_name,
        author_email=author_email,
        date=date,
        message=body.strip("\n"),
        parent_shas=tuple(parents.split()),
    )


def parse_commit_records(output: str) -> list[Commit]:
    """Parse a batch of records, dropping any record that fails to parse."""
    commits: list[Commit] = []
    for record in output.split(RECORD_SEP):
        if not record.strip():
            continue
        try:
            commits.append(parse_commit_record(record))
        except ParseFailure:
            continue
    return commits


def parse_name_status(output: str) -> list[ChangedFile]:
    """Parse ``--name-status`` lines: ``<letter>[score]\\t<path>[\\t<new path>]``.

    Renames and copies report the destination path.
    """
    files: list[ChangedFile] = []
    for line in output.splitlines():
        if not line.strip():
            continue
        parts = line.split("\t")
        if len(parts) < 2:
            continue
        status = ChangeStatus.from_letter(parts[0].strip())
        files.append(ChangedFile(path=parts[-1], status=status))
    return files


def parse_numstat(output: str) -> list[tuple[int, int, str]]:
    """Parse ``--numstat`` lines into (added, deleted, path).

    Binary files show "-" for both counts and are reported as 0/0.
    """
    rows: list[tuple[int, int, str]] = []
    for line in output.splitlines():
        parts = line.split("\t")
        if len(parts) < 3:
            continue
        added_str, deleted_str = parts[0], parts[1]
        path = parts[-1]
        if added_str == "-" or deleted_str == "-":
            rows.append((0, 0, path))
            continue
        try:
            rows.append((int(added_str), int(deleted_str), path))
        except ValueError:
            continue
    return rows
