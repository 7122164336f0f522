"""
dietclaim journal verify — check a JSONL audit journal.

Exit codes (shell-scriptable):
    0  journal fully valid (sequence + chain + signatures + record types)
    1  journal has violations
    2  error (file missing, malformed JSON)

    dietclaim journal verify audit.jsonl --quiet && echo "clean"
"""

import sys
from pathlib import Path

import click

from dietclaim.cli.output import _Color, emit_error, emit_json, row_fail, row_info, row_ok
from dietclaim.ledger.journal import GENESIS_HASH, load_entries, verify_entries


@click.group(name="journal")
def journal_group() -> None:
    """Inspect and verify audit journals."""
    pass


@journal_group.command(name="verify")
@click.argument("path", type=click.Path(exists=False))
@click.option(
    "--format", "fmt",
    type=click.Choice(["human", "json"], case_sensitive=False),
    default="human",
    show_default=True,
)
@click.option("--quiet", is_flag=True, default=False, help="Exit code only.")
@click.option("--no-color", is_flag=True, default=False, help="Disable ANSI color output.")
def verify_command(path: str, fmt: str, quiet: bool, no_color: bool) -> None:
    """Verify sequence, chain hashes and signatures of a journal."""
    _Color.configure(not no_color)

    try:
        entries = load_entries(Path(path))
    except FileNotFoundError as e:
        emit_error(str(e), fmt, quiet)
        sys.exit(2)
    except ValueError as e:
        emit_error(str(e), fmt, quiet)
        sys.exit(2)

    violations = verify_entries(entries)
    valid      = not violations
    head_hash  = entries[-1].chain_hash() if entries else GENESIS_HASH

    if quiet:
        sys.exit(0 if valid else 1)

    if fmt == "json":
        by_type = {}
        for entry in entries:
            by_type[entry.record_type] = by_type.get(entry.record_type, 0) + 1
        emit_json({
            "journal":       str(path),
            "valid":         valid,
            "total_entries": len(entries),
            "by_type":       by_type,
            "head_hash":     head_hash,
            "violations":    [v.to_dict() for v in violations],
        })
    else:
        click.echo()
        click.echo(_Color.bold(f"  Journal  {path}"))
        click.echo()
        click.echo(row_info("entries", str(len(entries))))
        click.echo(row_info("head hash", head_hash))
        if valid:
            click.echo(row_ok("integrity", "sequence, chain and signatures intact"))
        else:
            for v in violations:
                click.echo(row_fail(f"#{v.sequence} {v.kind}", v.detail))
        click.echo()

    sys.exit(0 if valid else 1)
