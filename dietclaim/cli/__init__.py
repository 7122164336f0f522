"""
dietclaim/cli/__init__.py

DietClaim CLI — root Click command group.

Registered in pyproject.toml as:

    [project.scripts]
    dietclaim = "dietclaim.cli:cli"

Adding a new command:
    1. Create dietclaim/cli/your_command.py with a @click.command()
    2. Import it here
    3. cli.add_command(your_command)
"""

import click

from dietclaim.cli.journal import journal_group
from dietclaim.cli.run import run_command


@click.group()
@click.version_option(package_name="dietclaim")
def cli() -> None:
    """
    DietClaim — diet adherence to insurance discount settlement.

    \b
    Commands:
      run              Run a pipeline scenario file.
      journal verify   Verify a signed audit journal.

    \b
    Quick start:
      dietclaim run scenario.yaml
      dietclaim run scenario.yaml --journal audit.jsonl
      dietclaim journal verify audit.jsonl --quiet && echo "clean"
    """
    pass


cli.add_command(run_command)
cli.add_command(journal_group)
