"""
dietclaim run — execute a scenario file against a fresh pipeline.

Exit codes:
    0  every step ended as expected
    1  at least one step did not
    2  error (missing file, bad YAML, unknown op)
"""

import sys
from pathlib import Path
from typing import Optional

import click
import yaml

from dietclaim.cli.output import _Color, emit_error, emit_json, row_fail, row_info, row_ok
from dietclaim.core.exceptions import DietClaimError, JournalWriteError
from dietclaim.runtime.config import PipelineConfig
from dietclaim.runtime.scenario import ScenarioRunner


@click.command(name="run")
@click.argument("scenario", type=click.Path(exists=False))
@click.option(
    "--config", "config_file",
    type=click.Path(),
    default=None,
    metavar="FILE",
    help="Pipeline configuration YAML. Overrides the scenario's own config section.",
)
@click.option(
    "--journal", "journal_path",
    type=click.Path(),
    default=None,
    metavar="PATH",
    help="Write the signed audit journal to this JSONL file.",
)
@click.option(
    "--key", "key_path",
    type=click.Path(),
    default=None,
    metavar="PATH",
    help="Ed25519 PEM key for journal signing. Generated if missing.",
)
@click.option(
    "--format", "fmt",
    type=click.Choice(["human", "json"], case_sensitive=False),
    default="human",
    show_default=True,
)
@click.option("--no-color", is_flag=True, default=False, help="Disable ANSI color output.")
def run_command(
    scenario:     str,
    config_file:  Optional[str],
    journal_path: Optional[str],
    key_path:     Optional[str],
    fmt:          str,
    no_color:     bool,
) -> None:
    """
    Run a pipeline scenario.

    SCENARIO is a YAML file with balances, plans, profiles, logs,
    insurers, and an ordered list of steps.

    \b
    Examples:
      dietclaim run scenario.yaml
      dietclaim run scenario.yaml --format json
      dietclaim run scenario.yaml --journal audit.jsonl --key journal.key
    """
    _Color.configure(not no_color)

    scenario_path = Path(scenario)
    if not scenario_path.exists():
        emit_error(f"Scenario not found: {scenario}", fmt)
        sys.exit(2)

    try:
        runner = ScenarioRunner.from_yaml(scenario_path)
        if config_file:
            config = PipelineConfig.from_yaml(Path(config_file))
        else:
            config = PipelineConfig.from_dict(runner.scenario.get("config"))
        if journal_path:
            config.journal_path = journal_path
        if key_path:
            config.key_path = key_path
        result = runner.run(config)
    except (OSError, ValueError, KeyError, TypeError, yaml.YAMLError,
            DietClaimError, JournalWriteError) as e:
        emit_error(str(e), fmt)
        sys.exit(2)

    if fmt == "json":
        emit_json(result.to_dict())
    else:
        click.echo()
        click.echo(_Color.bold(f"  Scenario  {scenario_path}"))
        click.echo()
        for step in result.steps:
            label = f"[{step.index}] {step.op}"
            outcome = repr(step.value) if step.ok else f"{step.error}: {step.message}"
            click.echo(row_ok(label, outcome) if step.matched else row_fail(label, outcome))
        click.echo()
        ctx = result.context
        click.echo(row_info("height", str(ctx.clock.current_height())))
        click.echo(row_info("fee transfers", str(len(ctx.value_ledger.transfers))))
        click.echo(row_info("journal entries", str(len(ctx.journal))))
        click.echo()

    sys.exit(0 if result.all_matched else 1)
