"""CLI: compare test titles in local files with TestRail and optionally fix TestRail.

Example: testrail-title-sync ./tests
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click

from .client import TestRailClient
from .config import ConfigError, env_var_name, load_config
from .models import Difference, SyncReport
from .sync import SyncError, Synchronizer, decline

log = logging.getLogger("testrail_sync.cli")

ENV_HELP = """\
Make sure the following variables are set (a .env file works too):
  TESTRAIL_HOST=https://your-instance.testrail.io/
  TESTRAIL_USERNAME=your-email@example.com
  TESTRAIL_PASSWORD=your-password-or-api-key
  TESTRAIL_PROJECT_ID=1"""


def _print_differences(differences: list[Difference]) -> None:
    click.echo("\nFound differences in the following test cases:\n")
    for diff in differences:
        click.echo(f"Test Case: {diff.identifier}")
        click.echo(f"File: {diff.file_path}")
        click.echo(f'File title (original): "{diff.file_original_title}"')
        click.echo(f'File title (cleaned): "{diff.file_title}"')
        click.echo(f'TestRail title (original): "{diff.testrail_title}"')
        click.echo(f'TestRail title (cleaned): "{diff.testrail_clean_title}"')
        click.echo("---\n")
    click.echo(f"Total differences found: {len(differences)}")


def accept(differences: list[Difference]) -> bool:
    return True


def prompt_for_update(differences: list[Difference]) -> bool:
    """Show the pending changes and ask once for the whole batch."""
    _print_differences(differences)
    click.echo("\nThis will update the following test cases in TestRail:")
    for diff in differences:
        click.echo(f'  - {diff.identifier}: "{diff.testrail_clean_title}" -> "{diff.file_title}"')
    return click.confirm("\nDo you want to proceed with the updates?", default=False)


def print_report(report: SyncReport, *, differences_shown: bool) -> None:
    if not report.differences:
        click.echo("No differences found between file titles and TestRail titles.")
    elif not differences_shown:
        _print_differences(report.differences)

    if report.update is not None:
        click.echo("\nUpdate summary:")
        click.echo(f"  Successfully updated: {report.update.succeeded} test cases")
        click.echo(f"  Failed to update:     {report.update.failed} test cases")
        for case_id in report.update.failures:
            click.echo(f"  ! {case_id}")
    elif report.differences:
        click.echo("\nUpdate skipped.")

    if report.errors:
        click.echo("\nFailed to compare the following test cases:\n")
        for err in report.errors:
            click.echo(f"Test Case: {err.identifier}")
            click.echo(f"File: {err.file_path}")
            click.echo(f'File title: "{err.file_title}"')
            click.echo("---\n")
        click.echo(f"Total errors: {len(report.errors)}")

    click.echo("\nComparison completed")


@click.command("testrail-title-sync")
@click.argument("test_dir", type=click.Path(file_okay=False, path_type=Path))
@click.option("--config", "-c", "config_path", default="config.yaml", help="Config file path")
@click.option("--project-id", type=int, default=None, help="TestRail project ID (overrides TESTRAIL_PROJECT_ID)")
@click.option("--suffix", default=None, help="Test file suffix (default: .test.ts)")
@click.option("--yes", "-y", "assume_yes", is_flag=True, help="Update TestRail without asking")
@click.option("--dry-run", is_flag=True, help="Report differences only, never update")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output the report as JSON")
@click.option("--verbose", "-v", is_flag=True, help="Verbose logging")
def main(
    test_dir: Path,
    config_path: str,
    project_id: int | None,
    suffix: str | None,
    assume_yes: bool,
    dry_run: bool,
    as_json: bool,
    verbose: bool,
) -> None:
    """Sync TestRail case titles with test('C1234 Title', ...) calls under TEST_DIR."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    if assume_yes and dry_run:
        raise click.UsageError("--yes and --dry-run are mutually exclusive")

    try:
        cfg = load_config(config_path)
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    missing = cfg.missing_credentials()
    if missing:
        click.echo("Error: Missing required settings:", err=True)
        for name in missing:
            click.echo(f"  - {env_var_name('testrail', name)}", err=True)
        click.echo(ENV_HELP, err=True)
        sys.exit(1)

    if project_id is not None:
        cfg.testrail.project_id = project_id

    test_dir = test_dir.resolve()
    if not test_dir.is_dir():
        click.echo(f"Error: Test directory not found: {test_dir}", err=True)
        sys.exit(1)

    interactive = not (assume_yes or dry_run or as_json)
    if assume_yes:
        confirm = accept
    elif interactive:
        confirm = prompt_for_update
    else:
        confirm = decline

    try:
        with TestRailClient(cfg.testrail) as client:
            syncer = Synchronizer(client, cfg.sync, confirm=confirm)
            report = syncer.run(test_dir, cfg.testrail.project_id, suffix=suffix, base_dir=Path.cwd())
    except SyncError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except click.Abort:
        raise
    except Exception as e:
        log.exception("Sync failed")
        click.echo(f"Sync failed: {e}", err=True)
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(report.model_dump(mode="json"), indent=2))
        return

    print_report(report, differences_shown=interactive and bool(report.differences))


if __name__ == "__main__":
    main()
