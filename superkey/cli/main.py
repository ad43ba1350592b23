"""Main CLI entry point using Typer."""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import typer
import yaml
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from ..aws.client import AmazonClient
from ..errors import ConfigError, RequestValidationError, SuperkeyError, TeardownError
from ..forge.audit import AuditStorage
from ..forge.naming import ResourceNamer
from ..forge.provider import Provider, get_provider
from ..models.create_request import CreateRequest
from ..models.forge_operation import ForgeOperation
from ..models.forged_application import ForgedApplication
from ..utils.logging import setup_logging
from .config import Config

logger = logging.getLogger(__name__)

# Create Typer app
app = typer.Typer(
    name="superkey",
    help="Superkey - forge and tear down the cloud resources of an application",
    add_completion=False,
)

# Create Rich console for output
console = Console()

# Global config
config: Optional[Config] = None


@app.callback()
def main(
    profile: Optional[str] = typer.Option(None, "--profile", "-p", help="AWS profile name"),
    region: Optional[str] = typer.Option(None, "--region", "-r", help="AWS region for created buckets"),
    storage_path: Optional[str] = typer.Option(
        None,
        "--storage-path",
        help="Directory for ledgers and audit logs (default: ~/.superkey or $SUPERKEY_STORAGE_PATH)",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress output except errors"),
    no_color: bool = typer.Option(False, "--no-color", help="Disable colored output"),
):
    """Superkey - forge and tear down the cloud resources of an application."""
    global config

    try:
        config = Config.load()
    except ConfigError as e:
        console.print(f"✗ Configuration error: {e}", style="bold red")
        raise typer.Exit(code=2)

    # Override with CLI options
    if profile:
        config.aws_profile = profile
    if region:
        config.region = region
    if storage_path:
        config.storage_path = storage_path

    log_level = "ERROR" if quiet else ("DEBUG" if verbose else config.log_level)
    setup_logging(level=log_level, verbose=verbose)

    if no_color:
        console.no_color = True


@app.command()
def version():
    """Show version information."""
    import boto3

    from .. import __version__

    console.print(f"superkey version {__version__}")
    console.print(f"Python {sys.version.split()[0]}")
    console.print(f"boto3 {boto3.__version__}")


def _storage_root() -> Path:
    if config.storage_path:
        return Path(config.storage_path)
    return Path.home() / ".superkey"


def _audit_storage() -> AuditStorage:
    return AuditStorage(str(_storage_root() / "audit-logs"))


def _build_provider(vendor: str) -> Provider:
    client = AmazonClient(region=config.region, aws_profile=config.aws_profile)
    namer = ResourceNamer(prefix=config.name_prefix)
    return get_provider(vendor, client, namer=namer, missing_value_policy=config.missing_value_policy)


def _load_yaml(path: Path) -> dict:
    # JSON request files are valid YAML
    with open(path, "r") as f:
        data = yaml.safe_load(f)
    if not isinstance(data, dict):
        raise RequestValidationError(f"{path} does not contain a mapping")
    return data


def _write_ledger(ledger: ForgedApplication, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.dump(ledger.to_dict(), f, default_flow_style=False, sort_keys=False)


def _audit(audit_storage: Optional[AuditStorage], operation: ForgeOperation, ledger: ForgedApplication) -> None:
    """Record an operation; a failed write is only reported.

    Called after the ledger file is on disk, so the resources stay traceable
    even when the audit log is unwritable.
    """
    if audit_storage is None:
        return
    try:
        audit_storage.log_operation(operation, ledger)
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Could not write audit log for {operation.operation_id}: {e}")
        console.print(f"⚠ Audit log not written: {e}", style="yellow")


def _steps_table(title: str, ledger: ForgedApplication) -> Table:
    table = Table(title=title)
    table.add_column("Step", style="cyan")
    table.add_column("Output")
    table.add_column("ARN", style="dim")

    for kind, outputs in ledger.steps_completed.items():
        table.add_row(kind.value, outputs.output or "-", outputs.arn or "-")

    return table


def _identity_table(ledger: ForgedApplication) -> Table:
    table = Table(title="Identity")
    table.add_column("Field", style="cyan")
    table.add_column("Value")

    payload = ledger.auth_payload()
    # secrets stay in the ledger file only
    payload.pop("password", None)
    for name, value in payload.items():
        table.add_row(name, value or "-")

    return table


def _print_teardown_errors(errors: List[TeardownError]) -> None:
    console.print(f"✗ {len(errors)} resource(s) could not be torn down:", style="bold red")
    for error in errors:
        console.print(f"  • {error}")


@app.command()
def forge(
    request_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Create request (JSON or YAML)"),
    ledger_out: Optional[Path] = typer.Option(
        None, "--ledger-out", "-o", help="Where to write the ledger (default: <storage>/ledgers/<guid>.yaml)"
    ),
    rollback: bool = typer.Option(
        True, "--rollback/--no-rollback", help="Tear down created resources if a step fails"
    ),
    audit: bool = typer.Option(True, "--audit/--no-audit", help="Write operations to the audit log"),
):
    """Forge the resources described by a create request.

    Steps run in the order given. If one fails, the resources created so far
    are torn down unless --no-rollback is given, in which case the partial
    ledger is kept for a later 'superkey teardown'.

    Examples:
        superkey forge request.json

        superkey forge request.yaml --no-rollback --ledger-out ledger.yaml
    """
    try:
        request = CreateRequest.from_dict(_load_yaml(request_file))
        provider = _build_provider(request.provider)
        audit_storage = _audit_storage() if audit else None

        ledger, error = provider.forge_application(request)
        ledger_path = ledger_out or _storage_root() / "ledgers" / f"{ledger.guid}.yaml"
        _write_ledger(ledger, ledger_path)
        _audit(audit_storage, ForgeOperation.from_forge(ledger, error), ledger)

        if error is None:
            console.print(_steps_table(f"Forged {request.application_type}", ledger))
            console.print(_identity_table(ledger))
            console.print(f"✓ Ledger written to: [cyan]{ledger_path}[/cyan]")
            return

        console.print(f"✗ Forge failed: {error}", style="bold red")

        if not rollback:
            console.print(f"Partial ledger written to: [cyan]{ledger_path}[/cyan]")
            console.print(f"Run 'superkey teardown {ledger_path}' to remove the created resources.")
            raise typer.Exit(code=1)

        attempted = list(ledger.steps_completed)
        errors = provider.tear_down(ledger)
        _write_ledger(ledger, ledger_path)
        _audit(audit_storage, ForgeOperation.from_teardown(ledger, attempted, errors), ledger)

        if errors:
            _print_teardown_errors(errors)
            console.print(f"Remaining resources recorded in: [cyan]{ledger_path}[/cyan]")
        else:
            console.print("✓ Rolled back all created resources")

        raise typer.Exit(code=1)

    except typer.Exit:
        raise
    except (SuperkeyError, yaml.YAMLError) as e:
        console.print(f"✗ Invalid request: {e}", style="bold red")
        raise typer.Exit(code=1)
    except Exception as e:
        console.print(f"✗ Error during forge: {e}", style="bold red")
        logger.exception("Error in forge command")
        raise typer.Exit(code=2)


@app.command()
def teardown(
    ledger_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Ledger written by 'superkey forge'"),
    audit: bool = typer.Option(True, "--audit/--no-audit", help="Write the operation to the audit log"),
):
    """Tear down every resource recorded in a ledger.

    Every recorded resource is attempted even if others fail. The ledger file
    is rewritten with whatever could not be removed.
    """
    try:
        ledger = ForgedApplication.from_dict(_load_yaml(ledger_file))
        provider = _build_provider(ledger.request.provider)

        attempted = list(ledger.steps_completed)
        if not attempted:
            console.print("Nothing to tear down")
            return

        audit_storage = _audit_storage() if audit else None
        errors = provider.tear_down(ledger)
        _write_ledger(ledger, ledger_file)
        _audit(audit_storage, ForgeOperation.from_teardown(ledger, attempted, errors), ledger)

        if errors:
            _print_teardown_errors(errors)
            raise typer.Exit(code=1)

        console.print(f"✓ Tore down {len(attempted)} step(s) of guid {ledger.guid}")

    except typer.Exit:
        raise
    except (ValueError, SuperkeyError, yaml.YAMLError) as e:
        console.print(f"✗ Invalid ledger: {e}", style="bold red")
        raise typer.Exit(code=1)
    except Exception as e:
        console.print(f"✗ Error during teardown: {e}", style="bold red")
        logger.exception("Error in teardown command")
        raise typer.Exit(code=2)


@app.command()
def history(
    guid: Optional[str] = typer.Option(None, "--guid", help="Only operations on this ledger guid"),
    since: Optional[datetime] = typer.Option(
        None,
        "--since",
        formats=["%Y-%m-%d", "%Y-%m-%dT%H:%M:%S"],
        help="Only operations at or after this UTC time",
    ),
):
    """List forge and teardown operations from the audit log."""
    operations = _audit_storage().query_operations(guid=guid, since=since)

    if not operations:
        console.print("No operations recorded")
        return

    table = Table(title="Superkey operations")
    table.add_column("Operation", style="cyan")
    table.add_column("Time")
    table.add_column("Mode")
    table.add_column("Status")
    table.add_column("Guid")
    table.add_column("Application")
    table.add_column("Steps")

    status_styles = {"completed": "green", "partial": "yellow", "failed": "red"}
    for entry in operations:
        operation = entry["operation"]
        style = status_styles.get(operation["status"], "white")
        table.add_row(
            operation["operation_id"],
            operation["timestamp"],
            operation["mode"],
            f"[{style}]{operation['status']}[/{style}]",
            operation["guid"],
            operation["application_type"],
            ", ".join(operation["steps"]) or "-",
        )

    console.print(table)


@app.command()
def show(
    operation_id: str = typer.Argument(..., help="Operation ID as listed by 'superkey history'"),
):
    """Show the full audit log of one operation."""
    entry = _audit_storage().get_operation(operation_id)
    if entry is None:
        console.print(f"✗ Operation not found: {operation_id}", style="bold red")
        raise typer.Exit(code=1)

    console.print(Syntax(yaml.dump(entry, default_flow_style=False, sort_keys=False), "yaml"))


def cli_main():
    """Entry point for console script."""
    app()


if __name__ == "__main__":
    cli_main()
