"""CLI interface for poeditor-sync."""

import logging
from typing import Any, Optional

import click

from .api import POEditorClient
from .config import POEditorConfig, load_config
from .exceptions import POEditorSyncError
from .output import OutputFormatter
from .rate_limit import RateLimiter
from .sync import SyncWorkflow, compute_missing, detect_source_language
from .sync.report import SyncReport
from .xcode import XcodeService

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _configure_logging(verbose: bool) -> None:
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format=LOG_FORMAT, datefmt="%H:%M:%S")
        logging.getLogger("poeditor_sync").setLevel(logging.DEBUG)
    else:
        # Set default logging level to WARNING to suppress debug/info messages
        logging.basicConfig(level=logging.WARNING)


def _load_config(ctx: Any) -> POEditorConfig:
    config = load_config(ctx.obj.get("config_path"), api_token=ctx.obj.get("api_token"))
    if config.verbose and not ctx.obj.get("verbose"):
        # verbose: true in the config file enables debug logging as well
        logging.getLogger("poeditor_sync").setLevel(logging.DEBUG)
    return config


def _build_workflow(
    config: POEditorConfig, out: OutputFormatter, verbose: bool = False
) -> tuple[POEditorClient, SyncWorkflow]:
    # The client and the workflow share one limiter
    limiter = RateLimiter.from_config(config.rate_limits)
    client = POEditorClient.from_config(config, rate_limiter=limiter)
    xcode = XcodeService.from_config(config, verbose=verbose)
    workflow = SyncWorkflow(config, client, xcode, rate_limiter=limiter, output=out)
    return client, workflow


def _finish(ctx: Any, out: OutputFormatter, report: SyncReport) -> None:
    if out.json_output:
        out.output_json(report.to_dict())
    if not report.succeeded:
        ctx.exit(1)


@click.group()
@click.option(
    "--config",
    "-c",
    "config_path",
    envvar="POEDITOR_CONFIG",
    type=click.Path(dir_okay=False),
    help="Path to the configuration file (default: ./.poeditor.yml)",
)
@click.option(
    "--api-token", envvar="POEDITOR_API_TOKEN", help="POEditor API token"
)
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output the sync report in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(package_name="poeditor-sync")
@click.pass_context
def main(
    ctx: Any,
    config_path: Optional[str],
    api_token: Optional[str],
    quiet: bool,
    json: bool,
    verbose: bool,
) -> None:
    """POEditor Sync - Sync Xcode localizations with POEditor."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["api_token"] = api_token
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)
    ctx.obj["verbose"] = verbose

    _configure_logging(verbose)


@main.command()
@click.option(
    "--language",
    "-l",
    "languages",
    multiple=True,
    help="Only upload this language (can be repeated)",
)
@click.option(
    "--initial",
    is_flag=True,
    help="Add all languages to POEditor before uploading (first-time setup)",
)
@click.option(
    "--delete-other-keys",
    is_flag=True,
    help="Delete POEditor terms that are not in the uploaded files",
)
@click.pass_context
def upload(
    ctx: Any, languages: tuple[str, ...], initial: bool, delete_other_keys: bool
) -> None:
    """Export localizations from Xcode and upload them to POEditor.

    Examples:
        poeditor-sync upload                    # Upload all languages
        poeditor-sync upload -l de -l fr        # Upload German and French only
        poeditor-sync upload --initial          # First upload of a new project
    """
    out: OutputFormatter = ctx.obj["out"]
    client = None

    try:
        config = _load_config(ctx)
        client, workflow = _build_workflow(config, out, ctx.obj["verbose"])
        out.info(f"📦 Project: {config.project_path}")
        report = workflow.upload(
            languages=languages,
            initial=initial,
            delete_other_keys=delete_other_keys,
        )
    except KeyboardInterrupt:
        out.warning("\nUpload cancelled by user")
        ctx.exit(130)  # Standard exit code for SIGINT
    except POEditorSyncError as e:
        out.error(str(e))
        ctx.exit(1)
    finally:
        if client is not None:
            client.close()

    _finish(ctx, out, report)


@main.command()
@click.option(
    "--language",
    "-l",
    "languages",
    multiple=True,
    help="Only download this language (can be repeated)",
)
@click.pass_context
def download(ctx: Any, languages: tuple[str, ...]) -> None:
    """Download translations from POEditor and import them into Xcode.

    Languages requested with --language that exist in the Xcode project but
    not in POEditor are added to POEditor first.

    Examples:
        poeditor-sync download                  # Download all languages
        poeditor-sync download -l uk            # Download Ukrainian only
    """
    out: OutputFormatter = ctx.obj["out"]
    client = None

    try:
        config = _load_config(ctx)
        client, workflow = _build_workflow(config, out, ctx.obj["verbose"])
        out.info(f"📦 Project: {config.project_path}")
        report = workflow.download(languages=languages)
    except KeyboardInterrupt:
        out.warning("\nDownload cancelled by user")
        ctx.exit(130)
    except POEditorSyncError as e:
        out.error(str(e))
        ctx.exit(1)
    finally:
        if client is not None:
            client.close()

    _finish(ctx, out, report)


@main.command()
@click.pass_context
def languages(ctx: Any) -> None:
    """Compare the languages of the Xcode project and POEditor."""
    out: OutputFormatter = ctx.obj["out"]

    try:
        config = _load_config(ctx)
        xcode = XcodeService.from_config(config, verbose=ctx.obj["verbose"])
        with POEditorClient.from_config(config) as client:
            remote = client.list_languages()
        local = list(config.languages) or xcode.detect_languages()
    except KeyboardInterrupt:
        out.warning("\nCancelled by user")
        ctx.exit(130)
    except POEditorSyncError as e:
        out.error(str(e))
        ctx.exit(1)

    remote_codes = [lang.code for lang in remote]
    missing_remotely, missing_locally = compute_missing(local, remote_codes)
    source = config.source_language
    if source is None and remote:
        source = detect_source_language(remote).code

    if out.json_output:
        out.output_json(
            {
                "source_language": source,
                "local": local,
                "remote": [lang.to_dict() for lang in remote],
                "missing_remotely": missing_remotely,
                "missing_locally": missing_locally,
            }
        )
        return

    out.section("📋 Languages in POEditor")
    for lang in sorted(remote, key=lambda item: item.code):
        marker = " (source)" if lang.code == source else ""
        out.print(
            f"  • {lang.code} ({lang.name}): {lang.translations} terms, "
            f"{lang.percentage:.1f}% translated{marker}"
        )

    out.section("📱 Languages in Xcode")
    out.print(f"  {', '.join(local)}")

    if missing_remotely:
        out.warning(f"In Xcode but NOT in POEditor: {', '.join(missing_remotely)}")
    if missing_locally:
        out.warning(f"In POEditor but NOT in Xcode: {', '.join(missing_locally)}")
    if not missing_remotely and not missing_locally:
        out.success("Xcode and POEditor have the same languages")


if __name__ == "__main__":
    main()
