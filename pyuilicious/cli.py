"""CLI interface for pyuilicious."""

import asyncio
import logging
from pathlib import Path
from typing import Any, Optional

import click

from .api import UiliciousClient
from .config import config
from .exceptions import UiliciousError, UiliciousNotFoundError
from .models import RunResult, build_remote_tree
from .output import OutputFormatter
from .runner import DEFAULT_BROWSER, DEFAULT_HEIGHT, DEFAULT_WIDTH, ScriptRunner
from .sync import (
    DEFAULT_ERROR_POLICIES,
    ErrorPolicy,
    SyncContext,
    SyncEngine,
    UploadKind,
)

logger = logging.getLogger(__name__)


def _create_client(obj: dict) -> UiliciousClient:
    """Create an API client from the global CLI options."""
    return UiliciousClient(
        user=obj.get("user"),
        password=obj.get("password"),
        api_url=obj.get("api_url"),
        timeout=obj.get("timeout"),
    )


def _require_credentials(ctx: Any) -> None:
    """Exit with an error when no credentials are available."""
    out: OutputFormatter = ctx.obj["out"]
    if not config.is_configured() and not (
        ctx.obj.get("user") and ctx.obj.get("password")
    ):
        out.error("Credentials not configured.")
        out.info("Use --user/--pass or run 'pyuilicious init'")
        ctx.exit(1)


@click.group()
@click.option("--user", "-u", help="Account login (email)")
@click.option("--pass", "-p", "password", help="Account password")
@click.option(
    "--browser",
    "-b",
    default=DEFAULT_BROWSER,
    show_default=True,
    help="Browser for test runs [chrome/firefox/edge/safari]",
)
@click.option(
    "--width", "-w", type=int, default=DEFAULT_WIDTH, help="Width of browser"
)
@click.option(
    "--height", "-H", type=int, default=DEFAULT_HEIGHT, help="Height of browser"
)
@click.option("--api-url", envvar="UILICIOUS_API_URL", help="API base URL")
@click.option(
    "--timeout",
    type=float,
    default=None,
    help="Request timeout in seconds (default: no timeout)",
)
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(package_name="pyuilicious")
@click.pass_context
def main(
    ctx: Any,
    user: Optional[str],
    password: Optional[str],
    browser: str,
    width: int,
    height: int,
    api_url: Optional[str],
    timeout: Optional[float],
    quiet: bool,
    json: bool,
    verbose: bool,
) -> None:
    """pyuilicious - Import, export and run UI-licious test projects."""
    ctx.ensure_object(dict)
    ctx.obj["user"] = user
    ctx.obj["password"] = password
    ctx.obj["browser"] = browser
    ctx.obj["width"] = width
    ctx.obj["height"] = height
    ctx.obj["api_url"] = api_url
    ctx.obj["timeout"] = timeout
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)
    ctx.obj["verbose"] = verbose

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("pyuilicious").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)


@main.command()
@click.option("--user", "-u", prompt="Enter your login email", help="Account login")
@click.option(
    "--pass",
    "-p",
    "password",
    prompt="Enter your password",
    hide_input=True,
    help="Account password",
)
@click.pass_context
def init(ctx: Any, user: str, password: str) -> None:
    """Store credentials in ~/.config/pyuilicious/config."""
    out: OutputFormatter = ctx.obj["out"]

    async def validate() -> None:
        async with UiliciousClient(
            user=user,
            password=password,
            api_url=ctx.obj.get("api_url"),
            timeout=ctx.obj.get("timeout"),
        ) as client:
            await client.login()

    try:
        out.info("Validating credentials...")
        try:
            asyncio.run(validate())
            out.success("✓ Credentials are valid")
        except UiliciousError as e:
            out.error(f"Credential validation failed: {e}")
            if not click.confirm("Save credentials anyway?", default=False):
                out.warning("Configuration cancelled.")
                ctx.exit(1)

        config.save_credentials(user, password)
        out.print_summary(
            "Initialization Complete",
            [
                ("Status", "✓ Configuration saved successfully"),
                ("Config file", str(config.get_config_path())),
            ],
        )
    except OSError as e:
        out.error(f"Initialization failed: {e}")
        ctx.exit(1)


@main.command("import")
@click.argument("project")
@click.argument("folder", type=click.Path(exists=True, file_okay=False))
@click.option(
    "--overwrite", is_flag=True, help="Replace files that already exist remotely"
)
@click.option(
    "--strict-media",
    is_flag=True,
    help="Fail the import when a media upload fails (default: log and continue)",
)
@click.pass_context
def import_folder(
    ctx: Any, project: str, folder: str, overwrite: bool, strict_media: bool
) -> None:
    """Import a local folder into a project.

    PROJECT: Project name or ID

    FOLDER: Local folder whose contents are uploaded. Hidden files are
    skipped, .jpg/.png files are uploaded as media.

    Examples:
        pyuilicious import "My Project" ./tests
        pyuilicious import "My Project" ./tests --overwrite
    """
    _require_credentials(ctx)
    out: OutputFormatter = ctx.obj["out"]

    error_policies = dict(DEFAULT_ERROR_POLICIES)
    if strict_media:
        error_policies[UploadKind.RAW] = ErrorPolicy.STRICT

    async def run_import() -> dict:
        async with _create_client(ctx.obj) as client:
            await client.login()
            project_id = await client.resolve_project_id(project)
            context = SyncContext(
                client=client,
                output=out,
                overwrite=overwrite,
                verbose=ctx.obj["verbose"],
                error_policies=error_policies,
            )
            engine = SyncEngine(context)
            try:
                return await engine.import_folder_contents(project_id, Path(folder))
            finally:
                await engine.drain()

    try:
        stats = asyncio.run(run_import())
    except KeyboardInterrupt:
        out.warning("\nImport cancelled by user")
        ctx.exit(130)
    except UiliciousError as e:
        out.error(str(e))
        ctx.exit(1)

    if out.json_output:
        out.output_json(stats)
        return
    out.success(f"Imported folder {folder} into project {project}")
    out.info(f"  Uploaded: {stats['uploads']}")
    if stats["skips"]:
        out.info(f"  Skipped (already exist): {stats['skips']}")
    if stats["errors"]:
        out.warning(f"  Failed media uploads: {stats['errors']}")


@main.command("export")
@click.argument("project")
@click.argument("folder")
@click.argument("directory", type=click.Path(file_okay=False))
@click.pass_context
def export_folder(ctx: Any, project: str, folder: str, directory: str) -> None:
    """Export a project folder to a local directory.

    PROJECT: Project name or ID

    FOLDER: Remote folder to export ("/" for the whole project)

    DIRECTORY: Local directory; the remote hierarchy is recreated below it

    Examples:
        pyuilicious export "My Project" / ./backup
        pyuilicious export "My Project" suites/login ./backup
    """
    _require_credentials(ctx)
    out: OutputFormatter = ctx.obj["out"]
    remote_folder = folder.strip("/")

    async def run_export() -> int:
        async with _create_client(ctx.obj) as client:
            await client.login()
            project_id = await client.resolve_project_id(project)
            context = SyncContext(
                client=client, output=out, verbose=ctx.obj["verbose"]
            )
            engine = SyncEngine(context)
            try:
                if not remote_folder:
                    stats = await engine.export_test_directory(project_id, directory)
                    return stats["downloads"]

                tree = build_remote_tree(await client.list_files(project_id))
                node = tree.find(remote_folder)
                if node is None:
                    raise UiliciousNotFoundError(
                        f"Folder <{remote_folder}> not found in project {project}"
                    )
                local_dir = Path(directory) / Path(remote_folder).parent
                logger.debug("Exporting %s into %s", node.path, local_dir)
                return await engine.export_directory_node_to_directory_path(
                    project_id, node, local_dir
                )
            finally:
                await engine.drain()

    try:
        downloads = asyncio.run(run_export())
    except KeyboardInterrupt:
        out.warning("\nExport cancelled by user")
        ctx.exit(130)
    except UiliciousError as e:
        out.error(str(e))
        ctx.exit(1)

    if out.json_output:
        out.output_json({"downloads": downloads, "directory": directory})
        return
    out.success(f"Exported {downloads} file(s) to {directory}")


@main.command("run")
@click.argument("project")
@click.argument("scriptpath")
@click.option(
    "--save",
    "-s",
    "save_dir",
    type=click.Path(file_okay=False),
    help="Set the directory path to save test log.",
)
@click.pass_context
def run_test(
    ctx: Any, project: str, scriptpath: str, save_dir: Optional[str]
) -> None:
    """Run a test script from a project.

    PROJECT: Project name or ID

    SCRIPTPATH: Path of the script inside the project

    Examples:
        pyuilicious run "My Project" suites/login.js
        pyuilicious -b firefox run "My Project" suites/login.js -s ./logs
    """
    _require_credentials(ctx)
    out: OutputFormatter = ctx.obj["out"]

    async def run_script() -> RunResult:
        async with _create_client(ctx.obj) as client:
            await client.login()
            project_id = await client.resolve_project_id(project)
            runner = ScriptRunner(client, out)
            return await runner.run(
                project_id,
                scriptpath,
                browser=ctx.obj["browser"],
                width=ctx.obj["width"],
                height=ctx.obj["height"],
                save_dir=Path(save_dir) if save_dir else None,
            )

    try:
        result = asyncio.run(run_script())
    except KeyboardInterrupt:
        out.warning("\nTest run cancelled by user")
        ctx.exit(130)
    except UiliciousError as e:
        out.error(str(e))
        ctx.exit(1)

    out.print_summary(
        "Test Result",
        [
            ("Script", scriptpath),
            ("Test ID", result.test_id),
            ("Status", result.status),
            ("Steps", str(len(result.steps))),
        ],
    )
    if not result.is_success:
        ctx.exit(1)


if __name__ == "__main__":
    main()
