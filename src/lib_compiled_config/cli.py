"""CLI adapter for ``lib_compiled_config`` built on ``lib_cli_exit_tools``.

Purpose
-------
Expose the compile pipeline on the command line so operators can see what a
set of configuration files compiles to (merge order, expansion, secrets and
documentation included) without writing Python code.

Contents
--------
* :data:`CLICK_CONTEXT_SETTINGS` – shared Click settings ensuring ``-h`` works.
* :func:`cli` – root command that wires global traceback handling into
  ``lib_cli_exit_tools``.
* :func:`cli_info` – prints distribution metadata for quick diagnostics.
* :func:`cli_compile` – compiles files and directories and prints the result.
* :func:`main` – entry point used by ``console_scripts`` registration.

System Role
-----------
The CLI lives in the outermost layer. It only builds options and calls the
:class:`~lib_compiled_config.core.Config` aggregate. ``lib_cli_exit_tools``
centralises the exit code strategy so all commands behave consistently across
shells and CI.
"""

from __future__ import annotations

import sys
from importlib import metadata
from pathlib import Path
from typing import Final, Optional, Sequence

import lib_cli_exit_tools
import rich_click as click

from .adapters.codecs.registry import default_registry
from .adapters.filesystem.default import DirectoryFS
from .core import ROOT, Config
from .options import (
    ConfigOption,
    add_dir,
    add_docs_json,
    add_file,
    add_tree,
    expand_env,
    format_as,
    include_documentation,
    include_origins,
    redact_secrets,
    sort_records_lexically,
    sort_records_naturally,
)

CLICK_CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}
_TRACEBACK_SUMMARY_LIMIT: Final[int] = 500
_TRACEBACK_VERBOSE_LIMIT: Final[int] = 10_000

FORMAT_CHOICES: Final[tuple[str, ...]] = ("yaml", "json")


def _resolve_version() -> str:
    """Return the installed package version, ``"0.0.0"`` when not installed."""

    try:
        return metadata.version("lib_compiled_config")
    except metadata.PackageNotFoundError:
        return "0.0.0"


@click.group(
    help="Compile layered configuration files into one document",
    context_settings=CLICK_CONTEXT_SETTINGS,
    invoke_without_command=False,
)
@click.version_option(
    version=_resolve_version(),
    prog_name="lib_compiled_config",
    message="lib_compiled_config version %(version)s",
)
@click.option(
    "--traceback/--no-traceback",
    is_flag=True,
    default=False,
    help="Show full Python traceback on errors",
)
@click.pass_context
def cli(ctx: click.Context, traceback: bool) -> None:
    """Root command configuring traceback handling for all subcommands.

    Side Effects
        Mutates ``lib_cli_exit_tools.config.traceback`` and
        ``lib_cli_exit_tools.config.traceback_force_color``.
    """

    ctx.ensure_object(dict)
    ctx.obj["traceback"] = traceback
    lib_cli_exit_tools.config.traceback = traceback
    lib_cli_exit_tools.config.traceback_force_color = traceback


@cli.command("info", context_settings=CLICK_CONTEXT_SETTINGS)
def cli_info() -> None:
    """Print basic distribution metadata so users can confirm installation."""

    try:
        meta = metadata.metadata("lib_compiled_config")
    except metadata.PackageNotFoundError:
        click.echo("lib_compiled_config (metadata unavailable)")
        return
    click.echo(f"Info for {meta.get('Name', 'lib_compiled_config')}:")
    click.echo(f"  Version         : {meta.get('Version', _resolve_version())}")
    click.echo(f"  Requires-Python : {meta.get('Requires-Python', '>=3.10')}")
    summary = meta.get("Summary")
    if summary:
        click.echo(f"  Summary         : {summary}")
    for entry in meta.get_all("Project-URL") or []:
        click.echo(f"  {entry}")


@cli.command("compile", context_settings=CLICK_CONTEXT_SETTINGS)
@click.argument(
    "paths",
    nargs=-1,
    required=True,
    type=click.Path(path_type=Path, exists=True, readable=True),
)
@click.option("--recurse/--no-recurse", default=False, help="Walk directories recursively")
@click.option(
    "--natural/--lexical",
    "natural",
    default=True,
    show_default=True,
    help="Order records by natural (numeric aware) or plain string comparison",
)
@click.option("--expand-env", "use_env", is_flag=True, default=False, help="Expand ${VAR} from the environment")
@click.option(
    "--docs",
    "docs",
    type=click.Path(path_type=Path, exists=True, file_okay=True, dir_okay=False, readable=True),
    default=None,
    help="JSON documentation object rendered as comments (YAML output only)",
)
@click.option(
    "--format",
    "fmt",
    type=click.Choice(FORMAT_CHOICES, case_sensitive=False),
    default="yaml",
    show_default=True,
    help="Output format",
)
@click.option("--origins/--no-origins", default=False, help="Annotate every value with where it came from")
@click.option("--redact/--no-redact", default=True, show_default=True, help="Replace secret values")
@click.option("--key", default=ROOT, help="Print only the sub-tree at this key")
def cli_compile(
    paths: Sequence[Path],
    recurse: bool,
    natural: bool,
    use_env: bool,
    docs: Optional[Path],
    fmt: str,
    origins: bool,
    redact: bool,
    key: str,
) -> None:
    """Compile PATHS (files and directories) and print the merged configuration.

    Files are merged in record order: base names sorted naturally unless
    ``--lexical`` is given, later records overriding earlier ones.
    """

    options = [_path_option(path, recurse) for path in paths]
    options.append(sort_records_naturally() if natural else sort_records_lexically())
    if use_env:
        options.append(expand_env())
    if docs is not None:
        options.append(add_docs_json(docs.read_bytes()))

    config = Config(*options)
    config.compile()

    if key:
        node = config.fetch(key)
        if redact:
            node = node.redacted()
        encoder = default_registry().find_encoder(fmt.lower())
        output = encoder.encode_extended(node) if origins else encoder.encode(node.to_raw(exact_numbers=True))
    else:
        output = config.marshal(
            format_as(fmt),
            include_origins(origins),
            redact_secrets(redact),
            include_documentation(docs is not None),
        )
    click.echo(output.decode("utf-8").rstrip("\n"))


def _path_option(path: Path, recurse: bool) -> ConfigOption:
    """Return the file group option for one command line path."""

    resolved = path.resolve()
    if resolved.is_dir():
        fs = DirectoryFS(resolved)
        return add_tree(fs, ".") if recurse else add_dir(fs, ".")
    return add_file(DirectoryFS(resolved.parent), resolved.name)


def main(argv: Optional[Sequence[str]] = None, *, restore_traceback: bool = True) -> int:
    """Execute the CLI with shared exit handling and return the exit code."""

    previous_traceback = getattr(lib_cli_exit_tools.config, "traceback", False)
    previous_force_color = getattr(lib_cli_exit_tools.config, "traceback_force_color", False)
    try:
        try:
            return lib_cli_exit_tools.run_cli(
                cli,
                argv=list(argv) if argv is not None else None,
                prog_name="lib_compiled_config",
            )
        except BaseException as exc:  # noqa: BLE001 - funnel through shared printers
            lib_cli_exit_tools.print_exception_message(
                trace_back=lib_cli_exit_tools.config.traceback,
                length_limit=(
                    _TRACEBACK_VERBOSE_LIMIT if lib_cli_exit_tools.config.traceback else _TRACEBACK_SUMMARY_LIMIT
                ),
            )
            return lib_cli_exit_tools.get_system_exit_code(exc)
    finally:
        if restore_traceback:
            lib_cli_exit_tools.config.traceback = previous_traceback
            lib_cli_exit_tools.config.traceback_force_color = previous_force_color


if __name__ == "__main__":  # pragma: no cover - exercised via console entry point
    raise SystemExit(main(sys.argv[1:]))
