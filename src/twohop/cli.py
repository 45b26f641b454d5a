#!/usr/bin/env python3
"""
twohop: CLI for two-hop link discovery

Usage:
    twohop links notes/alpha.md      # Everything within two hops
    twohop backlinks notes/alpha.md  # Documents pointing here (and back)
    twohop new-links notes/alpha.md  # Links to documents that do not exist
    twohop tags notes/alpha.md       # Hierarchical tags of a document
    twohop list                      # All documents, ranked
"""

from __future__ import annotations

import asyncio
import difflib
import json
import sys
from collections.abc import Sequence
from typing import Any, NoReturn

import click
from click.exceptions import ClickException, UsageError

from . import __version__ as TWOHOP_VERSION
from .models import FileEntity, PropertiesLinks, TwoHopLinks


def run_async(coro):
    """Run async function synchronously."""
    return asyncio.run(coro)


def output(data, as_json: bool = False):
    """Output data as JSON or formatted text."""
    if as_json:
        click.echo(json.dumps(data, indent=2, default=str))
    else:
        click.echo(data)


def _format_entities(entities: Sequence[FileEntity], indent: str = "  ") -> list[str]:
    return [f"{indent}- {entity.link_text}" for entity in entities]


def _format_groups(groups: Sequence[PropertiesLinks]) -> list[str]:
    lines: list[str] = []
    for group in groups:
        label = "Links to" if group.key == "links" else "Tag" if group.key == "tags" else group.key
        lines.append(f"{label}: {group.property}")
        lines.extend(_format_entities(group.links))
    return lines


def format_two_hop_links(result: TwoHopLinks) -> str:
    """Render a discovery result as plain text, one section per collection."""
    sections: list[list[str]] = []

    if result.all_files:
        sections.append(["Documents:", *_format_entities(result.all_files)])
    if result.backward_links:
        sections.append(["Back links:", *_format_entities(result.backward_links)])
    if result.new_links:
        sections.append(["New links:", *_format_entities(result.new_links)])
    if result.tag_links_list:
        sections.append(_format_groups(result.tag_links_list))
    if result.frontmatter_key_links_list:
        sections.append(_format_groups(result.frontmatter_key_links_list))
    if result.warnings:
        sections.append(["Warnings:", *(f"  - {warning}" for warning in result.warnings)])

    if not sections:
        return "No links found."
    return "\n\n".join("\n".join(section) for section in sections)


# ─────────────────────────────────────────────────────────────────────────────
# Error Handling
# ─────────────────────────────────────────────────────────────────────────────


def _handle_error(ctx: click.Context, error: Exception, exit_code: int = 1) -> NoReturn:
    """Print an error as text, or as JSON when --json-errors is set, and exit."""
    from .errors import ErrorCode, TwohopError, format_error_json

    json_errors = ctx.obj.get("json_errors", False) if ctx.obj else False

    if isinstance(error, TwohopError):
        if json_errors:
            click.echo(error.to_json(), err=True)
        else:
            click.echo(f"Error: {error.message}", err=True)
            suggestion = error.details.get("suggestion") if error.details else None
            if suggestion:
                click.echo(f"Hint: {suggestion}", err=True)
    else:
        if json_errors:
            code = ErrorCode.FILE_READ_ERROR if isinstance(error, OSError) else ErrorCode.INTERNAL_ERROR
            click.echo(format_error_json(code, str(error)), err=True)
        else:
            click.echo(f"Error: {error}", err=True)

    sys.exit(exit_code)


def get_error_code_for_exception(exc: Exception) -> str:
    """Map Click exceptions to error codes."""
    if isinstance(exc, click.MissingParameter):
        return "MISSING_ARGUMENT"
    elif isinstance(exc, click.BadParameter):
        return "INVALID_ARGUMENT"
    elif isinstance(exc, click.NoSuchOption):
        return "UNKNOWN_OPTION"
    elif isinstance(exc, UsageError):
        return "USAGE_ERROR"
    elif isinstance(exc, ClickException):
        return "CLI_ERROR"
    return "UNKNOWN_ERROR"


class JsonErrorGroup(click.Group):
    """Click group that formats errors as JSON when --json-errors is set.

    Also suggests the closest command name for typos.
    """

    def resolve_command(self, ctx, args):
        try:
            return super().resolve_command(ctx, args)
        except UsageError as e:
            cmd_name = args[0] if args else ""
            if cmd_name and "No such command" in str(e):
                matches = difflib.get_close_matches(cmd_name, self.list_commands(ctx), n=1, cutoff=0.6)
                if matches:
                    raise UsageError(f"No such command '{cmd_name}'. Did you mean '{matches[0]}'?")
            raise

    def main(
        self,
        args: Sequence[str] | None = None,
        prog_name: str | None = None,
        complete_var: str | None = None,
        standalone_mode: bool = True,
        **extra: Any,
    ) -> Any:
        """Catch argument-parsing errors when --json-errors is given anywhere."""
        from .errors import format_error_json

        argv = list(args) if args is not None else list(sys.argv[1:])
        if "--json-errors" not in argv:
            return super().main(args, prog_name, complete_var, standalone_mode, **extra)

        # Normalize misplaced --json-errors to be a true global flag.
        argv = ["--json-errors", *(a for a in argv if a != "--json-errors")]

        try:
            return super().main(argv, prog_name, complete_var, standalone_mode=False, **extra)
        except ClickException as e:
            click.echo(format_error_json(get_error_code_for_exception(e), e.format_message()), err=True)
            raise SystemExit(1)


# ─────────────────────────────────────────────────────────────────────────────
# Main CLI Group
# ─────────────────────────────────────────────────────────────────────────────


@click.group(cls=JsonErrorGroup)
@click.version_option(version=TWOHOP_VERSION, prog_name="twohop")
@click.option("--json-errors", "json_errors", is_flag=True, help="Output errors as JSON")
@click.option(
    "--quiet",
    "-q",
    is_flag=True,
    envvar="TWOHOP_QUIET",
    help="Suppress warnings, show only errors and essential output",
)
@click.option(
    "--vault",
    "vault",
    type=click.Path(file_okay=False),
    envvar="TWOHOP_VAULT_ROOT",
    help="Vault directory (default: discovered from the working directory)",
)
@click.pass_context
def cli(ctx: click.Context, json_errors: bool, quiet: bool, vault: str | None):
    """twohop: two-hop links for a markdown vault.

    \b
    Examples:
      twohop links notes/alpha.md     # Back links, new links and groups
      twohop links                    # No document: list everything
      twohop backlinks notes/alpha    # ".md" is optional
      twohop tags notes/alpha.md --json
    """
    from ._logging import configure_logging

    configure_logging(quiet=quiet)
    ctx.ensure_object(dict)
    ctx.obj["json_errors"] = json_errors
    ctx.obj["vault"] = vault


@cli.command()
@click.argument("path", required=False)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def links(ctx: click.Context, path: str | None, as_json: bool):
    """Show everything within two hops of PATH.

    Without PATH, lists every document instead.
    """
    from . import core

    try:
        result = run_async(core.discover(path, ctx.obj["vault"]))
    except Exception as e:
        _handle_error(ctx, e)

    if as_json:
        output(result.model_dump(mode="json"), as_json=True)
    else:
        output(format_two_hop_links(result))


@cli.command()
@click.argument("path")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def backlinks(ctx: click.Context, path: str, as_json: bool):
    """Show documents linking to PATH, tagged with its name, or linked from it."""
    from . import core

    try:
        entities = run_async(core.backlinks(path, ctx.obj["vault"]))
    except Exception as e:
        _handle_error(ctx, e)

    if as_json:
        output([entity.model_dump() for entity in entities], as_json=True)
    elif entities:
        output("\n".join(entity.link_text for entity in entities))
    else:
        output("No back links found.")


@cli.command("new-links")
@click.argument("path")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def new_links(ctx: click.Context, path: str, as_json: bool):
    """Show links from PATH to documents that do not exist yet."""
    from . import core

    try:
        result = run_async(core.new_links(path, ctx.obj["vault"]))
    except Exception as e:
        _handle_error(ctx, e)

    if as_json:
        output(result.model_dump(mode="json", include={"new_links", "warnings"}), as_json=True)
        return

    if result.new_links:
        output("\n".join(entity.link_text for entity in result.new_links))
    else:
        output("No new links found.")
    for warning in result.warnings:
        click.echo(f"Warning: {warning}", err=True)


@cli.command()
@click.argument("path")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def tags(ctx: click.Context, path: str, as_json: bool):
    """Show every hierarchical tag level of PATH."""
    from . import core

    try:
        tag_list = run_async(core.file_tags(path, ctx.obj["vault"]))
    except Exception as e:
        _handle_error(ctx, e)

    if as_json:
        output(tag_list, as_json=True)
    elif tag_list:
        output("\n".join(tag_list))
    else:
        output("No tags found.")


@cli.command("list")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def list_cmd(ctx: click.Context, as_json: bool):
    """List every document in the configured order."""
    from . import core

    try:
        entities = run_async(core.list_files(ctx.obj["vault"]))
    except Exception as e:
        _handle_error(ctx, e)

    if as_json:
        output([entity.model_dump() for entity in entities], as_json=True)
    elif entities:
        output("\n".join(entity.source_path for entity in entities))
    else:
        output("No documents found.")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
