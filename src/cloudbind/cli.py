"""
cloudbind CLI

Storage and remote config commands:
- ls: List a folder (one page, or everything with --all)
- stat: Show object metadata
- url: Print the object's download URL
- rm: Delete an object
- cat: Write object bytes to stdout
- put: Upload a local file (or stdin)
- put-string: Upload a string in one of the string formats
- set-meta: Update object metadata
- config-fetch: Fetch (and activate) remote config and print the values
"""
from __future__ import annotations

import logging
import sys
from typing import Dict, List, Optional

import typer

from .cli_context import CLIContext
from .operations import run_and_exit
from .operations.printers import (
    print_config_values, print_deleted, print_list_result, print_metadata,
    print_size_limit_notice, print_upload_summary
)
from .storage.formats import PutStringFormat
from .storage.models import ListOptions, SettableMetadata

app = typer.Typer(name="cloudbind", help="cloudbind CLI")


@app.callback()
def _configure(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging")
) -> None:
    """Cloud storage and remote config from the command line."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


def _context(ctx: typer.Context) -> CLIContext:
    """Context injected through typer's obj (tests), else loaded from env."""
    if isinstance(ctx.obj, CLIContext):
        return ctx.obj
    return CLIContext.from_env()


def _parse_custom(pairs: Optional[List[str]]) -> Optional[Dict[str, str]]:
    """
    Parse repeated --custom key=value options.

    Raises:
        ValueError: If a pair has no "=" or an empty key
    """
    if not pairs:
        return None
    custom: Dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ValueError(f"Invalid --custom value {pair!r}, expected key=value")
        custom[key] = value
    return custom


def _read_source(source: str) -> bytes:
    if source == "-":
        return sys.stdin.buffer.read()
    with open(source, "rb") as f:
        return f.read()


@app.command()
def ls(
    ctx: typer.Context,
    path: str = typer.Argument("", help="Folder path or gs:// URL (default: bucket root)"),
    max_results: Optional[int] = typer.Option(None, "--max-results", help="Page size (1-1000)"),
    page_token: Optional[str] = typer.Option(None, "--page-token", help="Continue a previous listing"),
    all_pages: bool = typer.Option(False, "--all", help="Follow page tokens and list everything"),
) -> None:
    """List folders and objects under a path."""

    async def _ls() -> None:
        context = _context(ctx)
        try:
            ref = context.storage.ref(path)
            if all_pages:
                result = await ref.list_all()
            else:
                result = await ref.list(ListOptions(max_results=max_results, page_token=page_token))
            print_list_result(result)
        finally:
            await context.aclose()

    run_and_exit(_ls)


@app.command()
def stat(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="Object path or gs:// URL"),
) -> None:
    """Show object metadata."""

    async def _stat() -> None:
        context = _context(ctx)
        try:
            print_metadata(await context.storage.ref(path).get_metadata())
        finally:
            await context.aclose()

    run_and_exit(_stat)


@app.command()
def url(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="Object path or gs:// URL"),
) -> None:
    """Print the object's download URL."""

    async def _url() -> None:
        context = _context(ctx)
        try:
            typer.echo(await context.storage.ref(path).get_download_url())
        finally:
            await context.aclose()

    run_and_exit(_url)


@app.command()
def rm(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="Object path or gs:// URL"),
) -> None:
    """Delete an object."""

    async def _rm() -> None:
        context = _context(ctx)
        try:
            ref = context.storage.ref(path)
            await ref.delete()
            print_deleted(ref.bucket, ref.full_path)
        finally:
            await context.aclose()

    run_and_exit(_rm)


@app.command()
def cat(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="Object path or gs:// URL"),
    max_size: Optional[int] = typer.Option(
        None, "--max-size", help="Skip objects larger than this many bytes (0 = no limit)"
    ),
) -> None:
    """Write object bytes to stdout."""

    async def _cat() -> None:
        context = _context(ctx)
        try:
            ref = context.storage.ref(path)
            data = await ref.get_data(max_size)
            if data is None:
                limit = max_size if max_size is not None else context.storage.max_download_size
                print_size_limit_notice(ref.full_path, limit)
                return
            typer.echo(data, nl=False)
        finally:
            await context.aclose()

    run_and_exit(_cat)


@app.command()
def put(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="Destination object path or gs:// URL"),
    source: str = typer.Argument(..., help="Local file to upload, or - for stdin"),
    content_type: Optional[str] = typer.Option(None, "--content-type", help="MIME type"),
    custom: Optional[List[str]] = typer.Option(None, "--custom", help="Custom metadata key=value (repeatable)"),
) -> None:
    """Upload a local file."""

    async def _put() -> None:
        metadata = SettableMetadata(content_type=content_type, custom_metadata=_parse_custom(custom))
        data = _read_source(source)
        context = _context(ctx)
        try:
            snapshot = await context.storage.ref(path).put_data(data, metadata)
            print_upload_summary(snapshot)
        finally:
            await context.aclose()

    run_and_exit(_put)


@app.command("put-string")
def put_string(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="Destination object path or gs:// URL"),
    text: str = typer.Argument(..., help="String to upload"),
    format: PutStringFormat = typer.Option(PutStringFormat.RAW, "--format", help="How TEXT is encoded"),
    content_type: Optional[str] = typer.Option(None, "--content-type", help="MIME type"),
) -> None:
    """Upload a string (raw, base64, base64Url or dataUrl)."""

    async def _put_string() -> None:
        metadata = SettableMetadata(content_type=content_type) if content_type else None
        context = _context(ctx)
        try:
            snapshot = await context.storage.ref(path).put_string(text, format, metadata)
            print_upload_summary(snapshot)
        finally:
            await context.aclose()

    run_and_exit(_put_string)


@app.command("set-meta")
def set_meta(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="Object path or gs:// URL"),
    content_type: Optional[str] = typer.Option(None, "--content-type", help="MIME type"),
    cache_control: Optional[str] = typer.Option(None, "--cache-control", help="Cache-Control directive"),
    custom: Optional[List[str]] = typer.Option(None, "--custom", help="Custom metadata key=value (repeatable)"),
) -> None:
    """Update object metadata; options not given are left unchanged."""

    async def _set_meta() -> None:
        metadata = SettableMetadata(
            content_type=content_type,
            cache_control=cache_control,
            custom_metadata=_parse_custom(custom),
        )
        context = _context(ctx)
        try:
            print_metadata(await context.storage.ref(path).update_metadata(metadata))
        finally:
            await context.aclose()

    run_and_exit(_set_meta)


@app.command("config-fetch")
def config_fetch(
    ctx: typer.Context,
    activate: bool = typer.Option(True, "--activate/--no-activate", help="Activate the fetched values"),
) -> None:
    """Fetch remote config and print the resolved values."""

    async def _config_fetch() -> None:
        context = _context(ctx)
        try:
            remote_config = context.remote_config
            activated = None
            if activate:
                activated = await remote_config.fetch_and_activate()
            else:
                await remote_config.fetch()
            print_config_values(remote_config.get_all(), remote_config.last_fetch_status, activated)
        finally:
            await context.aclose()

    run_and_exit(_config_fetch)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
