"""
Human-readable output formatting.

Centralizes all CLI output formatting so commands stay thin. Results go to
stdout, notices and errors to stderr.
"""
from __future__ import annotations

from typing import Dict, Optional

import typer

from ..remote_config.models import LastFetchStatus, RemoteConfigValue
from ..storage.models import FullMetadata, ListResult
from ..storage.task import TaskSnapshot


def print_list_result(result: ListResult) -> None:
    """Print folders (with a trailing slash) before objects."""
    for prefix in result.prefixes:
        typer.echo(f"{prefix.full_path}/")
    for item in result.items:
        typer.echo(item.full_path)
    if result.next_page_token:
        typer.echo(f"Next page token: {result.next_page_token}", err=True)


def print_metadata(metadata: FullMetadata) -> None:
    typer.echo(f"Path: gs://{metadata.bucket}/{metadata.full_path}")
    typer.echo(f"Size: {_format_bytes(metadata.size)}")
    typer.echo(f"Content-Type: {metadata.content_type or '-'}")
    typer.echo(f"MD5: {metadata.md5_hash or '-'}")
    typer.echo(f"Generation: {metadata.generation or '-'}")
    if metadata.updated is not None:
        typer.echo(f"Updated: {metadata.updated.isoformat()}")
    if metadata.cache_control:
        typer.echo(f"Cache-Control: {metadata.cache_control}")
    if metadata.custom_metadata:
        typer.echo("Custom metadata:")
        for key, value in sorted(metadata.custom_metadata.items()):
            typer.echo(f"  {key}: {value}")


def print_upload_summary(snapshot: TaskSnapshot) -> None:
    ref = snapshot.ref
    typer.echo(f"Uploaded {_format_bytes(snapshot.total_bytes)} to gs://{ref.bucket}/{ref.full_path}")
    if snapshot.metadata is not None and snapshot.metadata.md5_hash:
        typer.echo(f"MD5: {snapshot.metadata.md5_hash}")


def print_deleted(bucket: str, full_path: str) -> None:
    typer.echo(f"Deleted gs://{bucket}/{full_path}")


def print_size_limit_notice(full_path: str, max_size: int) -> None:
    typer.echo(f"Not downloaded: {full_path} is larger than {_format_bytes(max_size)}", err=True)


def print_config_values(
    values: Dict[str, RemoteConfigValue],
    status: LastFetchStatus,
    activated: Optional[bool] = None,
) -> None:
    """
    Print fetch status and every resolved config value.

    Args:
        values: Result of RemoteConfig.get_all()
        status: Last fetch status
        activated: Whether activation changed values (None if not attempted)
    """
    typer.echo(f"Fetch status: {status.value}")
    if activated is not None:
        typer.echo(f"Activated: {'yes' if activated else 'no change'}")
    for key, value in values.items():
        typer.echo(f"{key} = {value.as_string()} ({value.source.value})")


def print_error(exc: BaseException) -> None:
    """Print a one-line error to stderr."""
    message = getattr(exc, "message", None) or str(exc) or type(exc).__name__
    code = getattr(exc, "code", None)
    suffix = f" [{code}]" if code else ""
    typer.echo(f"Error: {message}{suffix}", err=True)


def _format_bytes(size: Optional[int]) -> str:
    """Format byte size in human-readable format."""
    if size is None:
        return "-"
    value = float(size)
    for unit in ("B", "KB", "MB", "GB"):
        if value < 1024:
            return f"{int(value)} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} TB"
