"""
Error mapping and CLI utilities.

Provides centralized exception-to-exit-code mapping and CLI command wrappers
to ensure consistent error handling across all Typer commands.
"""
from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Callable, TypeVar

import typer

T = TypeVar('T')

logger = logging.getLogger(__name__)

# Looked up by class name along the exception's MRO, most specific first
EXIT_CODES = {
    "StorageNotFound": 1,
    "FileNotFoundError": 1,
    "ValueError": 2,  # includes pydantic ValidationError
    "StorageUnavailable": 3,
    "StorageUnknown": 3,
    "RemoteConfigError": 3,
    "StoragePermissionDenied": 4,
    "StorageUnsupported": 5,
    "FetchThrottled": 6,
    "StorageCanceled": 7,
}

FALLBACK_EXIT_CODE = 3


def exit_code_for(exc: BaseException) -> int:
    """
    Map exception to standardized exit code.

    Returns:
    - 1: Object not found (StorageNotFound)
    - 2: Validation error (ValueError and subclasses)
    - 3: Backend unavailable or unknown error (fallback)
    - 4: Permission denied (StoragePermissionDenied)
    - 5: Operation unsupported by the backend (StorageUnsupported)
    - 6: Remote config fetch throttled (FetchThrottled)
    - 7: Transfer cancelled (StorageCanceled)

    Args:
        exc: Exception to map

    Returns:
        Exit code (1-7, with 3 as fallback for unknown exceptions)
    """
    for cls in type(exc).__mro__:
        code = EXIT_CODES.get(cls.__name__)
        if code is not None:
            return code
    return FALLBACK_EXIT_CODE


def run_and_exit(func: Callable[[], Any]) -> Any:
    """
    Unified error wrapper for CLI commands.

    Executes the given function (running it on a fresh event loop when it
    returns a coroutine) and maps any exceptions to appropriate exit codes
    using typer.Exit. This centralizes error handling so CLI commands don't
    need individual try/except blocks.

    Args:
        func: Function to execute

    Returns:
        Function result if successful

    Raises:
        typer.Exit: With appropriate exit code if function raises exception
    """
    try:
        result = func()
        if inspect.iscoroutine(result):
            result = asyncio.run(result)
        return result
    except Exception as e:
        from .printers import print_error
        print_error(e)
        logger.debug("Command failed", exc_info=True)
        raise typer.Exit(code=exit_code_for(e)) from e
