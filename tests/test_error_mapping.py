"""
Test error mapping and CLI exit code functionality.

Validates that exceptions are correctly mapped to exit codes and that
the run_and_exit wrapper handles errors appropriately for CLI commands.
"""
from __future__ import annotations

from unittest.mock import Mock

import pytest
import typer
from pydantic import ValidationError

from cloudbind.operations.mappers import EXIT_CODES, exit_code_for, run_and_exit
from cloudbind.remote_config.errors import FetchThrottled, RemoteConfigError
from cloudbind.storage.errors import (
    StorageCanceled,
    StorageNotFound,
    StoragePermissionDenied,
    StorageUnavailable,
    StorageUnknown,
    StorageUnsupported,
)
from cloudbind.storage.models import ListOptions


class TestExitCodeMapping:
    """Test exception to exit code mapping."""

    def test_storage_errors_mapped_correctly(self):
        """Test that each storage error class has its own exit code."""
        assert exit_code_for(StorageNotFound("missing")) == 1
        assert exit_code_for(StorageUnavailable("down")) == 3
        assert exit_code_for(StorageUnknown("odd")) == 3
        assert exit_code_for(StoragePermissionDenied("no")) == 4
        assert exit_code_for(StorageUnsupported("nope")) == 5
        assert exit_code_for(StorageCanceled("stopped")) == 7

    def test_remote_config_errors(self):
        """Test that throttling is distinguished from other fetch failures."""
        assert exit_code_for(FetchThrottled("slow down")) == 6
        assert exit_code_for(RemoteConfigError("failed")) == 3

    def test_validation_errors(self):
        """Test that ValueError and pydantic validation errors map to 2."""
        assert exit_code_for(ValueError("bad")) == 2
        with pytest.raises(ValidationError) as exc_info:
            ListOptions(max_results=0)
        assert exit_code_for(exc_info.value) == 2

    def test_subclass_uses_nearest_mapping(self):
        """Test that unmapped subclasses inherit their parent's code."""
        class BucketGone(StorageNotFound):
            pass

        class ProjectThrottled(FetchThrottled):
            pass

        assert exit_code_for(BucketGone("gone")) == 1
        assert exit_code_for(ProjectThrottled("slow")) == 6

    def test_unknown_exception_maps_to_fallback(self):
        """Test that unknown exceptions map to fallback exit code."""
        assert exit_code_for(RuntimeError("test")) == 3
        assert exit_code_for(PermissionError("test")) == 3
        assert exit_code_for(FileNotFoundError("test")) == 1

    def test_exit_code_constants(self):
        """Test that EXIT_CODES constants are stable."""
        assert EXIT_CODES["StorageNotFound"] == 1
        assert EXIT_CODES["ValueError"] == 2
        assert EXIT_CODES["StoragePermissionDenied"] == 4
        assert EXIT_CODES["StorageUnsupported"] == 5
        assert EXIT_CODES["FetchThrottled"] == 6
        assert EXIT_CODES["StorageCanceled"] == 7


class TestRunAndExit:
    """Test run_and_exit wrapper functionality."""

    def test_successful_execution(self):
        """Test that successful functions return normally."""
        def success_func():
            return "success"

        assert run_and_exit(success_func) == "success"

    def test_coroutine_is_run(self):
        """Test that async functions are run to completion."""
        async def async_func():
            return 42

        assert run_and_exit(async_func) == 42

    def test_exception_converted_to_exit(self):
        """Test that exceptions are converted to typer.Exit with the mapped code."""
        def failing_func():
            raise StoragePermissionDenied("denied")

        with pytest.raises(typer.Exit) as exc_info:
            run_and_exit(failing_func)

        assert exc_info.value.exit_code == 4
        assert isinstance(exc_info.value.__cause__, StoragePermissionDenied)

    def test_async_exception_converted_to_exit(self):
        """Test that exceptions raised inside a coroutine are mapped too."""
        async def failing_func():
            raise StorageNotFound("missing")

        with pytest.raises(typer.Exit) as exc_info:
            run_and_exit(failing_func)
        assert exc_info.value.exit_code == 1

    def test_error_printed(self, capsys):
        """Test that the error message and code are printed to stderr."""
        def failing_func():
            raise StorageNotFound("Object 'a.txt' does not exist.", path="a.txt")

        with pytest.raises(typer.Exit):
            run_and_exit(failing_func)

        captured = capsys.readouterr()
        assert "Error: Object 'a.txt' does not exist. [object-not-found]" in captured.err

    def test_mock_function_called_once(self):
        """Test that the wrapped function is invoked exactly once."""
        func = Mock(return_value="result")
        assert run_and_exit(func) == "result"
        func.assert_called_once_with()

    def test_unmapped_exception_uses_fallback(self):
        """Test that unexpected exceptions exit with the fallback code."""
        def failing_func():
            raise RuntimeError("unexpected")

        with pytest.raises(typer.Exit) as exc_info:
            run_and_exit(failing_func)
        assert exc_info.value.exit_code == 3
