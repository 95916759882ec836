"""Console output formatting utilities for vmbuild."""

from __future__ import annotations

import sys
from typing import Optional

from ..model import PipelineResult


class Console:
    """Centralized console output formatting."""

    def __init__(self, debug: bool = False):
        """
        Initialize console formatter.

        Args:
            debug: If True, show detailed output including stack traces
        """
        self.debug = debug

    def print_header(self, title: str) -> None:
        """Print a section header."""
        print(f"\n{title}")
        print("-" * len(title))

    def print_run_started(
        self,
        target: str,
        pipeline: str,
        step_count: int,
    ) -> None:
        """Print run start information."""
        print("\nRUN STARTED")
        print(f"Target: {target}")
        print(f"Pipeline: {pipeline}")
        print(f"Steps: {step_count}")
        print()

    def print_plan_step(self, index: int, name: str, privilege: str, kind: str) -> None:
        """Print one line of the execution plan."""
        print(f"  {index + 1}. {name} [{privilege}] ({kind})")

    def print_step(self, name: str, privilege: str) -> None:
        """Print step start message."""
        print(f"\nSTEP: {name} [{privilege}]")

    def print_substep(self, name: str, cmd: str) -> None:
        print(f"  ▶ {name}: {cmd}")

    def print_success(self, name: str) -> None:
        """Print success message."""
        print("STATUS: success")

    def print_failure(
        self,
        name: str,
        reason: str,
        exit_code: Optional[int] = None,
        hint: Optional[str] = None,
    ) -> None:
        """
        Print failure message.

        Args:
            name: Step name
            reason: Failure reason/error message
            exit_code: Optional exit code
            hint: Optional hint for user
        """
        print(f"STEP FAILED: {name}")
        if exit_code is not None:
            print(f"Exit code: {exit_code}")
        if hint:
            print(f"Hint: {hint}")
        if self.debug:
            print(f"Error details: {reason}")
        else:
            error_line = reason.split("\n")[0] if reason else "Unknown error"
            print(f"Error: {error_line}")

    def print_results(self, result: PipelineResult) -> None:
        """Print the single terminal report for a run."""
        print("\n" + "=" * 40)
        print("RESULTS")
        print("=" * 40)
        for name in result.executed:
            failed = result.error is not None and getattr(result.error, "failed_step", None) == name
            print(f"  {name}: {'FAILED' if failed else 'SUCCESS'}")
        if result.ok:
            print("\nPipeline succeeded")
        else:
            print(f"\nPipeline failed: {result.error}")

    def print_error(
        self,
        title: str,
        message: str,
        details: Optional[list[str]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        """
        Print structured error message.

        Args:
            title: Error title
            message: Main error message
            details: Optional list of detail lines
            suggestion: Optional suggestion for user
        """
        print(f"\nERROR: {title}", file=sys.stderr)
        print(f"{message}", file=sys.stderr)
        if details:
            for detail in details:
                print(f"  {detail}", file=sys.stderr)
        if suggestion:
            print(f"\n{suggestion}", file=sys.stderr)

    def print_exception(self, exc: Exception) -> None:
        """Print exception, with full traceback only in debug mode."""
        if self.debug:
            import traceback
            traceback.print_exc()
        else:
            print(f"Error: {exc}", file=sys.stderr)

    def print_info(self, message: str) -> None:
        """Print informational message."""
        print(message)

    def print_debug(self, message: str) -> None:
        """Print debug message (only if debug mode enabled)."""
        if self.debug:
            print(f"[DEBUG] {message}", file=sys.stderr)


# Global console instance (will be initialized by CLI)
_console: Optional[Console] = None


def get_console() -> Console:
    """Get the global console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def set_console(console: Console) -> None:
    """Set the global console instance."""
    global _console
    _console = console
