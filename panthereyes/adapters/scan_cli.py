"""
Scan CLI Adapter — wraps the external `panthereyes-cli` scanner.

Contract: the CLI prints exactly one JSON document on stdout. A non-zero exit
or output that is not JSON is a hard failure (ScanCliError).
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import BaseModel

from panthereyes.core.exceptions import PantherEyesError
from panthereyes.models.rule_models import RuleTarget

logger = logging.getLogger("panthereyes.scan")

ScanPhase = Literal["static", "non-static"]

DEFAULT_SCAN_COMMAND: tuple[str, ...] = ("cargo", "run", "-p", "panthereyes-cli", "--")


class ScanCliError(PantherEyesError):
    """The scan CLI could not be spawned, exited non-zero, or printed invalid JSON."""

    def __init__(self, message: str, stderr: str = "", exit_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.stderr = stderr
        self.exit_code = exit_code


class CliCommandPreview(BaseModel):
    command: list[str]
    description: str


class PantherEyesCliAdapter:
    def __init__(self, command: Optional[list[str]] = None, cwd: Optional[str | Path] = None) -> None:
        self.command = list(command) if command else list(DEFAULT_SCAN_COMMAND)
        self.cwd = Path(cwd) if cwd else None

    def preview_scan_command(self, env: str, target: RuleTarget | str, root_dir: str | Path) -> CliCommandPreview:
        target_value = RuleTarget(target).value
        return CliCommandPreview(
            command=[*self.command, "scan", "--target", target_value, str(root_dir)],
            description=f"Preview command for {target_value} scan in env {env}",
        )

    def scan_arguments(self, root_dir: str | Path, target: RuleTarget | str, phase: ScanPhase) -> list[str]:
        return [
            *self.command,
            "--json",
            "scan",
            "--phase",
            phase,
            "--target",
            RuleTarget(target).value,
            str(root_dir),
        ]

    async def run_scan(
        self,
        root_dir: str | Path,
        target: RuleTarget | str,
        phase: ScanPhase = "static",
    ) -> Any:
        """Run the scanner and return its parsed JSON document."""
        args = self.scan_arguments(root_dir, target, phase)
        logger.info(f"Running scan: {' '.join(args)}")

        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(self.cwd) if self.cwd else os.getcwd(),
            )
        except OSError as e:
            raise ScanCliError(
                f"Failed to spawn '{args[0]}'. Ensure it is installed and available in PATH. {e}"
            ) from e

        stdout_bytes, stderr_bytes = await process.communicate()
        stdout = stdout_bytes.decode("utf-8", errors="replace")
        stderr = stderr_bytes.decode("utf-8", errors="replace")

        if process.returncode != 0:
            raise ScanCliError(
                f"panthereyes.scan failed ({args[0]} exit {process.returncode}). "
                f"stderr: {stderr.strip() or '<empty>'}",
                stderr=stderr,
                exit_code=process.returncode,
            )

        try:
            return json.loads(stdout)
        except json.JSONDecodeError as e:
            raise ScanCliError(
                f"panthereyes.scan returned invalid JSON: {e}. stdout: {stdout[:500]}",
                stderr=stderr,
                exit_code=process.returncode,
            ) from e
