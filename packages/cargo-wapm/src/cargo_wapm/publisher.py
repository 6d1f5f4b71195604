# SPDX-License-Identifier: MIT
"""Hand a staged package over to the wapm CLI for upload."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class PublishError(Exception):
    """Raised when the wapm CLI cannot be run or reports a failure.

    Attributes:
        returncode: Exit code of the wapm CLI, if it ran at all
    """

    def __init__(self, message: str, returncode: Optional[int] = None):
        self.returncode = returncode
        super().__init__(message)


@dataclass
class WapmPublisher:
    """Publishes by running `wapm publish` inside the staging directory."""

    executable: str = "wapm"

    def command(self, dry_run: bool = False) -> list[str]:
        cmd = [self.executable, "publish"]
        if dry_run:
            cmd.append("--dry-run")
        return cmd

    def publish(self, manifest_path: Path, dry_run: bool = False) -> None:
        """Upload the package described by ``manifest_path``.

        Raises:
            PublishError: If wapm is not installed or exits unsuccessfully
        """
        cmd = self.command(dry_run)
        cwd = Path(manifest_path).parent
        logger.debug("Publishing with the wapm CLI: %s (in %s)", " ".join(cmd), cwd)

        try:
            result = subprocess.run(cmd, cwd=cwd, check=False)
        except FileNotFoundError:
            raise PublishError(f'Unable to start "{self.executable}". Is it installed?') from None

        if result.returncode != 0:
            raise PublishError(
                f"The wapm CLI exited unsuccessfully with exit code {result.returncode}",
                returncode=result.returncode,
            )
