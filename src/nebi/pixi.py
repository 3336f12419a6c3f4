"""Delegation to the pixi executable.

nebi never interprets pixi's behaviour; it only locates the binary, runs it
in the right directory and passes the exit code through.
"""

from pathlib import Path
from typing import List, Optional
import logging
import shutil
import subprocess

from .constants import MANIFEST_FILE
from .errors import NebiError, PixiNotFoundError

logger = logging.getLogger(__name__)


def find_pixi() -> str:
    """Absolute path of pixi on PATH."""
    path = shutil.which("pixi")
    if not path:
        raise PixiNotFoundError()
    return path


def pixi_init(directory: Path) -> None:
    """Run ``pixi init`` in ``directory`` to create a pixi.toml.

    Raises:
        PixiNotFoundError: pixi is not installed
        NebiError: pixi init exited non-zero or did not create the manifest
    """
    pixi = find_pixi()
    logger.debug("Running %s init in %s", pixi, directory)
    result = subprocess.run(
        [pixi, "init"],
        cwd=str(directory),
        capture_output=True,
        text=True,
        check=False,
    )
    if result.returncode != 0:
        error_msg = result.stderr.strip() or result.stdout.strip()
        raise NebiError(f"pixi init failed in {directory}: {error_msg}")
    if not (directory / MANIFEST_FILE).exists():
        raise NebiError(f"pixi init did not create {MANIFEST_FILE} in {directory}")


def run_pixi(args: List[str], cwd: Optional[Path] = None) -> int:
    """Run pixi with inherited stdio and return its exit code."""
    pixi = find_pixi()
    logger.debug("Running %s %s (cwd=%s)", pixi, " ".join(args), cwd)
    try:
        return subprocess.run([pixi, *args], cwd=str(cwd) if cwd else None, check=False).returncode
    except KeyboardInterrupt:
        # SIGINT also reaches the pixi child process
        return 130
