"""Launching an interactive subshell in a directory."""

import logging
import shutil
import subprocess
import sys
from pathlib import Path
from typing import List, Mapping, Optional, Tuple, Union


logger = logging.getLogger(__name__)


def default_shell(env: Mapping[str, str], platform: Optional[str] = None) -> Tuple[str, List[str]]:
    """Pick the user's interactive shell.

    Args:
        env: Environment variables to consult.
        platform: ``sys.platform`` value; defaults to the running platform.

    Returns:
        Tuple of (executable, arguments).
    """
    platform = platform or sys.platform
    if not platform.startswith("win"):
        shell = env.get("SHELL")
        if shell:
            return shell, ["-l"]
        return "/bin/sh", ["-l"]

    path = env.get("PATH")
    for candidate in ("pwsh.exe", "powershell.exe"):
        found = shutil.which(candidate, path=path)
        if found:
            return found, ["-NoLogo"]
    return env.get("COMSPEC", "cmd.exe"), []


def open_subshell(directory: Union[str, Path], env: Mapping[str, str]) -> int:
    """Run an interactive shell in ``directory`` and wait for it to exit.

    Args:
        directory: Working directory of the shell.
        env: Environment passed to the shell.

    Returns:
        Exit status of the shell.

    Raises:
        NotADirectoryError: If ``directory`` is not a directory.
    """
    directory = Path(directory).resolve()
    if not directory.is_dir():
        raise NotADirectoryError(f"Not a directory: {directory}")

    shell, args = default_shell(env)
    logger.info(f"Starting {shell} in {directory}")
    completed = subprocess.run([shell, *args], cwd=str(directory), env=dict(env))
    return completed.returncode
