"""
Shared runner for the ``test``, ``lint`` and ``format`` entry points.

Each wrapper builds an argument list and hands it here so the tool's
exit status becomes the exit status of the console script.
"""

from __future__ import annotations

import subprocess
from collections.abc import Sequence


def run(cmd: Sequence[str]) -> None:
    """
    Run ``cmd`` in the current interpreter's environment and exit with its code.

    Example:
        >>> run([sys.executable, "-m", "ruff", "check", "ruleflow"])
    """
    result = subprocess.run(cmd, check=False)
    raise SystemExit(result.returncode)
