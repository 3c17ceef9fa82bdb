from __future__ import annotations
import logging
import os
import subprocess
from typing import Any, Callable, Dict, List, Optional

from mansplain.core.errors import EncodingError, NotFound, ToolUnavailable

logger = logging.getLogger(__name__)

# Plain text: no pager, no SGR colour codes, no overstrike formatting
MAN_ENV: Dict[str, str] = {
    "MANPAGER": "cat",
    "PAGER": "cat",
    "GROFF_NO_SGR": "1",
    "MAN_KEEP_FORMATTING": "",
    "LC_ALL": "C.UTF-8",
    "LANG": "C.UTF-8",
}

Runner = Callable[..., Any]


class ManPageReader:
    """
    Reads a manual page by running ``man [section] command``.
    ``runner`` follows the ``subprocess.run`` signature; when omitted,
    ``subprocess.run`` is used.
    """

    def __init__(self, executable: str = "man", runner: Optional[Runner] = None):
        self.executable = executable
        self._runner = runner

    def argv(self, command: str, section: Optional[str] = None) -> List[str]:
        args = [self.executable]
        if section:
            args.append(section)
        args.append(command)
        return args

    def fetch(self, command: str, section: Optional[str] = None) -> str:
        argv = self.argv(command, section)
        run = self._runner or subprocess.run
        logger.debug("Running %s", " ".join(argv))
        try:
            proc = run(
                argv,
                capture_output=True,
                check=False,
                env={**os.environ, **MAN_ENV},
            )
        except OSError as e:
            raise ToolUnavailable(self.executable, str(e)) from e

        if proc.returncode != 0:
            stderr = (proc.stderr or b"").decode("utf-8", errors="replace")
            raise NotFound(command, stderr)

        try:
            return (proc.stdout or b"").decode("utf-8")
        except UnicodeDecodeError as e:
            raise EncodingError(command) from e
