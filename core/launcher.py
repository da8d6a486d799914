"""
Game process launching for GameShelf.

Starts a game detached from GameShelf, in the executable's own folder.
"""

from __future__ import annotations

import logging
import subprocess
import sys
from pathlib import Path
from typing import Optional

from .errors import ExecutableNotFoundError, SpawnFailedError

logger = logging.getLogger(__name__)


def parse_args(args: str) -> list[str]:
    """
    Split a launch argument string into tokens.

    Single or double quotes group a span (quotes themselves are dropped);
    there is no escaping inside a quoted span. Only plain spaces separate
    tokens; tabs and newlines stay part of the token.
    """
    tokens: list[str] = []
    current: list[str] = []
    quote: Optional[str] = None

    for ch in args:
        if quote is None and ch in ("'", '"'):
            quote = ch
        elif quote is not None and ch == quote:
            quote = None
        elif quote is None and ch == " ":
            if current:
                tokens.append("".join(current))
                current = []
        else:
            current.append(ch)

    if current:
        tokens.append("".join(current))
    return tokens


def _detach_kwargs() -> dict:
    if sys.platform == "win32":
        flags = subprocess.DETACHED_PROCESS | subprocess.CREATE_NEW_PROCESS_GROUP
        return {"creationflags": flags}
    return {"start_new_session": True}


def launch_game(executable_path: Path, launch_args: Optional[str] = None) -> subprocess.Popen:
    """
    Start a game and return its process without waiting for it.

    Raises ExecutableNotFoundError if the file is gone and SpawnFailedError
    if the OS refuses to start it (including permission problems).
    """
    executable_path = Path(executable_path)
    if not executable_path.exists():
        raise ExecutableNotFoundError(executable_path)

    argv = [str(executable_path)]
    if launch_args:
        argv.extend(parse_args(launch_args))

    try:
        proc = subprocess.Popen(
            argv,
            cwd=str(executable_path.parent),
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            **_detach_kwargs(),
        )
    except (OSError, ValueError) as e:
        raise SpawnFailedError(executable_path, str(e)) from e

    logger.info(f"Launched game: {executable_path} (PID: {getattr(proc, 'pid', '?')})")
    return proc
