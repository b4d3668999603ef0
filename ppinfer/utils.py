from __future__ import annotations

import functools
import os
import time
from pathlib import Path
from typing import Callable


def ensure_dir(p: Path) -> None:
    p.mkdir(parents=True, exist_ok=True)


def env_flag(name: str, default: bool = False) -> bool:
    v = os.environ.get(name, "")
    if v == "":
        return default
    return v.lower() in {"1", "true", "yes", "y", "on"}


def write_cmd(commands_sh: Path, cmd_line: str) -> None:
    """Append one command line to a reproducible commands.sh."""
    ensure_dir(commands_sh.parent)
    if not commands_sh.exists():
        commands_sh.write_text("#!/usr/bin/env bash\nset -euo pipefail\n\n", encoding="utf-8")
    with commands_sh.open("a", encoding="utf-8") as f:
        f.write(cmd_line.rstrip() + "\n")


def timing(stage: str) -> Callable[[Callable[..., bool]], Callable[..., bool]]:
    """
    Wrap a stage method that returns True when its tool ran. Prints the wall
    time under the owner's class tag, or that the stage was skipped.
    """

    def decorator(func: Callable[..., bool]) -> Callable[..., bool]:
        @functools.wraps(func)
        def wrapper(self, *args, **kwargs) -> bool:
            tag = type(self).__name__
            print(f"[{tag}] Stage {stage}: start")
            t0 = time.monotonic()
            ran = func(self, *args, **kwargs)
            elapsed = time.monotonic() - t0
            if ran:
                print(f"[{tag}] Stage {stage}: done in {elapsed:.2f} sec")
            else:
                print(f"[{tag}] Stage {stage}: not run")
            return ran

        return wrapper

    return decorator
