from __future__ import annotations

import atexit
import random
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .errors import WorkspaceError


@dataclass
class ScratchWorkspace:
    """
    Job-exclusive scratch directory holding sanitized inputs, the merged
    xinteract output and the ProteinProphet artifacts.
    """
    path: Path
    _removed: bool = field(default=False, repr=False)

    @classmethod
    def create(
        cls,
        root: Optional[Path] = None,
        prefix: str = "PPinference",
        max_attempts: int = 100,
    ) -> "ScratchWorkspace":
        root = Path(root) if root is not None else Path(tempfile.gettempdir())
        try:
            root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise WorkspaceError(f"Cannot create workspace root {root}: {e}") from e

        rng = random.SystemRandom()
        for _ in range(max(1, int(max_attempts))):
            candidate = root / f"{prefix}{rng.randrange(2**31 - 1):06d}"
            if candidate.exists():
                continue
            try:
                # exist_ok=False closes the window between the check and the mkdir
                candidate.mkdir(parents=False, exist_ok=False)
            except FileExistsError:
                continue
            except OSError as e:
                raise WorkspaceError(f"Cannot create workspace {candidate}: {e}") from e
            print(f"[ScratchWorkspace] Created {candidate}")
            return cls(path=candidate)

        raise WorkspaceError(
            f"No free workspace name under {root} after {max_attempts} attempts (prefix={prefix!r})"
        )

    def remove(self) -> None:
        """Best-effort removal; failures are reported, never raised."""
        if self._removed:
            return
        if not self.path.exists():
            self._removed = True
            return
        try:
            shutil.rmtree(self.path)
            self._removed = True
            print(f"[ScratchWorkspace] Removed {self.path}")
        except OSError as e:
            print(f"[ScratchWorkspace] WARNING: could not remove {self.path}: {e}")

    def remove_at_exit(self) -> None:
        atexit.register(self.remove)
