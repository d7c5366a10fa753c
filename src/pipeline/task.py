"""Lightweight task orchestration utilities."""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, List, Sequence

from utils.io import logger


@dataclass
class Task:
    """One pipeline artifact: a callable plus the files it reads and writes.

    ``outputs`` are paths relative to ``base``; after ``run`` every one of
    them must exist, otherwise the task fails.
    """

    name: str
    run: Callable[[], object]
    layer: str | None = None
    inputs: Sequence[str] | None = None
    outputs: Sequence[str] | None = None
    requires: Iterable["Task"] | None = None
    base: Path | None = None
    _has_run: bool = field(default=False, init=False, repr=False)

    @property
    def has_run(self) -> bool:
        return self._has_run

    def missing_outputs(self) -> List[Path]:
        base = self.base or Path.cwd()
        return [base / output for output in self.outputs or [] if not (base / output).exists()]

    def execute(self) -> None:
        if self._has_run:
            logger.debug("Skipping task %s (already completed)", self.name)
            return
        for dependency in self.requires or []:
            dependency.execute()

        logger.info("Running task: %s [%s]", self.name, self.layer or "-")
        started = time.perf_counter()
        self.run()
        missing = self.missing_outputs()
        if missing:
            raise FileNotFoundError(
                f"Task '{self.name}' finished without writing: {[str(p) for p in missing]}"
            )
        self._has_run = True
        logger.info("Finished task: %s in %.2fs", self.name, time.perf_counter() - started)

    def __call__(self) -> None:
        self.execute()


__all__ = ["Task"]
