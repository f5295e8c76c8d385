from __future__ import annotations

from dataclasses import dataclass, field
import time
from typing import Any


@dataclass(frozen=True)
class StepTiming:
    name: str
    seconds: float


@dataclass
class PipelineTimings:
    """Wall-clock duration of each pipeline stage, in the order the stages ran."""

    steps: list[StepTiming] = field(default_factory=list)

    def add_step(self, name: str, seconds: float) -> None:
        self.steps.append(StepTiming(name=str(name), seconds=max(0.0, float(seconds))))

    def pairs(self) -> list[tuple[str, float]]:
        return [(s.name, s.seconds) for s in self.steps]

    def names(self) -> list[str]:
        return [s.name for s in self.steps]

    def get_step(self, name: str) -> float | None:
        """Summed duration of every step called ``name``, or ``None`` if it never ran."""

        matches = [s.seconds for s in self.steps if s.name == name]
        if not matches:
            return None
        return float(sum(matches))

    @property
    def total(self) -> float:
        return float(sum(s.seconds for s in self.steps))

    def summary_lines(self) -> list[str]:
        total = self.total
        lines = ["Pipeline timing summary:", "-" * 60]
        for step in self.steps:
            pct = (step.seconds / total * 100.0) if total > 0 else 0.0
            lines.append(f"{step.name:<30} {step.seconds * 1000.0:>12.3f}ms ({pct:>5.1f}%)")
        lines.append("-" * 60)
        lines.append(f"{'Total':<30} {total * 1000.0:>12.3f}ms")
        return lines

    def to_json_dict(self) -> dict[str, Any]:
        return {
            "steps": [{"name": s.name, "seconds": s.seconds} for s in self.steps],
            "total_seconds": self.total,
        }


class Timer:
    """Context manager that appends its elapsed time to ``timings`` on exit, even on error."""

    def __init__(self, name: str, timings: PipelineTimings | None = None) -> None:
        self.name = name
        self.timings = timings
        self.seconds: float | None = None
        self._start: float | None = None

    def start(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def stop(self) -> float:
        if self._start is None:
            raise RuntimeError(f"timer {self.name!r} was never started")
        self.seconds = time.perf_counter() - self._start
        self._start = None
        if self.timings is not None:
            self.timings.add_step(self.name, self.seconds)
        return self.seconds

    def __enter__(self) -> "Timer":
        return self.start()

    def __exit__(self, *exc: object) -> None:
        self.stop()
