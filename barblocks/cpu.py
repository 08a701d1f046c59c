"""CPU utilization, frequency and turbo boost statistics from procfs and sysfs."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from barblocks.blocks import BlockError, State

PROC_STAT_PATH = "/proc/stat"
PROC_CPUINFO_PATH = "/proc/cpuinfo"
CPU_BOOST_PATH = "/sys/devices/system/cpu/cpufreq/boost"
CPU_NO_TURBO_PATH = "/sys/devices/system/cpu/intel_pstate/no_turbo"

BOXCHARS = "▁▂▃▄▅▆▇█"

_U64_MAX = 2**64 - 1
_LEADING_LABEL = re.compile(r"^[^ \t\n\f\r]*")
_LEADING_NON_DIGITS = re.compile(r"^[^0-9]*")


def _parse_u64(text: str) -> int | None:
    if text.startswith("+"):
        text = text[1:]
    if not (text and text.isascii() and text.isdigit()):
        return None
    value = int(text)
    return value if value <= _U64_MAX else None


@dataclass(frozen=True)
class CpuTime:
    """Accumulated idle and busy jiffies of one CPU (or of all of them)."""

    idle: int
    non_idle: int

    def utilization(self, old: CpuTime) -> float:
        """Busy fraction, between 0 and 1, of the time elapsed since ``old``."""
        elapsed = (self.idle + self.non_idle) - (old.idle + old.non_idle)
        if elapsed == 0:
            return 0.0
        ratio = (self.non_idle - old.non_idle) / elapsed
        return min(max(ratio, 0.0), 1.0)


def parse_cpu_time(text: str) -> CpuTime | None:
    """Parse the counters of a ``/proc/stat`` cpu line (without its label)."""
    fields = text.split()
    if len(fields) < 7:
        return None
    values = [_parse_u64(field) for field in fields[:7]]
    if any(value is None for value in values):
        return None
    user, nice, system, idle, iowait, irq, softirq = values
    return CpuTime(idle=idle + iowait, non_idle=user + nice + system + irq + softirq)


def parse_proc_stat(text: str) -> tuple[CpuTime, list[CpuTime]]:
    """Return the total and the per-CPU times found in ``/proc/stat`` text."""
    total = None
    per_cpu = []
    for line in text.splitlines(keepends=True):
        data = _LEADING_LABEL.sub("", line, count=1)
        if line.startswith("cpu "):
            total = parse_cpu_time(data)
            if total is None:
                raise BlockError("failed to parse /proc/stat")
        elif line.startswith("cpu"):
            parsed = parse_cpu_time(data)
            if parsed is None:
                raise BlockError("failed to parse /proc/stat")
            per_cpu.append(parsed)
    if total is None:
        raise BlockError("failed to parse /proc/stat")
    return total, per_cpu


def parse_cpu_frequencies(text: str) -> list[float]:
    """Return every ``cpu MHz`` value of ``/proc/cpuinfo`` text, in Hz."""
    freqs = []
    for line in text.splitlines():
        if not line.startswith("cpu MHz"):
            continue
        value = _LEADING_NON_DIGITS.sub("", line.rstrip(), count=1)
        try:
            freqs.append(float(value) * 1e6)
        except ValueError as err:
            raise BlockError("failed to parse /proc/cpuinfo") from err
    return freqs


def utilization_barchart(utilizations: list[float]) -> str:
    """One block character per CPU, taller for busier CPUs."""
    chars = []
    for utilization in utilizations:
        index = 0 if math.isnan(utilization) else int(7.5 * utilization)
        chars.append(BOXCHARS[min(max(index, 0), len(BOXCHARS) - 1)])
    return "".join(chars)


def utilization_state(utilization: float) -> State:
    """The widget state for an average utilization between 0 and 1."""
    if utilization > 0.9:
        return State.CRITICAL
    if utilization > 0.6:
        return State.WARNING
    if utilization > 0.3:
        return State.INFO
    return State.IDLE


def _read_optional(path: str | Path) -> str | None:
    try:
        return Path(path).read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError):
        return None


def boost_status(
    boost_path: str | Path = CPU_BOOST_PATH,
    no_turbo_path: str | Path = CPU_NO_TURBO_PATH,
) -> bool | None:
    """Whether turbo boost is on, or None if the kernel does not say."""
    boost = _read_optional(boost_path)
    if boost is not None:
        return boost.startswith("1")
    no_turbo = _read_optional(no_turbo_path)
    if no_turbo is not None:
        return no_turbo.startswith("0")
    return None


def read_proc_stat(path: str | Path = PROC_STAT_PATH) -> tuple[CpuTime, list[CpuTime]]:
    """Read and parse ``/proc/stat``."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as err:
        raise BlockError("failed to read /proc/stat") from err
    return parse_proc_stat(text)


def read_frequencies(path: str | Path = PROC_CPUINFO_PATH) -> list[float]:
    """Read the CPU frequencies, in Hz, from ``/proc/cpuinfo``."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as err:
        raise BlockError("failed to read /proc/cpuinfo") from err
    return parse_cpu_frequencies(text)


class CpuSampler:
    """Computes utilization between successive samples of ``/proc/stat``."""

    def __init__(
        self,
        stat_path: str | Path = PROC_STAT_PATH,
        cpuinfo_path: str | Path = PROC_CPUINFO_PATH,
        boost_path: str | Path = CPU_BOOST_PATH,
        no_turbo_path: str | Path = CPU_NO_TURBO_PATH,
    ) -> None:
        self.stat_path = stat_path
        self.cpuinfo_path = cpuinfo_path
        self.boost_path = boost_path
        self.no_turbo_path = no_turbo_path
        self._total, self._cores = read_proc_stat(stat_path)

    def sample(self) -> dict[str, Any]:
        """Take a new sample and return the block's placeholder values.

        Utilizations are in percent, frequencies in Hz; ``boost`` is present
        only when the kernel reports it.
        """
        freqs = read_frequencies(self.cpuinfo_path)
        freq_avg = sum(freqs) / len(freqs) if freqs else math.nan

        total, cores = read_proc_stat(self.stat_path)
        if len(cores) != len(self._cores):
            raise BlockError("new cputime length is incorrect")
        utilization_avg = total.utilization(self._total)
        utilizations = [new.utilization(old) for new, old in zip(cores, self._cores)]
        self._total, self._cores = total, cores

        values: dict[str, Any] = {
            "barchart": utilization_barchart(utilizations),
            "frequency": freq_avg,
            "utilization": utilization_avg * 100.0,
        }
        boost = boost_status(self.boost_path, self.no_turbo_path)
        if boost is not None:
            values["boost"] = boost
        for number, freq in enumerate(freqs, start=1):
            values[f"frequency{number}"] = freq
        for number, utilization in enumerate(utilizations, start=1):
            values[f"utilization{number}"] = utilization * 100.0
        return values