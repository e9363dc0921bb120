"""Process table sampling, grouping and sorting for sparktop."""

import logging
import subprocess
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Protocol

import psutil

from sparktop.models import ProcessRecord, SortKey

logger = logging.getLogger(__name__)

DOWN = "▼"

# ps (and /proc/<pid>/comm) cut command names to this many characters
COMM_LENGTH = 15


@dataclass(slots=True, frozen=True)
class ColumnLayout:
    """
    Column spans of a fixed-width ``ps`` listing.

    The widths are requested from ``ps`` through ``ps_format`` and the spans
    must match what that ``ps`` build emits for them. ``args`` is the start
    of the trailing full command line.
    """

    version: str
    pid: tuple[int, int]
    comm: tuple[int, int]
    pcpu: tuple[int, int]
    pmem: tuple[int, int]
    args: int

    def ps_format(self) -> str:
        """Build the ``-o`` argument that makes ``ps`` emit this layout."""
        widths = (
            ("pid", self.pid),
            ("comm", self.comm),
            ("pcpu", self.pcpu),
            ("pmem", self.pmem),
        )
        return ",".join(f"{name}:{end - start}" for name, (start, end) in widths) + ",args"


# procps-ng output for "pid:10,comm:50,pcpu:5,pmem:5,args"
PROCPS_LAYOUT = ColumnLayout(
    version="procps-ng",
    pid=(0, 10),
    comm=(11, 61),
    pcpu=(62, 67),
    pmem=(68, 73),
    args=74,
)


def _parse_number(convert: Callable[[str], float], text: str, field: str, line: str):
    """Convert one trimmed field, logging and returning zero when it is not a number."""
    try:
        return convert(text.strip())
    except ValueError:
        logger.warning("failed to convert %s: %r. line: %r", field, text, line)
        return convert("0")


def parse_process_line(line: str, layout: ColumnLayout = PROCPS_LAYOUT) -> ProcessRecord:
    """
    Parse one fixed-column line of a process listing.

    Non-numeric PID, CPU or memory fields are logged and default to zero.
    """
    if len(line) < layout.args:
        logger.warning("process line shorter than %s layout: %r", layout.version, line)

    return ProcessRecord(
        pid=_parse_number(int, line[slice(*layout.pid)], "PID", line),
        command_name=line[slice(*layout.comm)].strip(),
        full_command=line[layout.args :].strip(),
        cpu_percent=_parse_number(float, line[slice(*layout.pcpu)], "CPU usage", line),
        mem_percent=_parse_number(float, line[slice(*layout.pmem)], "Mem usage", line),
    )


def parse_process_listing(text: str, layout: ColumnLayout = PROCPS_LAYOUT) -> list[ProcessRecord]:
    """Parse a full listing, discarding the header line and blank lines."""
    lines = text.removesuffix("\n").split("\n")[1:]
    return [parse_process_line(line, layout) for line in lines if line.strip()]


class ProcessSource(Protocol):
    def processes(self) -> list[ProcessRecord]: ...


class PsutilProcessSource:
    """Structured process rows straight from psutil."""

    ATTRS = ["pid", "name", "cpu_percent", "memory_percent", "cmdline"]

    def processes(self) -> list[ProcessRecord]:
        """
        Collect a record for every running process.

        CPU is psutil's per-process percentage, where 100 means one full core.
        Processes that vanish or deny access mid-poll are skipped.
        """
        records: list[ProcessRecord] = []
        for proc in psutil.process_iter(attrs=self.ATTRS):
            try:
                info = proc.info
                name = info.get("name") or ""
                cmdline = info.get("cmdline") or []
                records.append(
                    ProcessRecord(
                        pid=info.get("pid", 0),
                        command_name=name,
                        full_command=" ".join(cmdline) if cmdline else name,
                        cpu_percent=info.get("cpu_percent") or 0.0,
                        mem_percent=info.get("memory_percent") or 0.0,
                    )
                )
            except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
                continue
        return records


class PsListingSource:
    """Process rows parsed from the fixed-column output of ``ps``."""

    def __init__(self, layout: ColumnLayout = PROCPS_LAYOUT) -> None:
        """Initialize PsListingSource with the layout to request and parse."""
        self._layout = layout

    @property
    def layout(self) -> ColumnLayout:
        """Column layout requested from and parsed out of ``ps``."""
        return self._layout

    def processes(self) -> list[ProcessRecord]:
        """Run ``ps`` once and parse its listing. Raises if ``ps`` fails."""
        result = subprocess.run(
            ["ps", "-axo", self._layout.ps_format()],
            capture_output=True,
            text=True,
            check=True,
        )
        return parse_process_listing(result.stdout, self._layout)


def group_processes(records: Iterable[ProcessRecord]) -> list[ProcessRecord]:
    """
    Group records by command name.

    ``pid`` becomes the member count and CPU and memory are summed per
    group. The order of the returned groups is unspecified.
    """
    groups: dict[str, ProcessRecord] = {}
    for proc in records:
        group = groups.get(proc.command_name)
        if group is None:
            groups[proc.command_name] = ProcessRecord(
                pid=1,
                command_name=proc.command_name,
                full_command="",
                cpu_percent=proc.cpu_percent,
                mem_percent=proc.mem_percent,
            )
        else:
            groups[proc.command_name] = ProcessRecord(
                pid=group.pid + 1,
                command_name=group.command_name,
                full_command="",
                cpu_percent=group.cpu_percent + proc.cpu_percent,
                mem_percent=group.mem_percent + proc.mem_percent,
            )
    return list(groups.values())


def sort_descending(key: SortKey, grouped: bool) -> bool:
    """
    Direction of a sort key.

    CPU and memory read highest first. PID sorts ascending, but a group
    count sorts descending so the largest groups come first.
    """
    if key is SortKey.PID:
        return grouped
    return True


def sort_processes(records: Iterable[ProcessRecord], key: SortKey, grouped: bool) -> list[ProcessRecord]:
    """Stable sort of records by key; ties keep their input order."""
    key_func = {
        SortKey.CPU: lambda p: p.cpu_percent,
        SortKey.MEM: lambda p: p.mem_percent,
        SortKey.PID: lambda p: p.pid,
    }
    return sorted(records, key=key_func[key], reverse=sort_descending(key, grouped))


def fields_to_strings(records: Sequence[ProcessRecord], grouped: bool) -> list[list[str]]:
    """Render records as table rows of [PID/Count, Command, CPU%, Mem%]."""
    return [
        [
            str(proc.pid),
            proc.command_name if grouped else proc.full_command,
            f"{proc.cpu_percent:.1f}".rjust(4),
            f"{proc.mem_percent:.1f}".rjust(4),
        ]
        for proc in records
    ]


def name_matches(name: str | None, target: str) -> bool:
    """
    Check a process name against a command shown in the grouped view.

    A target of exactly ``COMM_LENGTH`` characters may be a name the kernel
    cut short, so it also matches any longer name it starts.
    """
    if not name:
        return False
    if name == target:
        return True
    return len(target) == COMM_LENGTH and name.startswith(target)


def kill_processes(target: str, grouped: bool) -> None:
    """
    Terminate a process by PID, or every process named ``target`` when grouped.

    Failures are logged and otherwise ignored; the next sample reflects
    whatever actually happened.
    """
    try:
        if grouped:
            victims = [p for p in psutil.process_iter(attrs=["name"]) if name_matches(p.info.get("name"), target)]
        else:
            victims = [psutil.Process(int(target))]
    except (ValueError, psutil.Error):
        logger.warning("failed to look up process %r to kill", target, exc_info=True)
        return

    for proc in victims:
        try:
            proc.terminate()
        except psutil.Error:
            logger.warning("failed to kill process %d (%s)", proc.pid, target, exc_info=True)


class ProcessSampler:
    """Samples the process table and keeps the sorted table view."""

    TITLE = " Processes "

    def __init__(
        self,
        source: ProcessSource,
        cpu_count: int,
        sort_key: SortKey = SortKey.CPU,
        grouped: bool = True,
        killer: Callable[[str, bool], None] = kill_processes,
    ) -> None:
        """
        Initialize the ProcessSampler.

        Args:
            source: Provider of raw process records.
            cpu_count: Logical CPU count used to normalize CPU percentages.
            sort_key: Initial sort key.
            grouped: Start in the grouped-by-command view.
            killer: Action invoked by ``kill`` with the target and view mode.
        """
        self._source = source
        self._cpu_count = float(max(cpu_count, 1))
        self._killer = killer
        self.sort_key = sort_key
        self.show_grouped = grouped
        self.ungrouped_procs: list[ProcessRecord] = []
        self.grouped_procs: list[ProcessRecord] = []
        self.header: list[str] = []
        self.rows: list[list[str]] = []
        self.sort()

    @property
    def unique_col(self) -> int:
        """Column identifying a row: the command when grouped, else the PID."""
        return 1 if self.show_grouped else 0

    def update(self) -> None:
        """Take one sample. Source failures leave the published view as is."""
        try:
            records = self._source.processes()
        except Exception:
            logger.error("failed to retrieve processes", exc_info=True)
            return

        self.ungrouped_procs = [
            ProcessRecord(
                pid=proc.pid,
                command_name=proc.command_name,
                full_command=proc.full_command,
                cpu_percent=proc.cpu_percent / self._cpu_count,
                mem_percent=proc.mem_percent,
            )
            for proc in records
        ]
        self.grouped_procs = group_processes(self.ungrouped_procs)
        self.sort()

    def sort(self) -> None:
        """Re-sort the visible records and rebuild the header and rows."""
        header = ["Count", "Command", "CPU%", "Mem%"]
        if not self.show_grouped:
            header[0] = "PID"

        marked = {SortKey.PID: 0, SortKey.CPU: 2, SortKey.MEM: 3}[self.sort_key]
        header[marked] += DOWN

        if self.show_grouped:
            self.grouped_procs = sort_processes(self.grouped_procs, self.sort_key, grouped=True)
            visible = self.grouped_procs
        else:
            self.ungrouped_procs = sort_processes(self.ungrouped_procs, self.sort_key, grouped=False)
            visible = self.ungrouped_procs

        self.header = header
        self.rows = fields_to_strings(visible, self.show_grouped)

    def change_sort(self, key: SortKey) -> bool:
        """Switch the sort key. Returns True if the key changed."""
        if key is self.sort_key:
            return False
        self.sort_key = key
        self.sort()
        return True

    def toggle_grouping(self) -> bool:
        """Flip between grouped and ungrouped views and return the new mode."""
        self.show_grouped = not self.show_grouped
        self.sort()
        return self.show_grouped

    def kill(self, target: str, grouped: bool) -> None:
        """
        Terminate the PID (``grouped`` false) or command group named by ``target``.

        The caller passes the unique column of the row the user saw; the
        current ``rows`` may already be sorted differently.
        """
        if not target:
            return
        self._killer(target, grouped)
