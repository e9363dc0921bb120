"""sparktop - Main Textual application."""

import argparse
import logging
from pathlib import Path

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal
from textual.css.query import NoMatches
from textual.widgets import DataTable, Footer, Sparkline, Static

from sparktop.config import Config, default_log_file
from sparktop.logging_setup import configure_logging
from sparktop.models import SortKey, TemperatureMode
from sparktop.monitor import Dashboard
from sparktop.views import NetworkView, ProcessView, SensorView

logger = logging.getLogger(__name__)


class NetworkPanel(Container):
    """RX and TX sparklines with their total and rate titles."""

    DEFAULT_CSS = """
    NetworkPanel {
        height: 10;
        border: solid $primary;
    }

    NetworkPanel Sparkline {
        height: 2;
    }
    """

    def compose(self) -> ComposeResult:
        """Compose the network panel layout."""
        yield Static("", id="rx-title")
        yield Sparkline([], summary_function=max, id="rx-spark")
        yield Static("", id="tx-title")
        yield Sparkline([], summary_function=max, id="tx-spark")

    def update_view(self, view: NetworkView) -> None:
        """Update the panel from a network view."""
        self.border_title = view.title
        rx_total, tx_total = view.total_titles
        rx_rate, tx_rate = view.rate_titles
        self.query_one("#rx-title", Static).update(f"{rx_total}  {rx_rate}")
        self.query_one("#tx-title", Static).update(f"{tx_total}  {tx_rate}")
        self.query_one("#rx-spark", Sparkline).data = view.recv_series
        self.query_one("#tx-spark", Sparkline).data = view.sent_series


class TemperaturePanel(Static):
    """Sensor labels with their temperatures, coloured past the threshold."""

    DEFAULT_CSS = """
    TemperaturePanel {
        width: 40;
        height: 10;
        border: solid $primary;
    }
    """

    def update_view(self, view: SensorView) -> None:
        """Update the panel from a sensor view."""
        self.border_title = view.title
        if not view.readings:
            self.update("No sensors")
            return
        lines = []
        for label, value, alert in view.readings:
            color = "red" if alert else "green"
            lines.append(f"{label:<30.30} [{color}]{value}[/{color}]")
        self.update("\n".join(lines))


class ProcessTable(Container):
    """Container for the process data table."""

    DEFAULT_CSS = """
    ProcessTable {
        height: 1fr;
        border: solid $primary;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize ProcessTable."""
        super().__init__(*args, **kwargs)
        self._header: list[str] = []
        self._unique_col = 1
        self._grouped = True

    def compose(self) -> ComposeResult:
        """Compose the process table."""
        yield DataTable(id="process-table")

    def on_mount(self) -> None:
        """Initialize the data table when mounted."""
        table = self.query_one("#process-table", DataTable)
        table.cursor_type = "row"

    def selected_target(self) -> tuple[str, bool] | None:
        """
        Return the unique cell of the highlighted row as drawn, with its view mode.

        None when the table is empty.
        """
        table = self.query_one("#process-table", DataTable)
        if table.row_count == 0:
            return None
        row = table.get_row_at(table.cursor_row)
        return str(row[self._unique_col]), self._grouped

    def update_view(self, view: ProcessView) -> None:
        """
        Replace the table contents with a process view.

        Columns are rebuilt only when the header changes (sort marker or
        grouping); the cursor row is kept across refreshes.
        """
        self.border_title = view.title
        table = self.query_one("#process-table", DataTable)
        cursor_row = table.cursor_row

        if view.header != self._header:
            table.clear(columns=True)
            table.add_columns(*view.header)
            self._header = list(view.header)
        else:
            table.clear()

        table.add_rows(view.rows)
        self._unique_col = view.unique_col
        self._grouped = view.grouped
        if view.rows:
            table.move_cursor(row=min(cursor_row, len(view.rows) - 1))


class SparktopApp(App):
    """Main sparktop application."""

    TITLE = "sparktop"
    SUB_TITLE = "Terminal System Monitor"

    CSS = """
    Screen {
        layout: vertical;
    }

    Horizontal {
        height: auto;
    }

    NetworkPanel {
        width: 1fr;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("c", "sort('c')", "Sort CPU"),
        ("m", "sort('m')", "Sort Mem"),
        ("p", "sort('p')", "Sort PID"),
        Binding("tab", "toggle_group", "Group", priority=True),
        ("k", "kill", "Kill"),
    ]

    def __init__(self, config: Config | None = None, dashboard: Dashboard | None = None) -> None:
        """Initialize the SparktopApp."""
        super().__init__()
        self._config = config or Config()
        self._dashboard = dashboard or Dashboard(self._config)

    @property
    def dashboard(self) -> Dashboard:
        """The dashboard whose panels this app renders."""
        return self._dashboard

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield Horizontal(
            NetworkPanel(id="network"),
            TemperaturePanel(id="temperatures"),
        )
        yield ProcessTable(id="processes")
        yield Footer()

    def on_mount(self) -> None:
        """Start sampling and the render timer when the app is mounted."""
        self._dashboard.start()
        self._refresh_views()
        self.set_interval(self._config.refresh_interval, self._refresh_views)

    def _refresh_views(self) -> None:
        """Compose a frame from the published state and push it to the widgets."""
        views = self._dashboard.snapshot()
        try:
            self.query_one(NetworkPanel).update_view(views["network"])
            self.query_one(TemperaturePanel).update_view(views["sensors"])
            self.query_one(ProcessTable).update_view(views["processes"])
        except NoMatches:
            pass  # Widgets not mounted yet

    def action_sort(self, key: str) -> None:
        """Handle sort action - switch the process sort key."""
        sort_key = SortKey(key)
        if self._dashboard.change_sort(sort_key):
            self._refresh_views()
            self.notify(f"Sort: {sort_key.name}")

    def action_toggle_group(self) -> None:
        """Handle group action - toggle grouping processes by command."""
        grouped = self._dashboard.toggle_grouping()
        self._refresh_views()
        self.notify("Grouped by command" if grouped else "Individual processes")

    def action_kill(self) -> None:
        """Handle kill action - terminate the selected process or group."""
        selected = self.query_one(ProcessTable).selected_target()
        if selected is None:
            return
        target, grouped = selected
        logger.info("kill requested for %s %s", "command" if grouped else "pid", target)
        self._dashboard.kill(target, grouped)

    def action_quit(self) -> None:
        """Handle quit action with graceful cleanup."""
        self._dashboard.stop()
        self.exit()


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line parser."""
    parser = argparse.ArgumentParser(prog="sparktop", description="Terminal system monitor")
    parser.add_argument("-f", "--fahrenheit", action="store_true", help="show temperatures in Fahrenheit")
    parser.add_argument("--ungrouped", action="store_true", help="start with individual processes")
    parser.add_argument("--ps", action="store_true", help="read processes from the ps command")
    parser.add_argument(
        "--exclude-interface",
        action="append",
        metavar="NAME",
        help="network interface left out of the totals (repeatable, default: tun0)",
    )
    parser.add_argument("--network-interval", type=float, default=1.0, metavar="SECONDS")
    parser.add_argument("--process-interval", type=float, default=1.0, metavar="SECONDS")
    parser.add_argument("--sensor-interval", type=float, default=5.0, metavar="SECONDS")
    parser.add_argument("--threshold", type=int, default=80, help="temperature alert threshold in Celsius")
    parser.add_argument("--log-file", type=Path, default=None)
    parser.add_argument("-v", "--verbose", action="store_true", help="log debug messages")
    return parser


def config_from_args(args: argparse.Namespace) -> Config:
    """Turn parsed flags into a validated Config. Raises ValueError on bad values."""
    excluded = tuple(args.exclude_interface) if args.exclude_interface else ("tun0",)
    return Config(
        network_interval=args.network_interval,
        process_interval=args.process_interval,
        sensor_interval=args.sensor_interval,
        excluded_interfaces=excluded,
        temperature_mode=TemperatureMode.FAHRENHEIT if args.fahrenheit else TemperatureMode.CELSIUS,
        temperature_threshold=args.threshold,
        grouped=not args.ungrouped,
        process_backend="ps" if args.ps else "psutil",
        log_file=args.log_file or default_log_file(),
        verbose=args.verbose,
    )


def main(argv: list[str] | None = None) -> None:
    """Entry point for sparktop application."""
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        config = config_from_args(args)
    except ValueError as exc:
        parser.error(str(exc))
    configure_logging(config.log_file, verbose=config.verbose)
    app = SparktopApp(config)
    app.run()


if __name__ == "__main__":
    main()
