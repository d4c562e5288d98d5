# rich-based TUI dashboard
# src/monitoring/dashboard_tui.py
"""
Terminal dashboard for the relay.

A lightweight terminal UI (using `rich`) that subscribes to the relay
EventBus and renders:

- Bot status:
    - Connected / disconnected
    - Position, dimension
    - Health and food

- Inventory:
    - Non-empty slots

- Nearby entities:
    - Name, type, distance (nearest first)

- Console:
    - The most recent console lines, coloured by severity

It is an operator convenience next to the browser dashboard and reads
the same events the WebSocket clients receive.
"""

from __future__ import annotations

import asyncio
from collections import deque
from typing import Deque, Dict, Optional

from rich.console import Console
from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from shared.types import BotStatus, ConsoleMessage, ConsoleSeverity
from .bus import EventBus
from .events import RelayEvent, RelayEventType


SEVERITY_STYLES: Dict[ConsoleSeverity, str] = {
    ConsoleSeverity.INFO: "white",
    ConsoleSeverity.ERROR: "bold red",
    ConsoleSeverity.SUCCESS: "green",
    ConsoleSeverity.WARN: "yellow",
    ConsoleSeverity.SYSTEM: "cyan",
    ConsoleSeverity.BOT: "magenta",
    ConsoleSeverity.SERVER: "blue",
}


# ============================================================
# TUI Dashboard
# ============================================================

class TuiDashboard:
    """
    Live terminal dashboard bound to an EventBus.

    It keeps the latest BotStatus and a bounded tail of console lines,
    which are rendered periodically via rich.
    """

    def __init__(
        self,
        bus: EventBus,
        *,
        console_lines: int = 15,
        console: Optional[Console] = None,
    ) -> None:
        self._bus = bus
        self._console = console or Console()
        self._status = BotStatus()
        self._lines: Deque[ConsoleMessage] = deque(maxlen=console_lines)

        self._bus.subscribe(self._on_event)

    @property
    def status(self) -> BotStatus:
        return self._status

    @property
    def lines(self) -> list:
        return list(self._lines)

    def close(self) -> None:
        self._bus.unsubscribe(self._on_event)

    # --------------------------------------------------------
    # Event handler
    # --------------------------------------------------------

    def _on_event(self, event: RelayEvent) -> None:
        """Update dashboard state. Must stay cheap and non-blocking."""
        if event.event_type is RelayEventType.STATUS:
            self._status = event.data  # type: ignore[assignment]
        elif event.event_type is RelayEventType.CONSOLE:
            self._lines.append(event.data)  # type: ignore[arg-type]

    # --------------------------------------------------------
    # Rendering helpers
    # --------------------------------------------------------

    def _render_status_panel(self) -> Panel:
        st = self._status
        txt = Text()
        txt.append("State: ", style="bold")
        if st.connected:
            txt.append("connected\n", style="green")
        else:
            txt.append("disconnected\n", style="red")
        pos = st.position
        txt.append("Position: ", style="bold")
        txt.append(f"{pos.get('x', 0)}, {pos.get('y', 0)}, {pos.get('z', 0)}\n")
        txt.append("Dimension: ", style="bold")
        txt.append(f"{st.dimension}\n")
        txt.append("Health: ", style="bold")
        txt.append(f"{st.health}  ")
        txt.append("Food: ", style="bold")
        txt.append(f"{st.food}")
        return Panel(txt, title="Bot Status", border_style="cyan")

    def _render_inventory_panel(self) -> Panel:
        table = Table(show_header=True, header_style="bold green")
        table.add_column("Slot", justify="right", width=5)
        table.add_column("Item")
        table.add_column("Count", justify="right")

        if self._status.inventory:
            for item in self._status.inventory:
                table.add_row(str(item.slot), item.name, str(item.count))
        else:
            table.add_row("-", "<empty>", "-")
        return Panel(table, title="Inventory", border_style="green")

    def _render_entities_panel(self) -> Panel:
        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Name")
        table.add_column("Type")
        table.add_column("Dist", justify="right")

        if self._status.nearby_entities:
            for ent in self._status.nearby_entities:
                table.add_row(ent.name, ent.type, f"{ent.distance}m")
        else:
            table.add_row("<none>", "-", "-")
        return Panel(table, title="Nearby Entities", border_style="magenta")

    def _render_console_panel(self) -> Panel:
        txt = Text()
        for line in self._lines:
            txt.append(f"[{line.severity.value}] ", style=SEVERITY_STYLES.get(line.severity, "white"))
            txt.append(f"{line.message}\n")
        if not self._lines:
            txt.append("No console output yet", style="dim")
        return Panel(txt, title="Console", border_style="yellow")

    def build_layout(self) -> Layout:
        """Construct the overall layout for the dashboard."""
        layout = Layout()

        # top row: status | inventory | entities, bottom: console tail
        layout.split(
            Layout(name="top", size=12),
            Layout(name="console", ratio=1),
        )
        layout["top"].split_row(
            Layout(name="status"),
            Layout(name="inventory"),
            Layout(name="entities"),
        )
        layout["status"].update(self._render_status_panel())
        layout["inventory"].update(self._render_inventory_panel())
        layout["entities"].update(self._render_entities_panel())
        layout["console"].update(self._render_console_panel())

        return layout

    # --------------------------------------------------------
    # Main loop
    # --------------------------------------------------------

    async def run(self, stop: asyncio.Event, refresh_per_second: float = 4.0) -> None:
        """Re-render until `stop` is set. Runs on the server's event loop."""
        refresh_delay = 1.0 / max(refresh_per_second, 0.1)
        with Live(
            self.build_layout(),
            console=self._console,
            refresh_per_second=refresh_per_second,
            screen=self._console.is_terminal,
        ) as live:
            while not stop.is_set():
                live.update(self.build_layout())
                try:
                    await asyncio.wait_for(stop.wait(), timeout=refresh_delay)
                except asyncio.TimeoutError:
                    continue
