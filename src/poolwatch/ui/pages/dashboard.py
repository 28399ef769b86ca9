"""Monitor page: configuration form, lifecycle controls, live log and chart."""

from __future__ import annotations

from nicegui import ui
from pydantic import ValidationError

from poolwatch.exceptions import ControlError
from poolwatch.models.log import LogEntry
from poolwatch.models.pool import PoolConfiguration, ProcessCounts
from poolwatch.monitor import Monitor
from poolwatch.ui.chart import ChartRenderer
from poolwatch.ui.theme import COLORS, GLOBAL_CSS


def dashboard_page(monitor: Monitor) -> None:
    """Render the monitor page bound to the shared Monitor."""
    ui.add_css(GLOBAL_CSS)
    ui.dark_mode(True)
    ui.colors(primary=COLORS["purple"])

    defaults = PoolConfiguration()
    counts = {"vendor": 1, "consumer": 1}
    log_state = {"last_seq": -1}

    # --- Helpers ---

    def read_config() -> PoolConfiguration | None:
        try:
            return PoolConfiguration(
                max_ticket_capacity=int(max_capacity.value or 0),
                total_tickets=int(total_tickets.value or 0),
                ticket_release_rate=int(release_rate.value or 0),
                customer_ticket_retrieval_rate=int(retrieval_rate.value or 0),
            )
        except ValidationError as e:
            first = e.errors()[0]
            ui.notify(f"Please complete all fields correctly: {first['msg']}", type="warning")
            return None

    def local_log(line: str) -> None:
        log_view.push(line)

    def on_logs(entries: tuple[LogEntry, ...]) -> None:
        if not entries:
            log_view.clear()
            log_state["last_seq"] = -1
            return
        for entry in entries:
            if entry.seq > log_state["last_seq"]:
                log_view.push(entry.text)
        log_state["last_seq"] = entries[-1].seq

    # --- Actions ---

    async def initialize_pool():
        config = read_config()
        if config is None:
            return
        try:
            await monitor.control.initialize(config)
            ui.notify("Pool initialized successfully.", type="positive")
        except ControlError as e:
            ui.notify(f"Initialization failed: {e}", type="negative")

    async def start_processes():
        try:
            await monitor.start_processes(
                ProcessCounts(vendor_count=counts["vendor"], consumer_count=counts["consumer"])
            )
            ui.notify("Processes started", type="positive")
        except ControlError as e:
            ui.notify(f"Start processes failed: {e}", type="negative")

    async def stop_processes():
        try:
            await monitor.control.stop()
            ui.notify("Processes stopped successfully.", type="info")
        except ControlError as e:
            ui.notify(f"Failed to stop processes: {e}", type="negative")

    async def reset_pool():
        try:
            response = await monitor.control.reset()
            local_log(f"Pool reset successfully: {response}")
        except ControlError as e:
            local_log(f"Error resetting pool: {e}")

    async def save_config():
        config = read_config()
        if config is None:
            return
        try:
            response = await monitor.control.save(config)
            ui.notify(response, type="positive")
        except ControlError as e:
            ui.notify(f"Failed to save configuration. Details: {e}", type="negative")

    async def clear_logs():
        try:
            await monitor.clear_logs()
            ui.notify("Logs cleared successfully.", type="info")
        except ControlError:
            ui.notify("Failed to clear logs.", type="negative")

    def toggle_chart():
        if monitor.sampler.is_running:
            monitor.sampler.stop()
        else:
            monitor.sampler.start()
        chart_button.set_text("Stop Chart" if monitor.sampler.is_running else "Resume Chart")

    def change_count(role: str, delta: int):
        new_value = counts[role] + delta
        if new_value < 1:
            return
        counts[role] = new_value
        count_labels[role].set_text(str(new_value))
        verb = "incremented" if delta > 0 else "decremented"
        local_log(f"{role.capitalize()} count {verb} to {new_value}")

    # --- Page layout ---

    with ui.column().classes("w-full p-4 gap-4"):
        ui.label("Ticket Pool Monitor").classes("text-h5").style(
            f"color: {COLORS['text_primary']}"
        )

        with ui.row().classes("w-full gap-4 no-wrap"):
            with ui.card().classes("p-4").style("min-width: 320px"):
                ui.label("Configuration").classes("text-subtitle1")
                total_tickets = ui.number(
                    "Total Tickets", value=defaults.total_tickets, min=1, precision=0,
                )
                release_rate = ui.number(
                    "Ticket Release Rate", value=defaults.ticket_release_rate, min=1, precision=0,
                )
                retrieval_rate = ui.number(
                    "Customer Retrieval Rate",
                    value=defaults.customer_ticket_retrieval_rate, min=1, precision=0,
                )
                max_capacity = ui.number(
                    "Max Ticket Capacity", value=defaults.max_ticket_capacity, min=1, precision=0,
                )
                with ui.row().classes("gap-2 mt-2"):
                    ui.button("Initialize", on_click=initialize_pool).props("color=primary")
                    ui.button("Save", on_click=save_config).props("flat")

                ui.separator()
                count_labels = {}
                for role in ("vendor", "consumer"):
                    with ui.row().classes("items-center gap-2"):
                        ui.label(f"{role.capitalize()}s:").style(
                            f"color: {COLORS['text_secondary']}; min-width: 90px"
                        )
                        ui.button("-", on_click=lambda r=role: change_count(r, -1)).props("flat dense")
                        count_labels[role] = ui.label(str(counts[role]))
                        ui.button("+", on_click=lambda r=role: change_count(r, 1)).props("flat dense")

                with ui.row().classes("gap-2 mt-2"):
                    ui.button("Start", on_click=start_processes).props("color=positive")
                    ui.button("Stop", on_click=stop_processes).props("color=negative")
                    ui.button("Reset", on_click=reset_pool).props("flat")

            with ui.column().classes("flex-1 gap-4"):
                chart_card = ui.card().classes("w-full p-4")
                with chart_card:
                    with ui.row().classes("w-full items-center"):
                        ui.label("Ticket Pool Size").classes("text-subtitle1")
                        ui.space()
                        chart_button = ui.button(
                            "Stop Chart" if monitor.sampler.is_running else "Resume Chart",
                            on_click=toggle_chart,
                        ).props("flat")
                        ui.button("Clear Chart", on_click=monitor.sampler.clear).props("flat")

                with ui.card().classes("w-full p-4"):
                    with ui.row().classes("w-full items-center"):
                        ui.label("Logs").classes("text-subtitle1")
                        ui.space()
                        ui.button("Clear Logs", on_click=clear_logs).props("flat")
                    log_view = ui.log().classes("w-full log-panel").style("height: 280px")

    renderer = ChartRenderer()
    renderer.initialize(chart_card)
    renderer.render(monitor.window.snapshot())
    monitor.sampler.add_listener(renderer.render)
    subscription = monitor.subscriber.log_stream().subscribe(on_logs)

    def on_page_closed():
        subscription.unsubscribe()
        monitor.sampler.remove_listener(renderer.render)
        renderer.teardown()

    ui.context.client.on_disconnect(on_page_closed)
