"""Query pad: sends opaque query text to the active connection."""

from __future__ import annotations

from typing import Callable

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal
from textual.widgets import Button, DataTable, Input, Static

from datanav.errors import DataNavError
from datanav.models import QueryResult
from datanav.registry import ConnectionRegistry

STATUS_LEVELS = ("pending", "ok", "warning", "error")


class QueryPad(Container):
    """Single-line editor plus a result grid."""

    DEFAULT_CSS = """
    QueryPad {
        height: 1fr;
        padding: 0 1;
    }

    QueryPad #query-bar {
        height: auto;
    }

    QueryPad #query-status.warning {
        color: $warning;
    }

    QueryPad #query-status.error {
        color: $error;
    }

    QueryPad #query-results {
        height: 1fr;
    }
    """

    BINDINGS = Container.BINDINGS + [
        Binding("ctrl+enter", "run_query", "Run query", show=False, priority=True),
    ]

    def __init__(
        self,
        registry: ConnectionRegistry,
        *,
        connection_name: Callable[[], str | None],
        result_limit: int = 200,
    ) -> None:
        super().__init__(id="query-pad")
        self._registry = registry
        self._connection_name = connection_name
        self._result_limit = result_limit
        self._last_result: QueryResult | None = None
        self._status: tuple[str, str] = ("ok", "")

    @property
    def last_result(self) -> QueryResult | None:
        return self._last_result

    @property
    def status(self) -> tuple[str, str]:
        """The current ``(level, text)`` pair shown next to the run button."""

        return self._status

    def compose(self) -> ComposeResult:
        yield Input(placeholder="Query text, run with Enter", id="query-input")
        yield Horizontal(
            Button("Run", id="run-query", variant="primary"),
            Static("", id="query-status"),
            id="query-bar",
        )
        yield DataTable(id="query-results", zebra_stripes=True, cursor_type="row")

    async def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "run-query":
            await self.run_query()

    async def action_run_query(self) -> None:
        await self.run_query()

    async def on_input_submitted(self, event: Input.Submitted) -> None:
        event.stop()
        await self.run_query(event.value)

    async def run_query(self, text: str | None = None) -> QueryResult | None:
        """Execute ``text`` (or the input buffer) on the active connection."""

        if text is None:
            text = self.query_one("#query-input", Input).value if self.is_mounted else ""
        query_text = text.strip()
        name = self._connection_name()
        if not query_text or not name:
            self._show("warning", "Nothing to run." if not query_text else "No active connection.")
            return None
        self._show("pending", f"Running on {name}")
        try:
            result = await self._registry.execute_query(name, query_text)
        except DataNavError as exc:
            self._show("error", str(exc))
            self._render_result(None)
            return None
        self._last_result = result
        self._render_result(result)
        self._show("ok", _summary(result))
        return result

    def _render_result(self, result: QueryResult | None) -> None:
        if not self.is_mounted:
            return
        table = self.query_one("#query-results", DataTable)
        table.clear(columns=True)
        if result is None or not result.columns:
            return
        names = [column.name for column in result.columns]
        table.add_columns(*names)
        table.add_rows([_format_cell(row.get(name)) for name in names] for row in result.rows[: self._result_limit])

    def _show(self, level: str, text: str) -> None:
        self._status = (level, text)
        if not self.is_mounted:
            return
        label = self.query_one("#query-status", Static)
        for candidate in STATUS_LEVELS:
            label.set_class(candidate == level, candidate)
        label.update(text)


def _summary(result: QueryResult) -> str:
    if result.columns:
        counted = f"{result.row_count} rows"
    elif result.rows_affected >= 0:
        counted = f"{result.rows_affected} affected"
    else:
        counted = "done"
    return f"{counted} in {result.execution_time_ms} ms"


def _format_cell(value: object) -> str:
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    return str(value)


__all__ = ["QueryPad"]
