"""Simulated conversational assistant.

There is no model behind this: :func:`respond` matches a few keywords and
returns canned text, and :class:`AssistantSession` delivers the reply after
a fixed delay.  Only one reply can be outstanding at a time, so the
conversation is strictly ordered.
"""

from __future__ import annotations

import asyncio
import itertools
from datetime import datetime, timezone
from typing import Callable, Literal, Sequence

import polars as pl
from pydantic import BaseModel, Field

from sheetdesk.errors import AssistantBusy
from sheetdesk.grid import Scalar, format_scalar
from sheetdesk.logging.events import EventType, emit_info

GREETING = (
    "Hello! I'm your AI spreadsheet assistant. I can help you analyze data, "
    "create formulas, join tables, and much more. Upload a file or ask me anything!"
)

QUICK_ACTIONS: list[dict[str, str]] = [
    {"label": "Analyze Data", "action": "analyze this dataset"},
    {"label": "Create Formula", "action": "help me create a formula"},
    {"label": "Join Tables", "action": "help me join two tables"},
    {"label": "Make Chart", "action": "suggest a chart for this data"},
]

_FORMULA_REPLY = (
    "I can help you create formulas! Common ones include:\n"
    "• SUM(A1:A10) - Add up values\n"
    "• AVERAGE(B1:B10) - Calculate average\n"
    '• IF(C1>100,"High","Low") - Conditional logic\n'
    "• VLOOKUP(D1,A:B,2,FALSE) - Lookup values\n"
    "\n"
    "What calculation do you need?"
)

_JOIN_REPLY = (
    "I can help you join datasets! To merge tables, I'll need:\n"
    "• The key columns to match on\n"
    "• Which type of join (inner, left, right, full)\n"
    "• How to handle conflicts\n"
    "\n"
    "Upload your files and tell me which columns to match!"
)

_CHART_REPLY = (
    "Great! I can suggest the best chart type based on your data:\n"
    "• Line charts for trends over time\n"
    "• Bar charts for comparisons\n"
    "• Pie charts for parts of a whole\n"
    "• Scatter plots for correlations\n"
    "\n"
    "What aspect of your data would you like to visualize?"
)


# ────────────────────────────────────────────────────────────────
# Keyword responder
# ────────────────────────────────────────────────────────────────


def _header_names(header: Sequence[Scalar]) -> list[str] | None:
    """Column names if *header* looks like a header row, else None."""
    if not header or not all(isinstance(v, str) and v.strip() for v in header):
        return None
    names: list[str] = []
    for v in header:
        name = str(v).strip()
        base, n = name, 2
        while name in names:
            name = f"{base}_{n}"
            n += 1
        names.append(name)
    return names


def numeric_column_means(matrix: Sequence[Sequence[Scalar]]) -> dict[str, float]:
    """Mean of every all-numeric column below a header row.

    Empty strings count as missing.  Returns an empty dict when the first
    row is not a header or there are no body rows.
    """
    if len(matrix) < 2:
        return {}
    names = _header_names(matrix[0])
    if names is None:
        return {}

    columns: dict[str, list[float | None]] = {}
    for idx, name in enumerate(names):
        values: list[float | None] = []
        numeric = True
        for row in matrix[1:]:
            v = row[idx] if idx < len(row) else ""
            if isinstance(v, str):
                if v.strip():
                    numeric = False
                    break
                values.append(None)
            else:
                values.append(float(v))
        if numeric and any(v is not None for v in values):
            columns[name] = values

    if not columns:
        return {}
    df = pl.DataFrame(columns, schema={name: pl.Float64 for name in columns})
    means = df.select(pl.all().mean()).row(0, named=True)
    return {name: float(val) for name, val in means.items() if val is not None}


def _analyze_reply(matrix: Sequence[Sequence[Scalar]]) -> str:
    row_count = len(matrix)
    col_count = max((len(row) for row in matrix), default=0)
    contents = "structured information" if col_count > 0 else "no data yet"
    reply = (
        f"I can see you have {row_count} rows and {col_count} columns of data. "
        f"The dataset appears to contain {contents}. "
    )
    means = numeric_column_means(matrix)
    if means:
        parts = ", ".join(f"{name} (avg {format_scalar(round(mean, 2))})" for name, mean in means.items())
        reply += f"Numeric columns: {parts}. "
    return reply + "Would you like me to perform statistical analysis or identify patterns?"


def respond(input_text: str, matrix: Sequence[Sequence[Scalar]]) -> str:
    """Canned reply for *input_text*, given the active sheet's scalars."""
    text = input_text.lower()
    if "analyze" in text or "summary" in text:
        return _analyze_reply(matrix)
    if "formula" in text or "calculate" in text:
        return _FORMULA_REPLY
    if "join" in text or "merge" in text:
        return _JOIN_REPLY
    if "chart" in text or "graph" in text:
        return _CHART_REPLY
    return (
        f'I understand you want help with: "{input_text}". I can assist with data '
        "analysis, formula creation, table joins, visualizations, and much more. "
        "Could you provide more details about what you'd like to accomplish?"
    )


def quick_actions() -> list[dict[str, str]]:
    """The canned prompts offered under the chat input."""
    return [dict(a) for a in QUICK_ACTIONS]


def upload_message(filenames: Sequence[str]) -> str:
    """Conversation entry recorded when files are uploaded from the chat panel."""
    return f"Uploaded {len(filenames)} file(s): {', '.join(filenames)}"


# ────────────────────────────────────────────────────────────────
# Session
# ────────────────────────────────────────────────────────────────


def _utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


class Message(BaseModel):
    id: str
    role: Literal["user", "ai"]
    content: str
    ts: str = Field(default_factory=_utc_now)


class AssistantSession:
    """Conversation history with at most one pending reply.

    Parameters
    ----------
    delay_secs : float
        Fixed latency before a reply is delivered.
    responder : callable
        ``(input_text, matrix) -> str``; defaults to :func:`respond`.
    """

    def __init__(
        self,
        delay_secs: float = 1.5,
        responder: Callable[[str, Sequence[Sequence[Scalar]]], str] = respond,
    ) -> None:
        self._delay = delay_secs
        self._responder = responder
        self._ids = itertools.count(1)
        self._pending = False
        self._disposed = False
        self.messages: list[Message] = [self._message("ai", GREETING)]

    def _message(self, role: Literal["user", "ai"], content: str) -> Message:
        return Message(id=str(next(self._ids)), role=role, content=content)

    @property
    def pending(self) -> bool:
        return self._pending

    @property
    def disposed(self) -> bool:
        return self._disposed

    def record_upload(self, filenames: Sequence[str]) -> Message:
        msg = self._message("user", upload_message(filenames))
        self.messages.append(msg)
        return msg

    async def send(self, text: str, matrix: Sequence[Sequence[Scalar]]) -> Message | None:
        """Post a user message and wait for the reply.

        Returns:
            The reply, or None if the session was disposed while waiting.

        Raises:
            ValueError: If *text* is blank or the session is disposed.
            AssistantBusy: If a previous reply is still pending.
        """
        if self._disposed:
            raise ValueError("Assistant session has been disposed")
        if not text.strip():
            raise ValueError("Message is empty")
        if self._pending:
            raise AssistantBusy()

        self.messages.append(self._message("user", text))
        snapshot = [list(row) for row in matrix]
        self._pending = True
        try:
            await asyncio.sleep(self._delay)
        finally:
            self._pending = False

        if self._disposed:
            return None
        reply = self._message("ai", self._responder(text, snapshot))
        self.messages.append(reply)
        emit_info(EventType.assistant_reply, "Assistant replied", {"message_id": reply.id})
        return reply

    def dispose(self) -> None:
        """Stop delivering replies; a pending reply is dropped."""
        self._disposed = True
