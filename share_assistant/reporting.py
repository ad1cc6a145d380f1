"""Reporting utilities for Share Assistant."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List

from .models import ServiceStats


@dataclass(slots=True)
class Report:
    title: str
    summary_lines: List[str]

    def render_text(self) -> str:
        return "\n".join([self.title, "-" * len(self.title), *self.summary_lines])


def stats_report(stats: ServiceStats, *, title: str = "Share Assistant Stats") -> Report:
    lines = [
        f"Service enabled: {'yes' if stats.enabled else 'no'}",
        f"Dialogs detected: {stats.dialogs_detected}",
        f"Auto-accepted: {stats.auto_accept_count}",
        f"Screen shares started: {stats.screen_shares_started}",
        f"Current step: {stats.step.name}",
    ]
    if stats.processing:
        lines.append("A processing cycle is in flight.")
    return Report(title=title, summary_lines=lines)
