"""Formatting helpers shared by the dashboard widgets."""

from __future__ import annotations

from datetime import datetime, timezone

from rich.text import Text

from ..event_log import LogEntry, LogLevel
from ..models import ContainerService, ContainerServiceStatus, PullRequest, WorkflowJob, WorkflowRun

SPINNER_FRAMES = "⠋⠙⠹⠸⠼⠴⠦⠧⠇⠏"

_CONCLUSION_BADGES = {
    "success": ("✓", "green"),
    "failure": ("✗", "red"),
    "cancelled": ("⊘", "bright_black"),
    "skipped": ("↷", "bright_black"),
    "timed_out": ("⏱", "red"),
    "action_required": ("!", "yellow"),
    "neutral": ("○", "white"),
}

_STATUS_BADGES = {
    "in_progress": ("●", "yellow"),
    "queued": ("◌", "cyan"),
    "waiting": ("◌", "magenta"),
}

_CHECK_BADGES = {
    "SUCCESS": ("✓", "green"),
    "FAILURE": ("✗", "red"),
    "PENDING": ("●", "yellow"),
}

_SERVICE_BADGES = {
    "running": ("▲", "green"),
    "restarting": ("↻", "yellow"),
    "paused": ("‖", "yellow"),
    "created": ("○", "cyan"),
}

_LOG_STYLES = {
    LogLevel.INFO: "white",
    LogLevel.EVENT: "cyan",
    LogLevel.DEBUG: "bright_black",
    LogLevel.TRACE: "grey37",
    LogLevel.ERROR: "bold red",
}


def format_age(when: datetime | None, now: datetime | None = None) -> str:
    """Age of a timestamp like '2h', '15m'. Empty for None."""
    if when is None:
        return ""
    now = now or datetime.now(timezone.utc)
    secs = (now - when).total_seconds()
    if secs < 0:
        return "now"
    if secs < 60:
        return f"{int(secs)}s"
    if secs < 3600:
        return f"{int(secs // 60)}m"
    if secs < 86400:
        return f"{int(secs // 3600)}h"
    return f"{int(secs // 86400)}d"


def format_duration(start: datetime | None, end: datetime | None = None) -> str:
    """Elapsed time between start and end (default now) like '3m 07s'."""
    if start is None:
        return ""
    end = end or datetime.now(timezone.utc)
    secs = max(0, int((end - start).total_seconds()))
    if secs < 60:
        return f"{secs}s"
    if secs < 3600:
        return f"{secs // 60}m {secs % 60:02d}s"
    return f"{secs // 3600}h {secs % 3600 // 60:02d}m"


def run_badge(status: str, conclusion: str | None) -> tuple[str, str]:
    """(icon, style) for a run or job."""
    if status == "completed":
        return _CONCLUSION_BADGES.get(conclusion or "", ("?", "white"))
    return _STATUS_BADGES.get(status, ("◌", "white"))


def truncate(text: str, width: int) -> str:
    if width <= 0:
        return ""
    if len(text) <= width:
        return text
    return text[: max(0, width - 1)] + "…"


def render_run_card(
    run: WorkflowRun,
    jobs: list[WorkflowJob] | None,
    pending: bool = False,
    resurrected: bool = False,
    width: int = 40,
) -> Text:
    """Body text of a workflow card."""
    icon, style = run_badge(run.status, run.conclusion)
    text = Text()
    text.append(f"{icon} ", style=style)
    text.append(truncate(run.workflow_name, width - 2), style="bold")
    text.append("\n")
    text.append(truncate(f"{run.repository.name} #{run.run_number}", width), style="bright_black")
    text.append("\n")
    text.append(truncate(f"{run.branch} @ {run.short_commit}", width))
    text.append("\n")

    if run.is_completed:
        label = run.conclusion or "completed"
        elapsed = format_duration(run.started_at or run.created_at, run.updated_at)
        text.append(f"{label} in {elapsed}" if elapsed else label, style=style)
        if resurrected:
            text.append("  [older run]", style="magenta")
        elif pending:
            text.append("  [d] dismiss", style="bright_black")
        return text

    text.append(f"{run.status.replace('_', ' ')} {format_duration(run.started_at or run.created_at)}", style=style)
    for job in jobs or []:
        job_icon, job_style = run_badge(job.status, job.conclusion)
        text.append("\n")
        text.append(f" {job_icon} ", style=job_style)
        line = job.name
        step = job.current_step
        if step is not None:
            line = f"{job.name}: {step.name}"
        text.append(truncate(line, width - 3))
    return text


def render_pr_strip(prs: list[PullRequest], selected: int | None, width: int = 200) -> Text:
    """One-line strip of open PRs; the selected one is reverse-video."""
    text = Text()
    if not prs:
        text.append("No open pull requests", style="bright_black")
        return text
    for i, pr in enumerate(prs):
        if i:
            text.append("  ")
        icon, style = _CHECK_BADGES.get(pr.checks_state or "", ("○", "bright_black"))
        label = f"{icon} {pr.repository.name}#{pr.number} {truncate(pr.title, 30)}"
        if pr.draft:
            label += " (draft)"
        text.append(label, style=f"reverse {style}" if i == selected else style)
    text.truncate(width, overflow="ellipsis")
    return text


def render_service_strip(
    services: list[tuple[ContainerServiceStatus, ContainerService]],
    errors: list[ContainerServiceStatus],
    selected: int | None,
    width: int = 200,
) -> Text:
    """One-line strip of compose services, errors appended."""
    text = Text()
    if not services and not errors:
        text.append("No compose services found", style="bright_black")
        return text
    for i, (_, service) in enumerate(services):
        if i:
            text.append("  ")
        icon, style = _SERVICE_BADGES.get(service.state, ("▼", "red"))
        if service.health == "unhealthy":
            style = "red"
        label = f"{icon} {service.name}"
        text.append(label, style=f"reverse {style}" if i == selected else style)
    for status in errors:
        if len(text):
            text.append("  ")
        text.append(f"⚠ {status.repository}: {status.error}", style="red")
    text.truncate(width, overflow="ellipsis")
    return text


def render_log_lines(entries: list[LogEntry], limit: int) -> Text:
    """Last `limit` entries, one per line."""
    text = Text()
    for i, entry in enumerate(entries[-limit:] if limit > 0 else []):
        if i:
            text.append("\n")
        text.append(entry.timestamp.strftime("%H:%M:%S "), style="bright_black")
        text.append(entry.text, style=_LOG_STYLES[entry.level])
    return text
