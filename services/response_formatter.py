"""Markdown rendering of recommendation results."""

from typing import List, Optional

import pytz

from models.entities import RecommendationResponse, SlotDetail, TimeSlot

STATUS_ICONS = {
    "core": "🟢",
    "edge": "🟡",
    "flexible": "🟠",
    "outside": "🔴",
}


class ResponseFormatter:
    """Formats recommendation responses for display."""

    @staticmethod
    def format_detail(detail: SlotDetail) -> str:
        """One participant line, e.g. "🟢 Emma Wilson: Mon, Jan 6, 10:00 (core) · Free until 12:00"."""
        icon = STATUS_ICONS.get(detail.status, "•")
        line = f"   {icon} **{detail.display_name}:** {detail.local_time} ({detail.status})"
        if detail.is_busy:
            line += " ❌ busy"
        if detail.schedule_context:
            line += f" · {detail.schedule_context}"
        return line

    @staticmethod
    def format_slot(index: int, slot: TimeSlot, display_timezone: str = "UTC", highlight: bool = False) -> List[str]:
        """Format one slot as a header line plus one line per participant."""
        tz = pytz.timezone(display_timezone)
        local_start = slot.start.astimezone(tz)
        local_end = slot.end.astimezone(tz)

        label = f"Option {index}"
        if highlight:
            label = f"⭐ {label} (Best Match)"
        lines = [
            f"**{label}** · {local_start.strftime('%A, %B %d')} "
            f"{local_start.strftime('%H:%M')}-{local_end.strftime('%H:%M')} ({display_timezone}) · score {slot.score:g}"
        ]
        lines.extend(ResponseFormatter.format_detail(detail) for detail in slot.details)
        lines.append("")
        return lines

    @staticmethod
    def format_recommendations(
        response: RecommendationResponse,
        display_timezone: str = "UTC",
        limit: Optional[int] = None
    ) -> str:
        """Format the full recommendation response."""
        lines = [
            "**🎯 Recommended Meeting Times**",
            "",
            f"{response.persons_count} participant(s) across {response.tenants_count} tenant(s), "
            f"{response.duration_minutes} minute meeting.",
            "",
        ]

        recommendations = response.recommendations[:limit] if limit else response.recommendations
        if recommendations:
            for i, slot in enumerate(recommendations, 1):
                lines.extend(ResponseFormatter.format_slot(i, slot, display_timezone, highlight=(i == 1)))
            if len(response.recommendations) > len(recommendations):
                lines.append(f"*+ {len(response.recommendations) - len(recommendations)} more option(s) available.*")
                lines.append("")
        else:
            lines.append(ResponseFormatter.format_error(
                "No Times Where Everyone Is Free",
                "No slot in the range is free for every participant.",
                suggestions=[
                    "Try widening the date range",
                    "Consider a shorter meeting",
                    "Review the alternatives with conflicts below",
                ]
            ))
            lines.append("")

        if response.alternatives_with_conflicts:
            lines.append("**⚠️ Alternatives With Conflicts**")
            lines.append("")
            for i, slot in enumerate(response.alternatives_with_conflicts, 1):
                lines.extend(ResponseFormatter.format_slot(i, slot, display_timezone))

        if response.errors:
            items = []
            for err in response.errors:
                source = f"{err.tenant_id} ({err.email})" if err.email else err.tenant_id
                items.append(f"{source}: {err.error}")
            lines.append(ResponseFormatter.format_info(
                "Some calendars could not be read",
                "Results above ignore these sources; affected people are treated as free.",
                items=items
            ))

        return "\n".join(lines).rstrip() + "\n"

    @staticmethod
    def format_error(title: str, message: str, suggestions: Optional[List[str]] = None) -> str:
        """Format an error message."""
        lines = [
            f"**❌ {title}**",
            "",
            message
        ]

        if suggestions:
            lines.append("")
            lines.append("**Suggestions:**")
            for suggestion in suggestions:
                lines.append(f"• {suggestion}")

        return "\n".join(lines)

    @staticmethod
    def format_info(title: str, message: str, items: Optional[List[str]] = None) -> str:
        """Format an informational message."""
        lines = [
            f"**ℹ️ {title}**",
            "",
            message
        ]

        if items:
            lines.append("")
            for item in items:
                lines.append(f"• {item}")

        return "\n".join(lines)
