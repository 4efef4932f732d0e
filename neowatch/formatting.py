"""Email content for asteroid alerts."""

import html
from typing import List

from .asteroids import NotificationRecord


def format_alert_subject(record: NotificationRecord) -> str:
    return f"Asteroid Alert: {record.asteroid_name}"


def format_alert_text(record: NotificationRecord) -> str:
    """Plain-text body describing one collision-risk notification."""
    lines: List[str] = [
        "Potentially hazardous asteroid approaching Earth:",
        "",
        f"• Asteroid: {record.asteroid_name}",
        f"• Close approach date: {record.close_approach_date.isoformat()}",
        f"• Miss distance: {record.miss_distance_kilometers} km",
        f"• Estimated diameter (avg): {record.estimated_diameter_avg_meters:.2f} m",
        "",
        "You are receiving this email because asteroid notifications are "
        "enabled for your account.",
    ]
    return "\n".join(lines)


def plain_text_to_html(text: str) -> str:
    """Convert a plain-text alert to lightweight HTML."""
    if not text:
        text = ""

    html_lines: List[str] = []
    in_list = False

    for line in text.splitlines():
        stripped = line.strip()
        if stripped.startswith("• ") or stripped.startswith("- "):
            if not in_list:
                html_lines.append("<ul>")
                in_list = True
            html_lines.append(f"<li>{html.escape(stripped[2:].strip())}</li>")
        elif stripped.endswith(":") and len(stripped) < 80:
            if in_list:
                html_lines.append("</ul>")
                in_list = False
            html_lines.append(
                f'<h3 style="margin-bottom:4px;">{html.escape(stripped)}</h3>'
            )
        else:
            if in_list:
                html_lines.append("</ul>")
                in_list = False
            if stripped == "":
                html_lines.append("<br/>")
            else:
                html_lines.append(f"<p>{html.escape(stripped)}</p>")

    if in_list:
        html_lines.append("</ul>")

    body = "\n".join(html_lines)
    return (
        "<div style=\"font-family: 'Segoe UI', 'Helvetica Neue', Arial, sans-serif;"
        ' font-size: 14px; line-height: 1.5; color: #111;">'
        f"{body}"
        "</div>"
    )
