"""Markdown report and JSON export of a listening profile.

Numbers and category tags only; turning tags into sentences is up to
whatever narrative layer reads the JSON export.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Sequence

from .models import GenreWeight, ListeningProfile


HEADER = """# Listening Profile Report

> Figures are derived from the listening data Spotify exposes: ranked top
> lists plus the last 50 plays. Quarterly figures are a rank-based proxy,
> not calendar quarters.

---
"""


def ascii_bar(value, max_value=1.0, width=30, label=""):
    """Render a single ASCII bar."""
    if max_value == 0:
        filled = 0
    else:
        filled = int(round((value / max_value) * width))
    filled = max(0, min(width, filled))
    empty = width - filled
    bar = "[" + "#" * filled + "." * empty + "]"
    if label:
        return f"{label:<18} {bar} {value:.2f}"
    return bar


def format_genre_shares(shares: Sequence[GenreWeight], width: int = 30) -> str:
    """One bar per genre, scaled to the heaviest share."""
    if not shares:
        return ""

    max_pct = max(share.percentage for share in shares)
    lines = ["```"]
    for share in shares:
        bar = ascii_bar(share.percentage, max_pct, width)
        lines.append(f"{share.name[:24]:<24} {bar} {share.percentage:.1%}")
    lines.append("```")
    return "\n".join(lines)


def format_hour_timeline(hour_distribution: Sequence[int], width: int = 30) -> str:
    """
    Generate ASCII 24-hour timeline visualization.

    Args:
        hour_distribution: 24 play counts
        width: Maximum bar width in characters

    Returns:
        Multi-line string with timeline visualization, "" for invalid input
    """
    if not hour_distribution or len(hour_distribution) != 24:
        return ""

    max_count = max(hour_distribution) or 1
    peak_hour = hour_distribution.index(max(hour_distribution)) if any(hour_distribution) else None

    lines = []
    for hour in range(24):
        count = hour_distribution[hour]
        bar = "=" * int((count / max_count) * width)
        night_marker = "  (night)" if hour <= 5 and count > 0 else ""
        peak_marker = "  << peak" if hour == peak_hour and count > 0 else ""
        lines.append(f"{hour:02d}:00 |{bar}{peak_marker}{night_marker}")

    return "\n".join(lines)


def format_identity(profile: ListeningProfile) -> str:
    identity = profile.identity
    lines = [
        "## Identity",
        "",
        f"- **Summary tag**: `{identity.summary}`",
        f"- **Mainstream share**: {identity.mainstream_percentage:.1%}",
        f"- **Hipster score**: {identity.hipster_score:.2f}",
        f"- **Artist diversity**: {identity.artist_diversity:.2f}",
    ]
    if identity.claimed_genres:
        lines.append(f"- **Claimed genres**: {', '.join(identity.claimed_genres)}")

    genres = format_genre_shares(identity.actual_top_genres)
    if genres:
        lines.extend(["", "### Top Genres", "", genres])
    return "\n".join(lines)


def format_emotional(profile: ListeningProfile) -> str:
    emotional = profile.emotional
    lines = [
        "## Emotional Range",
        "",
        f"- **State tag**: `{emotional.psychological_state}`",
        f"- **Pattern tag**: `{emotional.confrontation}`",
        "",
        "```",
        ascii_bar(emotional.average_valence, 1.0, 30, "Average valence"),
        ascii_bar(emotional.average_energy, 1.0, 30, "Average energy"),
        ascii_bar(emotional.valence_volatility, 0.5, 30, "Valence volatility"),
        ascii_bar(emotional.stability_score, 1.0, 30, "Stability"),
        ascii_bar(emotional.oscillation_score, 1.0, 30, "Oscillation"),
        "```",
        "",
        f"Melancholy runs: {len(emotional.melancholy_clusters)}",
    ]

    if emotional.coping_indicators:
        lines.extend(["", "| Signal | Severity | Evidence |", "|---|---|---|"])
        for signal in emotional.coping_indicators:
            lines.append(f"| {signal.kind} | {signal.severity:.2f} | {'; '.join(signal.evidence)} |")

    return "\n".join(lines)


def format_circadian(profile: ListeningProfile) -> str:
    circadian = profile.behavioral.circadian
    comfort = profile.behavioral.comfort_zone
    lines = [
        "## When You Listen",
        "",
        f"- **Night tag**: `{circadian.confrontation}`",
        f"- **Night ratio**: {circadian.night_ratio:.1%}",
        f"- **Average night valence**: {circadian.average_night_valence:.2f}",
        f"- **Late-night days**: {circadian.late_night_days}"
        f" (insomnia pattern: {'yes' if circadian.has_insomnia_pattern else 'no'})",
        "",
        "```",
        format_hour_timeline(circadian.hour_distribution),
        "```",
    ]

    if circadian.repeat_loops:
        lines.extend(["", "| Track | Plays | Avg valence | Night |", "|---|---|---|---|"])
        night_ids = {loop.track_id for loop in circadian.night_loops}
        for loop in circadian.repeat_loops[:10]:
            lines.append(
                f"| {loop.track_name} | {loop.count} | {loop.average_valence:.2f} | "
                f"{'yes' if loop.track_id in night_ids else 'no'} |"
            )

    lines.extend([
        "",
        "### Comfort Zone",
        "",
        f"- **BPM std**: {comfort.bpm_std:.1f}"
        f" (range {comfort.bpm_range[0]:.0f}-{comfort.bpm_range[1]:.0f})",
        f"- **Genre entropy**: {comfort.genre_entropy:.2f} bits",
        f"- **Artist loyalty**: {comfort.artist_loyalty:.2f}",
    ])
    return "\n".join(lines)


def format_temporal(profile: ListeningProfile) -> str:
    temporal = profile.temporal
    lines = [
        "## Phases",
        "",
        f"- **Drift tag**: `{temporal.drift}`",
        f"- **Overall stability**: {temporal.overall_stability:.2f}",
        f"- **Recent listening**: {temporal.total_listening_time} min over "
        f"{temporal.active_days} days, peak hour {temporal.peak_listening_hour:02d}:00",
        "",
        "| Window | Top genre | Entropy | Mainstream | Valence | Energy |",
        "|---|---|---|---|---|---|",
    ]
    for window in temporal.quarterly_breakdown:
        top = window.top_genres[0].name if window.top_genres else "unknown"
        lines.append(
            f"| {window.period} | {top} | {window.genre_entropy:.2f} | "
            f"{window.mainstream_percentage:.1%} | {window.average_valence:.2f} | "
            f"{window.average_energy:.2f} |"
        )

    for shift in temporal.phase_transitions:
        lines.append("")
        lines.append(
            f"- {shift.period_before} -> {shift.period_after}: "
            f"{shift.top_genre_before} -> {shift.top_genre_after}, "
            f"entropy {shift.entropy_before:.2f} -> {shift.entropy_after:.2f}, "
            f"trigger `{shift.trigger}`, reading `{shift.psychological_reading}`"
        )

    return "\n".join(lines)


def generate_report(profile: ListeningProfile, output_path="reports/listening_profile.md"):
    """
    Generate the markdown report.

    Args:
        profile: Output of build_listening_profile()
        output_path: Where to write the report

    Returns:
        Report text
    """
    sections = [
        HEADER,
        f"*Generated: {datetime.now().strftime('%Y-%m-%d %H:%M')}*",
        "",
        format_identity(profile),
        "",
        "---",
        "",
        format_emotional(profile),
        "",
        "---",
        "",
        format_circadian(profile),
        "",
        "---",
        "",
        format_temporal(profile),
        "",
    ]

    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)
    report_text = "\n".join(sections)
    output.write_text(report_text, encoding="utf-8")
    print(f"Report written to {output_path}")
    return report_text


def export_profile_json(profile: ListeningProfile,
                        output_path="data/profiles/listening_profile.json"):
    """Export the profile as JSON for a downstream narrative layer."""
    export = {
        "generated_at": datetime.now().isoformat(),
        "pipeline": "Listening Profile",
        "profile": profile.to_dict(),
    }

    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(json.dumps(export, indent=2, default=str), encoding="utf-8")
    print(f"Profile JSON exported to {output_path}")
    return export
