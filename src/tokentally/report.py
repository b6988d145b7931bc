from tokentally.models import UsageStatistics


def format_tokens(count: "int") -> "str":
    """
    formats a token count compactly, e.g. 1.5M, 12.3K, 999.
    """
    if count >= 1_000_000:
        return f"{count / 1_000_000:.1f}M"
    if count >= 1_000:
        return f"{count / 1_000:.1f}K"
    return f"{count:,}"


def format_cost(amount: "float") -> "str":
    return f"${amount:.4f}"


def render_report(stats: "UsageStatistics", limit: "int" = 3) -> "str":
    """
    renders a plain-text summary of stats, showing at most
    limit rows per section.
    """
    lines = [
        "=== Overall Usage ===",
        f"Total cost: {format_cost(stats.total_cost)}",
        f"Total tokens: {format_tokens(stats.total_tokens)}",
        f"Total sessions: {stats.total_sessions}",
        f"Date range: {stats.date_range.start} to {stats.date_range.end}",
        "",
        "=== Top Models ===",
    ]
    for model in stats.model_usage[:limit]:
        lines.append(
            f"{model.model}: {format_cost(model.total_cost)}, "
            f"{format_tokens(model.total_tokens)} tokens, "
            f"{model.session_count} sessions"
        )

    lines += ["", "=== Top Projects ==="]
    for project in stats.project_usage[:limit]:
        lines.append(
            f"{project.project_name}: {format_cost(project.total_cost)}, "
            f"{format_tokens(project.total_tokens)} tokens, "
            f"{project.session_count} sessions, last used {project.last_used}"
        )

    lines += ["", "=== Recent Months ==="]
    for month in stats.monthly_usage[:limit]:
        lines.append(
            f"{month.month}: {format_cost(month.total_cost)}, "
            f"{format_tokens(month.total_tokens)} tokens, "
            f"models: {', '.join(month.models_used)}"
        )

    lines += ["", "=== Recent Days ==="]
    for day in stats.daily_usage[:limit]:
        lines.append(
            f"{day.date}: {format_cost(day.total_cost)}, "
            f"{format_tokens(day.total_tokens)} tokens, "
            f"models: {', '.join(day.models_used)}"
        )

    return "\n".join(lines)
