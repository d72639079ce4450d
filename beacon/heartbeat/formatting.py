"""Human-readable durations for notifications and status reports."""


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'' if count == 1 else 's'}"


def format_duration(seconds: int) -> str:
    """
    Format a number of seconds using at most two units.

    Examples: "45 seconds", "5 minutes 0 seconds", "2 hours 1 minute",
    "3 days 4 hours".
    """
    seconds = max(0, int(seconds))

    if seconds < 60:
        return _plural(seconds, "second")

    minutes = seconds // 60
    if minutes < 60:
        return f"{_plural(minutes, 'minute')} {_plural(seconds % 60, 'second')}"

    hours = minutes // 60
    if hours < 24:
        return f"{_plural(hours, 'hour')} {_plural(minutes % 60, 'minute')}"

    days = hours // 24
    return f"{_plural(days, 'day')} {_plural(hours % 24, 'hour')}"
