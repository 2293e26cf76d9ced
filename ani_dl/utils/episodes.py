"""
Expands user episode selections ('5', '1-10', '1,3,7-9', 'all') against the
episodes a show actually has.
"""

import re

_RANGE_RE = re.compile(r"^\s*([\d.]+)\s*-\s*([\d.]+)\s*$")


def select_episodes(selection: str, available: list[str]) -> list[str]:
    """
    Returns the available episodes matched by a selection string, in the order
    they appear in `available`.

    Raises:
        ValueError: If the selection cannot be parsed.
    """
    selection = (selection or "").strip().lower()
    if selection in ("", "all", "*"):
        return list(available)

    wanted: set[str] = set()
    ranges: list[tuple[float, float]] = []
    for part in selection.split(","):
        part = part.strip()
        if not part:
            continue
        if match := _RANGE_RE.match(part):
            low, high = float(match.group(1)), float(match.group(2))
            ranges.append((min(low, high), max(low, high)))
        elif re.fullmatch(r"[\d.]+", part):
            wanted.add(_normalize(part))
        else:
            raise ValueError(f"Invalid episode selection: {part!r}")

    selected = []
    for episode in available:
        if _normalize(episode) in wanted:
            selected.append(episode)
            continue
        try:
            number = float(episode)
        except ValueError:
            continue
        if any(low <= number <= high for low, high in ranges):
            selected.append(episode)
    return selected


def _normalize(episode: str) -> str:
    try:
        return repr(float(episode))
    except ValueError:
        return episode
