"""
Version comparison for dependency synchronisation.

Versions are compared in two stages: a strict numeric parse of up to three
dot-separated segments (missing segments count as zero), and a plain string
comparison when either side does not parse. The comparator never raises, so
unusual version syntax degrades to a best-effort answer instead of aborting
a merge.
"""

import re

# Leading requirement operators that do not change the floor version.
_OPERATOR_RE = re.compile(r"^\s*(\^|~|==|=|>=|<=|>|<)?\s*")
_SUFFIX_RE = re.compile(r"[-+]")


def parse_version(text: str) -> tuple[tuple[int, int, int], str] | None:
    """
    Parse a version into a numeric core and a pre-release suffix.

    Returns None when the text is not a 1-3 segment numeric version.

    >>> parse_version("1.2")
    ((1, 2, 0), '')
    >>> parse_version("^1.0.0-beta.2")
    ((1, 0, 0), 'beta.2')
    """
    body = _OPERATOR_RE.sub("", text, count=1).strip()
    if not body:
        return None

    prerelease = ""
    match = _SUFFIX_RE.search(body)
    if match:
        suffix = body[match.start() + 1 :]
        # Build metadata carries no precedence.
        if match.group() == "-":
            prerelease = suffix.split("+", 1)[0]
        body = body[: match.start()]

    segments = body.split(".")
    if not 1 <= len(segments) <= 3 or not all(s.isdigit() for s in segments):
        return None

    numbers = [int(s) for s in segments] + [0] * (3 - len(segments))
    return (numbers[0], numbers[1], numbers[2]), prerelease


def should_upgrade(current: str, recommended: str) -> bool:
    """
    Return True iff ``recommended`` is strictly newer than ``current``.

    Used negated as the no-downgrade rule: a stored version is only replaced
    when this returns True.

    Args:
        current: The version already present in the manifest
        recommended: The version the pack recommends

    Returns:
        True when the manifest should move to ``recommended``
    """
    if not recommended.strip() or current.strip() == "*":
        return False

    cur = parse_version(current)
    rec = parse_version(recommended)
    if cur is None or rec is None:
        return recommended.strip() > current.strip()

    (cur_core, cur_pre), (rec_core, rec_pre) = cur, rec
    if rec_core != cur_core:
        return rec_core > cur_core

    # Same core: a release outranks any pre-release of it.
    if cur_pre and not rec_pre:
        return True
    if rec_pre and not cur_pre:
        return False
    return rec_pre > cur_pre
