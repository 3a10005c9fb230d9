"""Admin recipient resolution for operational alerts."""

import re
from collections.abc import Iterable, Sequence

_SEPARATORS = re.compile(r"[;,\s]+")


def resolve_recipients(raw: str | None, exclusions: Iterable[str], fallback: Sequence[str]) -> list[str]:
    """Turn the configured address string into the list of admins to notify.

    Splits on any run of whitespace, commas or semicolons, drops empties and
    excluded addresses (compared case-insensitively) and case-insensitive
    duplicates, keeping the first spelling seen. If nothing is left,
    ``fallback`` is returned unchanged.

    >>> resolve_recipients("a@x.com, B@X.com", {"b@x.com"}, ["ops@x.com"])
    ['a@x.com']
    """
    excluded = {address.casefold() for address in exclusions}
    seen: set[str] = set()
    recipients: list[str] = []
    for part in _SEPARATORS.split(raw or ""):
        address = part.strip()
        key = address.casefold()
        if not address or key in excluded or key in seen:
            continue
        seen.add(key)
        recipients.append(address)
    return recipients if recipients else list(fallback)
