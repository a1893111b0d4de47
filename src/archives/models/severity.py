"""Severity model: the single source of truth for severity ordering.

OpenTelemetry assigns each severity name a band of four numbers
(TRACE 1-4, DEBUG 5-8, INFO 9-12, WARN 13-16, ERROR 17-20, FATAL 21-24).
Each member's value is the lower bound of its band, so ordering members
is ordering bands, and a "minimum severity" filter becomes
``SeverityNumber >= threshold.lower_bound``.

Every severity comparison in the codebase goes through ``rank``/``matches``
or the members themselves; no call site hard-codes a number.
"""

from enum import IntEnum

from archives.errors import InvalidSeverity


class Severity(IntEnum):
    """Ordinal severity scale, valued by OTel severity-number lower bound."""

    TRACE = 1
    DEBUG = 5
    INFO = 9
    WARN = 13
    ERROR = 17
    FATAL = 21

    @property
    def lower_bound(self) -> int:
        return int(self.value)

    @property
    def upper_bound(self) -> int:
        return int(self.value) + 3

    @property
    def ordinal(self) -> int:
        """Position on the scale, TRACE=0 .. FATAL=5."""
        return _ORDER.index(self)

    def __str__(self) -> str:
        return self.name

    @classmethod
    def parse(cls, name: "str | Severity", field: str = "min_severity") -> "Severity":
        """Resolve a textual severity name (case-insensitive).

        Raises:
            InvalidSeverity: for anything outside TRACE..FATAL.
        """
        if isinstance(name, Severity):
            return name
        if not isinstance(name, str):
            raise InvalidSeverity(name, field)
        try:
            return cls[name.strip().upper()]
        except KeyError:
            raise InvalidSeverity(name, field) from None

    @classmethod
    def from_number(cls, number: int | None) -> "Severity":
        """Reverse-map an OTel severity number to its band.

        Numbers outside 1..24 (including 0, "unspecified") fall back to INFO.
        """
        if number is None or not 1 <= number <= 24:
            return cls.INFO
        for member in reversed(_ORDER):
            if number >= member.lower_bound:
                return member
        return cls.INFO


_ORDER: tuple[Severity, ...] = tuple(sorted(Severity, key=lambda s: s.value))


def rank(name: "str | Severity") -> int:
    """Ordinal rank of a severity name. Raises InvalidSeverity when unknown."""
    return Severity.parse(name).ordinal


def matches(record_severity: "str | Severity", min_severity: "str | Severity") -> bool:
    """True iff the record's severity is at or above the threshold."""
    return rank(record_severity) >= rank(min_severity)
