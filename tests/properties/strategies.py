"""Hypothesis strategies for generating Archives requests and rows."""

from hypothesis import strategies as st
from whenever import Instant, TimeDelta

from archives.models import Aggregation, Severity

# =============================================================================
# SEVERITY
# =============================================================================

severities = st.sampled_from(list(Severity))


@st.composite
def severity_names(draw):
    """Severity names in arbitrary case, possibly padded with whitespace."""
    name = draw(severities).name
    cased = "".join(c.lower() if draw(st.booleans()) else c for c in name)
    return draw(st.sampled_from(["", " ", "\t"])) + cased + draw(st.sampled_from(["", " "]))


severity_numbers = st.integers(min_value=1, max_value=24)

# =============================================================================
# TIME
# =============================================================================

_EPOCH_2026 = Instant.from_utc(2026, 1, 1)


@st.composite
def time_ranges(draw):
    """(start, end) ISO strings with start <= end."""
    start = _EPOCH_2026 + TimeDelta(seconds=draw(st.integers(min_value=0, max_value=86_400 * 60)))
    end = start + TimeDelta(seconds=draw(st.integers(min_value=0, max_value=86_400 * 7)))
    return start.format_iso(), end.format_iso()


# =============================================================================
# USER INPUT
# =============================================================================

# Prefixed so generated input never coincides with fixed SQL text.
user_text = st.text(min_size=0, max_size=40).map(lambda s: f"needle:{s}")

service_names = st.text(
    alphabet=st.characters(exclude_categories=("Cs",)), min_size=1, max_size=30
).map(lambda s: f"svc:{s}")

metric_names = st.from_regex(r"[a-z][a-z0-9_.]{0,30}", fullmatch=True).map(
    lambda s: f"metric:{s}"
)

aggregations = st.sampled_from(list(Aggregation))

page_limits = st.one_of(st.none(), st.integers(min_value=0, max_value=100_000))
offsets = st.integers(min_value=0, max_value=1_000_000)
