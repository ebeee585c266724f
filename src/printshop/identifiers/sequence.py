"""Year-scoped, human-readable identifiers such as ``ORD-2026-0000042``.

Each ``(prefix, year)`` pair owns one counter document. Issuing a number
reads the counter, advances it and writes it back only if the stored value
is still the one that was read. A writer that loses the race gets a
``SequenceConflict`` and ``next_identifier`` retries with a fresh read.

The first number of a year is seeded from the highest identifier already
present in the data, so counters can be introduced over existing records.
"""

import re
from collections.abc import Callable, Iterable
from datetime import UTC, datetime

import structlog
from protean.fields import Integer, String
from protean.utils.globals import current_domain
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_random_exponential

from printshop.domain import printshop
from printshop.shared.errors import SequenceConflict
from printshop.utils import settings

logger = structlog.get_logger(__name__)

ORDER_PREFIX = "ORD"
ORDER_WIDTH = 7
USER_PREFIX = "USR"
USER_WIDTH = 6


def sequence_key(prefix: str, year: int) -> str:
    return f"{prefix}-{year}"


def format_identifier(prefix: str, year: int, value: int, width: int) -> str:
    return f"{prefix}-{year}-{value:0{width}d}"


def parse_sequence_number(identifier: str | None, prefix: str, year: int) -> int | None:
    """Numeric suffix of ``identifier`` if it belongs to ``prefix`` and ``year``."""
    match = re.fullmatch(rf"{re.escape(prefix)}-{year}-(\d+)", identifier or "")
    return int(match.group(1)) if match else None


def highest_issued(identifiers: Iterable[str], prefix: str, year: int) -> int:
    numbers = (parse_sequence_number(identifier, prefix, year) for identifier in identifiers)
    return max((n for n in numbers if n is not None), default=0)


@printshop.aggregate
class IdentifierSequence:
    key = String(identifier=True, max_length=20)
    prefix = String(required=True, max_length=10)
    year = Integer(required=True)
    width = Integer(required=True, min_value=1)
    last_value = Integer(default=0, min_value=0)

    @classmethod
    def start(cls, prefix, year, width, seed=0):
        return cls(
            key=sequence_key(prefix, year),
            prefix=prefix,
            year=year,
            width=width,
            last_value=seed,
        )

    def advance(self) -> str:
        self.last_value += 1
        return format_identifier(self.prefix, self.year, self.last_value, self.width)


@printshop.repository(part_of=IdentifierSequence)
class IdentifierSequenceRepository:
    def find(self, key: str) -> IdentifierSequence | None:
        found = self._dao.query.filter(key=key).all().items
        return found[0] if found else None

    def claim(self, sequence: IdentifierSequence, expected: int | None) -> None:
        """Persist ``sequence`` if the stored counter still equals ``expected``.

        ``expected=None`` means the counter must not exist yet.
        """
        stored = self.find(sequence.key)
        stored_value = stored.last_value if stored is not None else None
        if stored_value != expected:
            raise SequenceConflict({"sequence": [f"Counter {sequence.key} moved on to {stored_value}"]})
        self.add(sequence)


def _log_retry(retry_state):
    logger.warning(
        "Identifier claim lost a race, retrying",
        attempt=retry_state.attempt_number,
    )


@retry(
    reraise=True,
    stop=stop_after_attempt(settings.SEQUENCE_MAX_ATTEMPTS),
    wait=wait_random_exponential(multiplier=0.01, max=0.2),
    retry=retry_if_exception_type(SequenceConflict),
    before_sleep=_log_retry,
)
def next_identifier(
    prefix: str,
    year: int,
    width: int,
    existing: Callable[[], Iterable[str]] | None = None,
) -> str:
    """Issue the next identifier for ``prefix`` in ``year``.

    ``existing`` lists identifiers issued before the counter existed; it is
    only consulted when the year's counter is created.
    """
    repo = current_domain.repository_for(IdentifierSequence)
    sequence = repo.find(sequence_key(prefix, year))

    if sequence is None:
        seed = highest_issued(existing(), prefix, year) if existing else 0
        sequence = IdentifierSequence.start(prefix, year, width, seed=seed)
        expected = None
    else:
        expected = sequence.last_value

    identifier = sequence.advance()
    repo.claim(sequence, expected)
    return identifier


def next_user_id(year: int | None = None) -> str:
    return next_identifier(USER_PREFIX, year or datetime.now(UTC).year, USER_WIDTH)
