"""Time zone inference for dates rendered from serial day numbers.

A workbook that was produced from another one may show serial dates as
text, rendered in whatever zone the producing process ran in. Given rows
from both sides that share an identifying key, each candidate zone is
scored by how many of the raw serial values it renders to exactly the text
that was observed.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sheet_records.models import CellKind, CellValue, Record
from sheet_records.services.value_coercion import (
    DEFAULT_MAX_YEAR,
    DEFAULT_MIN_YEAR,
    to_datetime,
)
from sheet_records.utils.exceptions import ConfigurationError
from sheet_records.utils.logging import get_logger

logger = get_logger(__name__)

DISPLAY_FORMAT = "%m/%d/%Y %H:%M:%S"
DEFAULT_SAMPLE_LIMIT = 100


def format_display(instant: datetime, zone: str | None = None) -> str:
    """Render an instant as ``MM/DD/YYYY HH:MM:SS``.

    Args:
        instant: Timezone-aware instant.
        zone: IANA zone to render in; the process-local zone when None.
    """
    local = instant.astimezone(ZoneInfo(zone)) if zone else instant.astimezone()
    return local.strftime(DISPLAY_FORMAT)


def format_date_value(
    value: CellValue,
    zone: str | None = None,
    *,
    min_year: int = DEFAULT_MIN_YEAR,
    max_year: int = DEFAULT_MAX_YEAR,
) -> str:
    """Render a cell as a display date.

    Empty cells render as empty text. Values that cannot be read as a date
    are returned as their original text so the caller can still see them.
    """
    if value.is_empty:
        return ""
    instant = to_datetime(value, min_year=min_year, max_year=max_year)
    if instant is None:
        return value.as_text()
    return format_display(instant, zone)


@dataclass(frozen=True)
class SamplePair:
    """A source row with raw serial dates and the row rendered from it."""

    model_row: Record
    rendered_row: Record


def score_timezones(
    samples: Sequence[SamplePair],
    candidate_zones: Sequence[str],
    date_fields: Sequence[str],
    *,
    min_year: int = DEFAULT_MIN_YEAR,
    max_year: int = DEFAULT_MAX_YEAR,
) -> dict[str, int]:
    """Count exact display-text matches per candidate zone.

    Zones for which no numeric date value was compared are left out.
    """
    scores: dict[str, int] = {}
    for zone in candidate_zones:
        matches = 0
        compared = 0
        for sample in samples:
            for date_field in date_fields:
                model_value = sample.model_row.get(date_field)
                if model_value is None or model_value.kind is not CellKind.NUMBER:
                    continue
                expected = format_date_value(
                    model_value, zone, min_year=min_year, max_year=max_year
                )
                observed = sample.rendered_row.get(date_field, CellValue.empty())
                compared += 1
                if expected == observed.as_text():
                    matches += 1
        if compared:
            scores[zone] = matches
    return scores


def infer_timezone(
    samples: Sequence[SamplePair],
    candidate_zones: Sequence[str],
    date_fields: Sequence[str],
    *,
    min_year: int = DEFAULT_MIN_YEAR,
    max_year: int = DEFAULT_MAX_YEAR,
) -> str | None:
    """Pick the candidate zone that best explains the rendered dates.

    Ties go to the zone listed first.

    Returns:
        The winning zone name, or None when there are no usable samples.
    """
    if not samples:
        return None
    scores = score_timezones(
        samples, candidate_zones, date_fields, min_year=min_year, max_year=max_year
    )
    best_zone: str | None = None
    best_matches = -1
    for zone in candidate_zones:
        matches = scores.get(zone)
        if matches is not None and matches > best_matches:
            best_zone, best_matches = zone, matches
    logger.debug("Scored time zones", scores=scores, selected=best_zone)
    return best_zone


def _normalize_key(value: CellValue | None) -> str | None:
    if value is None or value.kind is not CellKind.TEXT:
        return None
    key = value.as_text().strip().lower()
    return key or None


class TimezoneResolver:
    """Infers the display zone of rendered dates from paired rows.

    Example:
        resolver = TimezoneResolver(
            candidate_zones=["America/Chicago", "UTC"],
            date_fields=["Billing Start Date", "Billing End Date"],
            model_key="Customer Email",
            rendered_key="Email",
        )
        zone = resolver.infer(source_records, output_records)
    """

    def __init__(
        self,
        candidate_zones: Sequence[str],
        date_fields: Sequence[str],
        model_key: str,
        rendered_key: str | None = None,
        *,
        sample_limit: int = DEFAULT_SAMPLE_LIMIT,
        min_year: int = DEFAULT_MIN_YEAR,
        max_year: int = DEFAULT_MAX_YEAR,
    ) -> None:
        """Initialize the resolver.

        Args:
            candidate_zones: IANA zones to try, in priority order.
            date_fields: Fields holding serial dates on the model side and
                rendered text on the other.
            model_key: Field identifying a row on the model side.
            rendered_key: Field identifying a row on the rendered side;
                defaults to ``model_key``.
            sample_limit: Maximum number of pairs to score.
            min_year: Earliest acceptable serial date year.
            max_year: Latest acceptable serial date year.

        Raises:
            ConfigurationError: If a zone is unknown or no zones are given.
        """
        if not candidate_zones:
            raise ConfigurationError("At least one candidate time zone is required")
        for zone in candidate_zones:
            try:
                ZoneInfo(zone)
            except (ZoneInfoNotFoundError, ValueError) as exc:
                raise ConfigurationError(
                    f"Unknown time zone: {zone}", details={"zone": zone}
                ) from exc
        if sample_limit < 1:
            raise ConfigurationError(
                f"sample_limit must be at least 1, got {sample_limit}"
            )

        self.candidate_zones = list(candidate_zones)
        self.date_fields = list(date_fields)
        self.model_key = model_key
        self.rendered_key = rendered_key or model_key
        self.sample_limit = sample_limit
        self.min_year = min_year
        self.max_year = max_year

    def collect_samples(
        self,
        model_rows: Iterable[Record],
        rendered_rows: Iterable[Record],
    ) -> list[SamplePair]:
        """Pair rows whose keys match, keeping those with a serial date.

        Keys are compared trimmed and case-insensitively. When several model
        rows share a key the first one is used.
        """
        by_key: dict[str, Record] = {}
        for row in model_rows:
            key = _normalize_key(row.get(self.model_key))
            if key is not None and key not in by_key:
                by_key[key] = row

        samples: list[SamplePair] = []
        for rendered in rendered_rows:
            key = _normalize_key(rendered.get(self.rendered_key))
            model_row = by_key.get(key) if key is not None else None
            if model_row is None or not self._has_serial_date(model_row):
                continue
            samples.append(SamplePair(model_row=model_row, rendered_row=rendered))
            if len(samples) >= self.sample_limit:
                break
        return samples

    def infer(
        self,
        model_rows: Iterable[Record],
        rendered_rows: Iterable[Record],
    ) -> str | None:
        """Collect samples and return the best-matching zone, if any."""
        samples = self.collect_samples(model_rows, rendered_rows)
        zone = infer_timezone(
            samples,
            self.candidate_zones,
            self.date_fields,
            min_year=self.min_year,
            max_year=self.max_year,
        )
        if zone is None:
            logger.info("No dated sample pairs; time zone not inferred")
        else:
            logger.info("Inferred time zone", zone=zone, samples=len(samples))
        return zone

    def _has_serial_date(self, row: Record) -> bool:
        return any(
            (value := row.get(date_field)) is not None
            and value.kind is CellKind.NUMBER
            for date_field in self.date_fields
        )
