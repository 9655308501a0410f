"""Domain models for normalized ad records, filters and derived rollups."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields, replace
from datetime import date
from typing import Any, Mapping, Sequence

import polars as pl


DIMENSION_FIELDS: list[str] = [
    "date",
    "product",
    "account_name",
    "campaign_name",
    "ad_set_name",
    "ad_name",
]
ADDITIVE_FIELDS: list[str] = [
    "spend",
    "impressions",
    "reach",
    "link_clicks",
    "lpv",
    "leads",
    "purchases",
    "conversations",
    "comments",
    "engagement",
    "reactions",
    "shares",
    "saves",
    "thruplays",
    "plays",
    "video95",
]
SOURCE_RATIO_FIELDS: list[str] = [
    "cost_per_lead",
    "cost_per_purchase",
    "cost_per_conversation",
    "ctr_meta",
]
METADATA_FIELDS: list[str] = ["engagement_ranking", "thumbnail_url", "permalink"]
RECORD_COLUMNS: list[str] = [
    *DIMENSION_FIELDS,
    *ADDITIVE_FIELDS,
    *SOURCE_RATIO_FIELDS,
    "ctr_normalized",
    *METADATA_FIELDS,
]
RECORD_SCHEMA: dict[str, Any] = {
    column: (pl.Utf8 if column in DIMENSION_FIELDS or column in METADATA_FIELDS else pl.Float64)
    for column in RECORD_COLUMNS
}

# Descriptive fields carried from the first record of each creative.
CREATIVE_DESCRIPTIVE_FIELDS: list[str] = [
    "product",
    "account_name",
    "campaign_name",
    "ad_set_name",
    "thumbnail_url",
    "permalink",
    "engagement_ranking",
]
# name -> (numerator, denominator, scale)
RATIO_DEFINITIONS: dict[str, tuple[str, str, float]] = {
    "ctr": ("link_clicks", "impressions", 100.0),
    "retention": ("video95", "plays", 100.0),
    "cpa": ("spend", "purchases", 1.0),
    "cpc": ("spend", "link_clicks", 1.0),
    "cpl": ("spend", "leads", 1.0),
    "cost_per_conversation": ("spend", "conversations", 1.0),
    "lpv_rate": ("lpv", "link_clicks", 100.0),
    "cpm": ("spend", "impressions", 1000.0),
}
RATIO_FIELDS: list[str] = list(RATIO_DEFINITIONS)
CREATIVE_COLUMNS: list[str] = ["ad_name", *CREATIVE_DESCRIPTIVE_FIELDS, *ADDITIVE_FIELDS, *RATIO_FIELDS]
TIME_BUCKET_COLUMNS: list[str] = ["day", "label", *ADDITIVE_FIELDS, *RATIO_FIELDS]

DATE_PRESETS: tuple[str, ...] = ("7d", "14d", "30d", "mtd", "all", "custom")
DATE_PRESET_DAYS: dict[str, int] = {"7d": 7, "14d": 14, "30d": 30}
DEFAULT_DATE_PRESET = "30d"
RESULT_TYPES: tuple[str, ...] = ("leads", "purchases", "conversations")
ENGAGEMENT_RANKINGS: tuple[str, ...] = (
    "ABOVE_AVERAGE",
    "AVERAGE",
    "BELOW_AVERAGE_10",
    "BELOW_AVERAGE_20",
    "BELOW_AVERAGE_35",
    "UNKNOWN",
)
UNKNOWN_RANKING = "UNKNOWN"


def _to_float(value: Any, default: float = 0.0) -> float:
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _to_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


@dataclass(frozen=True)
class AdRecord:
    """One normalized row of ad performance; immutable once built."""

    date: str
    product: str
    account_name: str = ""
    campaign_name: str = ""
    ad_set_name: str = ""
    ad_name: str = ""
    spend: float = 0.0
    impressions: float = 0.0
    reach: float = 0.0
    link_clicks: float = 0.0
    lpv: float = 0.0
    leads: float = 0.0
    purchases: float = 0.0
    conversations: float = 0.0
    comments: float = 0.0
    engagement: float = 0.0
    reactions: float = 0.0
    shares: float = 0.0
    saves: float = 0.0
    thruplays: float = 0.0
    plays: float = 0.0
    video95: float = 0.0
    cost_per_lead: float = 0.0
    cost_per_purchase: float = 0.0
    cost_per_conversation: float = 0.0
    ctr_meta: float = 0.0
    ctr_normalized: float = 0.0
    engagement_ranking: str = UNKNOWN_RANKING
    thumbnail_url: str = ""
    permalink: str = ""

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "AdRecord":
        values: dict[str, Any] = {}
        for item in fields(cls):
            raw = row.get(item.name)
            if RECORD_SCHEMA[item.name] == pl.Float64:
                values[item.name] = _to_float(raw)
            elif item.name == "engagement_ranking":
                values[item.name] = _to_text(raw) or UNKNOWN_RANKING
            else:
                values[item.name] = _to_text(raw)
        return cls(**values)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def empty_record_frame() -> pl.DataFrame:
    return pl.DataFrame(schema=RECORD_SCHEMA)


def records_to_frame(records: Sequence[AdRecord]) -> pl.DataFrame:
    if not records:
        return empty_record_frame()
    return pl.DataFrame([record.to_dict() for record in records], schema=RECORD_SCHEMA)


def frame_to_records(frame: pl.DataFrame) -> list[AdRecord]:
    return [AdRecord.from_row(row) for row in frame.select(RECORD_COLUMNS).iter_rows(named=True)]


@dataclass(frozen=True)
class IngestionReport:
    total_rows: int
    valid_rows: int
    date_range: tuple[str, str] = ("", "")
    missing_columns: list[str] = field(default_factory=list)
    extra_columns: list[str] = field(default_factory=list)

    @property
    def dropped_rows(self) -> int:
        return self.total_rows - self.valid_rows

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_rows": self.total_rows,
            "valid_rows": self.valid_rows,
            "dropped_rows": self.dropped_rows,
            "date_range": list(self.date_range),
            "missing_columns": list(self.missing_columns),
            "extra_columns": list(self.extra_columns),
        }


_FILTER_PAYLOAD_KEYS: dict[str, str] = {
    "datePreset": "date_preset",
    "dateRange": "date_range",
    "resultType": "result_type",
    "selectedProduct": "product",
    "selectedCampaign": "campaign_name",
    "selectedAdSet": "ad_set_name",
    "selectedAd": "ad_name",
}


def _to_optional_date(value: Any) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


@dataclass(frozen=True)
class Filters:
    """User-selected filter state, passed explicitly into the filter pipeline.

    The selectors form the hierarchy product > campaign > ad set > ad. The
    ``select_*`` helpers clear every lower selector in the same update; the
    pipeline itself accepts any combination.
    """

    date_preset: str = DEFAULT_DATE_PRESET
    date_range: tuple[date | None, date | None] = (None, None)
    result_type: str = "purchases"
    product: str = ""
    campaign_name: str = ""
    ad_set_name: str = ""
    ad_name: str = ""

    def __post_init__(self) -> None:
        if self.date_preset not in DATE_PRESETS:
            raise ValueError(f"Unknown date preset: {self.date_preset!r} (expected one of {list(DATE_PRESETS)})")
        if self.result_type not in RESULT_TYPES:
            raise ValueError(f"Unknown result type: {self.result_type!r} (expected one of {list(RESULT_TYPES)})")

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Filters":
        values: dict[str, Any] = {}
        for key, value in payload.items():
            name = _FILTER_PAYLOAD_KEYS.get(key, key)
            if name in {"date_preset", "result_type", "product", "campaign_name", "ad_set_name", "ad_name"}:
                values[name] = str(value or "")
            elif name == "date_range" and value:
                start, end = list(value)[:2]
                values[name] = (_to_optional_date(start), _to_optional_date(end))
        if not values.get("date_preset"):
            values.pop("date_preset", None)
        if not values.get("result_type"):
            values.pop("result_type", None)
        return cls(**values)

    @classmethod
    def reset(cls, date_preset: str = DEFAULT_DATE_PRESET) -> "Filters":
        return cls(date_preset=date_preset)

    def with_date_preset(
        self,
        date_preset: str,
        date_range: tuple[date | None, date | None] = (None, None),
    ) -> "Filters":
        return replace(self, date_preset=date_preset, date_range=date_range)

    def select_product(self, product: str) -> "Filters":
        return replace(self, product=product, campaign_name="", ad_set_name="", ad_name="")

    def select_campaign(self, campaign_name: str) -> "Filters":
        return replace(self, campaign_name=campaign_name, ad_set_name="", ad_name="")

    def select_ad_set(self, ad_set_name: str) -> "Filters":
        return replace(self, ad_set_name=ad_set_name, ad_name="")

    def select_ad(self, ad_name: str) -> "Filters":
        return replace(self, ad_name=ad_name)


@dataclass(frozen=True)
class AggregatedCreative:
    ad_name: str
    product: str
    account_name: str
    campaign_name: str
    ad_set_name: str
    thumbnail_url: str
    permalink: str
    engagement_ranking: str
    totals: dict[str, float]
    ratios: dict[str, float]

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "AggregatedCreative":
        return cls(
            ad_name=_to_text(row.get("ad_name")),
            product=_to_text(row.get("product")),
            account_name=_to_text(row.get("account_name")),
            campaign_name=_to_text(row.get("campaign_name")),
            ad_set_name=_to_text(row.get("ad_set_name")),
            thumbnail_url=_to_text(row.get("thumbnail_url")),
            permalink=_to_text(row.get("permalink")),
            engagement_ranking=_to_text(row.get("engagement_ranking")) or UNKNOWN_RANKING,
            totals={name: _to_float(row.get(name)) for name in ADDITIVE_FIELDS},
            ratios={name: _to_float(row.get(name)) for name in RATIO_FIELDS},
        )

    @property
    def spend(self) -> float:
        return self.totals["spend"]

    @property
    def purchases(self) -> float:
        return self.totals["purchases"]


@dataclass(frozen=True)
class TimeBucket:
    day: date
    label: str
    totals: dict[str, float]
    ratios: dict[str, float]

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "TimeBucket":
        return cls(
            day=row["day"],
            label=_to_text(row.get("label")),
            totals={name: _to_float(row.get(name)) for name in ADDITIVE_FIELDS},
            ratios={name: _to_float(row.get(name)) for name in RATIO_FIELDS},
        )


@dataclass(frozen=True)
class LeaderboardEntry:
    name: str
    value: float


@dataclass(frozen=True)
class FilterOptions:
    products: list[str]
    campaigns: list[str]
    ad_sets: list[str]
    ads: list[str]
