# Define here the models for your scraped items
#
# See documentation in:
# https://docs.scrapy.org/en/latest/topics/items.html
#
# Items are frozen dataclasses; ItemAdapter handles them like scrapy.Item.

from dataclasses import dataclass, fields
from datetime import date
from enum import Enum
from typing import Optional, Tuple, Union

from precedent_crawler.errors import FetchError


class Era(str, Enum):
    SHOWA = "Showa"
    HEISEI = "Heisei"
    REIWA = "Reiwa"

    @property
    def glyph(self):
        return ERA_GLYPHS[self]


ERA_GLYPHS = {
    Era.SHOWA: "昭和",
    Era.HEISEI: "平成",
    Era.REIWA: "令和",
}


class TrialType(str, Enum):
    SUPREME_COURT = "SupremeCourt"            # 最高裁判所  detail2
    HIGH_COURT = "HighCourt"                  # 高等裁判所  detail3
    LOWER_COURT = "LowerCourt"                # 下級裁判所  detail4
    ADMINISTRATIVE_CASE = "AdministrativeCase"  # 行政事件  detail5
    LABOR_CASE = "LaborCase"                  # 労働事件    detail6
    IP_CASE = "IPCase"                        # 知的財産    detail7


@dataclass(frozen=True)
class EraDate:
    era: Era
    era_year: int
    year: int
    month: int
    day: int

    def to_date(self) -> date:
        return date(self.year, self.month, self.day)

    def to_json(self):
        return {
            "era": self.era.value,
            "era_year": self.era_year,
            "year": self.year,
            "month": self.month,
            "day": self.day,
        }

    def __str__(self):
        return f"{self.era.glyph}{self.era_year}年{self.month}月{self.day}日 ({self.year:04d}-{self.month:02d}-{self.day:02d})"


@dataclass(frozen=True)
class PrecedentRecord:
    # Required
    trial_type: TrialType
    date: EraDate                  # 裁判年月日
    case_number: str               # 事件番号
    case_name: str                 # 事件名
    court_name: str                # 裁判所・部・法廷名
    lawsuit_id: str                # id assigned by the site, dedupe key
    detail_page_link: str
    full_page_link: str            # 全文, usually a PDF

    # Optional: None means the label was not on the page
    right_skip: Optional[str] = None            # 権利種別
    lawsuit_type: Optional[str] = None          # 訴訟類型
    result_type: Optional[str] = None           # 裁判種別
    result: Optional[str] = None                # 結果
    article_info: Optional[str] = None          # 判例集等巻・号・頁
    original_court_name: Optional[str] = None   # 原審裁判所名
    original_case_number: Optional[str] = None  # 原審事件番号
    original_date: Optional[EraDate] = None     # 原審裁判年月日
    original_result: Optional[str] = None       # 原審結果
    field: Optional[str] = None                 # 分野
    gist: Optional[str] = None                  # 判示事項の要旨
    case_gist: Optional[str] = None             # 裁判要旨
    ref_law: Optional[str] = None               # 参照法条

    def to_json(self):
        out = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            if isinstance(value, EraDate):
                value = value.to_json()
            elif isinstance(value, Enum):
                value = value.value
            out[f.name] = value
        return out


@dataclass(frozen=True)
class DetailResult:
    """Outcome of one detail page, tagged with its discovery position."""

    position: int
    url: str
    outcome: Union[PrecedentRecord, FetchError]

    @property
    def ok(self):
        return isinstance(self.outcome, PrecedentRecord)


@dataclass(frozen=True)
class CrawlResult:
    records: Tuple[PrecedentRecord, ...]
    errors: Tuple[Tuple[str, FetchError], ...]

    def records_json(self):
        return [r.to_json() for r in self.records]

    def errors_json(self):
        return [{"url": url, **error.to_json()} for url, error in self.errors]
