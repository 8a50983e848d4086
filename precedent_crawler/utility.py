import hashlib
import re
from typing import Optional
from urllib.parse import parse_qs, urljoin, urlparse

from precedent_crawler.items import TrialType

COURTS_BASE_URL = "https://www.courts.go.jp"

TRIAL_TYPE_BY_PAGE = {
    2: TrialType.SUPREME_COURT,
    3: TrialType.HIGH_COURT,
    4: TrialType.LOWER_COURT,
    5: TrialType.ADMINISTRATIVE_CASE,
    6: TrialType.LABOR_CASE,
    7: TrialType.IP_CASE,
}

_DETAIL_PATH_RE = re.compile(r"/detail(\d+)$")


def sha256_bytes(b: bytes):
    h = hashlib.sha256()
    h.update(b)
    return h.hexdigest()


def remove_line_break(text: Optional[str]):
    if not text:
        return ""
    return "".join(line.strip() for line in text.splitlines())


def absolute_url(href: str, base_url: str = COURTS_BASE_URL):
    return urljoin(base_url, href.strip())


def lawsuit_id_from_url(url: str):
    ids = parse_qs(urlparse(url).query).get("id")
    if not ids or not ids[0].strip():
        return None
    return ids[0].strip()


def trial_type_from_url(url: str):
    m = _DETAIL_PATH_RE.search(urlparse(url).path)
    if not m:
        return None
    return TRIAL_TYPE_BY_PAGE.get(int(m.group(1)))

