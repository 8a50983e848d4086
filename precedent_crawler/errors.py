from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple


class PrecedentError(Exception):
    pass


class EraCalendarError(PrecedentError, ValueError):
    pass


class UnrecognizedEraToken(EraCalendarError):
    pass


class InvalidEraYear(EraCalendarError):
    pass


class DateOutOfRange(EraCalendarError):
    pass


class DateMismatch(PrecedentError, ValueError):
    def __init__(self, field_name: str, expected, found):
        super().__init__(f"{field_name}: {expected} does not agree with {found}")
        self.field_name = field_name
        self.expected = expected
        self.found = found


class MalformedDetailPage(PrecedentError):
    pass


class PartialExtractionFailure(PrecedentError):
    """A detail page lacked (or had unparseable) required fields."""

    def __init__(self, missing_required_fields, causes=None):
        self.missing_required_fields = tuple(missing_required_fields)
        self.causes = dict(causes or {})
        super().__init__("missing required fields: " + ", ".join(self.missing_required_fields))


class FetchErrorKind(str, Enum):
    NETWORK = "Network"
    HTTP_STATUS = "HttpStatus"
    PARSE_FAILURE = "ParseFailure"
    PARTIAL_EXTRACTION_FAILURE = "PartialExtractionFailure"


@dataclass(frozen=True)
class FetchError:
    kind: FetchErrorKind
    message: str = ""
    status: Optional[int] = None
    missing_fields: Tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def network(cls, message: str):
        return cls(FetchErrorKind.NETWORK, message)

    @classmethod
    def http_status(cls, status: int):
        return cls(FetchErrorKind.HTTP_STATUS, f"HTTP {status}", status=status)

    @classmethod
    def parse_failure(cls, message: str):
        return cls(FetchErrorKind.PARSE_FAILURE, message)

    @classmethod
    def partial_extraction(cls, exc: PartialExtractionFailure):
        return cls(
            FetchErrorKind.PARTIAL_EXTRACTION_FAILURE,
            str(exc),
            missing_fields=exc.missing_required_fields,
        )

    def to_json(self):
        out = {"kind": self.kind.value, "message": self.message}
        if self.status is not None:
            out["status"] = self.status
        if self.missing_fields:
            out["missing_fields"] = list(self.missing_fields)
        return out


class ListingFetchError(PrecedentError):
    """A listing page could not be retrieved; the crawl cannot be trusted to be complete."""

    def __init__(self, url: str, error: FetchError):
        super().__init__(f"listing page {url} failed: {error.message}")
        self.url = url
        self.error = error


class CrawlAborted(PrecedentError):
    def __init__(self, reason: str):
        super().__init__(f"crawl closed before finishing ({reason})")
        self.reason = reason
