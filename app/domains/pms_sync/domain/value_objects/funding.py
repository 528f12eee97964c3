"""
Funding scheme value objects.

WC is a lifetime entitlement, EPC resets every calendar year. When a patient
or an appointment type qualifies for both, WC wins.
"""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from app.core.domain import StatusEnum, ValueObject


class FundingScheme(StatusEnum):
    """Funding schemes an appointment type or patient can be classified under."""

    WC = "WC"
    EPC = "EPC"

    @classmethod
    def by_priority(cls) -> tuple["FundingScheme", ...]:
        """Schemes in tie-break order (first wins)."""
        return (cls.WC, cls.EPC)


def normalize_tags(raw: Iterable[str] | str | None) -> tuple[str, ...]:
    """
    Normalize a tag vocabulary.

    Accepts a list of tags or a comma-separated string. Tags are trimmed,
    empty entries dropped and duplicates removed (case-insensitive, first
    spelling kept).
    """
    if raw is None:
        return ()
    items = raw.split(",") if isinstance(raw, str) else list(raw)

    seen: set[str] = set()
    tags: list[str] = []
    for item in items:
        tag = str(item).strip()
        if tag and tag.lower() not in seen:
            seen.add(tag.lower())
            tags.append(tag)
    return tuple(tags)


@dataclass(frozen=True)
class FundingTags(ValueObject):
    """
    Clinic-configurable tag vocabulary per funding scheme.

    Example:
        ```python
        tags = FundingTags.create(wc_tags=["WC", "WorkCover"], epc_tags="EPC, Medicare")
        ```
    """

    wc_tags: tuple[str, ...] = ("WC",)
    epc_tags: tuple[str, ...] = ("EPC",)

    def _validate(self) -> None:
        object.__setattr__(self, "wc_tags", normalize_tags(self.wc_tags))
        object.__setattr__(self, "epc_tags", normalize_tags(self.epc_tags))

    @classmethod
    def create(
        cls,
        wc_tags: Iterable[str] | str | None = None,
        epc_tags: Iterable[str] | str | None = None,
        default_wc: Iterable[str] = ("WC",),
        default_epc: Iterable[str] = ("EPC",),
    ) -> "FundingTags":
        """Build tags, falling back to the defaults for an empty vocabulary."""
        wc = normalize_tags(wc_tags) or normalize_tags(default_wc)
        epc = normalize_tags(epc_tags) or normalize_tags(default_epc)
        return cls(wc_tags=wc, epc_tags=epc)

    def tags_for(self, scheme: FundingScheme) -> tuple[str, ...]:
        return self.wc_tags if scheme == FundingScheme.WC else self.epc_tags

    def by_priority(self) -> Iterator[tuple[FundingScheme, tuple[str, ...]]]:
        for scheme in FundingScheme.by_priority():
            yield scheme, self.tags_for(scheme)

    def as_csv(self, scheme: FundingScheme) -> str:
        """Comma-separated form used for storage."""
        return ",".join(self.tags_for(scheme))


@dataclass(frozen=True)
class QuotaPolicy(ValueObject):
    """Session quota per funding scheme."""

    wc_quota: int = 8
    epc_quota: int = 5

    def _validate(self) -> None:
        if self.wc_quota < 0 or self.epc_quota < 0:
            raise ValueError("Quota cannot be negative")

    def quota_for(self, scheme: FundingScheme) -> int:
        return self.wc_quota if scheme == FundingScheme.WC else self.epc_quota
