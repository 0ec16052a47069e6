"""Header keyword policy — which labels mark the month, dimensions and measures."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType


class ColumnCategory(str, Enum):
    month = "month"
    exclude = "exclude"
    include = "include"


# Substring match, case-sensitive, first hit wins.
DEFAULT_KEYWORDS: Mapping[ColumnCategory, tuple[str, ...]] = MappingProxyType({
    ColumnCategory.month: ("会计月", "会计期间", "会计月份", "月份", "期间"),
    # Dimension-like columns: codes, IDs, names, specs, units.
    ColumnCategory.exclude: (
        "编码", "编号", "ID", "id", "Id", "序号", "代码",
        "供应商", "客户", "单品", "物料", "产品", "商品",
        "名称", "规格", "单位", "企业", "厂家", "品名",
    ),
    # Measures: quantities, amounts, balances, movements.
    ColumnCategory.include: (
        "数量", "金额", "数", "价", "额", "量", "率",
        "期初", "期末", "入库", "出库", "退货", "发货",
        "成本", "利润", "收入", "支出", "合计", "总",
    ),
})


def _first_hit(header: str, keywords: Iterable[str]) -> str | None:
    for keyword in keywords:
        if keyword in header:
            return keyword
    return None


@dataclass(frozen=True)
class KeywordPolicy:
    """Immutable category → keywords table consulted by the classifier."""

    keywords: Mapping[ColumnCategory, tuple[str, ...]] = field(
        default_factory=lambda: DEFAULT_KEYWORDS
    )

    def __post_init__(self) -> None:
        table = {ColumnCategory(k): tuple(v) for k, v in self.keywords.items()}
        object.__setattr__(self, "keywords", MappingProxyType(table))

    def labels(self, category: ColumnCategory) -> tuple[str, ...]:
        return self.keywords.get(category, ())

    def match(self, category: ColumnCategory, header: str) -> str | None:
        """Return the first keyword of *category* found in *header*, if any."""
        return _first_hit(header, self.labels(category))

    def is_month(self, header: str) -> bool:
        return self.match(ColumnCategory.month, header) is not None

    def is_excluded(self, header: str) -> bool:
        return self.match(ColumnCategory.exclude, header) is not None

    def is_included(self, header: str) -> bool:
        return self.match(ColumnCategory.include, header) is not None

    def extended(self, extra: dict[ColumnCategory, list[str]]) -> KeywordPolicy:
        """Return a new policy with *extra* keywords appended per category."""
        merged: dict[ColumnCategory, tuple[str, ...]] = dict(self.keywords)
        for category, words in extra.items():
            current = list(merged.get(category, ()))
            for word in words:
                if word not in current:
                    current.append(word)
            merged[category] = tuple(current)
        return KeywordPolicy(keywords=merged)


DEFAULT_POLICY = KeywordPolicy()


def parse_profile_lines(lines: Iterable[str]) -> dict[ColumnCategory, list[str]]:
    """Parse ``category=keyword`` lines into a category → keywords mapping.

    Blank lines and ``#`` comments are ignored.

    Raises
    ------
    ValueError
        On a line without ``=``, an unknown category, or an empty keyword.
    """
    extra: dict[ColumnCategory, list[str]] = {}
    for lineno, line in enumerate(lines, start=1):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        if "=" not in stripped:
            raise ValueError(
                f"Invalid profile line {lineno}: {stripped!r} (expected category=keyword)"
            )
        raw_category, keyword = (part.strip() for part in stripped.split("=", 1))
        try:
            category = ColumnCategory(raw_category.lower())
        except ValueError:
            allowed = ", ".join(c.value for c in ColumnCategory)
            raise ValueError(
                f"Unknown profile category {raw_category!r} on line {lineno} (use {allowed})"
            ) from None
        if not keyword:
            raise ValueError(f"Empty keyword on profile line {lineno}")
        extra.setdefault(category, []).append(keyword)
    return extra


def load_policy(profile: Path | None, base: KeywordPolicy = DEFAULT_POLICY) -> KeywordPolicy:
    """Return *base* extended with the keywords listed in *profile*."""
    if not profile:
        return base
    if not profile.exists():
        raise ValueError(f"Profile not found: {profile} (expected lines like include=单价)")
    if profile.is_dir():
        raise ValueError(f"Profile is a directory, not a file: {profile}")
    try:
        text = profile.read_text(encoding="utf-8")
    except OSError as exc:
        raise ValueError(f"Cannot read profile {profile}: {exc}") from exc
    extra = parse_profile_lines(text.splitlines())
    return base.extended(extra) if extra else base
