from __future__ import annotations

from pathlib import Path

import pytest

from month_summary.keywords import (
    DEFAULT_KEYWORDS,
    DEFAULT_POLICY,
    ColumnCategory,
    KeywordPolicy,
    load_policy,
    parse_profile_lines,
)


def test_default_policy_matches_by_substring() -> None:
    assert DEFAULT_POLICY.is_month("所属会计月")
    assert DEFAULT_POLICY.is_excluded("供应商名称")
    assert DEFAULT_POLICY.is_included("本期入库金额")
    assert not DEFAULT_POLICY.is_included("备注")
    assert DEFAULT_POLICY.match(ColumnCategory.exclude, "产品编码") == "编码"


def test_every_category_has_keywords() -> None:
    for category in ColumnCategory:
        assert DEFAULT_KEYWORDS[category]
        assert DEFAULT_POLICY.labels(category) == DEFAULT_KEYWORDS[category]


def test_extended_appends_without_duplicates_or_mutation() -> None:
    policy = DEFAULT_POLICY.extended(
        {ColumnCategory.include: ["Amount", "数量"], ColumnCategory.exclude: ["备注"]}
    )

    assert policy.labels(ColumnCategory.include)[-1] == "Amount"
    assert policy.labels(ColumnCategory.include).count("数量") == 1
    assert policy.is_excluded("备注")
    assert not DEFAULT_POLICY.is_excluded("备注")
    assert "Amount" not in DEFAULT_POLICY.labels(ColumnCategory.include)


def test_policy_is_frozen() -> None:
    policy = KeywordPolicy()

    with pytest.raises(AttributeError):
        policy.keywords = {}  # type: ignore[misc]


def test_policy_keyword_table_is_read_only() -> None:
    with pytest.raises(TypeError):
        DEFAULT_POLICY.keywords[ColumnCategory.month] = ()  # type: ignore[index]
    with pytest.raises(TypeError):
        DEFAULT_KEYWORDS[ColumnCategory.include] = ()  # type: ignore[index]


def test_policy_copies_caller_table() -> None:
    table = {ColumnCategory.include: ["Amount"]}
    policy = KeywordPolicy(keywords=table)  # type: ignore[arg-type]

    table[ColumnCategory.include].append("Qty")
    table[ColumnCategory.exclude] = ["SKU"]

    assert policy.labels(ColumnCategory.include) == ("Amount",)
    assert policy.labels(ColumnCategory.exclude) == ()


def test_parse_profile_lines_skips_comments_and_blanks() -> None:
    extra = parse_profile_lines(
        [
            "# extra labels",
            "",
            "month = Period",
            "INCLUDE=Amount",
            "include=Qty",
            "exclude=SKU",
        ]
    )

    assert extra == {
        ColumnCategory.month: ["Period"],
        ColumnCategory.include: ["Amount", "Qty"],
        ColumnCategory.exclude: ["SKU"],
    }


@pytest.mark.parametrize(
    ("line", "match"),
    [
        ("include", "expected category=keyword"),
        ("measure=Amount", "Unknown profile category"),
        ("include=  ", "Empty keyword"),
    ],
)
def test_parse_profile_lines_rejects_bad_lines(line: str, match: str) -> None:
    with pytest.raises(ValueError, match=match):
        parse_profile_lines([line])


def test_load_policy_without_profile_returns_base() -> None:
    assert load_policy(None) is DEFAULT_POLICY


def test_load_policy_reads_profile(tmp_path: Path) -> None:
    profile = tmp_path / "profile.txt"
    profile.write_text("month=Month\ninclude=Amount\n", encoding="utf-8")

    policy = load_policy(profile)

    assert policy.is_month("Month")
    assert policy.is_included("Amount")


def test_load_policy_missing_or_directory_profile(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="Profile not found"):
        load_policy(tmp_path / "nope.txt")

    with pytest.raises(ValueError, match="not a file"):
        load_policy(tmp_path)
