from __future__ import annotations

from pathlib import Path

import pytest

from qrid.sentinels import (
    DEFAULT_SENTINELS,
    SentinelRule,
    SentinelTable,
    load_sentinel_profile,
    normalize_field_name,
    parse_sentinel,
)


def test_normalize_field_name_drops_case_spacing_and_punctuation() -> None:
    assert normalize_field_name("Original Cost") == "originalcost"
    assert normalize_field_name("original  cost") == "originalcost"
    assert normalize_field_name(" ORIGINAL_COST ($) ") == "originalcost"


def test_default_table_fills_blank_original_cost_only() -> None:
    assert DEFAULT_SENTINELS.apply("Original Cost", "") == "No Original Cost"
    assert DEFAULT_SENTINELS.apply("original  cost", "") == "No Original Cost"
    assert DEFAULT_SENTINELS.apply("Original Cost", "125.50") == "125.50"
    assert DEFAULT_SENTINELS.apply("Email", "") is None
    assert DEFAULT_SENTINELS.apply("Email", "ann@x.com") == "ann@x.com"


def test_first_matching_rule_wins() -> None:
    table = SentinelTable(
        [SentinelRule("Serial", "No Serial"), SentinelRule("serial", "Unknown")]
    )

    assert table.apply("SERIAL", "") == "No Serial"


def test_extended_appends_without_mutating() -> None:
    extra = DEFAULT_SENTINELS.extended([SentinelRule("Owner", "Unassigned")])

    assert len(DEFAULT_SENTINELS) == 1
    assert len(extra) == 2
    assert extra.apply("owner", "") == "Unassigned"
    assert extra.apply("Original Cost", "") == "No Original Cost"


def test_rule_validation() -> None:
    with pytest.raises(ValueError, match="field_name"):
        SentinelRule("  --  ", "x")
    with pytest.raises(ValueError, match="replacement"):
        SentinelRule("Owner", "   ")


def test_parse_sentinel_splits_on_first_equals() -> None:
    rule = parse_sentinel(" Warranty = n/a = none ")

    assert rule == SentinelRule("Warranty", "n/a = none")
    with pytest.raises(ValueError, match="expected Field Name=Replacement"):
        parse_sentinel("Warranty")
    with pytest.raises(ValueError, match="non-empty"):
        parse_sentinel("=No Warranty")


def test_load_sentinel_profile_skips_comments_and_blank_lines(tmp_path: Path) -> None:
    profile = tmp_path / "sentinels.txt"
    profile.write_text(
        "# placeholders for blank fields\n\nWarranty=No Warranty\nOwner = Unassigned\n",
        encoding="utf-8",
    )

    rules = load_sentinel_profile(profile)

    assert rules == [SentinelRule("Warranty", "No Warranty"), SentinelRule("Owner", "Unassigned")]
    assert load_sentinel_profile(None) == []


def test_load_sentinel_profile_errors(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="not found"):
        load_sentinel_profile(tmp_path / "missing.txt")
    with pytest.raises(ValueError, match="directory"):
        load_sentinel_profile(tmp_path)

    bad = tmp_path / "bad.txt"
    bad.write_text("no equals sign here\n", encoding="utf-8")
    with pytest.raises(ValueError, match="Invalid sentinel"):
        load_sentinel_profile(bad)
