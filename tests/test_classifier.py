"""Unit tests for candidate tiering."""

from affiliate_scout.classifier import classify_rows, classify_title
from affiliate_scout.config import MatchThresholds
from affiliate_scout.models import Identity, ListingRow, SearchQuery, Tier


def make_row(title: str, price: int = 50000, index: int = 0) -> ListingRow:
    return ListingRow(
        index=index,
        identity=Identity.of(title),
        title=title,
        shop_name="",
        price=price,
        sold_count=0,
        commission=0,
    )


class TestClassifyTitle:
    """Tests for classify_title."""

    def test_model_path_strict(self):
        assert classify_title("rx580 8gb", "Sapphire RX580 8GB") is Tier.STRICT

    def test_model_path_rejects_without_fallback(self):
        """A model query never falls back to soft or category tiers."""
        assert classify_title("sabuk x200", "Sabuk Pria Kulit") is None

    def test_digits_only_query_uses_generic_path(self):
        assert classify_title("iphone 13 case", "Case iPhone 13 Pro Max Bening") is Tier.STRICT

    def test_synonym_bridge_is_at_least_soft(self):
        tier = classify_title("sabuk pria tanpa lubang", "Ikat Pinggang Pria Otomatis Anti Ribet")
        assert tier in (Tier.STRICT, Tier.SOFT)

    def test_soft_tier(self):
        assert classify_title("kaos polos hitam", "Kaos Oversize Putih") is Tier.SOFT

    def test_category_tier(self):
        assert classify_title("sabuk kulit buaya asli premium", "Gesper Kanvas Tentara") is Tier.CATEGORY

    def test_rejected(self):
        assert classify_title("kaos polos", "Sepatu Lari") is None

    def test_thresholds_are_overridable(self):
        strict_only = MatchThresholds(soft_ratio=0.5)
        assert classify_title("kaos polos hitam", "Kaos Oversize Putih", strict_only) is None


class TestClassifyRows:
    """Tests for classify_rows."""

    def test_price_filter_applies_first(self):
        rows = [
            make_row("Kaos Polos Hitam", price=30000, index=0),
            make_row("Kaos Polos Putih", price=80000, index=1),
            make_row("Kaos Polos Abu", price=150000, index=2),
        ]
        buckets = classify_rows(rows, SearchQuery("kaos polos", min_price=50000, max_price=100000))
        assert [c.title for c in buckets[Tier.STRICT]] == ["Kaos Polos Putih"]

    def test_zero_bounds_mean_unbounded(self):
        rows = [make_row("Kaos Polos", price=1), make_row("Kaos Polos Jumbo", price=10**9, index=1)]
        buckets = classify_rows(rows, SearchQuery("kaos polos"))
        assert len(buckets[Tier.STRICT]) == 2

    def test_buckets_always_present(self):
        buckets = classify_rows([], SearchQuery("kaos"))
        assert set(buckets) == {Tier.STRICT, Tier.SOFT, Tier.CATEGORY}
