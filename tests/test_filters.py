"""
Tests for the filter pipeline, filter options and the Filters value.

Run with: pytest tests/test_filters.py -v
"""

from datetime import date

import pytest

from metacore.domain.classification import UNCLASSIFIED_PRODUCT
from metacore.domain.models import Filters, empty_record_frame
from metacore.filters import apply_filters, date_window, filter_options

TODAY = date(2024, 3, 15)


@pytest.fixture
def dated_frame(make_frame):
    return make_frame(
        {"date": "2024-02-28", "adName": "old"},
        {"date": "2024-03-01", "adName": "first"},
        {"date": "2024-03-08", "adName": "week"},
        {"date": "2024-03-15", "adName": "today"},
        {"date": "sem data", "adName": "broken"},
    )


# ---------------------------------------------------------------------------
# date window
# ---------------------------------------------------------------------------


class TestDateWindow:
    def test_month_to_date_keeps_first_of_month_only(self, dated_frame):
        result = apply_filters(dated_frame, Filters(date_preset="mtd"), today=TODAY)

        assert result["ad_name"].to_list() == ["first", "week", "today"]

    def test_seven_days_is_inclusive_of_lower_bound(self, dated_frame):
        result = apply_filters(dated_frame, Filters(date_preset="7d"), today=TODAY)

        assert result["ad_name"].to_list() == ["week", "today"]

    def test_all_keeps_everything_including_unparseable(self, dated_frame):
        result = apply_filters(dated_frame, Filters(date_preset="all"), today=TODAY)

        assert result.height == dated_frame.height

    def test_unparseable_dates_fail_an_active_window(self, dated_frame):
        result = apply_filters(dated_frame, Filters(date_preset="30d"), today=TODAY)

        assert "broken" not in result["ad_name"].to_list()
        assert result.height == 4

    def test_custom_range_is_inclusive(self, dated_frame):
        filters = Filters(date_preset="custom", date_range=(date(2024, 3, 1), date(2024, 3, 8)))
        result = apply_filters(dated_frame, filters, today=TODAY)

        assert result["ad_name"].to_list() == ["first", "week"]

    def test_custom_range_open_end(self, dated_frame):
        filters = Filters(date_preset="custom", date_range=(date(2024, 3, 8), None))

        assert apply_filters(dated_frame, filters, today=TODAY)["ad_name"].to_list() == ["week", "today"]

    def test_window_bounds(self):
        assert date_window(Filters(date_preset="14d"), TODAY) == (date(2024, 3, 1), None)
        assert date_window(Filters(date_preset="mtd"), TODAY) == (date(2024, 3, 1), None)
        assert date_window(Filters(date_preset="all"), TODAY) == (None, None)


# ---------------------------------------------------------------------------
# equality selectors
# ---------------------------------------------------------------------------


class TestSelectors:
    def test_ad_set_alone_matches_across_products_and_campaigns(self, mixed_rows, make_frame):
        frame = make_frame(*mixed_rows)
        result = apply_filters(frame, Filters(date_preset="all", ad_set_name="Frio"), today=TODAY)

        assert result["ad_name"].to_list() == ["A", "C"]
        assert set(result["product"].to_list()) == {"CBAS", "IBFC"}
        assert (result["ad_set_name"] == "Frio").all()

    def test_selectors_compose_with_and(self, mixed_rows, make_frame):
        frame = make_frame(*mixed_rows)
        filters = Filters(date_preset="all", product="CBAS", ad_set_name="Frio")

        assert apply_filters(frame, filters, today=TODAY)["ad_name"].to_list() == ["A"]

    def test_impossible_combination_is_empty(self, mixed_rows, make_frame):
        frame = make_frame(*mixed_rows)
        filters = Filters(date_preset="all", product="IBFC", ad_name="B")

        assert apply_filters(frame, filters, today=TODAY).is_empty()

    def test_empty_frame_passes_through(self):
        assert apply_filters(empty_record_frame(), Filters(), today=TODAY).is_empty()


# ---------------------------------------------------------------------------
# filter_options
# ---------------------------------------------------------------------------


class TestFilterOptions:
    def test_unclassified_product_listed_last(self, mixed_rows, make_frame):
        options = filter_options(make_frame(*mixed_rows), Filters())

        assert options.products == ["CBAS", "IBFC", UNCLASSIFIED_PRODUCT]

    def test_lower_levels_scoped_by_upper_selectors(self, mixed_rows, make_frame):
        frame = make_frame(*mixed_rows)
        options = filter_options(frame, Filters(product="CBAS"))

        assert options.campaigns == ["CBAS | Vendas"]
        assert options.ad_sets == ["Frio", "Quente"]
        assert options.ads == ["A", "B"]

    def test_unscoped_options(self, mixed_rows, make_frame):
        options = filter_options(make_frame(*mixed_rows), Filters())

        assert options.ad_sets == ["Frio", "Lookalike", "Quente"]
        assert options.ads == ["A", "B", "C"]


# ---------------------------------------------------------------------------
# Filters value
# ---------------------------------------------------------------------------


class TestFiltersValue:
    def test_selecting_higher_level_clears_lower_levels(self):
        filters = Filters(product="CBAS", campaign_name="c", ad_set_name="s", ad_name="a")

        assert filters.select_product("IBFC") == Filters(product="IBFC")
        assert filters.select_campaign("") == Filters(product="CBAS")
        assert filters.select_ad_set("t").ad_name == ""

    def test_unknown_preset_or_result_type(self):
        with pytest.raises(ValueError):
            Filters(date_preset="90d")
        with pytest.raises(ValueError):
            Filters(result_type="clicks")

    def test_from_dict_accepts_application_payload(self):
        filters = Filters.from_dict(
            {
                "datePreset": "custom",
                "dateRange": ["2024-01-01", None],
                "selectedProduct": "CBAS",
                "selectedAdSet": "Frio",
                "resultType": "leads",
            }
        )

        assert filters.date_preset == "custom"
        assert filters.date_range == (date(2024, 1, 1), None)
        assert filters.product == "CBAS"
        assert filters.ad_set_name == "Frio"
        assert filters.result_type == "leads"

    def test_reset_and_with_date_preset(self):
        filters = Filters(product="CBAS").with_date_preset("7d")

        assert filters.date_preset == "7d"
        assert filters.product == "CBAS"
        assert Filters.reset() == Filters()
