from earnings.models import ParsedEarnings, Penalty, Rating
from earnings.refinement import apply_refinement, coerce_refinement, fill_missing_total


class TestCoerceRefinement:
    def test_wire_and_snake_case_keys(self):
        updates = coerce_refinement({"basePay": 250, "distance_pay": "₹20.50", "platform": " Swiggy "})
        assert updates == {"base_pay": 250.0, "distance_pay": 20.5, "platform": "Swiggy"}

    def test_unknown_keys_are_dropped(self):
        updates = coerce_refinement({"total": 420, "hoursLogged": 2.5, "rawText": "ignored", "__class__": "x"})
        assert updates == {"total": 420.0}

    def test_nulls_and_garbage_are_not_supplied(self):
        updates = coerce_refinement({"bonus": None, "total": "n/a", "platform": "", "date": 20251205})
        assert updates == {}

    def test_lists_are_typed_and_filtered(self):
        updates = coerce_refinement(
            {
                "penalties": [{"type": "Fine", "amount": -50}, {"type": "Note"}, "junk"],
                "ratings": [{"rating": "4.5", "date": "2025-12-01"}, {"rating": None}],
            }
        )
        assert updates["penalties"] == [Penalty(type="Fine", amount=50.0)]
        assert updates["ratings"] == [Rating(rating=4.5, date="2025-12-01")]

    def test_empty_list_is_supplied(self):
        assert coerce_refinement({"penalties": []}) == {"penalties": []}

    def test_non_mapping(self):
        assert coerce_refinement(None) == {}
        assert coerce_refinement(["total", 420]) == {}


class TestApplyRefinement:
    def test_overrides_field_by_field(self):
        record = ParsedEarnings(base_pay=250.0, bonus=100.0, penalties=[Penalty("Fine", 10.0), Penalty("Fee", 5.0)])
        apply_refinement(record, {"bonus": 120.0, "penalties": [Penalty("fine", 50.0)]})

        assert record.base_pay == 250.0
        assert record.bonus == 120.0
        assert record.penalties == [Penalty("fine", 50.0)]

    def test_refined_date_is_normalized(self):
        record = ParsedEarnings(date="05/12/2025")
        apply_refinement(record, {"date": "2025-12-05"})
        assert record.date_iso == "2025-12-05"

    def test_refined_total_is_marked(self):
        record = ParsedEarnings(total=400.0, total_source="extracted")
        apply_refinement(record, {"total": 420.0})
        assert record.total_source == "refined"


class TestFillMissingTotal:
    def test_computes_from_components(self):
        record = ParsedEarnings(base_pay=250.0, bonus=100.0, distance_pay=20.0, penalties=[Penalty("Fine", 50.0)])
        fill_missing_total(record)
        assert record.total == 320.0
        assert record.total_source == "computed"

    def test_rounds_to_cents(self):
        record = ParsedEarnings(base_pay=0.1, bonus=0.2)
        fill_missing_total(record)
        assert record.total == 0.3

    def test_existing_total_is_untouched(self):
        record = ParsedEarnings(total=0.0, total_source="extracted", base_pay=250.0)
        fill_missing_total(record)
        assert record.total == 0.0
        assert record.total_source == "extracted"

    def test_needs_a_pay_component(self):
        record = ParsedEarnings(penalties=[Penalty("Fine", 50.0)])
        fill_missing_total(record)
        assert record.total is None
