import pytest

from carelog.services.extraction import apply_fallbacks


class TestMealFallbacks:

    def test_fills_all_meal_gaps(self):
        out = apply_fallbacks("meal", "お昼ご飯は全粥を8割、お茶を200ml飲みました。", {"main_dish": "全粥"})
        assert out == {"main_dish": "全粥", "amount_percent": "80", "fluid_ml": "200", "fluid_type": "お茶"}

    def test_fullwidth_digits_in_text(self):
        out = apply_fallbacks("meal", "牛乳１５０ｃｃ、主食５割", {})
        assert out["amount_percent"] == "50"
        assert out["fluid_type"] == "牛乳"

    def test_cc_and_idiom(self):
        out = apply_fallbacks("meal", "夕食は完食、味噌汁150cc", {})
        assert out == {"amount_percent": "100", "fluid_ml": "150", "fluid_type": "味噌汁"}

    def test_fluid_type_needs_a_volume(self):
        out = apply_fallbacks("meal", "お茶を少し飲んだ", {})
        assert "fluid_type" not in out

    def test_water_does_not_match_inside_suibun(self):
        out = apply_fallbacks("meal", "水分200ml摂取", {})
        assert out["fluid_ml"] == "200"
        assert "fluid_type" not in out


class TestVitalFallbacks:

    def test_temperature_and_pressure(self):
        out = apply_fallbacks("vital", "熱36.8度、血圧124の78", {})
        assert out == {"temperature": "36.8", "systolic_bp": "124", "diastolic_bp": "78"}

    def test_slash_pressure(self):
        out = apply_fallbacks("vital", "BP 132/84", {})
        assert out["systolic_bp"] == "132"
        assert out["diastolic_bp"] == "84"

    def test_only_missing_half_is_filled(self):
        out = apply_fallbacks("vital", "血圧124の78", {"systolic_bp": "124"})
        assert out == {"systolic_bp": "124", "diastolic_bp": "78"}

    def test_service_value_wins_over_text(self):
        out = apply_fallbacks("vital", "血圧124の78", {"systolic_bp": "130"})
        assert out["systolic_bp"] == "130"
        assert out["diastolic_bp"] == "78"

    def test_date_is_not_a_blood_pressure(self):
        out = apply_fallbacks("vital", "2024/10/19 体温36.5度", {})
        assert out == {"temperature": "36.5"}

    @pytest.mark.parametrize("text", ["お湯は100度で消毒", "室温は120度", "1.36度"])
    def test_temperature_not_taken_from_inside_a_number(self, text):
        assert "temperature" not in apply_fallbacks("vital", text, {})

    def test_pressure_next_to_a_date(self):
        out = apply_fallbacks("vital", "10/19 血圧124/78", {})
        assert out["systolic_bp"] == "124"
        assert out["diastolic_bp"] == "78"


@pytest.mark.parametrize("record_type,text,details", [
    ("meal", "全粥を8割、お茶を200ml", {"amount_percent": "70", "fluid_ml": "180", "fluid_type": "水"}),
    ("meal", "全粥を8割", {"amount_percent": ""}),
    ("vital", "熱36.8度、血圧124の78", {"temperature": "37.0", "systolic_bp": "120", "diastolic_bp": "70"}),
])
def test_never_overwrites_present_keys(record_type, text, details):
    out = apply_fallbacks(record_type, text, details)
    for k, v in details.items():
        assert out[k] == v


@pytest.mark.parametrize("record_type", ["excretion", "hygiene", "other"])
def test_other_types_have_no_fallbacks(record_type):
    assert apply_fallbacks(record_type, "お茶200ml 8割 36.5度 120/80", {}) == {}


def test_input_is_not_modified():
    details = {"main_dish": "全粥"}
    apply_fallbacks("meal", "8割", details)
    assert details == {"main_dish": "全粥"}
