import pytest

from carelog.schemas.models import ExtractionServiceError, InvalidInputError
from carelog.services.parsing import parse_care_text


def test_meal_end_to_end(fake_service):
    fake_service.return_value = {
        "record_type": "meal",
        "details": {"main_dish": "全粥", "amount_percent": "8割", "fluid_type": "お茶", "fluid_ml": "200ml"},
    }
    draft = parse_care_text("お昼ご飯は全粥を8割、お茶を200ml飲みました。")

    assert draft.record_type == "meal"
    assert draft.details == {
        "main_dish": "全粥",
        "side_dish": "",
        "amount_percent": "80",
        "fluid_type": "お茶",
        "fluid_ml": "200",
    }
    assert draft.provenance == {
        "main_dish": "ai-filled",
        "side_dish": "empty",
        "amount_percent": "ai-filled",
        "fluid_type": "ai-filled",
        "fluid_ml": "ai-filled",
    }


def test_meal_omissions_are_recovered(fake_service):
    fake_service.return_value = {"record_type": "meal", "details": {"main_dish": "全粥", "amount_percent": None}}
    draft = parse_care_text("お昼ご飯は全粥を8割、お茶を200ml飲みました。")
    assert draft.details["amount_percent"] == "80"
    assert draft.details["fluid_ml"] == "200"
    assert draft.details["fluid_type"] == "お茶"
    assert draft.provenance["fluid_type"] == "ai-filled"


def test_vital_missing_diastolic(fake_service):
    fake_service.return_value = {
        "record_type": "vital",
        "details": {"temperature": "36.8", "systolic_bp": "124", "pulse": "72"},
    }
    draft = parse_care_text("熱36.8度、血圧124の78、脈72")
    assert draft.details["systolic_bp"] == "124"
    assert draft.details["diastolic_bp"] == "78"
    assert draft.details["spo2"] == ""
    assert draft.provenance["spo2"] == "empty"


def test_extra_service_keys_are_kept(fake_service):
    fake_service.return_value = {"record_type": "excretion", "details": {"excretion_type": "尿", "time": "14時"}}
    draft = parse_care_text("14時に排尿")
    assert list(draft.details)[-1] == "time"


def test_user_settings_drive_the_draft(fake_service):
    fake_service.return_value = {"record_type": "meal", "details": {"snack": "プリン"}}
    draft = parse_care_text("おやつにプリン", {"meal": [{"key": "snack", "label": "おやつ"}]})
    assert draft.details == {"snack": "プリン"}


def test_empty_text_never_calls_service(fake_service):
    with pytest.raises(InvalidInputError):
        parse_care_text("")
    fake_service.assert_not_called()


def test_service_failure_propagates(fake_service):
    fake_service.side_effect = ExtractionServiceError("Ollama 500: boom")
    with pytest.raises(ExtractionServiceError):
        parse_care_text("体温36.5度")


def test_malformed_service_answer_is_service_error(fake_service):
    fake_service.return_value = {"details": {"temperature": "36.5"}}
    with pytest.raises(ExtractionServiceError):
        parse_care_text("体温36.5度")
