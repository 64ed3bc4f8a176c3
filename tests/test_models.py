"""Tests for request validation and prompt formatting."""
import pytest

from drug_check.errors import ClientInputError
from drug_check.models import DrugInfoRequest, IdentifyRequest, VerifyRequest, is_missing
from drug_check.prompts import build_drug_info_prompt, build_verify_prompt, format_drug_list


class TestIsMissing:

    @pytest.mark.parametrize("value", [None, False, 0, 0.0, ""])
    def test_falsy_values(self, value):
        assert is_missing(value) is True

    @pytest.mark.parametrize("value", [[], {}, "0", " ", 1, True])
    def test_present_values(self, value):
        assert is_missing(value) is False


class TestFromPayload:

    def test_none_payload(self):
        with pytest.raises(ClientInputError) as exc_info:
            DrugInfoRequest.from_payload(None)
        assert exc_info.value.status_code == 400
        assert exc_info.value.message == "薬剤名が必要です。"

    @pytest.mark.parametrize("payload", [["drugName"], "アセトアミノフェン", 3])
    def test_non_object_payload(self, payload):
        with pytest.raises(ClientInputError) as exc_info:
            DrugInfoRequest.from_payload(payload)
        assert exc_info.value.status_code == 400

    def test_extra_fields_ignored(self):
        body = IdentifyRequest.from_payload({"imageData": "aGk=", "mimeType": "image/png", "other": 1})
        assert body.imageData == "aGk="
        assert not hasattr(body, "other")

    def test_wrong_type(self):
        with pytest.raises(ClientInputError):
            DrugInfoRequest.from_payload({"drugName": ["A"]})

    def test_verify_keeps_drug_dicts(self):
        drugs = [{"name": "A", "quantity": "1錠", "message": None}]
        body = VerifyRequest.from_payload({
            "identifiedDrugs": drugs,
            "prescriptionImageData": "aGk=",
            "prescriptionMimeType": "image/png",
            "timing": "夕食後",
        })
        assert body.identifiedDrugs == drugs


class TestPrompts:

    def test_format_drug_list(self):
        drugs = [{"name": "A", "quantity": "1錠"}, {"name": "B"}]
        assert format_drug_list(drugs) == "- A 1錠\n- B "

    def test_verify_prompt_braces_unescaped(self):
        prompt = build_verify_prompt([{"name": "A", "quantity": "1錠"}], "就寝前")
        assert "【服用タイミング】\n就寝前" in prompt
        assert "{\n  \"overallStatus\"" in prompt
        assert "{{" not in prompt

    def test_drug_info_prompt(self):
        prompt = build_drug_info_prompt("イブプロフェン")
        assert prompt.startswith("イブプロフェンという医薬品について")
        assert "マークダウン形式" in prompt
