from intake_ocr.services.endpoint_resolver import (
    clean_model_id, normalize_endpoint, resolve_analyze_candidates,
    resolve_chat_candidates, resolve_model_list_candidates
)


def test_normalize_endpoint_adds_scheme_and_strips_slash():
    assert normalize_endpoint("myres.cognitiveservices.azure.com/") == "https://myres.cognitiveservices.azure.com"
    assert normalize_endpoint(" http://localhost:5000// ") == "http://localhost:5000"
    assert normalize_endpoint("") == ""
    assert normalize_endpoint(None) == ""


def test_analyze_candidates_newest_first():
    candidates = resolve_analyze_candidates("https://res.example.com/", "intake_01")

    assert [c.describe() for c in candidates] == [
        "https://res.example.com/documentintelligence/documentModels/intake_01:analyze?api-version=2023-07-31",
        "https://res.example.com/formrecognizer/documentModels/intake_01:analyze?api-version=2023-07-31",
        "https://res.example.com/formrecognizer/documentModels/intake_01:analyze?api-version=2022-08-31",
        "https://res.example.com/formrecognizer/custom/models/intake_01/analyze?api-version=2021-09-30",
        "https://res.example.com/formrecognizer/v2.1/custom/models/intake_01/analyze?api-version=2021-09-30",
    ]
    assert [c.is_legacy_path for c in candidates] == [False, False, False, True, True]


def test_analyze_candidates_default_model():
    candidates = resolve_analyze_candidates("res.example.com", "  ")

    assert all("prebuilt-layout" in c.url for c in candidates)


def test_analyze_candidates_empty_endpoint():
    assert resolve_analyze_candidates("", "intake_01") == []


def test_clean_model_id_strips_paths_and_query():
    assert clean_model_id("https://host/documentModels/intake_01?x=1") == "intake_01"
    assert clean_model_id("models\\intake_02#frag") == "intake_02"
    assert clean_model_id(None) == ""


def test_model_list_candidates():
    urls = [c.url for c in resolve_model_list_candidates("res.example.com")]

    assert urls[0] == "https://res.example.com/documentintelligence/documentModels"
    assert urls[-1] == "https://res.example.com/formrecognizer/v2.1/custom/models"


def test_chat_candidates():
    candidates = resolve_chat_candidates("my-openai.openai.azure.com", "gpt-4o")

    assert candidates[0].url == "https://my-openai.openai.azure.com/openai/deployments/gpt-4o/chat/completions"
    assert [c.api_version for c in candidates] == ["2024-02-01", "2023-05-15"]
    assert resolve_chat_candidates("my-openai.openai.azure.com", "") == []
