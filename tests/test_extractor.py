from __future__ import annotations

import json

import pytest

from stakeholder.errors import ExtractionError
from stakeholder.services.extractor import extract_profile, extract_urls, strip_code_fences

PAYLOAD = {
    "name": "Jane Doe",
    "role": "Chief Executive",
    "organisation": "Acme",
    "confidence": "medium",
    "education": [{"year": 1998, "institution": "LSE", "qualification": "MSc"}],
    "career": [
        {
            "phase": "Early career",
            "items": [{"period": "1999-2004", "role": "Analyst", "subItems": None}],
        }
    ],
    "social": None,
    "sources": [],
}


@pytest.mark.parametrize(
    "wrapped",
    [
        "```json\n{\"a\": 1}\n```",
        "```\n{\"a\": 1}\n```",
        "  ```JSON\r\n{\"a\": 1}\r\n```  \n",
        "```{\"a\": 1}```",
    ],
)
def test_strip_code_fences_removes_one_layer(wrapped):
    assert strip_code_fences(wrapped) == '{"a": 1}'


def test_strip_code_fences_leaves_clean_json_unchanged():
    clean = '{"name": "Jane Doe", "sources": []}'
    assert strip_code_fences(clean) == clean


def test_extract_profile_is_idempotent_on_clean_payload():
    raw = json.dumps(PAYLOAD)
    once = extract_profile(raw)
    twice = extract_profile(json.dumps(once.to_payload()))
    assert once == twice


def test_extract_profile_normalizes_nulls_and_numbers():
    record = extract_profile("```json\n" + json.dumps(PAYLOAD) + "\n```")

    assert record.education[0].year == "1998"
    assert record.career[0].items[0].sub_items == []
    assert record.social.linkedin_url is None
    assert record.honors_awards == []
    assert record.confidence == "medium"


def test_extract_profile_uses_research_urls_when_sources_empty():
    research = (
        "Jane Doe joined Acme in 2019 (https://acme.example/news/ceo). "
        "Profile: https://www.linkedin.com/in/janedoe, interview at "
        "<https://press.example.com/jane-doe-interview>. Again: https://acme.example/news/ceo."
    )
    record = extract_profile(json.dumps(PAYLOAD), extract_urls(research))

    assert record.sources == [
        "https://acme.example/news/ceo",
        "https://www.linkedin.com/in/janedoe",
        "https://press.example.com/jane-doe-interview",
    ]


def test_extract_profile_keeps_model_sources_and_dedupes_them():
    payload = dict(PAYLOAD, sources=["https://a.example", "https://a.example", "https://b.example"])
    record = extract_profile(json.dumps(payload), ["https://fallback.example"])

    assert record.sources == ["https://a.example", "https://b.example"]


def test_extract_profile_without_research_has_empty_sources():
    record = extract_profile(json.dumps(PAYLOAD), [])
    assert record.sources == []


def test_extract_profile_recovers_object_after_preamble():
    raw = "Here is the profile you asked for:\n" + json.dumps(PAYLOAD) + "\nLet me know!"
    assert extract_profile(raw).name == "Jane Doe"


@pytest.mark.parametrize(
    "raw",
    [
        "",
        "I could not find anything about this person.",
        "```json\n{\"name\": \"Jane\", \n```",
        "[1, 2, 3]",
        json.dumps({"name": "Jane", "confidence": "certain"}),
    ],
)
def test_extract_profile_raises_extraction_error(raw):
    with pytest.raises(ExtractionError):
        extract_profile(raw)


def test_extract_urls_caps_and_trims_punctuation():
    text = " ".join(f"see https://site{i}.example/page." for i in range(40))
    urls = extract_urls(text)

    assert len(urls) == 25
    assert urls[0] == "https://site0.example/page"
    assert extract_urls(text, limit=3) == [
        "https://site0.example/page",
        "https://site1.example/page",
        "https://site2.example/page",
    ]


def test_extract_urls_ignores_non_http_schemes():
    assert extract_urls("ftp://files.example mailto:jane@example.com http://ok.example") == [
        "http://ok.example"
    ]


def test_extract_profile_rejects_deeply_nested_json():
    raw = '{"name": ' + "[" * 100000 + "]" * 100000 + "}"

    with pytest.raises(ExtractionError, match="nesting too deep"):
        extract_profile(raw)


def test_extract_profile_drops_null_list_items():
    raw = json.dumps({"name": "J", "licensesCerts": [None, "CPA"], "education": [None], "sources": [None]})

    record = extract_profile(raw)

    assert record.licenses_certs == ["CPA"]
    assert record.education == []
    assert record.sources == []
