from __future__ import annotations

import pytest
from pydantic import ValidationError

from stakeholder.models.profile import ProfileRecord
from stakeholder.models.schemas import ProfileRequest


def test_sequences_are_never_null():
    record = ProfileRecord.model_validate(
        {
            "education": None,
            "career": [{"phase": "Board", "items": None}],
            "interestsPriorities": {"priorities": None},
            "conversationStarters": [{"category": "Sport", "starters": None}],
            "sphereOfInfluence": {"reportsTo": None, "peers": None, "directReports": None},
            "sources": None,
        }
    )
    payload = record.to_payload()

    assert payload["education"] == []
    assert payload["career"][0]["items"] == []
    assert payload["interestsPriorities"]["priorities"] == []
    assert payload["conversationStarters"][0]["starters"] == []
    assert payload["sphereOfInfluence"] == {"reportsTo": None, "peers": [], "directReports": []}
    assert payload["sources"] == []


def test_payload_uses_camel_case_keys():
    record = ProfileRecord(position_since="May 2019 - Present", social={"linkedinUrl": "https://li.example/jd"})
    payload = record.to_payload()

    assert payload["positionSince"] == "May 2019 - Present"
    assert payload["social"]["linkedinUrl"] == "https://li.example/jd"
    assert "position_since" not in payload


@pytest.mark.parametrize("value, expected", [("HIGH", "high"), (" Medium ", "medium"), (None, "low"), ("", "low")])
def test_confidence_is_normalized(value, expected):
    assert ProfileRecord.model_validate({"confidence": value}).confidence == expected


def test_confidence_outside_enumeration_is_rejected():
    with pytest.raises(ValidationError):
        ProfileRecord.model_validate({"confidence": "certain"})


def test_sources_are_deduplicated_in_order():
    record = ProfileRecord.model_validate(
        {"sources": ["https://b.example", " https://a.example ", "https://b.example", "", 7]}
    )
    assert record.sources == ["https://b.example", "https://a.example"]


def test_unknown_keys_are_ignored():
    record = ProfileRecord.model_validate({"name": "Jane Doe", "favouriteColour": "green"})
    assert "favouriteColour" not in record.to_payload()


def test_request_accepts_company_alias_and_is_frozen():
    request = ProfileRequest.model_validate({"name": "Jane Doe", "company": "Acme"})
    assert request.organisation == "Acme"
    assert request.describe() == "Jane Doe, unknown role, Acme"
    with pytest.raises(ValidationError):
        request.name = "Someone Else"


def test_null_items_inside_lists_are_dropped():
    record = ProfileRecord.model_validate(
        {
            "licensesCerts": [None],
            "career": [None, {"phase": "Board", "items": [None]}],
            "sphereOfInfluence": {"peers": [None, {"name": "Sam"}]},
        }
    )

    assert record.licenses_certs == []
    assert len(record.career) == 1
    assert record.career[0].items == []
    assert len(record.sphere_of_influence.peers) == 1


def test_request_treats_null_name_as_blank():
    assert ProfileRequest.model_validate({"name": None}).name == ""
