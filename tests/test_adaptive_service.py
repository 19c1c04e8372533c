"""
Tests for the adaptive testing service functions and their payload schemas.
"""

import math

import pytest
from pydantic import ValidationError

from cat_service.core.cat.irt_model import fisher_information
from cat_service.schemas.cat import (
    ItemParameters,
    NextItemRequest,
    TerminationRequest,
    ThetaEstimateRequest,
    deserialize_standard_error,
    serialize_standard_error,
)
from cat_service.services import (
    check_termination,
    estimate,
    next_item,
    rank_item_information,
)

POOL = [
    {"id": "q1", "a": 0.8, "b": -1.0, "c": 0.25},
    {"id": "q2", "a": 2.0, "b": 0.0, "c": 0.25},
    {"id": "q3", "a": 1.2, "b": 1.5, "c": 0.0},
]


class TestSchemas:
    """Validation of request payloads."""

    def test_item_parameters_accept_short_aliases(self):
        item = ItemParameters.model_validate({"id": 7, "a": 1.1, "b": 0.3})
        assert item.discrimination == 1.1
        assert item.difficulty == 0.3
        assert item.guessing == 0.0

    def test_item_parameters_accept_field_names(self):
        item = ItemParameters(id="x", discrimination=1.0, difficulty=0.0, guessing=0.2)
        assert item.guessing == 0.2

    @pytest.mark.parametrize(
        "payload",
        [
            {"id": 1, "a": 0.0, "b": 0.0},
            {"id": 1, "a": -1.0, "b": 0.0},
            {"id": 1, "a": 1.0, "b": 0.0, "c": 1.0},
            {"id": 1, "a": 1.0, "b": 0.0, "c": -0.1},
            {"id": 1, "a": 1.0, "b": float("nan")},
            {"id": 1, "a": float("inf"), "b": 0.0},
        ],
    )
    def test_item_parameters_rejected(self, payload):
        with pytest.raises(ValidationError):
            ItemParameters.model_validate(payload)

    def test_request_camel_case_aliases(self):
        request = NextItemRequest.model_validate(
            {"itemPool": POOL, "theta": 0.2, "administeredIds": ["q1"]}
        )
        assert request.administered_ids == ["q1"]
        assert len(request.item_pool) == 3

    def test_non_finite_prior_rejected(self):
        with pytest.raises(ValidationError):
            ThetaEstimateRequest.model_validate(
                {"responses": [], "priorTheta": float("inf")}
            )

    def test_termination_defaults(self):
        request = TerminationRequest.model_validate({"answeredCount": 3})
        assert request.standard_error is None
        assert request.min_items == 5
        assert request.max_standard_error == 0.35

    @pytest.mark.parametrize(
        "payload",
        [
            {"answeredCount": -1, "standardError": 0.2},
            {"answeredCount": 5, "standardError": -0.2},
            {"answeredCount": 5, "standardError": float("nan")},
            {"answeredCount": 5, "minItems": 0},
            {"answeredCount": 5, "maxStandardError": 0},
        ],
    )
    def test_termination_rejected(self, payload):
        with pytest.raises(ValidationError):
            TerminationRequest.model_validate(payload)

    def test_standard_error_sentinel_mapping(self):
        assert serialize_standard_error(math.inf) is None
        assert serialize_standard_error(0.4) == 0.4
        assert deserialize_standard_error(None) == math.inf
        assert deserialize_standard_error(0.4) == 0.4


class TestEstimate:
    """Tests for the estimate service."""

    def test_no_responses_returns_prior_with_null_se(self):
        response = estimate({"responses": [], "priorTheta": 0.7})
        assert response.theta == 0.7
        assert response.standard_error is None
        assert response.confidence == 0

    def test_all_correct(self):
        response = estimate(
            {"responses": [{"itemId": "q1", "correct": True, "a": 1.0, "b": 0.0}]}
        )
        assert response.theta == 0.5
        assert response.standard_error is not None

    def test_mixed_responses(self):
        response = estimate(
            {
                "responses": [
                    {"itemId": "A", "correct": True, "a": 1.0, "b": 0.0, "c": 0.25},
                    {"itemId": "B", "correct": False, "a": 2.0, "b": 1.0, "c": 0.25},
                ]
            }
        )
        assert -1.0 < response.theta < 1.0
        assert response.standard_error > 0
        assert 0 <= response.confidence <= 100

    def test_accepts_schema_instance(self):
        request = ThetaEstimateRequest(responses=[], prior_theta=-1.0)
        assert estimate(request).theta == -1.0

    def test_serializes_null_se_with_camel_case_key(self):
        dumped = estimate({"responses": []}).model_dump(by_alias=True)
        assert dumped == {"theta": 0.0, "standardError": None, "confidence": 0}

    def test_json_payload_round_trips_into_termination(self):
        payload = estimate({"responses": []}).model_dump(by_alias=True)
        request = {"answeredCount": 5, "standardError": payload["standardError"]}
        assert check_termination(request).should_terminate is False

    def test_malformed_payload_raises(self):
        with pytest.raises(ValidationError):
            estimate({"responses": [{"correct": True, "a": 1.0}]})


class TestNextItem:
    """Tests for the next_item service."""

    def test_selects_most_informative(self):
        response = next_item({"itemPool": POOL, "theta": 0.0})
        assert response.done is False
        assert response.item.id == "q2"
        assert response.information == pytest.approx(
            fisher_information(0.0, 2.0, 0.0, 0.25)
        )

    def test_excludes_administered(self):
        response = next_item(
            {"itemPool": POOL, "theta": 0.0, "administeredIds": ["q2"]}
        )
        assert response.item.id != "q2"

    def test_exhausted_pool_is_done(self):
        response = next_item(
            {"itemPool": POOL, "theta": 0.0, "administeredIds": ["q1", "q2", "q3"]}
        )
        assert response.done is True
        assert response.item is None
        assert response.information is None

    def test_selected_item_dumps_with_request_keys(self):
        response = next_item({"itemPool": POOL, "theta": 0.0})
        dumped = response.model_dump(by_alias=True)
        assert dumped["item"] == {
            "id": "q2",
            "a": 2.0,
            "b": 0.0,
            "c": 0.25,
            "subject": None,
        }
        assert dumped["done"] is False

    def test_empty_pool_is_done(self):
        assert next_item({"itemPool": [], "theta": 1.0}).done is True

    def test_subject_filter(self):
        pool = [dict(POOL[0], subject="math"), dict(POOL[1], subject="verbal")]
        response = next_item({"itemPool": pool, "subject": "math"})
        assert response.item.id == "q1"


class TestCheckTermination:
    """Tests for the check_termination service."""

    @pytest.mark.parametrize(
        "payload,expected",
        [
            ({"answeredCount": 4, "standardError": 0.30}, False),
            ({"answeredCount": 5, "standardError": 0.30}, True),
            ({"answeredCount": 5, "standardError": 0.35}, True),
            ({"answeredCount": 5, "standardError": 0.36}, False),
            ({"answeredCount": 50, "standardError": None}, False),
            (
                {
                    "answeredCount": 3,
                    "standardError": 0.45,
                    "minItems": 3,
                    "maxStandardError": 0.5,
                },
                True,
            ),
        ],
    )
    def test_decision(self, payload, expected):
        assert check_termination(payload).should_terminate is expected

    def test_response_uses_camel_case_key(self):
        response = check_termination({"answeredCount": 5, "standardError": 0.2})
        assert response.model_dump(by_alias=True) == {"shouldTerminate": True}


class TestRankItemInformation:
    """Tests for the rank_item_information service."""

    def test_sorted_by_information(self):
        response = rank_item_information({"itemPool": POOL, "theta": 0.0})
        informations = [entry.information for entry in response.items]
        assert informations == sorted(informations, reverse=True)
        assert response.items[0].id == "q2"
        assert response.theta == 0.0

    def test_probabilities_in_range(self):
        response = rank_item_information({"itemPool": POOL, "theta": -0.5})
        for entry, item in zip(
            sorted(response.items, key=lambda e: e.id), sorted(POOL, key=lambda p: p["id"])
        ):
            assert item["c"] <= entry.probability < 1.0
