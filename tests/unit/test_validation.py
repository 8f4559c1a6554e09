"""Unit tests for agent_radar.validation."""

from agent_radar.models import ExtractedEntities, RawRecord
from agent_radar.normalization import RecordNormalizer
from agent_radar.scoring import OpportunityScorer
from agent_radar.validation import (
    AddressValidator,
    PropertyMatcher,
    RecordValidator,
    ValidatedAddress,
    calculate_validation_score,
)


def _scored(entities: ExtractedEntities):
    raw = RawRecord(source="test", content="estate notice", title="Estate")
    record = RecordNormalizer(quality_threshold=0.0).normalize(raw)
    return OpportunityScorer().score(record, entities, 0.6)


class RejectingAddressValidator(AddressValidator):
    def validate(self, addresses):
        return [ValidatedAddress(original=a, formatted=a, valid=False) for a in addresses]


class UppercaseAddressValidator(AddressValidator):
    def validate(self, addresses):
        return [ValidatedAddress(original=a, formatted=a.upper()) for a in addresses]


class OneMatchPropertyMatcher(PropertyMatcher):
    def find_matches(self, addresses):
        return [{"pin": "123-456"}] if addresses else []


class BrokenPropertyMatcher(PropertyMatcher):
    def find_matches(self, addresses):
        raise RuntimeError("registry offline")


def test_validation_score_components():
    address = [ValidatedAddress(original="1 Main St", formatted="1 Main St")]
    firms = ExtractedEntities(legal_firms=["Smith LLP"])

    assert calculate_validation_score([], [], ExtractedEntities()) == 0.5
    assert calculate_validation_score(address, [], ExtractedEntities()) == 0.7
    assert calculate_validation_score(address, [{"pin": "1"}], firms) == 1.0


def test_stub_validator_passes_exactly_records_with_an_address():
    with_address = _scored(ExtractedEntities(addresses=["123 Main Street, Toronto, ON M5V 1A1"]))
    without_address = _scored(ExtractedEntities(executors=["Jane Smith"], legal_firms=["Smith LLP"]))

    validated = RecordValidator().validate_batch([with_address, without_address])

    assert len(validated) == 1
    assert validated[0].scored is with_address
    assert validated[0].validation_score == 0.7
    assert validated[0].primary_address == "123 Main Street, Toronto, ON M5V 1A1"


def test_invalid_addresses_are_discarded():
    scored = _scored(ExtractedEntities(addresses=["1 Nowhere Rd"]))
    result = RecordValidator(address_validator=RejectingAddressValidator()).validate(scored)

    assert result.validated_addresses == []
    assert result.primary_address is None
    assert result.validation_score == 0.5


def test_primary_address_uses_formatted_form():
    scored = _scored(ExtractedEntities(addresses=["1 main st"]))
    validator = RecordValidator(
        address_validator=UppercaseAddressValidator(),
        property_matcher=OneMatchPropertyMatcher(),
    )
    result = validator.validate(scored)

    assert result.primary_address == "1 MAIN ST"
    assert result.property_matches == [{"pin": "123-456"}]
    assert result.validation_score == 0.9


def test_failing_collaborator_drops_only_that_record():
    scored = _scored(ExtractedEntities(addresses=["1 Main St"]))
    validator = RecordValidator(property_matcher=BrokenPropertyMatcher())
    assert validator.validate_batch([scored]) == []
