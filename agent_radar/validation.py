"""
Validation module for AgentRadar.

Cross-checks extracted addresses and legal entities against external
services and derives a 0-1 validation score. Only records at or above the
validation threshold move on to storage.

The external services are abstract collaborators. The stubs here
(echo/empty/pass-through) stand in until real integrations exist; with them
the gate effectively passes exactly the records that have an address.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from .models import ExtractedEntities, utcnow
from .scoring import ScoredRecord

logger = logging.getLogger(__name__)


@dataclass
class ValidatedAddress:
    """An extracted address after validation."""
    original: str
    formatted: str
    valid: bool = True

    def to_dict(self) -> dict:
        return {"original": self.original, "formatted": self.formatted, "valid": self.valid}


@dataclass
class ValidatedRecord:
    """A scored record that went through address/property/entity checks."""
    scored: ScoredRecord
    validated_addresses: list[ValidatedAddress] = field(default_factory=list)
    property_matches: list[dict] = field(default_factory=list)
    verified_entities: ExtractedEntities = field(default_factory=ExtractedEntities)
    validation_score: float = 0.0
    validated_at: datetime = field(default_factory=utcnow)

    @property
    def opportunity_score(self) -> int:
        return self.scored.opportunity_score

    @property
    def primary_address(self) -> Optional[str]:
        """Formatted form of the first validated address, if any."""
        if not self.validated_addresses:
            return None
        return self.validated_addresses[0].formatted


# =============================================================================
# COLLABORATOR CONTRACTS
# =============================================================================

class AddressValidator(ABC):
    """Checks and formats raw address strings."""

    @abstractmethod
    def validate(self, addresses: list[str]) -> list[ValidatedAddress]:
        pass


class PropertyMatcher(ABC):
    """Looks up known properties for validated addresses."""

    @abstractmethod
    def find_matches(self, addresses: list[ValidatedAddress]) -> list[dict]:
        pass


class LegalEntityVerifier(ABC):
    """Verifies executors/legal firms against legal directories."""

    @abstractmethod
    def verify(self, entities: ExtractedEntities) -> ExtractedEntities:
        pass


class EchoAddressValidator(AddressValidator):
    """Treats every address as valid and formatted as given."""

    def validate(self, addresses: list[str]) -> list[ValidatedAddress]:
        return [ValidatedAddress(original=addr, formatted=addr, valid=True) for addr in addresses]


class NullPropertyMatcher(PropertyMatcher):
    """Never finds a property match."""

    def find_matches(self, addresses: list[ValidatedAddress]) -> list[dict]:
        return []


class PassThroughEntityVerifier(LegalEntityVerifier):
    """Returns the entities unchanged."""

    def verify(self, entities: ExtractedEntities) -> ExtractedEntities:
        return entities


# =============================================================================
# RECORD VALIDATOR
# =============================================================================

def calculate_validation_score(
    addresses: list[ValidatedAddress],
    matches: list[dict],
    entities: ExtractedEntities,
) -> float:
    """Base 0.5, +0.2 any address, +0.2 any property match, +0.1 any legal firm."""
    score = 0.5
    if addresses:
        score += 0.2
    if matches:
        score += 0.2
    if entities.legal_firms:
        score += 0.1
    return round(min(1.0, score), 4)


class RecordValidator:
    """
    Runs the validation collaborators and applies the validation gate.

    Usage:
        validator = RecordValidator()
        validated = validator.validate_batch(scored_records)
    """

    def __init__(
        self,
        address_validator: Optional[AddressValidator] = None,
        property_matcher: Optional[PropertyMatcher] = None,
        entity_verifier: Optional[LegalEntityVerifier] = None,
        threshold: float = 0.7,
    ):
        self.address_validator = address_validator or EchoAddressValidator()
        self.property_matcher = property_matcher or NullPropertyMatcher()
        self.entity_verifier = entity_verifier or PassThroughEntityVerifier()
        self.threshold = threshold

    def validate_batch(self, records: list[ScoredRecord]) -> list[ValidatedRecord]:
        """
        Validate scored records, keeping those that pass the threshold.

        A record whose validation raises is logged and dropped.
        """
        validated = []

        for scored in records:
            try:
                result = self.validate(scored)
            except Exception as e:
                logger.warning(f"Validation failed for record from {scored.record.source}: {e}")
                continue

            if result.validation_score >= self.threshold:
                validated.append(result)
            else:
                logger.debug(
                    f"Record from {scored.record.source} below validation threshold "
                    f"({result.validation_score:.2f})"
                )

        logger.info(f"Validated {len(validated)}/{len(records)} records")
        return validated

    def validate(self, scored: ScoredRecord) -> ValidatedRecord:
        """Validate a single scored record (no threshold applied)."""
        addresses = self.address_validator.validate(scored.entities.addresses)
        valid_addresses = [addr for addr in addresses if addr.valid]
        matches = self.property_matcher.find_matches(valid_addresses)
        verified = self.entity_verifier.verify(scored.entities)

        return ValidatedRecord(
            scored=scored,
            validated_addresses=valid_addresses,
            property_matches=matches,
            verified_entities=verified,
            validation_score=calculate_validation_score(valid_addresses, matches, verified),
        )
