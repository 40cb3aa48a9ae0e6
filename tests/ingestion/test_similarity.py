"""Tests for text normalization and similarity scoring."""

from uuid import uuid4

import pytest

from enrollment_config.schema import MatchingConfig
from enrollment_kernel.domain.dtos import OfficeSnapshot, OwnerSnapshot
from enrollment_ingestion.domain.types import OfficeInfo, OwnerInfo
from enrollment_ingestion.matching.similarity import (
    normalize,
    office_score,
    owner_score,
    similarity,
    submitted_office_score,
    submitted_owner_score,
)


class TestNormalize:

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("Acme Tax Service", "acme service tax"),
            ("  ACME   tax,  Service. ", "acme service tax"),
            ("O'Brien & Sons", "obrien sons"),
            ("", ""),
            (None, ""),
            ("...", ""),
        ],
    )
    def test_normalize(self, raw, expected):
        assert normalize(raw) == expected


class TestSimilarity:

    def test_identical_after_normalization(self):
        assert similarity("Acme Tax Service", "service, ACME tax") == 1.0

    def test_empty_is_zero(self):
        assert similarity("", "Acme") == 0.0
        assert similarity(None, None) == 0.0

    def test_single_character_mismatch(self):
        assert similarity("a", "b") == 0.0

    def test_close_spellings_score_high(self):
        assert similarity("Acme Tax Service", "Acme Tax Services") > 0.9

    def test_unrelated_names_score_low(self):
        assert similarity("Acme Tax Service", "Zenith Financial Group") < 0.3

    def test_symmetric(self):
        assert similarity("Jon Smith", "John Smyth") == similarity("John Smyth", "Jon Smith")


def _office(**kw):
    values = dict(id=uuid4(), efin=None, name="Acme Tax Service", address1="123 Main St",
                  city="Springfield", state="IL", zip="62701")
    values.update(kw)
    return OfficeSnapshot(**values)


class TestOfficeScore:

    def test_weights_name_and_address(self):
        config = MatchingConfig(name_weight=0.6)
        incoming = OfficeInfo(name="Acme Tax Service", address1="999 Other Rd",
                              city="Shelbyville", state="IL", zip="62565")
        candidate = _office()
        name = similarity(incoming.name, candidate.name)
        address = similarity("999 Other Rd Shelbyville IL 62565", "123 Main St Springfield IL 62701")
        assert office_score(incoming, candidate, config) == round(0.6 * name + 0.4 * address, 6)

    def test_name_only_when_address_missing(self):
        config = MatchingConfig()
        incoming = OfficeInfo(name="Acme Tax Services")
        candidate = _office()
        assert office_score(incoming, candidate, config) == round(
            similarity("Acme Tax Services", "Acme Tax Service"), 6
        )

    def test_identical_office_scores_one(self):
        incoming = OfficeInfo(name="Acme Tax Service", address1="123 Main St",
                              city="Springfield", state="IL", zip="62701")
        assert office_score(incoming, _office(), MatchingConfig()) == 1.0


class TestOwnerScore:

    def _candidate(self, ssn=None, first="John", last="Smith"):
        return OwnerSnapshot(id=uuid4(), first_name=first, last_name=last, ssn=ssn)

    def test_differing_ssn_excludes(self):
        incoming = OwnerInfo(first_name="John", last_name="Smith", ssn="123-45-6789")
        assert owner_score(incoming, self._candidate(ssn="999999999"), MatchingConfig()) is None

    def test_matching_ssn_boosts_and_caps(self):
        config = MatchingConfig(ssn_boost=0.25)
        incoming = OwnerInfo(first_name="Jon", last_name="Smyth", ssn="123456789")
        plain = owner_score(OwnerInfo(first_name="Jon", last_name="Smyth"), self._candidate(), config)
        boosted = owner_score(incoming, self._candidate(ssn="123456789"), config)
        assert plain < 0.85
        assert boosted == pytest.approx(min(1.0, plain + 0.25), abs=1e-6)

        exact = OwnerInfo(first_name="John", last_name="Smith", ssn="123-45-6789")
        assert owner_score(exact, self._candidate(ssn="123456789"), config) == 1.0

    def test_one_sided_ssn_is_name_only(self):
        incoming = OwnerInfo(first_name="John", last_name="Smith", ssn="123456789")
        assert owner_score(incoming, self._candidate(ssn=None), MatchingConfig()) == 1.0


class TestSubmittedScores:

    def test_office_pair_agrees_with_snapshot_score(self):
        a = OfficeInfo(name="Acme Tax Service", address1="123 Main St", city="Springfield", state="IL", zip="62701")
        b = OfficeInfo(name="Acme Tax Services", address1="123 Main St", city="Springfield", state="IL", zip="62701")
        snapshot = OfficeSnapshot(
            id=uuid4(), efin=None, name=b.name,
            address1=b.address1, city=b.city, state=b.state, zip=b.zip,
        )
        config = MatchingConfig()
        assert submitted_office_score(a, b, config) == office_score(a, snapshot, config)
        assert submitted_office_score(a, b, config) >= config.office_threshold

    def test_owner_pair_uses_digits_of_both_ssns(self):
        a = OwnerInfo(first_name="John", last_name="Smith", ssn="123-45-6789")
        assert submitted_owner_score(a, OwnerInfo(first_name="John", last_name="Smith", ssn="123456789"), MatchingConfig()) == 1.0
        assert submitted_owner_score(a, OwnerInfo(first_name="John", last_name="Smith", ssn="999-99-9999"), MatchingConfig()) is None

    def test_owner_pair_is_symmetric(self):
        a = OwnerInfo(first_name="Jonathan", last_name="Smith")
        b = OwnerInfo(first_name="Jonathon", last_name="Smith")
        config = MatchingConfig()
        assert submitted_owner_score(a, b, config) == submitted_owner_score(b, a, config)
        assert submitted_owner_score(a, b, config) >= config.owner_threshold
