"""
Text similarity for identity resolution.

Values are normalized (case-folded, punctuation stripped, whitespace
collapsed, tokens sorted) and compared with the Dice coefficient over
character bigrams.  Scores are in [0, 1], symmetric, and exactly 1.0 for
values that normalize identically.

Architecture: enrollment_ingestion/matching. ZERO I/O.
"""

from __future__ import annotations

import re

from enrollment_config.schema import MatchingConfig
from enrollment_kernel.domain.dtos import OfficeSnapshot, OwnerSnapshot
from enrollment_ingestion.domain.types import OfficeInfo, OwnerInfo

_PUNCTUATION_RE = re.compile(r"[^\w\s]|_")

SCORE_PRECISION = 6


def normalize(value: str | None) -> str:
    """Canonical comparison form of ``value``."""
    if not value:
        return ""
    stripped = _PUNCTUATION_RE.sub("", value.casefold())
    return " ".join(sorted(stripped.split()))


def _bigrams(value: str) -> set[str]:
    return {value[i:i + 2] for i in range(len(value) - 1)}


def similarity(a: str | None, b: str | None) -> float:
    """Bigram Dice coefficient of the normalized forms of ``a`` and ``b``."""
    na, nb = normalize(a), normalize(b)
    if not na or not nb:
        return 0.0
    if na == nb:
        return 1.0
    ba, bb = _bigrams(na), _bigrams(nb)
    if not ba or not bb:
        return 0.0
    return 2.0 * len(ba & bb) / (len(ba) + len(bb))


def _address(*parts: str | None) -> str:
    return " ".join(p for p in parts if p)


def _office_address(office: OfficeInfo | OfficeSnapshot) -> str:
    return _address(office.address1, office.city, office.state, office.zip)


def _weighted_office(
    name_a: str,
    address_a: str,
    name_b: str,
    address_b: str,
    config: MatchingConfig,
) -> float:
    name = similarity(name_a, name_b)
    if not normalize(address_a) or not normalize(address_b):
        return round(name, SCORE_PRECISION)
    address = similarity(address_a, address_b)
    score = config.name_weight * name + (1.0 - config.name_weight) * address
    return round(score, SCORE_PRECISION)


def _boosted_owner(
    name_a: str,
    ssn_a: str | None,
    name_b: str,
    ssn_b: str | None,
    config: MatchingConfig,
) -> float | None:
    if ssn_a and ssn_b and ssn_a != ssn_b:
        return None
    score = similarity(name_a, name_b)
    if ssn_a and ssn_b:
        score = min(1.0, score + config.ssn_boost)
    return round(score, SCORE_PRECISION)


def office_score(
    incoming: OfficeInfo,
    candidate: OfficeSnapshot,
    config: MatchingConfig,
) -> float:
    """
    Weighted name/address similarity, rounded.

    Address is Address1, City, State and Zip.  When either side has no
    address the score is the name similarity alone.
    """
    return _weighted_office(
        incoming.name, _office_address(incoming),
        candidate.name, _office_address(candidate),
        config,
    )


def owner_score(
    incoming: OwnerInfo,
    candidate: OwnerSnapshot,
    config: MatchingConfig,
) -> float | None:
    """
    Full-name similarity with SSN adjustment, rounded.

    Returns None when both SSNs are present and differ: the candidate is
    not the same person whatever the name says.
    """
    return _boosted_owner(
        f"{incoming.first_name} {incoming.last_name}", incoming.ssn_digits,
        f"{candidate.first_name} {candidate.last_name}", candidate.ssn,
        config,
    )


def submitted_office_score(a: OfficeInfo, b: OfficeInfo, config: MatchingConfig) -> float:
    """``office_score`` between two offices of the same submission."""
    return _weighted_office(a.name, _office_address(a), b.name, _office_address(b), config)


def submitted_owner_score(a: OwnerInfo, b: OwnerInfo, config: MatchingConfig) -> float | None:
    """``owner_score`` between two owners of the same submission."""
    return _boosted_owner(
        f"{a.first_name} {a.last_name}", a.ssn_digits,
        f"{b.first_name} {b.last_name}", b.ssn_digits,
        config,
    )
