"""Identity matching: text similarity and registry resolution."""

from enrollment_ingestion.matching.resolver import (
    IdentityResolver,
    MatchMethod,
    Resolution,
    choose_best,
)
from enrollment_ingestion.matching.similarity import (
    normalize,
    office_score,
    owner_score,
    similarity,
    submitted_office_score,
    submitted_owner_score,
)

__all__ = [
    "IdentityResolver",
    "MatchMethod",
    "Resolution",
    "choose_best",
    "normalize",
    "office_score",
    "owner_score",
    "similarity",
    "submitted_office_score",
    "submitted_owner_score",
]
