"""Name canonicalization for TaxoMatch.

Reduces a free-form scientific name to its canonical form with rank markers:
the genus, the epithets and any ``var.``/``subsp.``/``f.`` marker present in
the input. Authorship, publication years, subgenera and informal qualifiers
are dropped.

    >>> canonicalize("Dinophysis acuminata Claparède & Lachmann, 1859").value
    'Dinophysis acuminata'
    >>> canonicalize("Ceratium furca var. eugrammum (Ehrenberg) Schiller").value
    'Ceratium furca var. eugrammum'
"""

import re
from typing import List, Optional

from taxomatch.constants import AUTHOR_PARTICLES, INFORMAL_QUALIFIERS, RANK_MARKERS
from taxomatch.exceptions import MalformedNameError
from taxomatch.types.data_classes import CanonicalName, NameRank

# Letters only, optionally joined by single hyphens (e.g. Pseudo-nitzschia)
_WORD_RE = re.compile(r"^[^\W\d_]+(?:-[^\W\d_]+)*$")
_SUBGENUS_RE = re.compile(r"^\([A-Z][a-z]+\)$")
_TRAILING_PUNCT = ",;:"


def _clean_token(token: str) -> str:
    return token.strip(_TRAILING_PUNCT)


def _format_genus(token: str) -> str:
    return token[:1].upper() + token[1:].lower()


def _is_epithet(token: str) -> bool:
    return (
        bool(_WORD_RE.match(token))
        and token == token.lower()
        and token not in AUTHOR_PARTICLES
    )


def _epithet_case(token: str, following: Optional[str] = None) -> str:
    """Lower-case a word standing where an epithet is expected.

    All-caps words are lowered. A capitalised word is lowered only when a
    rank marker follows it; otherwise it reads as an author name.
    """
    if not _WORD_RE.match(token) or token.lower() in RANK_MARKERS:
        return token
    if len(token) > 1 and token == token.upper():
        return token.lower()
    if following is not None and following.lower() in RANK_MARKERS:
        return token.lower()
    return token


def canonical_tokens(raw: Optional[str]) -> List[str]:
    """Return the canonical tokens of a raw name.

    Args:
        raw: The raw name string

    Returns:
        Genus, epithets and normalized rank markers, in input order. An empty
        list means nothing name-like was found.
    """
    if raw is None:
        return []

    tokens = [_clean_token(t) for t in str(raw).split()]
    tokens = [t for t in tokens if t and t.lower() not in INFORMAL_QUALIFIERS]
    if not tokens or not _WORD_RE.match(tokens[0]):
        return []

    result = [_format_genus(tokens[0])]
    in_authorship = False
    expect_epithet = False

    for position, token in enumerate(tokens[1:], start=1):
        if expect_epithet:
            expect_epithet = False
            token = _epithet_case(token)
            if _is_epithet(token):
                result.append(token)
                continue
            # A marker without an epithet is dropped
            result.pop()

        lowered = token.lower()
        if lowered in RANK_MARKERS and len(result) > 1:
            result.append(RANK_MARKERS[lowered])
            expect_epithet = True
            in_authorship = False
            continue

        if position == 1 and _SUBGENUS_RE.match(token):
            continue

        if in_authorship:
            continue

        if len(result) == 1:
            following = tokens[position + 1] if position + 1 < len(tokens) else None
            token = _epithet_case(token, following)

        if _is_epithet(token):
            result.append(token)
            continue

        # First non-epithet token starts the authorship string
        in_authorship = True

    if expect_epithet:
        result.pop()

    return result


def canonicalize(raw: Optional[str]) -> CanonicalName:
    """Canonicalize a raw name and classify it as genus or species rank.

    Args:
        raw: The raw name string as supplied by the caller

    Returns:
        The CanonicalName derived from ``raw``

    Raises:
        MalformedNameError: If no name token remains after normalization
    """
    tokens = canonical_tokens(raw)
    if not tokens:
        raise MalformedNameError(raw)

    word_count = len(tokens)
    rank = NameRank.GENUS if word_count == 1 else NameRank.SPECIES
    return CanonicalName(value=" ".join(tokens), rank=rank, word_count=word_count)
