"""
Identity keys for listing cards.

A fingerprint is the tuple (name, occupation, linkedin_url), each
whitespace-stripped, joined with "|". Missing fields contribute an empty
segment. No case or punctuation folding is applied, so "ACME" and "Acme"
are different profiles.

Collision policy: cards whose three fields are all blank share the
fingerprint "||" and are treated as one record. This is accepted rather
than disambiguated with markup-specific attributes.
"""
from __future__ import annotations

from typing import Any, Mapping, Optional, Union

from models.record import RawItem, Record


SEPARATOR = "|"
FIELDS = ("name", "occupation", "linkedin_url")


def _segment(value: Optional[Any]) -> str:
    if value is None:
        return ""
    return str(value).strip()


def compute(raw: Union[RawItem, Record, Mapping[str, Any]]) -> str:
    if isinstance(raw, Mapping):
        values = [raw.get(f) for f in FIELDS]
    else:
        values = [getattr(raw, f, None) for f in FIELDS]
    return SEPARATOR.join(_segment(v) for v in values)
