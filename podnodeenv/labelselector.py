"""Equality based label selector parsing and node selector algebra."""

import re
from typing import Dict

from .errors import SelectorParseError

_NAME_RE = re.compile(r'^[A-Za-z0-9]([-A-Za-z0-9_.]*[A-Za-z0-9])?$')
_DNS_SUBDOMAIN_RE = re.compile(
    r'^[a-z0-9]([-a-z0-9]*[a-z0-9])?(\.[a-z0-9]([-a-z0-9]*[a-z0-9])?)*$'
)
_MAX_NAME_LENGTH = 63
_MAX_PREFIX_LENGTH = 253


def _validate_key(key: str) -> None:
    prefix, sep, name = key.rpartition('/')
    if sep:
        if not prefix or len(prefix) > _MAX_PREFIX_LENGTH or not _DNS_SUBDOMAIN_RE.match(prefix):
            raise SelectorParseError(f"invalid label key prefix: {key!r}")
    if not name or len(name) > _MAX_NAME_LENGTH or not _NAME_RE.match(name):
        raise SelectorParseError(f"invalid label key: {key!r}")


def _validate_value(value: str) -> None:
    if not value:
        return
    if len(value) > _MAX_NAME_LENGTH or not _NAME_RE.match(value):
        raise SelectorParseError(f"invalid label value: {value!r}")


def parse(selector: str) -> Dict[str, str]:
    """
    Parse an equality based selector string into a map.

    Only "key=value" and "key==value" terms joined by commas are accepted.

    Examples:
        "" -> {}
        "zone=east" -> {"zone": "east"}
        "zone=east, disk==ssd" -> {"zone": "east", "disk": "ssd"}
    """
    labels: Dict[str, str] = {}
    if not selector or not selector.strip():
        return labels

    for term in selector.split(','):
        term = term.strip()
        if not term:
            raise SelectorParseError(f"empty term in selector {selector!r}")
        if '!=' in term:
            raise SelectorParseError(f"only equality selectors are supported: {term!r}")

        if '==' in term:
            key, _, value = term.partition('==')
        elif '=' in term:
            key, _, value = term.partition('=')
        else:
            raise SelectorParseError(f"only equality selectors are supported: {term!r}")

        key = key.strip()
        value = value.strip()
        if '=' in value:
            raise SelectorParseError(f"invalid selector term: {term!r}")

        _validate_key(key)
        _validate_value(value)

        if key in labels and labels[key] != value:
            raise SelectorParseError(
                f"conflicting values for key {key!r}: {labels[key]!r} and {value!r}"
            )
        labels[key] = value

    return labels


def conflicts(labels1: Dict[str, str], labels2: Dict[str, str]) -> bool:
    """Return True if a key present in both maps has different values."""
    for key, value in labels1.items():
        if key in labels2 and labels2[key] != value:
            return True
    return False


def merge(labels1: Dict[str, str], labels2: Dict[str, str]) -> Dict[str, str]:
    """
    Combine two maps into a new one.

    The caller is expected to have checked `conflicts` first; for shared
    keys the values are equal and kept once.
    """
    merged = dict(labels1)
    merged.update(labels2)
    return merged


def equals(labels1: Dict[str, str], labels2: Dict[str, str]) -> bool:
    """Check if two maps hold the same keys and values."""
    return dict(labels1) == dict(labels2)


def to_string(labels: Dict[str, str]) -> str:
    """Render a map as a selector string sorted by key."""
    return ','.join(f"{key}={labels[key]}" for key in sorted(labels))
