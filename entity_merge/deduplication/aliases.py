"""
Curated alias tables for known spelling variants.

An alias table maps a canonical name to its known alternate spellings
("the palm" for "palm jumeirah"). Two names alias-match when they normalize
into the same group without being the same string, independent of how far
apart they are by edit distance.
"""

import json
from collections.abc import Iterable, Mapping
from pathlib import Path
from types import MappingProxyType

from loguru import logger

from entity_merge.utils.text import normalize_name

# Built-in table for the Dubai / UAE catalogue.
# Single-letter typos of a canonical name are left to the fuzzy matcher so they
# keep their similarity-based confidence.
DEFAULT_ALIASES: dict[str, list[str]] = {
    "dubai": ["dubay", "dubaï", "dubái"],
    "burj khalifa": ["burjkhalifa", "burj-khalifa", "khalifa tower"],
    "palm jumeirah": ["the palm", "palm island", "palm jumeirah island"],
    "burj al arab": ["burj al-arab", "burj-al-arab", "arab tower"],
    "dubai marina": ["the marina", "marina dubai"],
    "downtown dubai": ["downtown", "downtown burj khalifa"],
    "jumeirah beach residence": ["jbr", "the walk jbr"],
    "abu dhabi": ["abudhabi", "abu-dhabi"],
    "ras al khaimah": ["ras al-khaimah", "rak", "rasalkhaimah"],
}


class AliasTable:
    """
    Immutable lookup of alias groups.

    Every name in a group (canonical and aliases) is stored normalized and
    indexed to its group's canonical name. Tables are injected wherever they
    are needed so tests can substitute their own.
    """

    def __init__(self, groups: Mapping[str, Iterable[str]]):
        index: dict[str, str] = {}
        normalized_groups: dict[str, frozenset[str]] = {}

        for canonical, aliases in groups.items():
            key = normalize_name(canonical)
            if not key:
                continue
            forms = {key} | {normalize_name(alias) for alias in aliases}
            forms.discard("")
            normalized_groups[key] = normalized_groups.get(key, frozenset()) | frozenset(forms)

            for form in forms:
                previous = index.setdefault(form, key)
                if previous != key:
                    # First group wins so lookups stay deterministic
                    logger.warning(f"Alias '{form}' listed under both '{previous}' and '{key}'")

        self._index = MappingProxyType(index)
        self._groups = MappingProxyType(normalized_groups)

    @classmethod
    def default(cls) -> "AliasTable":
        return cls(DEFAULT_ALIASES)

    @classmethod
    def empty(cls) -> "AliasTable":
        return cls({})

    @classmethod
    def from_file(cls, path: Path) -> "AliasTable":
        """Load a table from JSON of the form ``{"canonical": ["alias", ...]}``."""
        path = Path(path)
        data = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"Alias file {path} must contain a JSON object")

        table = cls({canonical: list(aliases) for canonical, aliases in data.items()})
        logger.info(f"Loaded {len(table)} alias groups from {path}")
        return table

    def __len__(self) -> int:
        return len(self._groups)

    def __contains__(self, name: str) -> bool:
        return normalize_name(name) in self._index

    def canonical_for(self, name: str) -> str | None:
        """Return the canonical (normalized) name of the group ``name`` belongs to."""
        return self._index.get(normalize_name(name))

    def group(self, canonical: str) -> frozenset[str]:
        return self._groups.get(normalize_name(canonical), frozenset())

    def is_alias_match(self, name_a: str, name_b: str) -> bool:
        """True if both names are distinct members of the same alias group."""
        norm_a = normalize_name(name_a)
        norm_b = normalize_name(name_b)
        if not norm_a or norm_a == norm_b:
            return False

        group_a = self._index.get(norm_a)
        return group_a is not None and group_a == self._index.get(norm_b)


def load_alias_table(alias_file: Path | None = None) -> AliasTable:
    """Build the alias table from ``alias_file`` or fall back to the built-in one."""
    if alias_file:
        return AliasTable.from_file(alias_file)
    return AliasTable.default()
