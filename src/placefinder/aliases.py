from typing import Dict, Iterable, List, Mapping, Set
from .utils import ensure_list

class AliasTable:
    """
    Bidirectional table of location name aliases.

    Maps a canonical (normalized) name to the set of alternate spellings and
    abbreviations it is commonly written as. Lookups work both ways: a name
    containing a canonical gets the canonical's aliases, and a name that is
    exactly an alias gets its canonical.

    Parameters:
        table (Mapping[str, Iterable[str]]): canonical -> aliases. A single
            alias may be given as a plain string.

    Raises:
        ValueError: If the table is not consistent in both directions: an
            alias equal to its own canonical, an alias claimed by two
            canonicals, or an alias that is itself a canonical.
    """

    def __init__(self, table: Mapping[str, Iterable[str]] = None):
        self.canonical_to_aliases: Dict[str, Set[str]] = {}
        self.alias_to_canonical: Dict[str, str] = {}

        for canonical, aliases in (table or {}).items():
            for alias in ensure_list(aliases):
                self.add(canonical, alias)

        overlap = set(self.alias_to_canonical) & set(self.canonical_to_aliases)
        if overlap:
            raise ValueError(f"Aliases {sorted(overlap)} are also canonical names")

    def add(self, canonical: str, alias: str) -> None:
        canonical = canonical.strip().lower()
        alias = alias.strip().lower()
        if not canonical or not alias:
            raise ValueError("Alias table entries must be non-empty")
        if alias == canonical:
            raise ValueError(f"Alias '{alias}' is identical to its canonical name")

        owner = self.alias_to_canonical.get(alias)
        if owner is not None and owner != canonical:
            raise ValueError(f"Alias '{alias}' is claimed by both '{owner}' and '{canonical}'")

        self.canonical_to_aliases.setdefault(canonical, set()).add(alias)
        self.alias_to_canonical[alias] = canonical

    def expand(self, normalized: str) -> List[str]:
        """
        Return the alternate spellings for an already normalized name.

        Aliases of every canonical contained in the name are returned, plus
        the canonical of the whole name or of any of its words when that is
        a known alias.
        Results are sorted so that index insertion order is stable.
        """
        variations = set()
        for canonical, aliases in self.canonical_to_aliases.items():
            if canonical in normalized:
                variations.update(aliases)
        for candidate in [normalized] + normalized.split(' '):
            canonical = self.alias_to_canonical.get(candidate)
            if canonical:
                variations.add(canonical)
        return sorted(variations)

    def __len__(self):
        return len(self.canonical_to_aliases)

    def __contains__(self, name):
        return name in self.canonical_to_aliases or name in self.alias_to_canonical

    def __repr__(self):
        table = {canonical: sorted(aliases) for canonical, aliases in self.canonical_to_aliases.items()}
        return f"AliasTable({table!r})"
