from typing import Dict, Iterable, List, Optional, Tuple
from .aliases import AliasTable
from .models import IndexedLocation, LocationKind, LocationNode
from .normalizer import keywords, phonetic_key, search_terms

_CHILD_KIND = {
    LocationKind.REGION: LocationKind.SUB_REGION,
    LocationKind.SUB_REGION: LocationKind.LOCALITY,
}

def walk_tree(node, kind=LocationKind.REGION, parent=None, result=None):
    """
    Recursively transforms a nested hierarchy into a depth-first list of nodes.

    Args:
        node (dict): Tree node with 'id', optional 'name' and optional 'children' keys
        kind (LocationKind): Hierarchy level of ``node``
        parent (LocationNode): Parent node, None for regions
        result (list): Accumulated result

    Returns:
        list: (LocationNode, parent LocationNode) pairs, parents before children
    """
    if result is None:
        result = []

    current = LocationNode(node['id'], node.get('name', node['id']), kind,
                           parent.id if parent is not None else None)
    result.append((current, parent))

    if 'children' in node:
        child_kind = _CHILD_KIND.get(kind)
        if child_kind is None:
            raise ValueError(f"Localities cannot have children: '{current.id}'")
        for child in node['children']:
            walk_tree(child, child_kind, current, result)

    return result

class SearchIndex:
    """
    Immutable snapshot of the three location search indexes.

    Produced by IndexBuilder.build(); the query and suggestion engines only read
    from it. Rebuilding the catalog yields a new SearchIndex instead of
    modifying a published one.

    Attributes:
        term_index (Dict[str, List[IndexedLocation]]): search term -> locations
        phonetic_index (Dict[str, List[IndexedLocation]]): phonetic key -> locations
        keyword_index (Dict[str, List[IndexedLocation]]): keyword or keyword prefix -> locations
        locations (List[IndexedLocation]): every location, in depth-first catalog order
    """

    def __init__(self, term_index=None, phonetic_index=None, keyword_index=None, locations=None):
        self.term_index: Dict[str, List[IndexedLocation]] = term_index or {}
        self.phonetic_index: Dict[str, List[IndexedLocation]] = phonetic_index or {}
        self.keyword_index: Dict[str, List[IndexedLocation]] = keyword_index or {}
        self.locations: List[IndexedLocation] = locations or []
        self.by_key: Dict[Tuple[str, LocationKind], IndexedLocation] = {
            location.key: location for location in self.locations
        }

    def get(self, id: str, kind: LocationKind) -> Optional[IndexedLocation]:
        return self.by_key.get((id, kind))

    def exact_search(self, term: str) -> List[IndexedLocation]:
        return self.term_index.get(term, [])

    def __len__(self):
        return len(self.locations)

    def stats(self) -> dict:
        return {
            'total_locations': len(self.locations),
            'index_size': len(self.term_index),
            'phonetic_index_size': len(self.phonetic_index),
            'keyword_index_size': len(self.keyword_index),
        }

class IndexBuilder:
    """
    Accumulates catalog nodes into term, phonetic and keyword indexes.

    Nodes must be added parents first (regions, then their sub-regions, then
    localities) so that ancestor display names are known when a child is
    indexed. Adding a node whose ``(id, kind)`` is already present is a no-op,
    which keeps re-indexing a reloaded shard from producing duplicates.

    Args:
        aliases (AliasTable): Alias table used to expand search terms
    """

    def __init__(self, aliases: Optional[AliasTable] = None):
        self.aliases = aliases
        self._term_index: Dict[str, List[IndexedLocation]] = {}
        self._phonetic_index: Dict[str, List[IndexedLocation]] = {}
        self._keyword_index: Dict[str, List[IndexedLocation]] = {}
        self._locations: Dict[Tuple[str, LocationKind], IndexedLocation] = {}

    def add(self, node: LocationNode, parent: Optional[LocationNode] = None) -> Optional[IndexedLocation]:
        """
        Index a single node under every term, phonetic key and keyword it produces.

        Args:
            node (LocationNode): The node to index
            parent (LocationNode): Its parent, required for sub-regions and localities

        Returns:
            Optional[IndexedLocation]: The new entry, or None if the node was already indexed
        """
        if node.key in self._locations:
            return None

        region, sub_region = self._ancestor_names(node, parent)
        terms = search_terms(node.name, self.aliases)
        node_keywords = keywords(node.name)
        location = IndexedLocation(
            node,
            search_terms=terms,
            phonetic_key=phonetic_key(node.name),
            keywords=node_keywords,
            region=region,
            sub_region=sub_region,
        )
        self._locations[node.key] = location

        for term in terms:
            self._term_index.setdefault(term, []).append(location)
        if location.phonetic_key:
            self._phonetic_index.setdefault(location.phonetic_key, []).append(location)
        for keyword in node_keywords:
            self._keyword_index.setdefault(keyword, []).append(location)
        return location

    def add_all(self, pairs: Iterable[Tuple[LocationNode, Optional[LocationNode]]]) -> int:
        added = 0
        for node, parent in pairs:
            if self.add(node, parent) is not None:
                added += 1
        return added

    def _ancestor_names(self, node, parent):
        if node.kind is LocationKind.REGION:
            return None, None
        if parent is None or parent.id != node.parent_id:
            raise ValueError(f"{node.kind.value} '{node.id}' needs its parent '{node.parent_id}'")
        if node.kind is LocationKind.SUB_REGION:
            return parent.name, None
        owner = self._locations.get(parent.key)
        if owner is None:
            raise ValueError(f"Sub-region '{parent.id}' must be indexed before its localities")
        return owner.region, parent.name

    def get_all_locations_flat(self) -> List[IndexedLocation]:
        return list(self._locations.values())

    def __len__(self):
        return len(self._locations)

    def build(self) -> SearchIndex:
        """Snapshot the accumulated entries into a new SearchIndex."""
        return SearchIndex(
            term_index={term: list(locations) for term, locations in self._term_index.items()},
            phonetic_index={key: list(locations) for key, locations in self._phonetic_index.items()},
            keyword_index={key: list(locations) for key, locations in self._keyword_index.items()},
            locations=self.get_all_locations_flat(),
        )

def create_search_index(tree_data, aliases: Optional[AliasTable] = None) -> SearchIndex:
    """
    Create a complete search index from an in-memory hierarchy.

    Args:
        tree_data (list or dict): One region tree or a list of them
        aliases (AliasTable): Alias table for search term expansion

    Returns:
        SearchIndex: Initialized search index
    """
    trees = tree_data if isinstance(tree_data, list) else [tree_data]
    builder = IndexBuilder(aliases)
    for tree in trees:
        builder.add_all(walk_tree(tree))
    return builder.build()
