import json
from enum import Enum
from typing import Optional, Tuple

from .utils import EnumEncoder, truncate_string

class LocationKind(Enum):
    '''
    The three levels of the location hierarchy.
    '''
    REGION     = 'region'
    SUB_REGION = 'sub_region'
    LOCALITY   = 'locality'

    @property
    def priority(self) -> int:
        """Tie-break rank when scores are equal: Locality > SubRegion > Region."""
        return _KIND_PRIORITY[self]

_KIND_PRIORITY = {
    LocationKind.REGION: 1,
    LocationKind.SUB_REGION: 2,
    LocationKind.LOCALITY: 3,
}

class MatchType(Enum):
    EXACT        = 'exact'
    PREFIX       = 'prefix'
    CONTAINS     = 'contains'
    PHONETIC     = 'phonetic'
    FUZZY        = 'fuzzy'
    KEYWORD      = 'keyword'
    POPULAR      = 'popular'
    CONTEXTUAL   = 'contextual'
    AUTOCOMPLETE = 'autocomplete'

class LocationNode:
    """
    A single node of the location hierarchy as read from a data shard.

    Parameters:
        id (str): Identifier, unique within its kind
        name (str): Display name
        kind (LocationKind): Hierarchy level
        parent_id (str): Id of the parent node, None for regions
    """
    def __init__(self, id: str, name: str, kind: LocationKind, parent_id: Optional[str] = None):
        if kind is not LocationKind.REGION and not parent_id:
            raise ValueError(f"{kind.value} '{id}' must have a parent")
        self.id = id
        self.name = name
        self.kind = kind
        self.parent_id = parent_id

    @property
    def key(self) -> Tuple[str, LocationKind]:
        return (self.id, self.kind)

    def __eq__(self, other):
        if not isinstance(other, LocationNode):
            return NotImplemented
        return (self.key, self.name, self.parent_id) == (other.key, other.name, other.parent_id)

    def __hash__(self):
        return hash(self.key)

    def __repr__(self):
        return f"LocationNode(id={self.id!r}, name={self.name!r}, kind={self.kind}, parent_id={self.parent_id!r})"

class LocationOption:
    """
    One entry of a picker listing: ``{id, displayName, value}`` plus the parent id.
    """
    def __init__(self, id, name, value, parent=None):
        self.id = id
        self.name = name
        self.value = value
        self.parent = parent

    def to_dict(self):
        return {'id': self.id, 'displayName': self.name, 'value': self.value, 'parent': self.parent}

    def __eq__(self, other):
        if not isinstance(other, LocationOption):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        return f"LocationOption(id={self.id!r}, name={self.name!r}, value={self.value!r}, parent={self.parent!r})"

class IndexedLocation:
    """
    Read-only search projection of a LocationNode.

    Created by the index builder only. Carries the precomputed search terms,
    phonetic key and keywords the node was indexed under, and the display
    names of its ancestors so a full path can be shown without walking the
    catalog again.

    Attributes:
        id (str): Node identifier
        name (str): Display name
        kind (LocationKind): Hierarchy level
        parent_id (str): Parent node id
        region (str): Display name of the owning region (None for regions)
        sub_region (str): Display name of the owning sub-region (localities only)
        search_terms (frozenset): Term index keys
        phonetic_key (str): Phonetic index key
        keywords (frozenset): Keyword index keys
    """
    __slots__ = ('_id', '_name', '_kind', '_parent_id', '_region', '_sub_region',
                 '_search_terms', '_phonetic_key', '_keywords')

    def __init__(self, node: LocationNode, search_terms, phonetic_key, keywords,
                 region: Optional[str] = None, sub_region: Optional[str] = None):
        self._id = node.id
        self._name = node.name
        self._kind = node.kind
        self._parent_id = node.parent_id
        self._region = region
        self._sub_region = sub_region
        self._search_terms = frozenset(search_terms)
        self._phonetic_key = phonetic_key
        self._keywords = frozenset(keywords)

    id = property(lambda self: self._id)
    name = property(lambda self: self._name)
    kind = property(lambda self: self._kind)
    parent_id = property(lambda self: self._parent_id)
    region = property(lambda self: self._region)
    sub_region = property(lambda self: self._sub_region)
    search_terms = property(lambda self: self._search_terms)
    phonetic_key = property(lambda self: self._phonetic_key)
    keywords = property(lambda self: self._keywords)

    @property
    def key(self) -> Tuple[str, LocationKind]:
        return (self._id, self._kind)

    @property
    def full_path(self) -> str:
        """'Locality, SubRegion, Region', 'SubRegion, Region' or 'Region'."""
        if self._kind is LocationKind.LOCALITY:
            return f"{self._name}, {self._sub_region}, {self._region}"
        if self._kind is LocationKind.SUB_REGION:
            return f"{self._name}, {self._region}"
        return self._name

    def to_dict(self):
        return {
            'id': self._id,
            'name': self._name,
            'type': self._kind.value,
            'parentId': self._parent_id,
            'region': self._region,
            'subRegion': self._sub_region,
            'fullPath': self.full_path,
        }

    def __repr__(self):
        return f"IndexedLocation(id={self._id!r}, name={self._name!r}, kind={self._kind})"

class Highlight:
    """Display name split around the part that matched the query."""
    def __init__(self, before: str, match: str, after: str):
        self.before = before
        self.match = match
        self.after = after

    @classmethod
    def locate(cls, text: str, query: str) -> Optional['Highlight']:
        """
        Find where ``query`` occurs in ``text``, case-insensitively.

        A word of ``text`` starting with the query wins over a match in the
        middle of a word. Returns None when the query does not occur at all.
        """
        query = (query or '').strip().lower()
        if not query or not text:
            return None
        lowered = text.lower()

        index = -1
        position = 0
        for word in lowered.split(' '):
            if word.startswith(query):
                index = position
                break
            position += len(word) + 1

        if index == -1:
            index = lowered.find(query)
        if index == -1:
            return None

        end = index + len(query)
        return cls(text[:index], text[index:end], text[end:])

    def to_dict(self):
        return {'before': self.before, 'match': self.match, 'after': self.after}

    def __eq__(self, other):
        if not isinstance(other, Highlight):
            return NotImplemented
        return (self.before, self.match, self.after) == (other.before, other.match, other.after)

    def __repr__(self):
        return f"Highlight(before={self.before!r}, match={self.match!r}, after={self.after!r})"

class MatchResult:
    """
    A ranked search hit.

    Attributes:
        location (IndexedLocation): The matched location
        score (float): Ranking score, higher is better
        match_type (MatchType): Strategy that produced the hit
        highlight (Highlight): Query position inside the display name, or None
    """
    def __init__(self, location: IndexedLocation, score: float, match_type: MatchType,
                 highlight: Optional[Highlight] = None):
        self.location = location
        self.score = score
        self.match_type = match_type
        self.highlight = highlight

    @property
    def key(self):
        return self.location.key

    @property
    def name(self):
        return self.location.name

    @property
    def kind(self):
        return self.location.kind

    @property
    def full_path(self):
        return self.location.full_path

    def sort_key(self):
        return (-self.score, -self.location.kind.priority, self.location.name.casefold())

    def with_highlight(self, query: str) -> 'MatchResult':
        return MatchResult(self.location, self.score, self.match_type,
                           Highlight.locate(self.location.name, query))

    def to_dict(self):
        data = self.location.to_dict()
        data['score'] = self.score
        data['matchType'] = self.match_type.value
        if self.highlight is not None:
            data['highlight'] = self.highlight.to_dict()
        return data

    def to_json(self):
        return json.dumps(self.to_dict(), cls=EnumEncoder)

    def brief_summary(self):
        return f"[{self.match_type.value} {self.score:.1f}] {truncate_string(self.full_path, 60)}"

    def __repr__(self):
        return (f"MatchResult(location={self.location!r}, score={self.score!r}, "
                f"match_type={self.match_type}, highlight={self.highlight!r})")

    def __str__(self):
        return self.brief_summary()
