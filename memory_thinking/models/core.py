"""
Core data models for the knowledge graph and thought chains.

Attributes are snake_case; `to_dict` / `from_dict` translate to the camelCase
records used on the wire and in the persisted files.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

# Optional Thought attributes, their record keys and value types, in record order.
_OPTIONAL_THOUGHT_FIELDS = (
    ('is_revision', 'isRevision', bool),
    ('revises_thought', 'revisesThought', int),
    ('branch_from_thought', 'branchFromThought', int),
    ('branch_id', 'branchId', str),
    ('needs_more_thoughts', 'needsMoreThoughts', bool),
    ('context', 'context', str),
)


def _typed(data: Dict[str, Any], key: str, expected: type, optional: bool = False) -> Any:
    """Read `key` from a stored record, raising ValueError if it has the wrong type."""
    value = data.get(key) if optional else data[key]
    if value is None and optional:
        return None
    # bool is an int subclass; keep the two apart
    if not isinstance(value, expected) or (expected is int and isinstance(value, bool)):
        raise ValueError(f'{key!r} must be {expected.__name__}, got {type(value).__name__}')
    return value


def _string_list(data: Dict[str, Any], key: str) -> List[str]:
    values = _typed(data, key, list, optional=True) or []
    if not all(isinstance(value, str) for value in values):
        raise ValueError(f'{key!r} must be a list of str')
    return list(values)


@dataclass
class Entity:
    """A named, typed node of the knowledge graph."""
    name: str  # Unique across the graph
    entity_type: str
    observations: List[str] = field(default_factory=list)  # Append-only, no duplicates

    def to_dict(self) -> Dict[str, Any]:
        return {'name': self.name, 'entityType': self.entity_type, 'observations': list(self.observations)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Entity':
        return cls(name=_typed(data, 'name', str),
                   entity_type=_typed(data, 'entityType', str),
                   observations=_string_list(data, 'observations'))


@dataclass(frozen=True)
class Relation:
    """A typed, directed edge between two entity names.

    Endpoints are free-text names; they are not required to exist as entities.
    """
    source: str
    target: str
    relation_type: str

    @property
    def key(self) -> Tuple[str, str, str]:
        return (self.source, self.target, self.relation_type)

    def to_dict(self) -> Dict[str, Any]:
        return {'from': self.source, 'to': self.target, 'relationType': self.relation_type}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Relation':
        return cls(source=_typed(data, 'from', str),
                   target=_typed(data, 'to', str),
                   relation_type=_typed(data, 'relationType', str))


@dataclass
class KnowledgeGraph:
    """Entities plus the relations between them."""
    entities: List[Entity] = field(default_factory=list)
    relations: List[Relation] = field(default_factory=list)


@dataclass
class ObservationUpdate:
    """Request to append observations to one entity."""
    entity_name: str
    contents: List[str]


@dataclass
class ObservationResult:
    """Observations actually appended to one entity."""
    entity_name: str
    added_observations: List[str]


@dataclass(frozen=True)
class Thought:
    """One immutable step of a reasoning chain.

    A revision is a new Thought with `is_revision=True` and `revises_thought`
    pointing at the revised step; nothing is ever overwritten.
    """
    thought: str
    thought_number: int
    total_thoughts: int
    next_thought_needed: bool
    is_revision: Optional[bool] = None
    revises_thought: Optional[int] = None
    branch_from_thought: Optional[int] = None
    branch_id: Optional[str] = None
    needs_more_thoughts: Optional[bool] = None
    context: Optional[str] = None
    timestamp: Optional[int] = None  # Milliseconds, assigned by the chain store

    @property
    def is_branch(self) -> bool:
        """True when the thought belongs on a named branch rather than the main line."""
        return bool(self.branch_from_thought and self.branch_id)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'thought': self.thought,
            'thoughtNumber': self.thought_number,
            'totalThoughts': self.total_thoughts,
            'nextThoughtNeeded': self.next_thought_needed,
        }
        for attr, key, _ in _OPTIONAL_THOUGHT_FIELDS:
            value = getattr(self, attr)
            if value is not None:
                data[key] = value
        if self.timestamp is not None:
            data['timestamp'] = self.timestamp
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Thought':
        optional = {attr: _typed(data, key, expected, optional=True) for attr, key, expected in _OPTIONAL_THOUGHT_FIELDS}
        return cls(thought=_typed(data, 'thought', str),
                   thought_number=_typed(data, 'thoughtNumber', int),
                   total_thoughts=_typed(data, 'totalThoughts', int),
                   next_thought_needed=_typed(data, 'nextThoughtNeeded', bool),
                   timestamp=_typed(data, 'timestamp', int, optional=True),
                   **optional)


@dataclass
class ThoughtChain:
    """Main-line thoughts for one identifier plus any named branches."""
    id: str
    context: str
    thoughts: List[Thought] = field(default_factory=list)
    branches: Dict[str, List[Thought]] = field(default_factory=dict)
    created_at: int = 0
    updated_at: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'context': self.context,
            'thoughts': [thought.to_dict() for thought in self.thoughts],
            'branches': {branch_id: [thought.to_dict() for thought in thoughts]
                         for branch_id, thoughts in self.branches.items()},
            'createdAt': self.created_at,
            'updatedAt': self.updated_at
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ThoughtChain':
        branches = _typed(data, 'branches', dict, optional=True) or {}
        return cls(id=_typed(data, 'id', str),
                   context=_typed(data, 'context', str),
                   thoughts=[Thought.from_dict(item) for item in _typed(data, 'thoughts', list, optional=True) or []],
                   branches={branch_id: [Thought.from_dict(item) for item in _typed(branches, branch_id, list)]
                             for branch_id in branches},
                   created_at=_typed(data, 'createdAt', int, optional=True) or 0,
                   updated_at=_typed(data, 'updatedAt', int, optional=True) or 0)


@dataclass(frozen=True)
class ThoughtRequest:
    """A validated `memory_thinking` tool call."""
    thought: Thought
    store_in_memory: bool = False
    retrieve_from_memory: bool = False
