"""
Knowledge graph store backed by a JSON Lines file.
"""

import json
from typing import Iterable, List, Optional

from ..models.core import Entity, KnowledgeGraph, ObservationResult, ObservationUpdate, Relation
from ..utils.config import GraphStoreConfig, resolve_path
from ..utils.file_storage import LockedFile, StorageError
from ..utils.logging_config import get_logger

logger = get_logger(__name__)


class EntityNotFoundError(Exception):
    """Raised when an operation references an entity name absent from the graph."""

    def __init__(self, entity_name: str):
        super().__init__(f'Entity with name {entity_name} not found')
        self.entity_name = entity_name


class KnowledgeGraphStore:
    """Deduplicated storage of entities and relations with substring search.

    The whole graph is loaded, mutated in memory and rewritten for every
    mutating call. Each line of the file is one record tagged with
    `"type": "entity"` or `"type": "relation"`.
    """

    def __init__(self, config: Optional[GraphStoreConfig] = None):
        """
        Initialize the graph store.

        Args:
            config: GraphStoreConfig instance, uses the application config if None
        """
        if config is None:
            from ..utils.config import config as app_config
            config = app_config.graph_store

        self.config = config
        self.file = LockedFile(resolve_path(config.file_path))

        logger.info(f'Initialized KnowledgeGraphStore at {self.file.path}')

    @property
    def file_path(self):
        return self.file.path

    def upsert_entities(self, candidates: Iterable[Entity]) -> List[Entity]:
        """Add entities whose names are not already in the graph.

        A candidate whose name already exists is dropped; the stored entity's
        type and observations are left untouched.

        Args:
            candidates: Entities to add

        Returns:
            The entities actually added, in input order

        Raises:
            StorageError: If the graph file cannot be read or written
        """
        with self.file.locked():
            graph = self._load_graph()
            known_names = {entity.name for entity in graph.entities}

            added = []
            for candidate in candidates:
                if candidate.name in known_names:
                    continue
                known_names.add(candidate.name)
                added.append(
                    Entity(name=candidate.name,
                           entity_type=candidate.entity_type,
                           observations=list(dict.fromkeys(candidate.observations))))

            if added:
                graph.entities.extend(added)
                self._save_graph(graph)

        logger.debug(f'Added {len(added)} entities')
        return added

    def upsert_relations(self, candidates: Iterable[Relation]) -> List[Relation]:
        """Add relations whose (from, to, relationType) triple is new.

        Endpoints are not checked against the entity set.

        Args:
            candidates: Relations to add

        Returns:
            The relations actually added, in input order

        Raises:
            StorageError: If the graph file cannot be read or written
        """
        with self.file.locked():
            graph = self._load_graph()
            known_keys = {relation.key for relation in graph.relations}

            added = []
            for candidate in candidates:
                if candidate.key in known_keys:
                    continue
                known_keys.add(candidate.key)
                added.append(candidate)

            if added:
                graph.relations.extend(added)
                self._save_graph(graph)

        logger.debug(f'Added {len(added)} relations')
        return added

    def add_observations(self, updates: Iterable[ObservationUpdate]) -> List[ObservationResult]:
        """Append new observation strings to existing entities.

        The batch is applied to an in-memory copy and written once at the end,
        so an unknown entity anywhere in the batch leaves the file unchanged.

        Args:
            updates: Per-entity observation contents

        Returns:
            For each update, the observations that were not already present

        Raises:
            EntityNotFoundError: If an update names an entity absent from the graph
            StorageError: If the graph file cannot be read or written
        """
        with self.file.locked():
            graph = self._load_graph()
            by_name = {entity.name: entity for entity in graph.entities}

            results = []
            for update in updates:
                entity = by_name.get(update.entity_name)
                if entity is None:
                    raise EntityNotFoundError(update.entity_name)

                existing = set(entity.observations)
                new_observations = []
                for content in update.contents:
                    if content not in existing:
                        existing.add(content)
                        new_observations.append(content)

                entity.observations.extend(new_observations)
                results.append(ObservationResult(entity_name=update.entity_name, added_observations=new_observations))

            if any(result.added_observations for result in results):
                self._save_graph(graph)

        return results

    def search(self, query: str) -> KnowledgeGraph:
        """Find entities matching `query` and the relations among them.

        Matching is a case-insensitive substring test against the entity name,
        its type and each observation. Only relations whose two endpoints are
        both in the matched set are returned.

        Args:
            query: Search text

        Returns:
            The edge-induced subgraph of matching entities

        Raises:
            StorageError: If the graph file cannot be read
        """
        with self.file.locked():
            graph = self._load_graph()

        needle = query.lower()
        entities = [
            entity for entity in graph.entities
            if needle in entity.name.lower() or needle in entity.entity_type.lower() or any(
                needle in observation.lower() for observation in entity.observations)
        ]
        names = {entity.name for entity in entities}
        relations = [relation for relation in graph.relations if relation.source in names and relation.target in names]

        logger.debug(f"Graph search '{query}' matched {len(entities)} entities and {len(relations)} relations")
        return KnowledgeGraph(entities=entities, relations=relations)

    def read_graph(self) -> KnowledgeGraph:
        """Return the full graph.

        Raises:
            StorageError: If the graph file cannot be read
        """
        with self.file.locked():
            return self._load_graph()

    def _load_graph(self) -> KnowledgeGraph:
        """Parse the graph file; a missing file is an empty graph."""
        content = self.file.read_text()
        graph = KnowledgeGraph()
        if content is None:
            return graph

        for line_number, line in enumerate(content.splitlines(), start=1):
            if not line.strip():
                continue
            try:
                record = json.loads(line)
                if not isinstance(record, dict):
                    raise ValueError('record is not a JSON object')
                record_type = record.get('type')
                if record_type == 'entity':
                    graph.entities.append(Entity.from_dict(record))
                elif record_type == 'relation':
                    graph.relations.append(Relation.from_dict(record))
                else:
                    logger.warning(f'Skipping record of unknown type {record_type!r} at {self.file.path}:{line_number}')
            except (ValueError, KeyError, TypeError, AttributeError) as e:
                raise StorageError(f'Corrupt graph record at {self.file.path}:{line_number}: {e}')

        return graph

    def _save_graph(self, graph: KnowledgeGraph) -> None:
        lines = [json.dumps({'type': 'entity', **entity.to_dict()}, ensure_ascii=False) for entity in graph.entities]
        lines += [json.dumps({'type': 'relation', **relation.to_dict()}, ensure_ascii=False) for relation in graph.relations]
        self.file.write_text('\n'.join(lines))
