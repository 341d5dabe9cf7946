"""
Memory-thinking service: runs one thought request through the graph and chain stores.
"""

import dataclasses
import textwrap
from typing import Any, Dict, Mapping, Optional

from ..models.core import Entity, Relation, Thought
from ..utils.config import ThinkingConfig
from ..utils.json_utils import error_response, text_response
from ..utils.logging_config import get_logger
from .knowledge_graph import KnowledgeGraphStore
from .request_validation import validate_thought_request
from .thought_chains import ThoughtChainStore

logger = get_logger(__name__)

CONTEXT_ENTITY_TYPE = 'ThoughtContext'
CHAIN_ENTITY_PREFIX = 'ThoughtChain_'
THINKING_RELATION_TYPE = 'has_thinking_process'
BOX_TEXT_WIDTH = 80


def format_thought(thought: Thought) -> str:
    """Render a thought as a boxed block for the log.

    Args:
        thought: Thought to render

    Returns:
        Multi-line string headed by [Thought], [Revision] or [Branch], with
        the full text wrapped to BOX_TEXT_WIDTH columns
    """
    if thought.is_revision:
        header = f'[Revision] {thought.thought_number}/{thought.total_thoughts} (revising thought {thought.revises_thought})'
    elif thought.branch_from_thought:
        header = (f'[Branch] {thought.thought_number}/{thought.total_thoughts} '
                  f'(from thought {thought.branch_from_thought}, ID: {thought.branch_id})')
    else:
        header = f'[Thought] {thought.thought_number}/{thought.total_thoughts}'

    body = []
    for paragraph in thought.thought.splitlines() or ['']:
        body.extend(textwrap.wrap(paragraph, width=BOX_TEXT_WIDTH) or [''])

    width = max([len(header)] + [len(line) for line in body]) + 4
    border = f'+{"-" * width}+'
    return '\n'.join([border, f'| {header.ljust(width - 2)} |', border]
                     + [f'| {line.ljust(width - 2)} |' for line in body]
                     + [border])


class MemoryThinkingService:
    """Validate a thought request, consult and feed the knowledge graph, and record the thought.

    The service keeps no state between requests; everything durable lives in
    the two stores.
    """

    def __init__(self,
                 graph_store: Optional[KnowledgeGraphStore] = None,
                 chain_store: Optional[ThoughtChainStore] = None,
                 config: Optional[ThinkingConfig] = None):
        """Initialize the memory-thinking service.

        Args:
            graph_store: Knowledge graph store, built from the application config if None
            chain_store: Thought chain store, built from the application config if None
            config: ThinkingConfig instance, uses the application config if None
        """
        if config is None:
            from ..utils.config import config as app_config
            config = app_config.thinking

        self.graph = graph_store or KnowledgeGraphStore()
        self.chains = chain_store or ThoughtChainStore()
        self.config = config

        logger.info('Initialized MemoryThinkingService')

    def call(self, arguments: Any) -> Dict[str, Any]:
        """Process a tool call and wrap the outcome in the tool response envelope.

        Never raises: any failure becomes `{error, status: "failed"}` with
        `isError: True`.

        Args:
            arguments: Raw tool arguments

        Returns:
            Response dict with `content` and, on failure, `isError`
        """
        try:
            return text_response(self.process(arguments))
        except Exception as e:
            logger.error(f'memory_thinking request failed: {e}')
            return error_response(e)

    def process(self, arguments: Mapping[str, Any]) -> Dict[str, Any]:
        """Run one request through validate, normalize, retrieve, store and respond.

        Args:
            arguments: Raw tool arguments

        Returns:
            Result with thoughtNumber, totalThoughts, nextThoughtNeeded,
            thoughtChainId, relevantContext and contextStored

        Raises:
            ValidationError: If the arguments are malformed; no store is touched
            EntityNotFoundError: If a graph write references a missing entity
            StorageError: If a backing file cannot be read or written
        """
        request = validate_thought_request(arguments)
        thought = request.thought

        # Widen, never shrink, the estimate
        if thought.thought_number > thought.total_thoughts:
            thought = dataclasses.replace(thought, total_thoughts=thought.thought_number)

        relevant_context = None
        if request.retrieve_from_memory and thought.context:
            relevant_context = self._retrieve_context(thought.context)

        chain_id = self.chains.append(thought, chain_id=thought.branch_id)

        if not self.config.disable_thought_logging:
            logger.info('\n' + format_thought(thought))

        context_stored = False
        if request.store_in_memory and thought.context:
            self._store_insight(thought, chain_id)
            context_stored = True

        return {
            'thoughtNumber': thought.thought_number,
            'totalThoughts': thought.total_thoughts,
            'nextThoughtNeeded': thought.next_thought_needed,
            'thoughtChainId': chain_id,
            'relevantContext': relevant_context,
            'contextStored': context_stored
        }

    def _retrieve_context(self, context: str) -> Optional[Dict[str, int]]:
        """Count graph entities and relations related to `context`; best-effort.

        Returns:
            Entity and relation counts, or None if the graph could not be searched
        """
        try:
            graph = self.graph.search(context)
        except Exception as e:
            logger.warning(f"Memory retrieval for context '{context}' failed, continuing without it: {e}")
            return None

        logger.debug(f"Retrieved {len(graph.entities)} entities and {len(graph.relations)} relations for '{context}'")
        return {'entities': len(graph.entities), 'relations': len(graph.relations)}

    def _store_insight(self, thought: Thought, chain_id: str) -> None:
        """Record the context as an entity and link it to the chain."""
        self.graph.upsert_entities([Entity(name=thought.context, entity_type=CONTEXT_ENTITY_TYPE, observations=[thought.thought])])
        self.graph.upsert_relations(
            [Relation(source=thought.context, target=f'{CHAIN_ENTITY_PREFIX}{chain_id}', relation_type=THINKING_RELATION_TYPE)])
        logger.debug(f"Linked context '{thought.context}' to thought chain {chain_id}")
