"""
Thought chain store backed by a single JSON document.
"""

import dataclasses
import json
import uuid
from typing import Dict, List, Optional

from ..models.core import Thought, ThoughtChain
from ..utils.config import ChainStoreConfig, resolve_path
from ..utils.file_storage import LockedFile, StorageError
from ..utils.logging_config import get_logger
from ..utils.timestamp_utils import next_after, now_ms

logger = get_logger(__name__)

DEFAULT_CONTEXT = 'default'


class ThoughtChainStore:
    """Durable thought chains with branch routing and text search.

    The whole chain map is one JSON object (chain id -> chain record) that is
    rewritten on every append.
    """

    def __init__(self, config: Optional[ChainStoreConfig] = None):
        """
        Initialize the chain store.

        Args:
            config: ChainStoreConfig instance, uses the application config if None
        """
        if config is None:
            from ..utils.config import config as app_config
            config = app_config.chain_store

        self.config = config
        self.file = LockedFile(resolve_path(config.file_path))

        logger.info(f'Initialized ThoughtChainStore at {self.file.path}')

    @property
    def file_path(self):
        return self.file.path

    def append(self, thought: Thought, chain_id: Optional[str] = None) -> str:
        """Stamp and append a thought to a chain.

        The thought goes to `branches[branch_id]` when it carries both
        `branch_from_thought` and `branch_id`, otherwise to the main line.

        Args:
            thought: Thought to store; its timestamp is assigned here
            chain_id: Target chain; a new identifier is minted if None

        Returns:
            The chain identifier

        Raises:
            StorageError: If the chain file cannot be read or written
        """
        with self.file.locked():
            chains = self._load_chains()
            chain_id = chain_id or uuid.uuid4().hex

            chain = chains.get(chain_id)
            if chain is None:
                chain = ThoughtChain(id=chain_id, context=thought.context or DEFAULT_CONTEXT, created_at=now_ms())
                chains[chain_id] = chain
                logger.debug(f'Created thought chain {chain_id} for context {chain.context!r}')

            chain.updated_at = next_after(chain.updated_at)
            stamped = dataclasses.replace(thought, timestamp=chain.updated_at)

            if stamped.is_branch:
                chain.branches.setdefault(stamped.branch_id, []).append(stamped)
            else:
                chain.thoughts.append(stamped)

            self._save_chains(chains)

        return chain_id

    def get(self, chain_id: str) -> Optional[ThoughtChain]:
        """Look up a chain by identifier.

        Raises:
            StorageError: If the chain file cannot be read
        """
        with self.file.locked():
            return self._load_chains().get(chain_id)

    def search(self, query: str, include_branches: bool = False) -> List[ThoughtChain]:
        """Find chains whose context or thought text contains `query`, ignoring case.

        Args:
            query: Search text
            include_branches: Also match thoughts stored on branches

        Returns:
            Matching chains in storage order

        Raises:
            StorageError: If the chain file cannot be read
        """
        with self.file.locked():
            chains = self._load_chains()

        needle = query.lower()

        def matches(chain: ThoughtChain) -> bool:
            if needle in chain.context.lower():
                return True
            thoughts = list(chain.thoughts)
            if include_branches:
                for branch in chain.branches.values():
                    thoughts.extend(branch)
            return any(needle in thought.thought.lower() for thought in thoughts)

        return [chain for chain in chains.values() if matches(chain)]

    def list_chains(self) -> List[ThoughtChain]:
        """All chains, most recently updated first.

        Raises:
            StorageError: If the chain file cannot be read
        """
        with self.file.locked():
            chains = self._load_chains()
        return sorted(chains.values(), key=lambda chain: chain.updated_at, reverse=True)

    def _load_chains(self) -> Dict[str, ThoughtChain]:
        """Parse the chain file; a missing or empty file is an empty map."""
        content = self.file.read_text()
        if content is None or not content.strip():
            return {}

        try:
            data = json.loads(content)
            if not isinstance(data, dict):
                raise ValueError('document is not a JSON object')
            return {chain_id: ThoughtChain.from_dict(record) for chain_id, record in data.items()}
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise StorageError(f'Corrupt thought chain file {self.file.path}: {e}')

    def _save_chains(self, chains: Dict[str, ThoughtChain]) -> None:
        data = {chain_id: chain.to_dict() for chain_id, chain in chains.items()}
        self.file.write_text(json.dumps(data, indent=2, ensure_ascii=False))
