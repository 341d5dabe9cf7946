"""Pytest fixtures for all test modules."""
import os
import tempfile

# Point the default stores at a scratch directory before the package reads its config
_DATA_DIR = tempfile.mkdtemp(prefix='memory-thinking-tests-')
os.environ['MEMORY_FILE_PATH'] = os.path.join(_DATA_DIR, 'memory.jsonl')
os.environ['THINKING_FILE_PATH'] = os.path.join(_DATA_DIR, 'thinking.json')
os.environ['LOG_LEVEL'] = 'INFO'

import pytest  # noqa: E402

from memory_thinking.models.core import Thought  # noqa: E402
from memory_thinking.services.knowledge_graph import KnowledgeGraphStore  # noqa: E402
from memory_thinking.services.memory_thinking import MemoryThinkingService  # noqa: E402
from memory_thinking.services.thought_chains import ThoughtChainStore  # noqa: E402
from memory_thinking.utils.config import ChainStoreConfig, GraphStoreConfig, ThinkingConfig  # noqa: E402


@pytest.fixture
def graph_path(tmp_path):
    return tmp_path / 'data' / 'memory.jsonl'


@pytest.fixture
def chain_path(tmp_path):
    return tmp_path / 'data' / 'thinking.json'


@pytest.fixture
def graph_store(graph_path):
    return KnowledgeGraphStore(GraphStoreConfig(file_path=str(graph_path)))


@pytest.fixture
def chain_store(chain_path):
    return ThoughtChainStore(ChainStoreConfig(file_path=str(chain_path)))


@pytest.fixture
def service(graph_store, chain_store):
    return MemoryThinkingService(graph_store=graph_store,
                                 chain_store=chain_store,
                                 config=ThinkingConfig(disable_thought_logging=False))


@pytest.fixture
def make_thought():
    """Build a Thought with sensible defaults for the required fields."""

    def _make(text='step', number=1, total=3, next_needed=True, **optional):
        return Thought(thought=text, thought_number=number, total_thoughts=total, next_thought_needed=next_needed, **optional)

    return _make
