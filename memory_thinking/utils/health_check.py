"""
Health check utilities for the application.
"""

import os
from typing import Any, Dict, Optional

from ..services.knowledge_graph import KnowledgeGraphStore
from ..services.thought_chains import ThoughtChainStore
from .config import config
from .logging_config import get_logger
from .timestamp_utils import to_datetime

logger = get_logger(__name__)


def _directory_writable(path) -> bool:
    directory = path.parent
    while not directory.exists() and directory != directory.parent:
        directory = directory.parent
    return os.access(directory, os.W_OK)


def check_health(graph_store=None, chain_store=None) -> bool:
    """Check the health of both stores.

    Returns:
        True if all components are healthy, False otherwise
    """
    try:
        health_status = get_health_status(graph_store, chain_store)

        all_healthy = all(status.get('healthy', False) for status in health_status.values())

        if all_healthy:
            logger.info('All storage components are healthy')
        else:
            logger.warning('Some storage components are unhealthy')

        return all_healthy

    except Exception as e:
        logger.error(f'Health check failed: {e}')
        return False


def get_health_status(graph_store=None, chain_store=None) -> Dict[str, Any]:
    """Get detailed health status of each store.

    Args:
        graph_store: KnowledgeGraphStore to inspect, built from config if None
        chain_store: ThoughtChainStore to inspect, built from config if None

    Returns:
        Dictionary with health status of each component
    """
    health_status = {}

    # Check knowledge graph file
    try:
        graph_store = graph_store or KnowledgeGraphStore()
        graph = graph_store.read_graph()
        health_status['knowledge_graph'] = {
            'healthy': _directory_writable(graph_store.file_path),
            'file': str(graph_store.file_path),
            'exists': graph_store.file_path.exists(),
            'entities': len(graph.entities),
            'relations': len(graph.relations)
        }
    except Exception as e:
        health_status['knowledge_graph'] = {'healthy': False, 'error': str(e)}

    # Check thought chain file
    try:
        chain_store = chain_store or ThoughtChainStore()
        chains = chain_store.list_chains()
        last_updated: Optional[str] = to_datetime(chains[0].updated_at).isoformat() if chains else None
        health_status['thought_chains'] = {
            'healthy': _directory_writable(chain_store.file_path),
            'file': str(chain_store.file_path),
            'exists': chain_store.file_path.exists(),
            'chains': len(chains),
            'last_updated': last_updated
        }
    except Exception as e:
        health_status['thought_chains'] = {'healthy': False, 'error': str(e)}

    return health_status


def get_system_info() -> Dict[str, Any]:
    """Get system information and configuration.

    Returns:
        Dictionary with system information
    """
    from .. import __version__

    return {
        'service_name': 'memory-thinking',
        'version': __version__,
        'configuration': {
            'environment': config.environment,
            'memory_file_path': config.graph_store.file_path,
            'thinking_file_path': config.chain_store.file_path,
            'mcp_transport': config.mcp.transport
        },
        'health_status': get_health_status()
    }
