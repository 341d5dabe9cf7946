"""
Configuration management for storage locations and application settings.
"""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

DEFAULT_DATA_DIR = '~/.memory-thinking'


@dataclass
class GraphStoreConfig:
    """Configuration for the knowledge graph file store."""
    file_path: str


@dataclass
class ChainStoreConfig:
    """Configuration for the thought chain file store."""
    file_path: str


@dataclass
class ThinkingConfig:
    """Configuration for thought processing."""
    disable_thought_logging: bool


@dataclass
class MCPConfig:
    """Configuration for MCP interface."""
    transport: str
    host: str
    port: int


@dataclass
class AppConfig:
    """Main application configuration."""
    environment: str
    log_level: str
    graph_store: GraphStoreConfig
    chain_store: ChainStoreConfig
    thinking: ThinkingConfig
    mcp: MCPConfig


def resolve_path(raw_path: str) -> Path:
    """Expand `~` and make a configured path absolute against the working directory.

    Args:
        raw_path: Path as written in the environment or a config object

    Returns:
        Absolute Path
    """
    path = Path(raw_path).expanduser()
    if not path.is_absolute():
        path = Path.cwd() / path
    return path


def _env_flag(name: str, default: str = 'false') -> bool:
    return os.getenv(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


def load_config() -> AppConfig:
    """Load configuration from environment variables with defaults."""
    environment = os.getenv('ENVIRONMENT', 'development')

    graph_store_config = GraphStoreConfig(file_path=os.getenv('MEMORY_FILE_PATH', f'{DEFAULT_DATA_DIR}/memory.jsonl'))

    chain_store_config = ChainStoreConfig(file_path=os.getenv('THINKING_FILE_PATH', f'{DEFAULT_DATA_DIR}/thinking.json'))

    thinking_config = ThinkingConfig(disable_thought_logging=_env_flag('DISABLE_THOUGHT_LOGGING'))

    # MCP configuration
    mcp_config = MCPConfig(transport=os.getenv('MCP_TRANSPORT', 'stdio'),
                           host=os.getenv('MCP_HOST', '127.0.0.1'),
                           port=int(os.getenv('MCP_PORT', '8000')))

    return AppConfig(environment=environment,
                     log_level=os.getenv('LOG_LEVEL', 'INFO'),
                     graph_store=graph_store_config,
                     chain_store=chain_store_config,
                     thinking=thinking_config,
                     mcp=mcp_config)


# Global configuration instance
config = load_config()
