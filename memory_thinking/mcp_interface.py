"""
MCP Interface Layer using fastmcp, exposing the single `memory_thinking` tool.
"""

import argparse
import sys
from typing import Any, Dict, List, Optional

from fastmcp import FastMCP
from fastmcp.tools import Tool, ToolResult
from mcp.types import TextContent
from pydantic import PrivateAttr

from .services.memory_thinking import MemoryThinkingService
from .utils.config import config
from .utils.health_check import get_system_info
from .utils.json_utils import to_json_text
from .utils.logging_config import get_logger

logger = get_logger(__name__)

TOOL_NAME = 'memory_thinking'

TOOL_DESCRIPTION = """A tool that integrates sequential thinking with persistent memory for problem-solving.
It supports a flexible thinking process that can revise and branch, while reading from and
building a persistent knowledge graph.

When to use this tool:
- Complex problem-solving that benefits from persistent context
- Multi-session reasoning tasks that require continuity
- Building a knowledge base from thinking processes
- Learning from past problem-solving approaches

Parameters explained:
- thought: Your current thinking step
- nextThoughtNeeded: True if you need more thinking
- thoughtNumber: Current number in sequence
- totalThoughts: Current estimate of thoughts needed (raised automatically if thoughtNumber exceeds it)
- isRevision: Whether this thought revises previous thinking
- revisesThought: If isRevision is true, which thought number is being reconsidered
- branchFromThought: If branching, which thought number is the branching point
- branchId: Identifier of the chain to continue, and of the branch when branchFromThought is set
- needsMoreThoughts: If reaching the end but realizing more thoughts are needed
- context: Context or topic for the thinking process
- storeInMemory: Whether to record the context and this thought in the knowledge graph
- retrieveFromMemory: Whether to look up the context in the knowledge graph first"""

TOOL_INPUT_SCHEMA: Dict[str, Any] = {
    'type': 'object',
    'properties': {
        'thought': {
            'type': 'string',
            'description': 'Your current thinking step'
        },
        'nextThoughtNeeded': {
            'type': 'boolean',
            'description': 'Whether another thought step is needed'
        },
        'thoughtNumber': {
            'type': 'integer',
            'description': 'Current thought number',
            'minimum': 1
        },
        'totalThoughts': {
            'type': 'integer',
            'description': 'Estimated total thoughts needed',
            'minimum': 1
        },
        'isRevision': {
            'type': 'boolean',
            'description': 'Whether this revises previous thinking'
        },
        'revisesThought': {
            'type': 'integer',
            'description': 'Which thought is being reconsidered',
            'minimum': 1
        },
        'branchFromThought': {
            'type': 'integer',
            'description': 'Branching point thought number',
            'minimum': 1
        },
        'branchId': {
            'type': 'string',
            'description': 'Branch identifier'
        },
        'needsMoreThoughts': {
            'type': 'boolean',
            'description': 'If more thoughts are needed'
        },
        'context': {
            'type': 'string',
            'description': 'Context or topic for the thinking process'
        },
        'storeInMemory': {
            'type': 'boolean',
            'description': 'Whether to store this thinking process in memory'
        },
        'retrieveFromMemory': {
            'type': 'boolean',
            'description': 'Whether to retrieve relevant context from memory'
        }
    },
    'required': ['thought', 'nextThoughtNeeded', 'thoughtNumber', 'totalThoughts']
}

TRANSPORTS = ['stdio', 'sse', 'http', 'streamable-http']


class MemoryThinkingTool(Tool):
    """The `memory_thinking` tool.

    Arguments reach the service untouched so that request validation and the
    `{error, status}` failure payload stay in one place.
    """

    _service: Optional[MemoryThinkingService] = PrivateAttr(default=None)

    @classmethod
    def for_service(cls, service: MemoryThinkingService) -> 'MemoryThinkingTool':
        tool = cls(name=TOOL_NAME, description=TOOL_DESCRIPTION, parameters=TOOL_INPUT_SCHEMA)
        tool._service = service
        return tool

    async def run(self, arguments: Dict[str, Any]) -> ToolResult:
        response = self._service.call(arguments)
        text = response['content'][0]['text']
        return ToolResult(content=[TextContent(type='text', text=text)],
                          is_error=bool(response.get('isError')))


def create_server(service: Optional[MemoryThinkingService] = None) -> FastMCP:
    """Build the FastMCP application around a memory-thinking service.

    Args:
        service: Service to expose, built from the application config if None

    Returns:
        FastMCP application with the single `memory_thinking` tool registered
    """
    server = FastMCP('memory-thinking-server')
    server.add_tool(MemoryThinkingTool.for_service(service or MemoryThinkingService()))
    return server


# Initialize FastMCP application
memory_thinking_service = MemoryThinkingService()
mcp = create_server(memory_thinking_service)


def main(argv: Optional[List[str]] = None) -> int:
    """Run the MCP server, or report storage health with --check."""
    parser = argparse.ArgumentParser(prog='memory-thinking',
                                     description='MCP server combining sequential thinking with a persistent knowledge graph.')
    parser.add_argument('--transport',
                        choices=TRANSPORTS,
                        default=config.mcp.transport,
                        help='MCP transport (default: MCP_TRANSPORT or stdio)')
    parser.add_argument('--check', action='store_true', help='print storage health as JSON and exit')
    args = parser.parse_args(argv)

    if args.check:
        info = get_system_info()
        print(to_json_text(info))
        healthy = all(status.get('healthy', False) for status in info['health_status'].values())
        return 0 if healthy else 1

    logger.info(f'Memory-Thinking MCP Server starting on {args.transport}')
    if args.transport == 'stdio':
        mcp.run(transport='stdio')
    else:
        mcp.run(transport=args.transport, host=config.mcp.host, port=config.mcp.port)
    return 0


if __name__ == '__main__':
    sys.exit(main())
