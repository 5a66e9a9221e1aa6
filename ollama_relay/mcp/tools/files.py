"""MCP tool: query_backend_with_files - prompt template over workspace files.

Resolves a file mask inside the host's roots, runs the template against
each file and returns one JSON report with a result per file.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from mcp.server.fastmcp import Context
from pydantic import BaseModel

from ollama_relay.config import DATA_PLACEHOLDER, DEFAULT_FILE_MASK
from ollama_relay.connections import ConnectionRegistry
from ollama_relay.errors import ValidationError, WorkspaceFileNotFound
from ollama_relay.mcp.negotiation import negotiator_for
from ollama_relay.mcp.registry import get_registry
from ollama_relay.mcp.roots import roots_state
from ollama_relay.mcp.tools.query import error_text
from ollama_relay.model_resolver import Negotiator, Proceed, resolve_model
from ollama_relay.pipeline import BatchReport, FilePromptPipeline
from ollama_relay.workspace import WorkspaceFile, WorkspaceFileSystem, has_wildcards

logger = logging.getLogger(__name__)

WorkspaceProvider = Callable[[], Awaitable[WorkspaceFileSystem]]


class FileQueryRequest(BaseModel):
    model: str
    prompt_template: str
    file_mask: Optional[str] = None
    send_as_user_message: bool = False
    max_files: int = 0
    connection: Optional[str] = None

    @property
    def mask(self) -> str:
        mask = (self.file_mask or "").strip()
        return mask or DEFAULT_FILE_MASK

    def validate_arguments(self) -> None:
        """Raises ValidationError; runs before any network activity."""
        if not self.model.strip():
            raise ValidationError("model is required.")
        if not self.prompt_template.strip():
            raise ValidationError("prompt_template is required.")
        if self.max_files < 0:
            raise ValidationError("max_files must be zero or positive.")


def resolve_files(file_system: WorkspaceFileSystem, mask: str, max_files: int = 0) -> list[WorkspaceFile]:
    """Wildcards enumerate (honoring max_files); anything else is one file."""
    if not has_wildcards(mask):
        return [file_system.resolve_file(mask)]

    files = list(file_system.enumerate_files(mask, None, max_files or None))
    if not files:
        raise WorkspaceFileNotFound(
            mask, f"No files matching '{mask}' were found inside the workspace roots."
        )
    return files


async def execute_file_query(
    request: FileQueryRequest,
    registry: ConnectionRegistry,
    workspace_provider: WorkspaceProvider,
    negotiator: Optional[Negotiator] = None,
) -> str:
    """
    Run the template over every resolved file.

    Returns:
        Indented JSON report, or "Error: ..." text when nothing could be processed.
    """
    try:
        request.validate_arguments()
    except ValidationError as e:
        return error_text(e)

    label = request.connection or "default"
    mask = request.mask

    try:
        client = registry.client(request.connection)
        file_system = await workspace_provider()
        files = await asyncio.to_thread(resolve_files, file_system, mask, request.max_files)

        resolution = await resolve_model(client, request.model, negotiator, label)
        if not isinstance(resolution, Proceed):
            return error_text(resolution.message)
    except Exception as e:
        logger.error(f"Error preparing query_backend_with_files: {e}")
        return error_text(e)

    logger.info(
        f"query_backend_with_files: model={resolution.model}, connection={label}, "
        f"mask={mask}, files={len(files)}"
    )

    pipeline = FilePromptPipeline(file_system)
    results = await pipeline.run(
        files,
        request.prompt_template,
        request.send_as_user_message,
        client,
        resolution.model,
    )

    report = BatchReport(
        model=resolution.model,
        connection=label,
        placeholder=DATA_PLACEHOLDER,
        mask=mask,
        files=len(results),
        roots=file_system.describe_roots(),
        results=results,
    )
    return report.to_json()


async def query_backend_with_files(
    model: str,
    prompt_template: str,
    file_mask: Optional[str] = None,
    send_as_user_message: bool = False,
    max_files: int = 0,
    connection: Optional[str] = None,
    *,
    ctx: Context,
) -> str:
    """
    Run a prompt template against one or more files inside the workspace roots
    and return the model responses. Supports wildcards for batch processing.

    Args:
        model: The name of the model to query (e.g., 'llama3', 'mistral').
        prompt_template: Prompt template; '{{data}}' is replaced by file content.
        file_mask: '*' for all files, '*.py' for Python files, or one file path.
        send_as_user_message: Append file content as a separate user data block
            instead of inline replacement.
        max_files: Limit on files processed when using masks (0 = no limit).
        connection: Optional Ollama connection name; the default is used if omitted.
    """
    request = FileQueryRequest(
        model=model,
        prompt_template=prompt_template,
        file_mask=file_mask,
        send_as_user_message=send_as_user_message,
        max_files=max_files,
        connection=connection,
    )

    async def provide_workspace() -> WorkspaceFileSystem:
        return await roots_state.workspace(ctx.session)

    return await execute_file_query(
        request, get_registry(), provide_workspace, negotiator_for(ctx)
    )
