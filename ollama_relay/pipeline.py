"""
FilePromptPipeline - run one prompt template against a batch of workspace files.

Files are processed strictly one at a time, in resolution order. A failing
file never aborts the batch: it is recorded as a read_error or error entry.
Cancellation is not a failure: it propagates and no further file is started.
File reads run in a worker thread so the event loop stays responsive.
"""

import asyncio
import json
import logging
from typing import Literal, Optional, Sequence

from pydantic import BaseModel

from ollama_relay.adapters.base import InferenceBackend
from ollama_relay.config import DATA_PLACEHOLDER, PROMPT_PREVIEW_LENGTH
from ollama_relay.workspace import WorkspaceFile, WorkspaceFileSystem

logger = logging.getLogger(__name__)

FileStatus = Literal["ok", "error", "read_error"]


class FileBatchResult(BaseModel):
    """Outcome for one file of the batch."""
    file: str
    root: str
    status: FileStatus
    prompt_preview: Optional[str] = None
    response: Optional[str] = None
    error: Optional[str] = None


class BatchReport(BaseModel):
    """Batch metadata plus per-file results, in file resolution order."""
    model: str
    connection: str
    placeholder: str = DATA_PLACEHOLDER
    mask: str
    files: int
    roots: list[dict]
    results: list[FileBatchResult]

    def to_json(self) -> str:
        data = self.model_dump()
        data["results"] = [r.model_dump(exclude_none=True) for r in self.results]
        return json.dumps(data, indent=2, ensure_ascii=False)


# ─────────────────────────────────────────────────────────────────────
# PROMPT BUILDING
# ─────────────────────────────────────────────────────────────────────

def build_prompt(
    template: str,
    content: str,
    file: WorkspaceFile,
    send_as_user_message: bool = False,
    placeholder: str = DATA_PLACEHOLDER,
) -> str:
    """
    Combine template and file content. Exactly one strategy applies:

    1. send_as_user_message: content appended as a delimited user-data block
    2. placeholder present: every occurrence replaced with the content
    3. otherwise: content appended under a "{{data}}:" label
    """
    if send_as_user_message:
        return f"{template}\n\n[user data from {file.relative_path}]\n{content}"

    if placeholder in template:
        return template.replace(placeholder, content)

    return f"{template}\n\n{placeholder}:\n{content}"


def build_preview(text: str, max_length: int = PROMPT_PREVIEW_LENGTH) -> str:
    if not text:
        return ""
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."


# ─────────────────────────────────────────────────────────────────────
# PIPELINE
# ─────────────────────────────────────────────────────────────────────

class FilePromptPipeline:

    def __init__(
        self,
        file_system: WorkspaceFileSystem,
        placeholder: str = DATA_PLACEHOLDER,
        preview_length: int = PROMPT_PREVIEW_LENGTH,
    ):
        self.file_system = file_system
        self.placeholder = placeholder
        self.preview_length = preview_length

    async def run(
        self,
        files: Sequence[WorkspaceFile],
        template: str,
        send_as_user_message: bool,
        client: InferenceBackend,
        model: str,
    ) -> list[FileBatchResult]:
        """Process every file; the result list matches `files` in length and order."""
        results = []
        for file in files:
            results.append(
                await self.process_file(file, template, send_as_user_message, client, model)
            )
        return results

    async def process_file(
        self,
        file: WorkspaceFile,
        template: str,
        send_as_user_message: bool,
        client: InferenceBackend,
        model: str,
    ) -> FileBatchResult:
        try:
            content = await asyncio.to_thread(self.file_system.read_file, file)
        except Exception as e:
            logger.warning(f"Failed to read file {file.absolute_path}: {e}")
            return FileBatchResult(
                file=file.relative_path,
                root=file.root.name,
                status="read_error",
                error=str(e),
            )

        prompt = build_prompt(template, content, file, send_as_user_message, self.placeholder)
        preview = build_preview(prompt, self.preview_length)

        try:
            response = await client.generate(model, prompt, None)
        except Exception as e:
            logger.error(f"Error processing file {file.relative_path}: {e}")
            return FileBatchResult(
                file=file.relative_path,
                root=file.root.name,
                status="error",
                prompt_preview=preview,
                response=f"Error: {e}",
            )

        return FileBatchResult(
            file=file.relative_path,
            root=file.root.name,
            status="ok",
            prompt_preview=preview,
            response=response,
        )
