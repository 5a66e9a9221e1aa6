"""Tests for ollama_relay.pipeline - prompt building and batch processing.

The backend is an AsyncMock; files live in a real temp directory.
"""

import asyncio
import json
import threading
import pytest
from unittest.mock import AsyncMock, patch

from ollama_relay.errors import BackendError, BackendUnreachable
from ollama_relay.pipeline import (
    BatchReport,
    FilePromptPipeline,
    build_preview,
    build_prompt,
)
from ollama_relay.workspace import WorkspaceFile, WorkspaceRoot


@pytest.fixture
def sample_file():
    root = WorkspaceRoot(name="docs", path="/workspace/docs")
    return WorkspaceFile(
        absolute_path="/workspace/docs/notes/today.md",
        root=root,
        relative_path="notes/today.md",
    )


# ─────────────────────────────────────────────────────────────────────
# PROMPT BUILDING
# ─────────────────────────────────────────────────────────────────────


class TestBuildPrompt:

    def test_placeholder_substitution(self, sample_file):
        assert build_prompt("Summarize: {{data}}", "hello", sample_file) == "Summarize: hello"

    def test_every_placeholder_replaced(self, sample_file):
        result = build_prompt("{{data}} / {{data}}", "x", sample_file)
        assert result == "x / x"

    def test_without_placeholder_appends_labeled_block(self, sample_file):
        result = build_prompt("Summarize this file.", "hello\nworld", sample_file)
        assert result == "Summarize this file.\n\n{{data}}:\nhello\nworld"

    def test_user_message_block_takes_priority(self, sample_file):
        result = build_prompt("Summarize: {{data}}", "hello", sample_file, send_as_user_message=True)

        assert result == "Summarize: {{data}}\n\n[user data from notes/today.md]\nhello"

    def test_content_is_verbatim(self, sample_file):
        content = "line with {braces} and $dollars and \\backslashes"
        assert content in build_prompt("Check:", content, sample_file)

    def test_custom_placeholder(self, sample_file):
        assert build_prompt("Go: <<file>>", "abc", sample_file, placeholder="<<file>>") == "Go: abc"


class TestBuildPreview:

    def test_short_text_unchanged(self):
        assert build_preview("short") == "short"

    def test_long_text_truncated_with_ellipsis(self):
        preview = build_preview("x" * 500)
        assert preview == "x" * 400 + "..."

    def test_exact_length_not_truncated(self):
        assert build_preview("y" * 400) == "y" * 400

    def test_empty(self):
        assert build_preview("") == ""

    def test_custom_length(self):
        assert build_preview("abcdef", max_length=3) == "abc..."


# ─────────────────────────────────────────────────────────────────────
# PIPELINE
# ─────────────────────────────────────────────────────────────────────


class TestFilePromptPipeline:

    @pytest.mark.asyncio
    async def test_one_result_per_file_in_order(self, workspace, mock_backend):
        files = list(workspace.enumerate_files("*.md"))
        mock_backend.generate = AsyncMock(side_effect=lambda model, prompt, options: f"len={len(prompt)}")

        results = await FilePromptPipeline(workspace).run(
            files, "Summarize: {{data}}", False, mock_backend, "llama3:8b"
        )

        assert [r.file for r in results] == [f.relative_path for f in files]
        assert all(r.status == "ok" for r in results)
        assert all(r.root == "docs" for r in results)

    @pytest.mark.asyncio
    async def test_generate_called_with_prompt_and_no_options(self, workspace, mock_backend):
        file = workspace.resolve_file("readme.md")

        results = await FilePromptPipeline(workspace).run(
            [file], "Summarize: {{data}}", False, mock_backend, "llama3:8b"
        )

        mock_backend.generate.assert_awaited_once_with("llama3:8b", "Summarize: # Readme", None)
        assert results[0].response == "model output"
        assert results[0].prompt_preview == "Summarize: # Readme"

    @pytest.mark.asyncio
    async def test_read_error_does_not_abort_batch(self, workspace, docs_root, mock_backend):
        files = [
            workspace.resolve_file("readme.md"),
            workspace.resolve_file("guide.md"),
            workspace.resolve_file("notes.txt"),
        ]
        (docs_root / "guide.md").unlink()

        results = await FilePromptPipeline(workspace).run(
            files, "Summarize: {{data}}", False, mock_backend, "llama3:8b"
        )

        assert len(results) == 3
        assert [r.status for r in results] == ["ok", "read_error", "ok"]
        assert results[1].error
        assert results[1].response is None
        assert mock_backend.generate.await_count == 2

    @pytest.mark.asyncio
    async def test_generation_error_recorded_as_entry(self, workspace, mock_backend):
        files = [workspace.resolve_file("readme.md"), workspace.resolve_file("guide.md")]
        mock_backend.generate = AsyncMock(side_effect=[
            BackendError(500, "out of memory", "Internal Server Error"),
            "fine",
        ])

        results = await FilePromptPipeline(workspace).run(
            files, "Summarize: {{data}}", False, mock_backend, "llama3:8b"
        )

        assert results[0].status == "error"
        assert results[0].response.startswith("Error: Ollama API error: 500")
        assert "out of memory" in results[0].response
        assert results[0].prompt_preview == "Summarize: # Readme"
        assert results[1].status == "ok"
        assert results[1].response == "fine"

    @pytest.mark.asyncio
    async def test_unreachable_backend_per_file(self, workspace, mock_backend):
        files = list(workspace.enumerate_files("*.md"))
        mock_backend.generate = AsyncMock(
            side_effect=BackendUnreachable("http://localhost:11434", ConnectionError("refused"))
        )

        results = await FilePromptPipeline(workspace).run(
            files, "T", False, mock_backend, "llama3:8b"
        )

        assert len(results) == len(files)
        assert all(r.status == "error" for r in results)

    @pytest.mark.asyncio
    async def test_send_as_user_message(self, workspace, mock_backend):
        file = workspace.resolve_file("readme.md")

        await FilePromptPipeline(workspace).run(
            [file], "Review the document.", True, mock_backend, "llama3:8b"
        )

        prompt = mock_backend.generate.await_args.args[1]
        assert prompt == "Review the document.\n\n[user data from readme.md]\n# Readme"

    @pytest.mark.asyncio
    async def test_empty_file_list(self, workspace, mock_backend):
        assert await FilePromptPipeline(workspace).run([], "T", False, mock_backend, "m") == []
        mock_backend.generate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cancellation_propagates_and_stops_batch(self, workspace, mock_backend):
        files = list(workspace.enumerate_files("*.md"))
        assert len(files) > 1
        mock_backend.generate = AsyncMock(side_effect=asyncio.CancelledError())

        with pytest.raises(asyncio.CancelledError):
            await FilePromptPipeline(workspace).run(
                files, "Summarize: {{data}}", False, mock_backend, "llama3:8b"
            )

        assert mock_backend.generate.await_count == 1

    @pytest.mark.asyncio
    async def test_file_read_runs_off_event_loop_thread(self, workspace, mock_backend):
        file = workspace.resolve_file("readme.md")
        loop_thread = threading.get_ident()
        read_threads = []
        real_read = workspace.read_file

        def recording_read(f):
            read_threads.append(threading.get_ident())
            return real_read(f)

        with patch.object(workspace, "read_file", side_effect=recording_read):
            results = await FilePromptPipeline(workspace).run(
                [file], "Summarize: {{data}}", False, mock_backend, "llama3:8b"
            )

        assert results[0].status == "ok"
        assert len(read_threads) == 1
        assert read_threads[0] != loop_thread


class TestBatchReport:

    def test_json_omits_unset_fields(self, workspace):
        from ollama_relay.pipeline import FileBatchResult

        report = BatchReport(
            model="llama3:8b",
            connection="default",
            mask="*.md",
            files=2,
            roots=workspace.describe_roots(),
            results=[
                FileBatchResult(file="a.md", root="docs", status="ok", prompt_preview="p", response="r"),
                FileBatchResult(file="b.md", root="docs", status="read_error", error="gone"),
            ],
        )

        data = json.loads(report.to_json())
        assert data["placeholder"] == "{{data}}"
        assert data["files"] == 2
        assert data["roots"][0]["name"] == "docs"
        assert "error" not in data["results"][0]
        assert data["results"][1] == {"file": "b.md", "root": "docs", "status": "read_error", "error": "gone"}
