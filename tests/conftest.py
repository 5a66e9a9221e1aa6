"""Shared test fixtures for ollama-relay tests."""

import pytest
from unittest.mock import AsyncMock, MagicMock


# ─────────────────────────────────────────────────────────────────────
# MOCK DATA
# ─────────────────────────────────────────────────────────────────────

MOCK_LOCAL_URL = "http://localhost:11434"
MOCK_REMOTE_URL = "https://gpu-box.lan:11434"

MOCK_MODEL_1 = "llama3:8b"
MOCK_MODEL_2 = "mistral:7b"
MOCK_MODELS = [MOCK_MODEL_1, MOCK_MODEL_2]

MOCK_TAGS_RESPONSE = {
    "models": [
        {"name": MOCK_MODEL_1, "model": MOCK_MODEL_1, "size": 4661224676},
        {"name": MOCK_MODEL_2, "model": MOCK_MODEL_2, "size": 4113301824},
    ]
}

MOCK_GENERATE_RESPONSE = {
    "model": MOCK_MODEL_1,
    "created_at": "2024-05-01T10:00:00Z",
    "response": "The capital of France is Paris.",
    "done": True,
}

OLLAMA_ENV_VARS = [
    "OLLAMA_HOST",
    "OLLAMA_DEFAULT_CONNECTION",
    "OLLAMA_RELAY_CONFIG",
    "OLLAMA_RELAY_LOG_LEVEL",
    "OLLAMA_SERVER_1",
    "OLLAMA_SERVER_2",
    "OLLAMA_SERVER_3",
]


# ─────────────────────────────────────────────────────────────────────
# FIXTURES - Environment
# ─────────────────────────────────────────────────────────────────────

@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Isolate every test from the developer's Ollama environment."""
    for key in OLLAMA_ENV_VARS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("OLLAMA_RELAY_CONFIG", str(tmp_path / "no-such-appsettings.json"))


# ─────────────────────────────────────────────────────────────────────
# FIXTURES - Connections
# ─────────────────────────────────────────────────────────────────────

@pytest.fixture
def local_connection():
    from ollama_relay.config import ServerConnection
    return ServerConnection(name="local", base_url=MOCK_LOCAL_URL)


@pytest.fixture
def remote_connection():
    from ollama_relay.config import ServerConnection
    return ServerConnection(
        name="gpu-box",
        base_url=MOCK_REMOTE_URL,
        user="alice",
        password="s3cret",
        ignore_ssl=True,
    )


@pytest.fixture
def registry(local_connection, remote_connection):
    """Registry with a plain local server (default) and a secured remote one."""
    from ollama_relay.connections import ConnectionRegistry
    return ConnectionRegistry([local_connection, remote_connection], default_name="local")


@pytest.fixture
def mock_backend():
    """InferenceBackend double; override return values per test."""
    backend = MagicMock()
    backend.list_models = AsyncMock(return_value=set(MOCK_MODELS))
    backend.generate = AsyncMock(return_value="model output")
    return backend


# ─────────────────────────────────────────────────────────────────────
# FIXTURES - Workspace
# ─────────────────────────────────────────────────────────────────────

@pytest.fixture
def make_root(tmp_path):
    """Create a directory with files; returns its Path."""
    def _make(name: str, files: dict[str, str]):
        root = tmp_path / name
        root.mkdir(parents=True, exist_ok=True)
        for relative, content in files.items():
            path = root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        return root
    return _make


@pytest.fixture
def host_root():
    """Build a host root entry from a directory Path."""
    from ollama_relay.workspace import HostRoot

    def _host_root(path, name=None):
        return HostRoot(uri=path.as_uri(), name=name)
    return _host_root


@pytest.fixture
def docs_root(make_root):
    return make_root("docs", {
        "readme.md": "# Readme",
        "guide.md": "# Guide",
        "notes.txt": "plain notes",
        "LICENSE": "MIT",
        "nested/deep.md": "# Deep",
    })


@pytest.fixture
def workspace(docs_root, host_root):
    """WorkspaceFileSystem over a single 'docs' root."""
    from ollama_relay.workspace import WorkspaceFileSystem
    return WorkspaceFileSystem.from_host_roots([host_root(docs_root, "docs")])
