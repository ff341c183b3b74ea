"""
Global test configuration with support for different test types.
"""

import json
import logging
import os
from pathlib import Path

import pytest

from gemini_guard.adapters.mock import MockAdapter
from gemini_guard.config import FrozenConfig, resolve_config


# --- Environment Isolation (Autouse) ---
@pytest.fixture(autouse=True)
def isolate_guard_env(request, monkeypatch):
    """Ensure a clean GEMINI_* environment for each test.

    - Removes all GEMINI_* variables and debug toggles before each test
    - Leaves non-GEMINI_* variables intact for stability

    Escape hatches:
      - @pytest.mark.allow_env_pollution: keep current env unchanged
      - tests marked with @pytest.mark.api automatically bypass isolation
        so real environment can be used when explicitly running API tests.
    """
    if request.node.get_closest_marker("allow_env_pollution") or (
        "api" in request.node.keywords
    ):
        return

    for key in list(os.environ.keys()):
        if key.startswith("GEMINI_"):
            monkeypatch.delenv(key, raising=False)
    # Avoid DEBUG toggles enabling telemetry
    monkeypatch.delenv("DEBUG", raising=False)


@pytest.fixture(autouse=True)
def isolated_cwd(request, monkeypatch, tmp_path):
    """Run each test from an empty directory so no pyproject.toml is found.

    Escape hatch: mark test with @pytest.mark.allow_project_config.
    """
    if request.node.get_closest_marker("allow_project_config"):
        return
    monkeypatch.chdir(tmp_path)


@pytest.fixture(scope="session", autouse=True)
def quiet_noisy_libraries():
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("google_genai").setLevel(logging.WARNING)


# --- Test Environment Markers ---
def pytest_configure(config):
    """Configure custom markers for test organization."""
    markers = [
        "unit: Fast, isolated unit tests",
        "integration: Component integration tests with mocked APIs",
        "api: Real API integration tests (requires API key)",
        "allow_env_pollution: Keep GEMINI_* environment variables",
        "allow_project_config: Do not switch to an empty working directory",
    ]
    for marker in markers:
        config.addinivalue_line("markers", marker)


def pytest_collection_modifyitems(config, items):  # noqa: ARG001
    """Automatically skip API tests when API key is unavailable."""
    if not (os.getenv("GEMINI_GUARD_API_KEY") and os.getenv("ENABLE_API_TESTS")):
        skip_api = pytest.mark.skip(
            reason="API tests require GEMINI_GUARD_API_KEY and ENABLE_API_TESTS=1",
        )
        for item in items:
            if "api" in item.keywords:
                item.add_marker(skip_api)


# --- Core Fixtures ---


@pytest.fixture
def mock_api_key():
    return "test_api_key_12345_67890_abcdef_ghijkl"


@pytest.fixture
def guard_config(tmp_path) -> FrozenConfig:
    """Mock-adapter configuration with small, test-friendly limits."""
    return resolve_config(
        {"min_sources": 2, "model_fallbacks": ["gemini-2.0-flash"]},
        project_root=tmp_path,
    ).to_frozen()


@pytest.fixture
def mock_adapter() -> MockAdapter:
    return MockAdapter()


@pytest.fixture
def fake_clock():
    """Manually advanced clock: call it for the time, ``advance`` to move it."""

    class FakeClock:
        def __init__(self) -> None:
            self.now = 1000.0

        def __call__(self) -> float:
            return self.now

        def advance(self, seconds: float) -> None:
            self.now += seconds

    return FakeClock()


@pytest.fixture
def write_pyproject(tmp_path):
    """Write a pyproject.toml with the given TOML body and return its directory."""

    def _write(body: str, directory: Path | None = None) -> Path:
        root = directory or tmp_path
        (root / "pyproject.toml").write_text(body, encoding="utf-8")
        return root

    return _write


# --- Model errors and payloads ---


class FakeProviderError(Exception):
    """Stand-in for an SDK error carrying an HTTP status and error status."""

    def __init__(self, message: str, code: int | None = None, status: str = ""):
        super().__init__(message)
        self.code = code
        self.status = status


@pytest.fixture
def access_error():
    def _make(model: str = "gemini-2.5-pro") -> FakeProviderError:
        return FakeProviderError(
            f"Model {model} not found or your project does not have access",
            code=404,
            status="NOT_FOUND",
        )

    return _make


@pytest.fixture
def safety_error():
    def _make() -> FakeProviderError:
        return FakeProviderError(
            "Your request was rejected by the safety system.",
            code=400,
            status="content_policy_violation",
        )

    return _make


@pytest.fixture
def outage_error():
    def _make() -> FakeProviderError:
        return FakeProviderError("Service unavailable", code=503, status="UNAVAILABLE")

    return _make


@pytest.fixture
def similarity_payload():
    def _make(confidence: float, *slugs_and_scores: tuple[str, float]) -> str:
        return json.dumps(
            {
                "confidence": confidence,
                "matches": [
                    {
                        "title": slug.replace("-", " ").title(),
                        "slug": slug,
                        "confidence": score,
                        "reason": f"Same figure as {slug}",
                    }
                    for slug, score in slugs_and_scores
                ],
            }
        )

    return _make


def make_corpus(count: int, *, content_chars: int = 400) -> list[dict]:
    """Corpus entries shaped like the editorial store rows."""
    return [
        {
            "id": i,
            "title": f"Mito {i}",
            "slug": f"mito-{i}",
            "region": "Andina",
            "community": "Muisca",
            "excerpt": f"Relato {i} de la tradicion oral. " * 5,
            "content": ("Historia " * (content_chars // 9 + 1))[:content_chars],
        }
        for i in range(count)
    ]


@pytest.fixture
def corpus_factory():
    return make_corpus
