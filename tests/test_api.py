"""
HTTP API Tests

Runs the full FastAPI app against the in-memory store. Only the external
collaborators (embedding and generation providers) are replaced, through
dependency_overrides.
"""

import pytest
from httpx import AsyncClient, ASGITransport

from aoi_docs_server.api.dependencies import get_embedder, get_generation_client
from aoi_docs_server.core.errors import EmbeddingUnavailable, GenerationUnavailable
from aoi_docs_server.db import VectorStore, get_async_session
from aoi_docs_server.llm.client import NOT_DOCUMENTED
from aoi_docs_server.main import create_app
from aoi_docs_server.validator import rules


ALPHA_PATH = "/srv/website/src/content/docs/functions/alpha.md"
BETA_PATH = "/srv/website/guides/beta.md"


class FakeGenerator:
    def __init__(self, answer="Use $alpha[value]."):
        self.answer = answer
        self.calls = []

    async def generate(self, prompt, context_passages, max_tokens=400):
        self.calls.append({"prompt": prompt, "context": list(context_passages), "max_tokens": max_tokens})
        return self.answer


class BrokenEmbedder:
    async def embed(self, text):
        raise EmbeddingUnavailable("GEMINI_API_KEY missing")


class BrokenGenerator:
    async def generate(self, prompt, context_passages, max_tokens=400):
        raise GenerationUnavailable("MISTRAL_API_KEY missing")


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
async def seeded(session_factory, make_passage):
    async with session_factory() as session:
        store = VectorStore(session)
        await store.upsert(
            make_passage(
                "## Usage\n$alpha[value]\nReturns alpha.",
                [1.0, 0.0, 0.0],
                source_path=ALPHA_PATH,
                section_title="Usage",
            )
        )
        await store.upsert(make_passage("Beta guide text", [0.0, 1.0, 0.0], source_path=BETA_PATH, section_title="Beta"))
        await store.commit()


@pytest.fixture
def app(session_factory, embedder, generator, seeded):
    app = create_app(initialize_store=False)

    async def _get_session():
        async with session_factory() as session:
            yield session
            await session.commit()

    app.dependency_overrides[get_async_session] = _get_session
    app.dependency_overrides[get_embedder] = lambda: embedder
    app.dependency_overrides[get_generation_client] = lambda: generator
    return app


@pytest.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


async def test_health(client):
    """Verify the health endpoint reports ok."""
    resp = await client.get("/health")

    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


class TestSearch:
    """Tests for the /search endpoints."""

    async def test_ranked_results(self, client):
        """Verify search returns the best passage with its score."""
        resp = await client.post("/search/", json={"query": "alpha please", "k": 1})

        assert resp.status_code == 200
        assert resp.json() == [
            {
                "source_path": ALPHA_PATH,
                "section_title": "Usage",
                "content": "## Usage\n$alpha[value]\nReturns alpha.",
                "score": 1.0,
            }
        ]

    async def test_blank_query_rejected(self, client):
        """Verify a blank query is a 400."""
        resp = await client.post("/search/", json={"query": "   "})

        assert resp.status_code == 400
        assert resp.json() == {"error": "invalid_input", "detail": "Invalid query"}

    async def test_unknown_fields_rejected(self, client):
        """Verify unknown request fields fail validation."""
        resp = await client.post("/search/", json={"query": "alpha", "limit": 3})
        assert resp.status_code == 422

    async def test_stats(self, client):
        """Verify stats report passage and source counts."""
        resp = await client.get("/search/stats")

        assert resp.status_code == 200
        assert resp.json() == {
            "total_passages": 2,
            "total_sources": 2,
            "sources": sorted([ALPHA_PATH, BETA_PATH]),
        }

    async def test_embedding_failure_is_502(self, app, client):
        """Verify an embedding provider failure maps to 502."""
        app.dependency_overrides[get_embedder] = lambda: BrokenEmbedder()

        resp = await client.post("/search/", json={"query": "alpha"})

        assert resp.status_code == 502
        assert resp.json()["error"] == "upstream_unavailable"


class TestBasicQuery:
    """Tests for /api/basicQuery."""

    async def test_missing_question(self, client):
        """Verify a missing question is a 400."""
        resp = await client.get("/api/basicQuery")

        assert resp.status_code == 400
        assert resp.json()["error"] == "invalid_input"

    async def test_not_documented_below_threshold(self, client, generator):
        """Verify a weak match answers NOT_DOCUMENTED without generating."""
        resp = await client.get("/api/basicQuery", params={"q": "how do I use gamma"})

        assert resp.status_code == 200
        assert resp.json() == {"answer": NOT_DOCUMENTED, "sources": [], "confidence": 0.0}
        assert generator.calls == []

    async def test_answer_grounded_on_passages(self, client, generator):
        """Verify the answer is generated from the retrieved passages."""
        resp = await client.get("/api/basicQuery", params={"q": "what does alpha do"})

        body = resp.json()
        assert resp.status_code == 200
        assert body["answer"] == "Use $alpha[value]."
        assert body["confidence"] == 1.0
        assert body["sources"][0] == "src/content/docs/functions/alpha.md"
        assert "code" not in body

        [call] = generator.calls
        assert call["prompt"].startswith("what does alpha do")
        assert call["context"][0].source_path == ALPHA_PATH
        assert call["max_tokens"] == 350

    async def test_code_mode_returns_first_block(self, client, generator):
        """Verify code mode returns only the first fenced block."""
        generator.answer = "Here you go:\n```js\n$alpha[1]\n```\nand also\n```js\n$beta\n```"

        resp = await client.get("/api/basicQuery", params={"q": "alpha example", "mode": "code", "max_tokens": 200})

        body = resp.json()
        assert body["code"] == "```js\n$alpha[1]\n```"
        assert "answer" not in body
        assert generator.calls[0]["max_tokens"] == 200

    async def test_max_tokens_bounds(self, client):
        """Verify max_tokens above the cap fails validation."""
        resp = await client.get("/api/basicQuery", params={"q": "alpha", "max_tokens": 900})
        assert resp.status_code == 422

    async def test_generation_failure_is_502(self, app, client):
        """Verify a generation provider failure maps to 502."""
        app.dependency_overrides[get_generation_client] = lambda: BrokenGenerator()

        resp = await client.get("/api/basicQuery", params={"q": "alpha"})

        assert resp.status_code == 502


class TestFunction:
    """Tests for /api/function."""

    async def test_describe(self, client):
        """Verify a documented function is described from its passages."""
        resp = await client.get("/api/function", params={"name": "$alpha"})

        body = resp.json()
        assert resp.status_code == 200
        assert body["function"] == "$alpha"
        assert body["syntax"] == "$alpha[value]"
        assert body["description"] == "Returns alpha."
        assert body["parameters"] == [{"name": "value", "description": None, "type": None, "required": None}]
        assert body["sources"] == ["src/content/docs/functions/alpha.md"]
        assert body["confidence"] == 1.0

    async def test_unknown_function(self, client):
        """Verify an unknown function yields empty documentation."""
        resp = await client.get("/api/function", params={"name": "gamma"})

        body = resp.json()
        assert body["function"] == "$gamma"
        assert body["syntax"] is None
        assert body["confidence"] == 0.0

    @pytest.mark.parametrize("params", [{}, {"name": ""}, {"name": "$"}])
    async def test_invalid_name(self, client, params):
        """Verify missing or empty names are a 400."""
        resp = await client.get("/api/function", params=params)
        assert resp.status_code == 400


class TestValidate:
    """Tests for /api/validateAoi."""

    async def test_documented_snippet(self, client):
        """Verify a documented snippet validates cleanly."""
        resp = await client.get("/api/validateAoi", params={"code": "$alpha[x]"})

        body = resp.json()
        assert resp.status_code == 200
        assert body["valid"] is True
        assert body["confidence"] == 1.0
        assert body["documented_functions"] == ["$alpha"]
        assert body["errors"] == []

    async def test_structural_errors_are_not_http_errors(self, client):
        """Verify validation errors come back in a 200 body."""
        resp = await client.get("/api/validateAoi", params={"code": "$for[1;3]"})

        body = resp.json()
        assert resp.status_code == 200
        assert body["valid"] is False
        assert rules.LOOP_UNSUPPORTED in body["errors"]
        assert "Undocumented function: $for" in body["errors"]

    async def test_missing_endif_repaired(self, client, generator):
        """Verify missing $endif is repaired without the generator."""
        resp = await client.get("/api/validateAoi", params={"code": "$if[1==1]ok", "request": "fix it"})

        body = resp.json()
        assert body["errors"] == [rules.MISMATCHED_NESTING]
        assert body["fixed_code"] == "```js\n$if[1==1]ok\n$endif\n```"
        assert generator.calls == []

    async def test_assisted_correction(self, client, generator):
        """Verify other errors are corrected through the generator."""
        generator.answer = "Corrected:\n```js\n$alpha[x]\n```"

        resp = await client.get(
            "/api/validateAoi",
            params={"code": "$alpha[x]$nope[y]", "intent": "please fix"},
        )

        body = resp.json()
        assert body["undocumented_functions"] == ["$nope"]
        assert body["fixed_code"] == "```js\n$alpha[x]\n```"
        [call] = generator.calls
        assert call["max_tokens"] == 800
        assert "Undocumented function: $nope" in call["prompt"]

    async def test_missing_code(self, client):
        """Verify a missing code parameter is a 400."""
        resp = await client.get("/api/validateAoi")

        assert resp.status_code == 400
        assert resp.json()["detail"] == 'Missing required parameter "code"'
