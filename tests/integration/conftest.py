import json
from types import SimpleNamespace

import httpx
import pytest

from judgi_agent.config import ProviderKeys
from judgi_agent.services import Services, build_services

_REPLY_CHUNKS = [
    "I added the grounds ",
    "to your petition.\n<DOCUMENT_",
    "WRITE>\n## Grounds\n\n",
    "A. Because the detention violates Article 21.\n</DOCUMENT_WRITE>",
    "\nAnything else?",
]


class FakeProviders:
    """Search, rerank and speech endpoints answered from memory."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path.endswith("/web-search"):
            body = json.loads(request.content)
            return httpx.Response(
                200,
                json={
                    "data": {
                        "webPages": {
                            "value": [
                                {
                                    "id": f"{body['count']}-{i}",
                                    "name": f"Judgment {i}",
                                    "snippet": f"Article 21 holding {i}",
                                    "url": f"https://law.test/{i}",
                                }
                                for i in range(3)
                            ]
                        }
                    }
                },
            )
        if path.endswith("/rerank"):
            body = json.loads(request.content)
            return httpx.Response(
                200,
                json={
                    "results": [
                        {"index": i, "document": {"text": body["documents"][i]}, "relevance_score": 1.0 - i / 10}
                        for i in reversed(range(min(body["top_n"], len(body["documents"]))))
                    ]
                },
            )
        if path.endswith("/upload"):
            return httpx.Response(200, json={"upload_url": "https://cdn.test/a"})
        if path.endswith("/transcript"):
            return httpx.Response(200, json={"id": "tr-1"})
        return httpx.Response(200, json={"status": "completed", "text": "Draft a bail application."})


class FakeLLM:
    def __init__(self, key: str, model: str, log: list[tuple[str, str]]) -> None:
        self.key = key
        self.model = model
        self.log = log

    async def astream(self, messages):
        self.log.append((self.key, self.model))
        for piece in _REPLY_CHUNKS:
            yield SimpleNamespace(content=piece)

    async def ainvoke(self, messages):
        self.log.append((self.key, self.model))
        return SimpleNamespace(content="".join(_REPLY_CHUNKS))


async def _no_sleep(seconds: float) -> None:
    return None


@pytest.fixture()
def providers() -> FakeProviders:
    return FakeProviders()


@pytest.fixture()
def llm_log() -> list[tuple[str, str]]:
    return []


@pytest.fixture()
def services(providers: FakeProviders, llm_log: list[tuple[str, str]]) -> Services:
    return build_services(
        ProviderKeys(transcription=["t1"], search=["s1", "s2"], chat=["c1"]),
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(providers)),
        llm_factory=lambda key, model: FakeLLM(key, model, llm_log),
        sleep=_no_sleep,
    )
