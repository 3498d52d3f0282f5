import base64
import json

import pytest

from core.cache import ProfileCache


class FakeResponse:
    def __init__(self, status: int = 200, payload=None, exc: BaseException | None = None):
        self.status = status
        self.payload = payload
        self.exc = exc

    async def json(self, content_type=None):
        return self.payload

    async def __aenter__(self):
        if self.exc is not None:
            raise self.exc
        return self

    async def __aexit__(self, *exc):
        return False


class FakeSession:
    """Stands in for aiohttp.ClientSession; unknown URLs answer 404."""

    def __init__(self):
        self.routes: dict[tuple[str, str], FakeResponse] = {}
        self.calls: list[tuple[str, str]] = []

    def add(self, method: str, url: str, status: int = 200, payload=None, exc=None):
        self.routes[(method, url)] = FakeResponse(status, payload, exc)

    def _request(self, method: str, url: str):
        self.calls.append((method, url))
        return self.routes.get((method, url), FakeResponse(404))

    def get(self, url, **kwargs):
        return self._request("GET", url)

    def head(self, url, **kwargs):
        return self._request("HEAD", url)

    def count(self, method: str, url: str) -> int:
        return self.calls.count((method, url))


class Clock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class RecordingLogger:
    def __init__(self):
        self.errors = []

    async def log_error(self, error, context="", fields=None):
        self.errors.append((error, context, fields or {}))


def session_profile(name="Notch", uuid="069a79f444e94726a5befca90e38aaf5",
                    cape_url=None, slim=False):
    skin = {"url": "http://textures.minecraft.net/texture/abc"}
    if slim:
        skin["metadata"] = {"model": "slim"}
    textures = {"SKIN": skin}
    if cape_url:
        textures["CAPE"] = {"url": cape_url}
    blob = json.dumps({"profileId": uuid, "profileName": name, "textures": textures})
    return {
        "id": uuid,
        "name": name,
        "properties": [{"name": "textures", "value": base64.b64encode(blob.encode()).decode()}],
    }


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def cache(clock):
    return ProfileCache(maxsize=500, ttl=300, timer=clock)


@pytest.fixture
def session():
    return FakeSession()
