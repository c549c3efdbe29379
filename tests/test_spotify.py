import asyncio

import httpx
import pytest

from jeopardy.api.deps import get_spotify_client
from jeopardy.core.exceptions import Unauthorized, UpstreamError
from jeopardy.services.spotify_client import SpotifyClient
from main import app

TRACK = {
    "id": "4uLU6hMCjMI75M1A2tKUQC",
    "name": "Never Gonna Give You Up",
    "artists": [{"id": "0gxyHStUsqpMadRV0Di1Qt", "name": "Rick Astley"}],
    "album": {"id": "6N9PS4QXF1D0OWPk0Sxtb4", "name": "Whenever You Need Somebody", "images": []},
    "preview_url": None,
    "duration_ms": 213573,
    "popularity": 80,
    "external_urls": {"spotify": "https://open.spotify.com/track/4uLU6hMCjMI75M1A2tKUQC"},
}


def make_client(handler, **kwargs):
    client = SpotifyClient(transport=httpx.MockTransport(handler), backoff=0, **kwargs)
    client.client_id = "client-id"
    client.client_secret = "client-secret"
    return client


class TestSpotifyClient:

    def test_search_retries_then_succeeds(self):
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) < 3:
                return httpx.Response(503)
            return httpx.Response(200, json={"tracks": {"items": [TRACK]}})

        client = make_client(handler, max_retries=3)
        tracks = asyncio.run(client.search_tracks("token", "rick astley", limit=5))

        assert len(calls) == 3
        assert calls[-1].headers["Authorization"] == "Bearer token"
        assert calls[-1].url.params["q"] == "rick astley"
        assert calls[-1].url.params["limit"] == "5"
        assert tracks[0].name == "Never Gonna Give You Up"
        assert tracks[0].artists[0].name == "Rick Astley"

    def test_search_gives_up_after_retries(self):
        calls = []

        def handler(request):
            calls.append(request)
            raise httpx.ConnectError("connection refused", request=request)

        client = make_client(handler, max_retries=2)
        with pytest.raises(UpstreamError):
            asyncio.run(client.search_tracks("token", "anything"))
        assert len(calls) == 3

    def test_expired_token_is_not_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(401, json={"error": {"status": 401}})

        client = make_client(handler, max_retries=3)
        with pytest.raises(Unauthorized):
            asyncio.run(client.search_tracks("stale", "anything"))
        assert len(calls) == 1

    def test_exchange_code(self):
        def handler(request):
            assert request.url.path == "/api/token"
            assert request.headers["Authorization"].startswith("Basic ")
            assert b"grant_type=authorization_code" in request.content
            return httpx.Response(200, json={
                "access_token": "abc", "token_type": "Bearer", "expires_in": 3600, "refresh_token": "def"
            })

        token = asyncio.run(make_client(handler).exchange_code("the-code"))
        assert token.access_token == "abc"
        assert token.refresh_token == "def"

    def test_refresh_token_grant(self):
        def handler(request):
            assert request.url.path == "/api/token"
            assert b"grant_type=refresh_token" in request.content
            assert b"refresh_token=def" in request.content
            return httpx.Response(200, json={"access_token": "new", "expires_in": 3600})

        token = asyncio.run(make_client(handler).refresh_token("def"))
        assert token.access_token == "new"
        assert token.refresh_token is None

    def test_rejected_code(self):
        def handler(request):
            return httpx.Response(400, json={"error": "invalid_grant"})

        with pytest.raises(Unauthorized):
            asyncio.run(make_client(handler).exchange_code("used-code"))

    def test_unconfigured_client_cannot_exchange(self):
        client = SpotifyClient(transport=httpx.MockTransport(lambda request: httpx.Response(200)))
        client.client_id = ""
        with pytest.raises(UpstreamError):
            asyncio.run(client.exchange_code("code"))

    def test_authorize_url(self):
        client = make_client(lambda request: httpx.Response(200))
        url, state = client.authorize_url("xyz")
        assert state == "xyz"
        assert url.startswith("https://accounts.spotify.com/authorize?")
        assert "client_id=client-id" in url
        assert "state=xyz" in url


class TestSpotifyAPI:

    @pytest.fixture
    def spotify(self, client):
        def handler(request):
            if request.url.path == "/api/token":
                return httpx.Response(200, json={"access_token": "fresh", "expires_in": 3600})
            return httpx.Response(200, json={"tracks": {"items": [TRACK]}})

        app.dependency_overrides[get_spotify_client] = lambda: make_client(handler)
        yield client
        app.dependency_overrides.pop(get_spotify_client, None)

    def test_search_with_bearer_token(self, spotify):
        response = spotify.get("api/spotify/search", params={"q": "rick"}, headers={"Authorization": "Bearer abc"})
        assert response.status_code == 200
        assert response.json()["tracks"][0]["id"] == TRACK["id"]

    def test_search_with_query_token(self, spotify):
        response = spotify.get("api/spotify/search", params={"q": "rick", "access_token": "abc"})
        assert response.status_code == 200

    def test_search_requires_token(self, spotify):
        response = spotify.get("api/spotify/search", params={"q": "rick"})
        assert response.status_code == 401
        assert response.json()["error_code"] == "UNAUTHORIZED"

    def test_search_requires_query(self, spotify):
        response = spotify.get("api/spotify/search", headers={"Authorization": "Bearer abc"})
        assert response.status_code == 400
        assert response.json()["detail"] == "Query parameter is required"

    def test_callback_without_code(self, spotify):
        response = spotify.get("api/spotify/callback")
        assert response.status_code == 400

    def test_callback_with_error(self, spotify):
        response = spotify.get("api/spotify/callback", params={"error": "access_denied"})
        assert response.status_code == 401

    def test_status(self, spotify):
        response = spotify.get("api/spotify/status")
        assert response.status_code == 200
        assert response.json() == {"configured": True}

    def test_login(self, spotify):
        data = spotify.get("api/spotify/login").json()
        assert data["url"].startswith("https://accounts.spotify.com/authorize")
        assert data["state"]

    def test_refresh_token(self, spotify):
        response = spotify.post("api/spotify/refresh", json={"refresh_token": "def"})
        assert response.status_code == 200
        assert response.json()["access_token"] == "fresh"

    def test_refresh_requires_token(self, spotify):
        response = spotify.post("api/spotify/refresh", json={})
        assert response.status_code == 400
