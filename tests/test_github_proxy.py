import httpx
import pytest

from dropbin.core.errors import InvalidInput, NotFound, Unavailable, UpstreamTimeout
from dropbin.main import app
from dropbin.services.github_client import GitHubClient, get_github_client


def make_client(handler, token="tkn"):
    return GitHubClient(token=token, owner="octo", repo="share", timeout=1,
                        transport=httpx.MockTransport(handler))


async def test_fetch_raw_sends_token_and_raw_accept_header():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["accept"] = request.headers["Accept"]
        return httpx.Response(200, text="file body")

    content = await make_client(handler).fetch_raw("docs/readme.txt")

    assert content == "file body"
    assert seen["url"] == "https://api.github.com/repos/octo/share/contents/docs/readme.txt"
    assert seen["auth"] == "token tkn"
    assert seen["accept"] == "application/vnd.github.v3.raw"


async def test_fetch_raw_maps_upstream_failures():
    with pytest.raises(NotFound):
        await make_client(lambda request: httpx.Response(404)).fetch_raw("missing.txt")

    with pytest.raises(Unavailable):
        await make_client(lambda request: httpx.Response(500)).fetch_raw("broken.txt")

    def timeout(request):
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(UpstreamTimeout):
        await make_client(timeout).fetch_raw("slow.txt")

    def unreachable(request):
        raise httpx.ConnectError("down", request=request)

    with pytest.raises(Unavailable):
        await make_client(unreachable).fetch_raw("down.txt")


async def test_fetch_raw_requires_configuration():
    client = make_client(lambda request: httpx.Response(200, text="x"), token=None)
    with pytest.raises(Unavailable):
        await client.fetch_raw("file.txt")


async def test_raw_endpoint(client):
    gh = make_client(lambda request: httpx.Response(200, text="from github"))
    app.dependency_overrides[get_github_client] = lambda: gh

    response = await client.get("/api/raw/notes/todo.txt")
    assert response.status_code == 200
    assert response.text == "from github"
    assert response.headers["content-type"].startswith("text/plain")


async def test_raw_endpoint_errors(client):
    app.dependency_overrides[get_github_client] = lambda: make_client(lambda request: httpx.Response(404))
    response = await client.get("/api/raw/missing.txt")
    assert response.status_code == 404
    assert response.json() == {"detail": "GitHub file not found"}

    app.dependency_overrides[get_github_client] = lambda: make_client(lambda request: httpx.Response(200), token=None)
    assert (await client.get("/api/raw/any.txt")).status_code == 503


@pytest.mark.parametrize("file_path", [
    "../../../../user",
    "docs/../../../user",
    "/etc/passwd",
    "docs//readme.txt",
    "./readme.txt",
    "docs\\..\\..\\user",
    "",
])
async def test_fetch_raw_rejects_paths_outside_contents(file_path):
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, text="leak")

    with pytest.raises(InvalidInput):
        await make_client(handler).fetch_raw(file_path)
    assert calls == []


async def test_fetch_raw_quotes_each_segment():
    seen = {}

    def handler(request):
        seen["path"] = request.url.raw_path.decode("ascii")
        return httpx.Response(200, text="ok")

    await make_client(handler).fetch_raw("docs/my notes?.txt")
    assert seen["path"] == "/repos/octo/share/contents/docs/my%20notes%3F.txt"


async def test_raw_endpoint_rejects_encoded_traversal(client):
    calls = []

    def handler(request):
        calls.append(str(request.url))
        return httpx.Response(200, text="leak")

    app.dependency_overrides[get_github_client] = lambda: make_client(handler)

    response = await client.get("/api/raw/..%2F..%2F..%2F..%2Fuser")
    assert response.status_code == 400
    assert response.json() == {"detail": "Invalid file path"}
    assert calls == []
