from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse

from dropbin.core.security_middleware import check_rate_limit, add_security_headers
from dropbin.services.github_client import GitHubClient, get_github_client

router = APIRouter()


@router.get("/raw/{file_path:path}", response_class=PlainTextResponse)
async def read_github_raw(
        file_path: str,
        request: Request,
        client: GitHubClient = Depends(get_github_client)
):
    """Proxy a file from the configured GitHub repository as plain text."""
    check_rate_limit(request, "read")
    content = await client.fetch_raw(file_path)

    response = PlainTextResponse(content=content)
    add_security_headers(response)
    return response
