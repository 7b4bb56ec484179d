"""
Authenticated read-only access to files in a GitHub repository.

The token, owner and repository come from settings; nothing is hardcoded.
"""
import logging
from typing import Optional
from urllib.parse import quote

import httpx

from dropbin.core.config import settings
from dropbin.core.errors import InvalidInput, NotFound, Unavailable, UpstreamTimeout

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"


def contents_path(file_path: str) -> str:
    """
    Quote ``file_path`` for use under the repository contents endpoint.

    Dot segments, empty segments and a leading slash are rejected so the
    request cannot leave ``/repos/{owner}/{repo}/contents/``.

    Raises:
        InvalidInput: if the path is not a plain relative file path
    """
    segments = file_path.split("/")
    if not file_path or any(segment in ("", ".", "..") or "\\" in segment for segment in segments):
        raise InvalidInput("Invalid file path")
    return "/".join(quote(segment, safe="") for segment in segments)


class GitHubClient:
    def __init__(
            self,
            token: Optional[str],
            owner: Optional[str],
            repo: Optional[str],
            timeout: float = 10.0,
            transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.token = token
        self.owner = owner
        self.repo = repo
        self.timeout = timeout
        self.transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.token and self.owner and self.repo)

    async def fetch_raw(self, file_path: str) -> str:
        """
        Return the raw contents of ``file_path``.

        Raises:
            InvalidInput: the path would leave the repository contents
            NotFound: the file does not exist upstream
            Unavailable: the proxy is not configured or GitHub is unreachable
            UpstreamTimeout: GitHub did not answer in time
        """
        path = contents_path(file_path)
        if not self.configured:
            raise Unavailable("GitHub integration is not configured")

        url = f"{GITHUB_API_URL}/repos/{self.owner}/{self.repo}/contents/{path}"
        headers = {
            "Authorization": f"token {self.token}",
            "Accept": "application/vnd.github.v3.raw",
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(url, headers=headers)
        except httpx.TimeoutException as e:
            logger.error(f"GitHub fetch timed out for {file_path}: {e}")
            raise UpstreamTimeout("GitHub request timed out") from e
        except httpx.HTTPError as e:
            logger.error(f"GitHub fetch failed for {file_path}: {e}")
            raise Unavailable("GitHub is unreachable") from e

        if response.status_code == 404:
            raise NotFound("GitHub file not found")
        if response.status_code != 200:
            logger.error(f"GitHub fetch for {file_path} returned {response.status_code}")
            raise Unavailable(f"GitHub returned status {response.status_code}")

        return response.text


def get_github_client() -> GitHubClient:
    return GitHubClient(
        token=settings.GITHUB_TOKEN,
        owner=settings.GITHUB_OWNER,
        repo=settings.GITHUB_REPO,
        timeout=settings.OUTBOUND_TIMEOUT_SECONDS,
    )
