"""GitHub OAuth identity provider."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlencode

import aiohttp

from paywall.errors import SignInError

logger = logging.getLogger(__name__)

AUTHORIZE_URL = "https://github.com/login/oauth/authorize"
TOKEN_URL = "https://github.com/login/oauth/access_token"
USER_API_URL = "https://api.github.com/user"


@dataclass(frozen=True)
class User:
    """Identity issued by the provider. Read-only here."""

    id: str
    login: str
    name: str
    avatar_url: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "login": self.login,
            "name": self.name,
            "avatar_url": self.avatar_url,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "User":
        return cls(
            id=str(data["id"]),
            login=data["login"],
            name=data.get("name") or data["login"],
            avatar_url=data.get("avatar_url"),
        )


class GitHubIdentityProvider:
    """Begins and completes the GitHub OAuth web flow.

    Tokens are used once to read the profile and then discarded; no refresh
    or token storage happens here.
    """

    name = "github"

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        scope: str = "read:user",
        timeout: float = 10.0,
        token_url: str = TOKEN_URL,
        user_url: str = USER_API_URL,
    ):
        self.client_id = client_id
        self._client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.scope = scope
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self.token_url = token_url
        self.user_url = user_url

    def authorize_url(self, state: str) -> str:
        """Build the URL the browser is sent to in order to sign in."""
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "scope": self.scope,
            "state": state,
        }
        return f"{AUTHORIZE_URL}?{urlencode(params)}"

    async def fetch_user(self, code: str) -> User:
        """
        Exchange an authorization code and read the signed-in user's profile.

        Args:
            code: Authorization code from the OAuth callback

        Returns:
            The authenticated User

        Raises:
            SignInError: On any network, HTTP or payload error
        """
        try:
            async with aiohttp.ClientSession(timeout=self._timeout) as session:
                async with session.post(
                    self.token_url,
                    data={
                        "client_id": self.client_id,
                        "client_secret": self._client_secret,
                        "code": code,
                        "redirect_uri": self.redirect_uri,
                    },
                    headers={"Accept": "application/json"},
                ) as response:
                    response.raise_for_status()
                    token_data = await response.json()

                access_token = token_data.get("access_token")
                if not access_token:
                    # GitHub reports bad codes with 200 and an error field
                    raise SignInError(
                        token_data.get("error_description")
                        or token_data.get("error")
                        or "no access token returned"
                    )

                async with session.get(
                    self.user_url,
                    headers={
                        "Authorization": f"Bearer {access_token}",
                        "Accept": "application/vnd.github+json",
                    },
                ) as response:
                    response.raise_for_status()
                    profile = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise SignInError(f"GitHub request failed: {e}") from e

        try:
            user = User.from_dict(profile)
        except (KeyError, TypeError) as e:
            raise SignInError(f"Unexpected GitHub profile payload: {e}") from e

        logger.debug(f"Fetched GitHub profile for {user.login}")
        return user
