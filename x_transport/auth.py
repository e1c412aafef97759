"""
Authorizers produce the ``Authorization`` header for outgoing requests.

The executor only depends on the :class:`Authorizer` protocol. Two concrete
implementations ship with the package: OAuth 1.0a user context signing built on
oauthlib, and OAuth 2.0 app-only bearer tokens.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Mapping, Protocol

from oauthlib import oauth1

from x_transport.exceptions import ConfigurationError
from x_transport.utils.url import encode_form

DEFAULT_USER_AGENT = "x-transport/0.1.0"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


class Authorizer(Protocol):
    """Capability consumed by the executor to sign requests."""

    supports_compression: bool
    user_agent: str | None

    def sign(self, method: str, url: str, params: Mapping[str, str]) -> str:
        """
        Return the ``Authorization`` header value for a request.

        Args:
            method: HTTP method, upper case.
            url: Target URL without the signed parameters in its query string.
            params: Exactly the parameters that travel with the request.
        """
        ...


@dataclass(slots=True)
class OAuth1Authorizer:
    """HMAC-SHA1 OAuth 1.0a signing for user-context requests."""

    api_key: str
    api_secret: str
    access_token: str
    access_token_secret: str
    supports_compression: bool = False
    user_agent: str | None = DEFAULT_USER_AGENT
    client_factory: Callable[..., oauth1.Client] = field(default=oauth1.Client, repr=False)

    def __post_init__(self) -> None:
        missing = [
            name
            for name in ("api_key", "api_secret", "access_token", "access_token_secret")
            if not getattr(self, name)
        ]
        if missing:
            raise ConfigurationError(
                f"OAuth 1.0a signing requires {', '.join(missing)}."
            )

    def sign(self, method: str, url: str, params: Mapping[str, str]) -> str:
        client = self.client_factory(
            self.api_key,
            client_secret=self.api_secret,
            resource_owner_key=self.access_token,
            resource_owner_secret=self.access_token_secret,
        )
        method = method.upper()
        body: str | None = None
        headers: dict[str, str] = {}
        if params:
            encoded = encode_form(params)
            # oauthlib refuses bodies on GET/HEAD, so those parameters ride in the query
            if method in {"GET", "HEAD"}:
                url = f"{url}{'&' if '?' in url else '?'}{encoded}"
            else:
                body = encoded
                headers["Content-Type"] = FORM_CONTENT_TYPE

        _, signed_headers, _ = client.sign(url, http_method=method, body=body, headers=headers)
        return signed_headers["Authorization"]


@dataclass(slots=True)
class BearerAuthorizer:
    """OAuth 2.0 app-only authorization with a bearer token."""

    bearer_token: str
    supports_compression: bool = False
    user_agent: str | None = DEFAULT_USER_AGENT

    def __post_init__(self) -> None:
        if not self.bearer_token:
            raise ConfigurationError("Bearer authorization requires a bearer token.")

    def sign(self, method: str, url: str, params: Mapping[str, str]) -> str:
        return f"Bearer {self.bearer_token}"
