"""
Factory for creating executors with the right authorizer for the configured credentials.
"""

from __future__ import annotations

import logging

from x_transport.auth import Authorizer, BearerAuthorizer, OAuth1Authorizer
from x_transport.clients.executor import XExecutor
from x_transport.config import ConfigManager, ExecutorSettings, XCredentials
from x_transport.exceptions import ConfigurationError


class XExecutorFactory:
    """Factory for creating properly initialized X API executors."""

    @staticmethod
    def create_from_config(
        config_manager: ConfigManager,
        *,
        supports_compression: bool = False,
        log: logging.Logger | None = None,
    ) -> XExecutor:
        """
        Create an XExecutor from credentials and settings held by ``config_manager``.

        Raises:
            ConfigurationError: If credentials are missing or invalid
        """
        credentials = config_manager.load_credentials()
        settings = config_manager.load_settings()
        return XExecutorFactory.create_from_credentials(
            credentials,
            settings=settings,
            supports_compression=supports_compression,
            log=log,
        )

    @staticmethod
    def create_from_credentials(
        credentials: XCredentials,
        *,
        settings: ExecutorSettings | None = None,
        supports_compression: bool = False,
        log: logging.Logger | None = None,
    ) -> XExecutor:
        """
        Create an XExecutor directly from credentials.

        OAuth 1.0a user context is preferred when all four user keys are
        present; otherwise the bearer token is used for app-only access.

        Raises:
            ConfigurationError: If neither credential set is complete
        """
        authorizer = XExecutorFactory.create_authorizer(
            credentials, supports_compression=supports_compression
        )
        return XExecutor(authorizer, settings=settings, log=log)

    @staticmethod
    def create_authorizer(
        credentials: XCredentials, *, supports_compression: bool = False
    ) -> Authorizer:
        if credentials.has_user_context():
            return OAuth1Authorizer(
                api_key=credentials.api_key,
                api_secret=credentials.api_secret,
                access_token=credentials.access_token,
                access_token_secret=credentials.access_token_secret,
                supports_compression=supports_compression,
            )

        if credentials.bearer_token:
            return BearerAuthorizer(
                bearer_token=credentials.bearer_token,
                supports_compression=supports_compression,
            )

        raise ConfigurationError(
            "API key, API secret, access token and access token secret, "
            "or a bearer token, are required"
        )
