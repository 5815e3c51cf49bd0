"""Per-provider token resolution: environment override first, then the stored credential."""

import logging
import os
from collections.abc import Mapping
from typing import Protocol

from pydantic import SecretStr

from kirei.errors import MissingCredentialError
from kirei.models import ProviderId

logger = logging.getLogger(__name__)


class ConfigView(Protocol):
    @property
    def tokens(self) -> Mapping[ProviderId, SecretStr | str]: ...


def resolve_token(provider: ProviderId, config: ConfigView) -> str:
    """Return the token to use for ``provider``.

    Order, first match wins:
    1. the provider's environment variable (e.g. KIREI_GITHUB_TOKEN), if non-blank
    2. ``config.tokens[provider]``
    3. MissingCredentialError

    Nothing is cached, so a freshly exported variable is always honored.
    """
    env_token = os.environ.get(provider.env_var)
    if env_token is not None and env_token.strip():
        logger.debug("Using %s token from %s", provider.display_name, provider.env_var)
        return env_token

    stored = config.tokens.get(provider)
    if stored is not None:
        value = stored.get_secret_value() if isinstance(stored, SecretStr) else stored
        if value:
            logger.debug("Using stored %s token", provider.display_name)
            return value

    raise MissingCredentialError(provider)
