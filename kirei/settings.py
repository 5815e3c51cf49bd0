"""Settings resolution: environment, then .env, then ~/.config/kirei/config.toml."""

import logging
from functools import lru_cache
from pathlib import Path

import tomlkit
from pydantic import SecretStr
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from kirei.models import ProviderId, ScopeDefaults

CONFIG_PATH = Path.home() / ".config" / "kirei" / "config.toml"

logger = logging.getLogger(__name__)


class KireiSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="KIREI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    default_provider: ProviderId = ProviderId.GITHUB

    # Default scopes, one per provider
    default_repo: str | None = None  # GitHub "owner/repo"
    default_workspace: str | None = None  # Linear team id
    default_board: str | None = None  # Trello board id
    default_project: str | None = None  # Jira project key

    # Provider connection details
    jira_server_url: str | None = None
    jira_email: str | None = None
    trello_api_key: SecretStr | None = None

    # GitHub OAuth app
    github_client_id: str | None = None
    github_client_secret: SecretStr | None = None

    # Credential store, written by `kirei auth`
    tokens: dict[ProviderId, SecretStr] = {}

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Values from the TOML file arrive as init kwargs; env vars and .env must win over them.
        return env_settings, dotenv_settings, init_settings, file_secret_settings

    def scope_defaults(self) -> ScopeDefaults:
        return ScopeDefaults(
            repo=self.default_repo,
            workspace=self.default_workspace,
            board=self.default_board,
            project=self.default_project,
            jira_server_url=self.jira_server_url,
            jira_email=self.jira_email,
            trello_api_key=self.trello_api_key.get_secret_value() if self.trello_api_key else None,
        )


@lru_cache(maxsize=1)
def _load_toml() -> tomlkit.TOMLDocument:
    """Load ~/.config/kirei/config.toml, returning empty document if missing."""
    if not CONFIG_PATH.exists():
        return tomlkit.document()
    with CONFIG_PATH.open() as fh:
        return tomlkit.load(fh)


def get_settings() -> KireiSettings:
    """Return settings with env vars and .env layered over the TOML config."""
    toml_config = _load_toml()
    logger.debug("Loaded config from %s (%d keys)", CONFIG_PATH, len(toml_config))
    return KireiSettings(**toml_config.unwrap())


def _write_toml(doc: tomlkit.TOMLDocument) -> None:
    CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
    CONFIG_PATH.write_text(tomlkit.dumps(doc))
    _load_toml.cache_clear()


def _read_for_update() -> tomlkit.TOMLDocument:
    # Fresh read, not the cached document: the round-trip must preserve comments
    # and must not mutate what get_settings() already handed out.
    if not CONFIG_PATH.exists():
        return tomlkit.document()
    with CONFIG_PATH.open() as fh:
        return tomlkit.load(fh)


def save_token(provider: ProviderId, token: str) -> Path:
    """Store a token under [tokens] in the config file."""
    doc = _read_for_update()
    if "tokens" not in doc:
        doc.add("tokens", tomlkit.table())
    doc["tokens"][provider.value] = token.strip()  # type: ignore[index]
    _write_toml(doc)
    logger.info("Stored %s token in %s", provider.display_name, CONFIG_PATH)
    return CONFIG_PATH


def set_default_provider(provider: ProviderId) -> Path:
    doc = _read_for_update()
    doc["default_provider"] = provider.value
    _write_toml(doc)
    return CONFIG_PATH
