"""
Configuration for the Facebook login flow.

Values are read from the environment (a local .env is loaded first).
The redirect URI is a template; %origin% and %contextRoot% are filled in
before the credentials reach the login service.
"""

import os
from dataclasses import dataclass
from typing import Optional

import dotenv
from loguru import logger

dotenv.load_dotenv()


@dataclass(frozen=True)
class ProviderCredentials:
    """App registration with the identity provider."""
    client_id: Optional[str]
    client_secret: Optional[str]
    redirect_uri: Optional[str]

    def is_complete(self) -> bool:
        return all((self.client_id, self.client_secret, self.redirect_uri))


@dataclass(frozen=True)
class LoginSettings:
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    redirect_uri_template: Optional[str] = None
    origin: str = "http://localhost:8080"
    context_root: str = ""
    graph_host: str = "graph.facebook.com"
    dialog_url: str = "https://www.facebook.com/dialog/oauth"
    http_timeout: float = 10.0
    token_secret: Optional[str] = None
    token_ttl: int = 3600
    token_issuer: str = "explorer"

    @classmethod
    def from_env(cls) -> "LoginSettings":
        """Build settings from environment variables"""
        return cls(
            client_id=os.getenv("FACEBOOK_CLIENT_ID"),
            client_secret=os.getenv("FACEBOOK_CLIENT_SECRET"),
            redirect_uri_template=os.getenv("FACEBOOK_REDIRECT_URI"),
            origin=os.getenv("LOGIN_ORIGIN", "http://localhost:8080"),
            context_root=normalize_context_root(os.getenv("LOGIN_CONTEXT_ROOT", "")),
            graph_host=os.getenv("FACEBOOK_GRAPH_HOST", "graph.facebook.com"),
            dialog_url=os.getenv("FACEBOOK_DIALOG_URL", "https://www.facebook.com/dialog/oauth"),
            http_timeout=float(os.getenv("LOGIN_HTTP_TIMEOUT", "10")),
            token_secret=os.getenv("SECURITY_TOKEN_SECRET"),
            token_ttl=int(os.getenv("SECURITY_TOKEN_TTL", "3600")),
            token_issuer=os.getenv("SECURITY_TOKEN_ISSUER", "explorer"),
        )

    def credentials(self) -> ProviderCredentials:
        redirect_uri = None
        if self.redirect_uri_template:
            redirect_uri = expand_redirect_uri(
                self.redirect_uri_template, self.origin, self.context_root
            )

        credentials = ProviderCredentials(
            client_id=self.client_id,
            client_secret=self.client_secret,
            redirect_uri=redirect_uri,
        )
        if not credentials.is_complete():
            logger.warning("[CONFIG] Facebook client metadata incomplete - callbacks will fail")
        return credentials


def normalize_context_root(value: str) -> str:
    """Give a mount prefix exactly one leading slash and no trailing one."""
    value = value.strip().strip("/")
    return f"/{value}" if value else ""


def expand_redirect_uri(template: str, origin: str, context_root: str) -> str:
    """Substitute the %origin% and %contextRoot% placeholders."""
    return template.replace("%origin%", origin).replace("%contextRoot%", context_root)
