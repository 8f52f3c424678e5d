"""OAuth2 login with Google, GitHub and Microsoft (authorization code + PKCE)."""

from .models import OAuthEndpoints, OAuthProfile, OAuthProvider, OAuthTokens
from .providers import (
    STRATEGY_CLASSES,
    GitHubOAuthStrategy,
    GoogleOAuthStrategy,
    MicrosoftOAuthStrategy,
)
from .registry import OAuthStrategyRegistry, create_strategy
from .strategy import PKCE_METHOD, OAuthStrategy
from .utils import (
    OAuthErrorInfo,
    build_query_string,
    build_scope_string,
    build_url,
    extract_email_domain,
    generate_state,
    parse_oauth_error_response,
    parse_scope_string,
    validate_state,
)

__all__: list[str] = [
    "OAuthProvider",
    "OAuthEndpoints",
    "OAuthTokens",
    "OAuthProfile",
    "OAuthStrategy",
    "PKCE_METHOD",
    "GoogleOAuthStrategy",
    "GitHubOAuthStrategy",
    "MicrosoftOAuthStrategy",
    "STRATEGY_CLASSES",
    "OAuthStrategyRegistry",
    "create_strategy",
    "OAuthErrorInfo",
    "build_query_string",
    "build_url",
    "parse_oauth_error_response",
    "generate_state",
    "validate_state",
    "extract_email_domain",
    "build_scope_string",
    "parse_scope_string",
]
