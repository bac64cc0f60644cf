from .token_cache import BearerTokenCache, fetch_oauth_token

__all__ = ["BearerTokenCache", "fetch_oauth_token"]
