"""Fixed values shared across the provisioning pipeline."""

PUBLISHER_NAME = "access_provider"

# Only users logging in through these connection strategies are provisioned
WHITELISTED_CONNECTIONS = frozenset({"email", "firefoxaccounts", "github", "google-oauth2", "oauth2"})

# user_metadata key marking a user as already present in CIS
EXISTS_FLAG = "existsInCIS"

# Timeouts in seconds
AUTH0_TIMEOUT = 5
PERSONAPI_TIMEOUT = 5
CHANGEAPI_TIMEOUT = 14

PERSONAPI_BEARER_TOKEN_REFRESH_AGE = 18 * 60 * 60  # 18 hours

SIGNATURE_ALG = "RS256"
SIGNATURE_TYP = "JWS"
