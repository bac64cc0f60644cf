"""Login-time orchestration: create the user in CIS if it is not there yet."""
from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Mapping, Optional

from .api_client import ApiClient
from .auth import BearerTokenCache
from .builder import ProfileBuilder
from .config import ProvisioningSettings, validate_configuration
from .eligibility import is_eligible
from .errors import AlreadyProvisionedConflict, ConfigurationError, ProvisioningError
from .models import Identity, LoginContext
from .signer import AttributeSigner
from .stores import MetadataStore
from .tracker import StatusTracker

logger = logging.getLogger("cis_provisioner.pipeline")

ApiClientFactory = Callable[[ProvisioningSettings, BearerTokenCache], Any]
Callback = Callable[[Optional[Exception], Dict[str, Any], Dict[str, Any]], Any]


class ProvisioningOutcome(str, enum.Enum):
    MISCONFIGURED = "misconfigured"
    INELIGIBLE = "ineligible"
    ALREADY_EXISTS = "already_exists"
    CREATED = "created"
    FAILED = "failed"


@dataclass
class HostGlobals:
    """State the host keeps alive across logins."""

    metadata_store: MetadataStore
    token_cache: BearerTokenCache = field(default_factory=BearerTokenCache)


def _default_client_factory(settings: ProvisioningSettings, token_cache: BearerTokenCache):
    return ApiClient(settings, token_cache)


async def _create_in_cis(
    identity: Identity,
    context: LoginContext,
    settings: ProvisioningSettings,
    host_globals: HostGlobals,
    api_client_factory: ApiClientFactory,
    clock: Callable[[], datetime],
) -> ProvisioningOutcome:
    user_id = context.subject_id(identity)
    metadata = context.metadata(identity)
    tracker = StatusTracker(host_globals.metadata_store)

    async with api_client_factory(settings, host_globals.token_cache) as client:
        existing = await client.fetch_profile(user_id)
        if existing:
            await tracker.mark_provisioned(user_id, metadata)
            raise AlreadyProvisionedConflict(
                f"Profile for {identity.user_id} already exists in PersonAPI as {user_id}"
            )

        profile = ProfileBuilder(settings.skeleton, clock=clock).build(identity, user_id)
        AttributeSigner(settings.private_key).sign_all(profile)

        await client.submit_profile(user_id, profile.to_dict())

    logger.info("Successfully created profile for %s in ChangeAPI as %s", identity.user_id, user_id)
    await tracker.mark_provisioned(user_id, metadata)
    return ProvisioningOutcome.CREATED


async def provision(
    identity: Identity,
    context: LoginContext,
    configuration: Mapping[str, Any],
    host_globals: HostGlobals,
    api_client_factory: ApiClientFactory = _default_client_factory,
    clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
) -> ProvisioningOutcome:
    """Run every provisioning step in order; never raises.

    This is the one place where pipeline errors are swallowed: each is logged
    with the subject and the failing step, and turned into an outcome.
    """
    user_id = context.subject_id(identity)
    try:
        settings = validate_configuration(configuration)
        if not is_eligible(context.connection_strategy, context.metadata(identity)):
            return ProvisioningOutcome.INELIGIBLE
        return await _create_in_cis(identity, context, settings, host_globals, api_client_factory, clock)
    except ConfigurationError as exc:
        logger.error("Error: %s", exc)
        return ProvisioningOutcome.MISCONFIGURED
    except AlreadyProvisionedConflict as exc:
        logger.info("%s", exc)
        return ProvisioningOutcome.ALREADY_EXISTS
    except ProvisioningError as exc:
        logger.error("Error: %s failed for %s: %s", exc.step, user_id, exc)
    except Exception:
        logger.exception("Error: unexpected failure provisioning %s", user_id)
    return ProvisioningOutcome.FAILED


async def handle_login(
    user: Dict[str, Any],
    context: Dict[str, Any],
    configuration: Mapping[str, Any],
    callback: Callback,
    host_globals: HostGlobals,
    api_client_factory: ApiClientFactory = _default_client_factory,
) -> Any:
    """Host entry point; the login always continues with ``callback(None, user, context)``."""
    try:
        identity = Identity.from_dict(user)
        login_context = LoginContext.from_dict(context)
    except (KeyError, TypeError, AttributeError) as exc:
        logger.error("Error: unable to read user record: %s", exc)
        return callback(None, user, context)

    try:
        await provision(identity, login_context, configuration, host_globals, api_client_factory)
    finally:
        result = callback(None, user, context)
    return result


def run_rule(
    user: Dict[str, Any],
    context: Dict[str, Any],
    configuration: Mapping[str, Any],
    callback: Callback,
    host_globals: HostGlobals,
    api_client_factory: ApiClientFactory = _default_client_factory,
) -> Any:
    return asyncio.run(
        handle_login(user, context, configuration, callback, host_globals, api_client_factory)
    )
