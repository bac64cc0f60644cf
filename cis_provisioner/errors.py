"""Error types raised by the provisioning steps."""


class ProvisioningError(Exception):
    """Base class for every failure inside the provisioning pipeline."""

    step = "provisioning"


class ConfigurationError(ProvisioningError):
    step = "configuration"


class TokenFetchError(ProvisioningError):
    step = "bearer token"


class ProfileFetchError(ProvisioningError):
    step = "person api fetch"


class SubmissionError(ProvisioningError):
    step = "change api submission"


class SigningError(ProvisioningError):
    step = "signing"


class SkeletonError(SigningError):
    """The null profile is missing an attribute the builder needs."""

    step = "profile build"


class MetadataUpdateError(ProvisioningError):
    step = "metadata update"


class AlreadyProvisionedConflict(ProvisioningError):
    """A profile already exists in CIS; informational, never retried."""

    step = "existence check"
