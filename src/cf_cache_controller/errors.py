"""Exception hierarchy for the cache controller."""


class CacheControllerError(Exception):
    """Base exception for cache controller errors."""


class ConfigurationError(CacheControllerError, RuntimeError):
    """Missing or invalid configuration."""


class CredentialError(CacheControllerError):
    """Temporary credentials could not be obtained."""


class EndpointValidationError(CredentialError):
    """The credential endpoint failed the address checks."""


class InvalidationError(CacheControllerError):
    """A CloudFront invalidation request could not be built or sent."""
