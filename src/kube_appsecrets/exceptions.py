"""Custom exceptions for kube-appsecrets.

This module defines the exception hierarchy used during a reconciliation
pass. Errors fall into three tiers, and the engine classifies every
descriptor outcome by the tier its exception belongs to:

- absence (``SecretNotFoundError``): recoverable, reported as missing or
  silently skipped for optional descriptors;
- fatal store faults (``StoreError``): abort the whole pass;
- generator-domain errors (``GeneratorError``): recorded per descriptor,
  the pass carries on with the remaining descriptors.
"""


class AppSecretsError(Exception):
    """Base exception for all kube-appsecrets errors.

    All custom exceptions in this package inherit from this class,
    allowing callers to catch all kube-appsecrets errors with a single
    except clause if desired.
    """

    pass


class SecretNotFoundError(AppSecretsError):
    """Raised when an object backing a secret does not exist.

    This can occur when:
    - No stored secret exists and the descriptor is not declared
    - The descriptor has no generator (opaque secrets must be provided)
    - A job referenced by a generated secret does not exist or has no pods
    """

    pass


class StoreError(AppSecretsError):
    """Raised when the object store fails for a reason other than absence.

    Permission denied, conflicts and server errors all land here. A store
    error aborts the reconciliation pass without emitting projections.
    """

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class ClusterConnectionError(StoreError):
    """Raised when connection to the Kubernetes cluster fails.

    This can occur when:
    - The kubeconfig is invalid or missing
    - The cluster is unreachable
    - Authentication fails
    """

    pass


class BindingNotFoundError(StoreError):
    """Raised when a binding points at a secret that does not exist.

    A binding is an explicit promise that the external secret exists, so
    its absence is not treated as a recoverable missing secret.
    """

    pass


class GeneratorError(AppSecretsError):
    """Base class for errors raised while generating secret material.

    These are recorded per descriptor and never abort the pass.
    """

    pass


class JobNotDoneError(GeneratorError):
    """Raised when the job producing a secret has not succeeded yet."""

    def __init__(self, message: str = "job not complete") -> None:
        super().__init__(message)


class JobNoOutputError(GeneratorError):
    """Raised when no container of a finished job left a termination message."""

    def __init__(self, message: str = "job has no output") -> None:
        super().__init__(message)


class JobOutputError(GeneratorError):
    """Raised when a job's output cannot be decoded in the requested format."""

    pass


class InvalidParamsError(GeneratorError):
    """Raised when descriptor params are malformed.

    This can occur when:
    - A field has the wrong type (e.g. ``sans`` is not a list)
    - The key algorithm or certificate usage is unknown
    - A referenced CA secret carries no CA material
    """

    pass


class SecretCycleError(GeneratorError):
    """Raised when a descriptor is re-entered while it is still resolving.

    A TLS descriptor naming itself, directly or through other descriptors,
    as its ``caSecret`` produces this error.
    """

    pass


class ManifestParsingError(AppSecretsError):
    """Raised when parsing an application manifest fails.

    This can occur when:
    - The file does not exist
    - The file is not valid YAML
    - The YAML does not describe a valid application
    """

    pass
