"""Data models for kube-appsecrets.

This module provides type-safe data structures for applications, their
secret descriptors and the outcome of a reconciliation pass.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, NamedTuple

from kube_appsecrets.exceptions import InvalidParamsError

# Label keys stamped on every object created for an application
LABEL_PREFIX = "appsecrets.io/"
LABEL_APP_NAME = LABEL_PREFIX + "app-name"
LABEL_APP_NAMESPACE = LABEL_PREFIX + "app-namespace"
LABEL_MANAGED = LABEL_PREFIX + "managed"
LABEL_APP_UID = LABEL_PREFIX + "app-uid"
LABEL_SECRET_NAME = LABEL_PREFIX + "secret-name"

# Well-known secret field names (Kubernetes conventions)
DOCKER_CONFIG_JSON_KEY = ".dockerconfigjson"
BASIC_AUTH_USERNAME_KEY = "username"
BASIC_AUTH_PASSWORD_KEY = "password"
SSH_AUTH_PRIVATE_KEY = "ssh-privatekey"
TLS_CERT_KEY = "tls.crt"
TLS_PRIVATE_KEY_KEY = "tls.key"
CA_CERT_KEY = "ca.crt"
CA_KEY_KEY = "ca.key"
CONTENT_KEY = "content"

KEY_ALGORITHMS = ("rsa", "ecdsa", "ed25519")
DEFAULT_KEY_ALGORITHM = "ecdsa"
CERT_USAGES = ("server", "client", "both")
DEFAULT_DURATION_DAYS = 365


class SecretType(str, Enum):
    """Descriptor types understood by the generator dispatch.

    Inherits from str so values compare equal to the strings found in
    application manifests.
    """

    DOCKER = "docker"
    BASIC = "basic"
    TLS = "tls"
    SSH_AUTH = "ssh-auth"
    GENERATED = "generated"
    OPAQUE = "opaque"

    @classmethod
    def parse(cls, value: str | None) -> "SecretType":
        """Map a manifest type string to a SecretType.

        Empty and unknown values are opaque: they have no generator and
        must be provided by an existing secret.
        """
        try:
            return cls(value)
        except ValueError:
            return cls.OPAQUE


class KubeSecretType(str, Enum):
    """Type tags written on the Kubernetes Secret objects."""

    OPAQUE = "Opaque"
    DOCKER_CONFIG_JSON = "kubernetes.io/dockerconfigjson"
    BASIC_AUTH = "kubernetes.io/basic-auth"
    SSH_AUTH = "kubernetes.io/ssh-auth"
    TLS = "kubernetes.io/tls"


class Outcome(str, Enum):
    """Classification of a single descriptor after a pass."""

    RESOLVED = "resolved"
    MISSING = "missing"
    SKIPPED = "skipped"
    ERRORED = "errored"


@dataclass(frozen=True, slots=True)
class SecretDescriptor:
    """Declarative description of a secret an application requires.

    Attributes:
        name: Unique key of the descriptor within the application.
        type: Which generator produces the secret.
        seed_data: Pre-supplied field values; empty values count as unseeded.
        params: Generator-specific parameters.
        optional: If True, absence is not reported as an error.

    """

    name: str
    type: SecretType = SecretType.OPAQUE
    seed_data: dict[str, str] = field(default_factory=dict)
    params: dict[str, Any] = field(default_factory=dict)
    optional: bool = False


class SecretBinding(NamedTuple):
    """Wires a descriptor name to a pre-existing secret in the target namespace."""

    secret_request: str
    secret: str


@dataclass(frozen=True, slots=True)
class Application:
    """An application and the secrets it declares.

    Attributes:
        name: Application name.
        namespace: Namespace of the application object; storage secrets live here.
        target_namespace: Namespace workloads run in; projections land here.
        generation: Generation of the application spec being reconciled.
        uid: Owner identifier of the application object.
        secrets: Descriptor mapping keyed by descriptor name.
        bindings: Explicit overrides to existing secrets.

    """

    name: str
    namespace: str
    target_namespace: str
    uid: str = ""
    generation: int = 0
    secrets: dict[str, SecretDescriptor] = field(default_factory=dict)
    bindings: list[SecretBinding] = field(default_factory=list)

    def binding_for(self, secret_name: str) -> SecretBinding | None:
        """Return the binding for a descriptor name, if any."""
        for binding in self.bindings:
            if binding.secret_request == secret_name:
                return binding
        return None

    def projection_labels(self) -> dict[str, str]:
        """Labels carried by consumer-facing projected secrets."""
        return {
            LABEL_APP_NAME: self.name,
            LABEL_APP_NAMESPACE: self.namespace,
            LABEL_MANAGED: "true",
        }

    def storage_labels(self, secret_name: str) -> dict[str, str]:
        """Labels identifying the storage secret generated for a descriptor."""
        return {
            **self.projection_labels(),
            LABEL_APP_UID: self.uid,
            LABEL_SECRET_NAME: secret_name,
        }


@dataclass(frozen=True, slots=True)
class ResolvedSecret:
    """Secret material obtained for one descriptor during a pass.

    Attributes:
        data: Field name to raw bytes.
        type: Kubernetes secret type tag.
        source_identity: Store-assigned name of the backing object.
        uid: Store-assigned unique identifier of the backing object.

    """

    data: dict[str, bytes]
    type: str
    source_identity: str
    uid: str = ""


def _as_str(params: dict[str, Any], key: str, default: str = "") -> str:
    value = params.get(key)
    if value is None:
        return default
    if not isinstance(value, str):
        raise InvalidParamsError(f"param {key!r} must be a string, got {type(value).__name__}")
    return value


def _as_str_list(params: dict[str, Any], key: str) -> list[str]:
    value = params.get(key)
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise InvalidParamsError(f"param {key!r} must be a list of strings")
    return list(value)


@dataclass(frozen=True, slots=True)
class TLSParams:
    """Parameters for key and certificate generation.

    Used by the ``tls`` generator and, for ``algorithm`` only, by ``ssh-auth``.
    """

    algorithm: str = DEFAULT_KEY_ALGORITHM
    usage: str = "server"
    common_name: str = ""
    organization: list[str] = field(default_factory=list)
    sans: list[str] = field(default_factory=list)
    duration_days: int = DEFAULT_DURATION_DAYS
    ca_secret: str = ""

    @classmethod
    def from_params(cls, params: dict[str, Any] | None) -> "TLSParams":
        """Build TLSParams from descriptor params, filling in defaults.

        Raises:
            InvalidParamsError: If a field is malformed or unsupported.

        """
        params = params or {}

        algorithm = _as_str(params, "algorithm", DEFAULT_KEY_ALGORITHM) or DEFAULT_KEY_ALGORITHM
        if algorithm not in KEY_ALGORITHMS:
            raise InvalidParamsError(
                f"unsupported key algorithm {algorithm!r}, expected one of {', '.join(KEY_ALGORITHMS)}"
            )

        usage = _as_str(params, "usage", "server") or "server"
        if usage not in CERT_USAGES:
            raise InvalidParamsError(f"unsupported usage {usage!r}, expected one of {', '.join(CERT_USAGES)}")

        duration = params.get("durationDays", DEFAULT_DURATION_DAYS)
        if isinstance(duration, bool) or not isinstance(duration, int):
            raise InvalidParamsError("param 'durationDays' must be an integer")
        if duration <= 0:
            raise InvalidParamsError("param 'durationDays' must be positive")

        return cls(
            algorithm=algorithm,
            usage=usage,
            common_name=_as_str(params, "commonName"),
            organization=_as_str_list(params, "organization"),
            sans=_as_str_list(params, "sans"),
            duration_days=duration,
            ca_secret=_as_str(params, "caSecret"),
        )


@dataclass(frozen=True, slots=True)
class Condition:
    """Aggregate result of a pass, reported once per application.

    Attributes:
        success: True if every required secret resolved.
        message: Empty on success, otherwise the composed error message.
        observed_generation: Application generation the pass ran against.
        fatal: True if the pass was aborted by a store fault.
        type: Condition type reported on the application status.

    """

    success: bool
    message: str = ""
    observed_generation: int = 0
    fatal: bool = False
    type: str = "Secrets"

    @classmethod
    def ok(cls, generation: int) -> "Condition":
        """Return a successful condition for the given generation."""
        return cls(success=True, observed_generation=generation)

    @classmethod
    def failed(cls, message: str, generation: int, *, fatal: bool = False) -> "Condition":
        """Return a failed condition carrying the composed error message."""
        return cls(success=False, message=message, observed_generation=generation, fatal=fatal)


@dataclass(slots=True)
class ReconcileResult:
    """Everything a pass produced: the condition, projections and per-secret outcomes."""

    condition: Condition
    projections: list[Any] = field(default_factory=list)
    outcomes: dict[str, Outcome] = field(default_factory=dict)
