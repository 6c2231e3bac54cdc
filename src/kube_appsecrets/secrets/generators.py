"""Secret generators, one per descriptor type.

Each generator seeds the secret from the descriptor's ``seed_data``,
fills in whatever is missing, persists the result as a new storage secret
labeled for the application and returns it. The storage name is assigned
by the store from a ``<descriptor>-`` prefix.
"""

import json
import secrets
from collections.abc import Callable
from dataclasses import dataclass

from icecream import ic
from kubernetes import client

from kube_appsecrets.core.store import KubernetesStore, encode_data
from kube_appsecrets.exceptions import InvalidParamsError, JobOutputError
from kube_appsecrets.models import (
    BASIC_AUTH_PASSWORD_KEY,
    BASIC_AUTH_USERNAME_KEY,
    CA_CERT_KEY,
    CA_KEY_KEY,
    CONTENT_KEY,
    DOCKER_CONFIG_JSON_KEY,
    SSH_AUTH_PRIVATE_KEY,
    TLS_CERT_KEY,
    TLS_PRIVATE_KEY_KEY,
    Application,
    KubeSecretType,
    ResolvedSecret,
    SecretDescriptor,
    SecretType,
    TLSParams,
)
from kube_appsecrets.secrets import crypto
from kube_appsecrets.secrets.jobs import extract_job_output

# Lowercase consonants and digits that cannot be confused with each other
_TOKEN_ALPHABET = "bcdfghjklmnpqrstvwxz2456789"
_USERNAME_LENGTH = 8
_PASSWORD_LENGTH = 16


@dataclass(frozen=True)
class GeneratorContext:
    """What a generator needs besides its descriptor.

    Attributes:
        store: Store the generated secret is persisted to.
        application: Application owning the descriptor.
        resolve: Resolves another descriptor within the current pass.

    """

    store: KubernetesStore
    application: Application
    resolve: Callable[[str], ResolvedSecret]


def random_token(length: int) -> str:
    """Return a random token of the given length."""
    return "".join(secrets.choice(_TOKEN_ALPHABET) for _ in range(length))


def seed_data(descriptor: SecretDescriptor, *keys: str) -> dict[str, bytes]:
    """Copy non-empty seed values into secret data.

    Args:
        descriptor: Descriptor holding the seed values.
        keys: Field names to copy; all seed fields if none are given.

    """
    wanted = keys or tuple(descriptor.seed_data)
    return {key: descriptor.seed_data[key].encode() for key in wanted if descriptor.seed_data.get(key)}


def _persist(ctx: GeneratorContext, descriptor: SecretDescriptor, secret_type: str, data: dict[str, bytes]) -> ResolvedSecret:
    """Create the storage secret for a descriptor and return it as resolved."""
    body = client.V1Secret(
        metadata=client.V1ObjectMeta(
            generate_name=f"{descriptor.name}-",
            namespace=ctx.application.namespace,
            labels=ctx.application.storage_labels(descriptor.name),
        ),
        data=encode_data(data),
        type=secret_type,
    )
    created = ctx.store.create_secret(body)
    ic(created.metadata.name)
    return ResolvedSecret(
        data=data,
        type=secret_type,
        source_identity=created.metadata.name,
        uid=created.metadata.uid or "",
    )


def generate_docker(ctx: GeneratorContext, descriptor: SecretDescriptor) -> ResolvedSecret:
    """Generate a docker registry config secret, defaulting to an empty config."""
    data = seed_data(descriptor, DOCKER_CONFIG_JSON_KEY)
    data.setdefault(DOCKER_CONFIG_JSON_KEY, b"{}")
    return _persist(ctx, descriptor, KubeSecretType.DOCKER_CONFIG_JSON.value, data)


def generate_basic(ctx: GeneratorContext, descriptor: SecretDescriptor) -> ResolvedSecret:
    """Generate a basic-auth secret, filling unseeded fields with random tokens."""
    data = seed_data(descriptor, BASIC_AUTH_USERNAME_KEY, BASIC_AUTH_PASSWORD_KEY)
    for key, length in ((BASIC_AUTH_USERNAME_KEY, _USERNAME_LENGTH), (BASIC_AUTH_PASSWORD_KEY, _PASSWORD_LENGTH)):
        if key not in data:
            data[key] = random_token(length).encode()
    return _persist(ctx, descriptor, KubeSecretType.BASIC_AUTH.value, data)


def generate_ssh(ctx: GeneratorContext, descriptor: SecretDescriptor) -> ResolvedSecret:
    """Generate an ssh-auth secret unless a private key was seeded."""
    data = seed_data(descriptor, SSH_AUTH_PRIVATE_KEY)
    if SSH_AUTH_PRIVATE_KEY not in data:
        params = TLSParams.from_params(descriptor.params)
        data[SSH_AUTH_PRIVATE_KEY] = crypto.generate_private_key(params.algorithm)
    return _persist(ctx, descriptor, KubeSecretType.SSH_AUTH.value, data)


def generate_tls(ctx: GeneratorContext, descriptor: SecretDescriptor) -> ResolvedSecret:
    """Generate a TLS secret.

    Seeded certificate and key are used as-is. Otherwise a leaf certificate
    is signed by, in order of preference, the seeded CA, the CA of the
    ``caSecret`` descriptor, or a freshly generated self-signed CA. The CA
    is stored next to the leaf unless it came from ``caSecret``, so a leaf
    with its own CA can in turn sign other leaves.
    """
    data = seed_data(descriptor, TLS_CERT_KEY, TLS_PRIVATE_KEY_KEY, CA_CERT_KEY, CA_KEY_KEY)
    if TLS_CERT_KEY in data and TLS_PRIVATE_KEY_KEY in data:
        return _persist(ctx, descriptor, KubeSecretType.TLS.value, data)

    params = TLSParams.from_params(descriptor.params)

    ca_pem, ca_key_pem = data.get(CA_CERT_KEY, b""), data.get(CA_KEY_KEY, b"")
    ca_from_secret = False
    if not ca_pem or not ca_key_pem:
        if params.ca_secret:
            ca_from_secret = True
            ca_secret = ctx.resolve(params.ca_secret)
            ca_pem, ca_key_pem = ca_secret.data.get(CA_CERT_KEY, b""), ca_secret.data.get(CA_KEY_KEY, b"")
            if not ca_pem or not ca_key_pem:
                raise InvalidParamsError(f'CA secret "{params.ca_secret}" has no CA material')
        else:
            ca_pem, ca_key_pem = crypto.generate_ca(params.algorithm)

    cert, key = crypto.generate_cert(ca_pem, ca_key_pem, params)

    data[TLS_CERT_KEY] = cert
    data[TLS_PRIVATE_KEY_KEY] = key
    if ca_from_secret:
        data.pop(CA_CERT_KEY, None)
        data.pop(CA_KEY_KEY, None)
    else:
        data[CA_CERT_KEY] = ca_pem
        data[CA_KEY_KEY] = ca_key_pem

    return _persist(ctx, descriptor, KubeSecretType.TLS.value, data)


def _decode_json_output(output: bytes) -> tuple[str, dict[str, str]]:
    """Decode a ``{"type": ..., "data": {...}}`` job payload.

    Raises:
        JobOutputError: If the payload is not a JSON object of that shape.

    """
    try:
        doc = json.loads(output)
    except ValueError as e:
        raise JobOutputError(f"job output is not valid JSON: {e}") from e

    if not isinstance(doc, dict):
        raise JobOutputError("job output must be a JSON object")

    secret_type = doc.get("type") or ""
    fields = doc.get("data") or {}
    if not isinstance(secret_type, str) or not isinstance(fields, dict):
        raise JobOutputError('job output must have a string "type" and an object "data"')
    if not all(isinstance(v, str) for v in fields.values()):
        raise JobOutputError('job output "data" values must be strings')

    return secret_type, fields


def generate_from_job(ctx: GeneratorContext, descriptor: SecretDescriptor) -> ResolvedSecret:
    """Generate a secret from the output of the job named in ``params.job``."""
    job_name = descriptor.params.get("job")
    if not job_name or not isinstance(job_name, str):
        raise InvalidParamsError('param "job" is required for generated secrets')

    output = extract_job_output(ctx.store, ctx.application.target_namespace, job_name)

    data = seed_data(descriptor)
    secret_type = KubeSecretType.OPAQUE.value

    match descriptor.params.get("format"):
        case "text":
            data[CONTENT_KEY] = output
        case "json":
            output_type, fields = _decode_json_output(output)
            data.update({key: value.encode() for key, value in fields.items()})
            if output_type:
                secret_type = output_type

    return _persist(ctx, descriptor, secret_type, data)


GENERATORS: dict[SecretType, Callable[[GeneratorContext, SecretDescriptor], ResolvedSecret]] = {
    SecretType.DOCKER: generate_docker,
    SecretType.BASIC: generate_basic,
    SecretType.TLS: generate_tls,
    SecretType.SSH_AUTH: generate_ssh,
    SecretType.GENERATED: generate_from_job,
}
