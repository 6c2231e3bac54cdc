"""Application manifest parsing.

This module loads an application and its secret descriptors from a YAML
manifest file:

    apiVersion: appsecrets.io/v1
    kind: AppInstance
    metadata:
      name: web
      namespace: apps
      uid: 5f1c...
      generation: 3
    spec:
      targetNamespace: web-prod
      bindings:
        - secretRequest: registry
          secret: shared-registry-creds
      secrets:
        db:
          type: basic
          data: {username: admin}
"""

import re
from typing import Any

import yaml

from kube_appsecrets.exceptions import ManifestParsingError
from kube_appsecrets.models import Application, SecretBinding, SecretDescriptor, SecretType

# Kubernetes DNS subdomain name validation (RFC 1123)
_DNS_SUBDOMAIN_MAX_LENGTH = 253
_DNS_SUBDOMAIN_PATTERN = r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?(\.[a-z0-9]([-a-z0-9]*[a-z0-9])?)*$"


def validate_k8s_name(name: str) -> bool | str:
    """Validate a Kubernetes resource name (DNS subdomain).

    Args:
        name: The name to validate.

    Returns:
        True if valid, or an error message string if invalid.

    """
    if not name:
        return "Name cannot be empty"
    if len(name) > _DNS_SUBDOMAIN_MAX_LENGTH:
        return f"Name must be {_DNS_SUBDOMAIN_MAX_LENGTH} characters or less"
    if not re.match(_DNS_SUBDOMAIN_PATTERN, name):
        return "Name must consist of lowercase alphanumeric characters, '-' or '.', and must start and end with an alphanumeric character"
    return True


def _require_name(value: Any, what: str) -> str:
    if not isinstance(value, str):
        raise ManifestParsingError(f"{what} must be a string")
    result = validate_k8s_name(value)
    if result is not True:
        raise ManifestParsingError(f"Invalid {what} '{value}': {result}")
    return value


def _require_mapping(value: Any, what: str) -> dict:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ManifestParsingError(f"{what} must be a mapping")
    return value


def parse_descriptor(name: str, raw: Any) -> SecretDescriptor:
    """Build a SecretDescriptor from its manifest entry.

    Raises:
        ManifestParsingError: If the entry is malformed.

    """
    _require_name(name, "secret name")
    raw = _require_mapping(raw, f"secret '{name}'")

    seed = _require_mapping(raw.get("data"), f"secret '{name}' data")
    # YAML happily turns values into ints and bools; seeds are strings
    seed_data = {str(key): "" if value is None else str(value) for key, value in seed.items()}

    optional = raw.get("optional", False)
    if not isinstance(optional, bool):
        raise ManifestParsingError(f"secret '{name}' optional must be a boolean")

    return SecretDescriptor(
        name=name,
        type=SecretType.parse(raw.get("type")),
        seed_data=seed_data,
        params=dict(_require_mapping(raw.get("params"), f"secret '{name}' params")),
        optional=optional,
    )


def parse_application(doc: dict[str, Any]) -> Application:
    """Build an Application from a parsed manifest document.

    Raises:
        ManifestParsingError: If required fields are missing or malformed.

    """
    metadata = _require_mapping(doc.get("metadata"), "metadata")
    spec = _require_mapping(doc.get("spec"), "spec")

    name = _require_name(metadata.get("name"), "application name")
    namespace = _require_name(metadata.get("namespace", "default"), "application namespace")
    target_namespace = _require_name(spec.get("targetNamespace", namespace), "target namespace")

    generation = metadata.get("generation", 0)
    if isinstance(generation, bool) or not isinstance(generation, int):
        raise ManifestParsingError("metadata.generation must be an integer")

    secrets = {
        str(key): parse_descriptor(str(key), value)
        for key, value in _require_mapping(spec.get("secrets"), "spec.secrets").items()
    }

    raw_bindings = spec.get("bindings") or []
    if not isinstance(raw_bindings, list):
        raise ManifestParsingError("spec.bindings must be a list")
    bindings: list[SecretBinding] = []
    for raw in raw_bindings:
        raw = _require_mapping(raw, "binding")
        bindings.append(
            SecretBinding(
                secret_request=_require_name(raw.get("secretRequest"), "binding secretRequest"),
                secret=_require_name(raw.get("secret"), "binding secret"),
            )
        )

    return Application(
        name=name,
        namespace=namespace,
        target_namespace=target_namespace,
        uid=str(metadata.get("uid") or ""),
        generation=generation,
        secrets=secrets,
        bindings=bindings,
    )


def load_application(manifest_path: str) -> Application:
    """Load an application from a YAML manifest file.

    Args:
        manifest_path: Path to the manifest.

    Returns:
        The parsed Application.

    Raises:
        ManifestParsingError: If the file does not exist, contains multiple
            documents, contains malformed YAML, or does not describe an application.

    """
    try:
        with open(manifest_path) as stream:
            docs = [doc for doc in yaml.safe_load_all(stream) if doc is not None]
    except FileNotFoundError as err:
        raise ManifestParsingError(f"Manifest file '{manifest_path}' does not exist") from err
    except yaml.YAMLError as err:
        raise ManifestParsingError(f"Manifest file '{manifest_path}' contains malformed YAML: {err}") from err

    if len(docs) != 1:
        raise ManifestParsingError(f"File '{manifest_path}' must contain exactly one YAML document")
    if not isinstance(docs[0], dict):
        raise ManifestParsingError(
            f"File '{manifest_path}' does not contain a valid YAML mapping. Expected an application document."
        )

    return parse_application(docs[0])
