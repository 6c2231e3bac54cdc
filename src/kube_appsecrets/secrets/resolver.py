"""Secret resolution for a single reconciliation pass.

Resolving a descriptor name tries, in order: the pass cache, an explicit
binding to an existing secret, a previously generated storage secret, and
finally generation. The cache lives for one pass only and is passed to
every call, so concurrent passes for different applications never share it.
"""

from collections.abc import Generator
from contextlib import contextmanager

from icecream import ic

from kube_appsecrets import console
from kube_appsecrets.core.store import KubernetesStore, to_resolved
from kube_appsecrets.exceptions import (
    BindingNotFoundError,
    GeneratorError,
    SecretCycleError,
    SecretNotFoundError,
)
from kube_appsecrets.models import Application, ResolvedSecret, SecretBinding
from kube_appsecrets.secrets.generators import GENERATORS, GeneratorContext


class PassCache:
    """Resolved secrets, failures and in-progress names for one pass.

    A name is resolved at most once per pass: later lookups return the
    cached secret or re-raise the recorded failure. A lookup of a name that
    is still being resolved means the descriptors reference each other.
    """

    def __init__(self) -> None:
        self._resolved: dict[str, ResolvedSecret] = {}
        self._failed: dict[str, Exception] = {}
        self._in_progress: list[str] = []

    def __contains__(self, name: str) -> bool:
        return name in self._resolved

    def __len__(self) -> int:
        return len(self._resolved)

    def lookup(self, name: str) -> ResolvedSecret | None:
        """Return the cached secret for a name, or None if not attempted yet.

        Raises:
            SecretCycleError: If the name is currently being resolved.
            SecretNotFoundError: If an earlier attempt found the secret absent.
            GeneratorError: If an earlier attempt failed to generate it.

        """
        if name in self._resolved:
            return self._resolved[name]
        if name in self._failed:
            raise self._failed[name]
        if name in self._in_progress:
            chain = [*self._in_progress[self._in_progress.index(name) :], name]
            raise SecretCycleError(f"secret reference cycle: {' -> '.join(chain)}")
        return None

    @contextmanager
    def resolving(self, name: str) -> Generator[None, None, None]:
        """Mark a name as in progress, recording absence or generator failures."""
        self._in_progress.append(name)
        try:
            yield
        except (SecretNotFoundError, GeneratorError) as e:
            self._failed[name] = e
            raise
        finally:
            self._in_progress.pop()

    def add(self, name: str, secret: ResolvedSecret) -> None:
        self._resolved[name] = secret


def fetch_bound_secret(store: KubernetesStore, application: Application, binding: SecretBinding) -> ResolvedSecret:
    """Fetch the existing secret a binding points at.

    Raises:
        BindingNotFoundError: If the bound secret does not exist.

    """
    try:
        secret = store.get_secret(binding.secret, application.target_namespace)
    except SecretNotFoundError as e:
        raise BindingNotFoundError(
            f'secret "{binding.secret}" bound to "{binding.secret_request}" not found '
            f'in namespace "{application.target_namespace}"'
        ) from e
    return to_resolved(secret)


def find_stored_secret(store: KubernetesStore, application: Application, name: str) -> ResolvedSecret:
    """Find the storage secret previously generated for a descriptor.

    If label collisions left several candidates, the one with the smallest
    uid is canonical.

    Raises:
        SecretNotFoundError: If no storage secret exists.

    """
    found = store.list_secrets(application.namespace, application.storage_labels(name))
    if not found:
        raise SecretNotFoundError(f'secret "{name}" not found')

    found.sort(key=lambda s: s.metadata.uid or "")
    return to_resolved(found[0])


def generate_secret(store: KubernetesStore, application: Application, name: str, cache: PassCache) -> ResolvedSecret:
    """Generate the secret for a declared descriptor.

    Raises:
        SecretNotFoundError: If the descriptor is undeclared or has no generator.

    """
    descriptor = application.secrets.get(name)
    if descriptor is None:
        raise SecretNotFoundError(f'secret "{name}" not found')

    generator = GENERATORS.get(descriptor.type)
    if generator is None:
        raise SecretNotFoundError(f'secret "{name}" not found')

    console.step(f"Generating {descriptor.type.value} secret {console.highlight(name)}")
    ctx = GeneratorContext(
        store=store,
        application=application,
        resolve=lambda other: resolve_secret(store, application, other, cache),
    )
    return generator(ctx, descriptor)


def resolve_secret(store: KubernetesStore, application: Application, name: str, cache: PassCache) -> ResolvedSecret:
    """Obtain the secret for a descriptor name, generating it if needed.

    Args:
        store: Store holding storage and bound secrets.
        application: Application owning the descriptor.
        name: Descriptor name.
        cache: Cache of the current pass.

    Returns:
        The resolved secret.

    Raises:
        SecretNotFoundError: If the secret is absent and cannot be generated.
        GeneratorError: If generation failed.
        StoreError: If the store failed for a reason other than absence.

    """
    cached = cache.lookup(name)
    if cached is not None:
        return cached

    with cache.resolving(name):
        binding = application.binding_for(name)
        if binding is not None:
            secret = fetch_bound_secret(store, application, binding)
        else:
            try:
                secret = find_stored_secret(store, application, name)
            except SecretNotFoundError:
                secret = generate_secret(store, application, name, cache)
        ic(name, secret.source_identity)
        cache.add(name, secret)

    return secret
