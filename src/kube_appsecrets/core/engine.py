"""Secret reconciliation engine.

This module runs one reconciliation pass for an application: it resolves
every declared secret in a deterministic order, classifies each outcome,
builds the projections and reduces everything into a single condition.
"""

from icecream import ic

from kube_appsecrets import console
from kube_appsecrets.core.store import KubernetesStore
from kube_appsecrets.exceptions import GeneratorError, SecretNotFoundError, StoreError
from kube_appsecrets.models import (
    Application,
    Condition,
    Outcome,
    ReconcileResult,
    SecretDescriptor,
    SecretType,
)
from kube_appsecrets.secrets.projection import project_secret
from kube_appsecrets.secrets.resolver import PassCache, resolve_secret


def ordered_descriptors(application: Application) -> list[SecretDescriptor]:
    """Return descriptors in processing order.

    Job-generated secrets come last since their jobs may consume the
    other secrets. Both groups are sorted by name.
    """
    descriptors = sorted(application.secrets.values(), key=lambda d: d.name)
    regular = [d for d in descriptors if d.type != SecretType.GENERATED]
    generated = [d for d in descriptors if d.type == SecretType.GENERATED]
    return regular + generated


def format_condition_message(missing: list[str], errored: list[str]) -> str:
    """Compose the error message listing missing and errored secrets.

    Args:
        missing: Names of required secrets that are absent.
        errored: ``name: cause`` entries of secrets that failed to generate.

    Returns:
        e.g. ``missing: [a] errored: [b: job not complete]``, or an empty
        string if both lists are empty.

    """
    parts: list[str] = []
    if missing:
        parts.append(f"missing: [{', '.join(sorted(missing))}]")
    if errored:
        parts.append(f"errored: [{', '.join(sorted(errored))}]")
    return " ".join(parts)


def reconcile_secrets(application: Application, store: KubernetesStore) -> ReconcileResult:
    """Resolve and project every secret an application declares.

    A store fault aborts the pass: the returned result has no projections
    and a fatal condition carrying the fault. Absent and failed secrets do
    not stop the pass; they are listed in the condition message.

    Args:
        application: Application to reconcile.
        store: Store holding the application's secrets.

    Returns:
        ReconcileResult with the condition, projections and per-secret outcomes.

    """
    cache = PassCache()
    missing: list[str] = []
    errored: list[str] = []
    result = ReconcileResult(condition=Condition.ok(application.generation))

    for descriptor in ordered_descriptors(application):
        name = descriptor.name
        try:
            resolved = resolve_secret(store, application, name, cache)
        except SecretNotFoundError:
            if descriptor.optional:
                result.outcomes[name] = Outcome.SKIPPED
                console.info(f"Skipping optional secret {console.highlight(name)}")
            else:
                result.outcomes[name] = Outcome.MISSING
                missing.append(name)
                console.warning(f"Secret {console.highlight(name)} is missing")
            continue
        except StoreError as e:
            console.error(f"Aborting reconciliation of {application.namespace}/{application.name}: {e}")
            return ReconcileResult(condition=Condition.failed(str(e), application.generation, fatal=True))
        except GeneratorError as e:
            result.outcomes[name] = Outcome.ERRORED
            errored.append(f"{name}: {e}")
            console.warning(f"Secret {console.highlight(name)} errored: {e}")
            continue

        result.outcomes[name] = Outcome.RESOLVED
        result.projections.append(project_secret(application, name, resolved))

    ic(result.outcomes)

    message = format_condition_message(missing, errored)
    if message:
        result.condition = Condition.failed(message, application.generation)
    return result
