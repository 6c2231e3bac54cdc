"""Job output extraction.

A ``generated`` secret takes its content from a batch job: the job's
container writes the payload as its termination message and exits 0.
"""

from icecream import ic

from kube_appsecrets.core.store import KubernetesStore, label_selector_to_string
from kube_appsecrets.exceptions import JobNoOutputError, JobNotDoneError, SecretNotFoundError


def _termination_message(pod) -> bytes | None:
    """Return the message of the first container that terminated successfully."""
    statuses = pod.status.container_statuses if pod.status else None
    for status in statuses or []:
        terminated = status.state.terminated if status.state else None
        if terminated is None or terminated.exit_code != 0:
            continue
        if terminated.message:
            return terminated.message.encode()
    return None


def extract_job_output(store: KubernetesStore, namespace: str, job_name: str) -> bytes:
    """Read the payload produced by a completed job.

    Args:
        store: Store used to read the job and its pods.
        namespace: Namespace the job runs in.
        job_name: Name of the job.

    Returns:
        The termination message bytes of the job's successful container.

    Raises:
        SecretNotFoundError: If the job does not exist or selects no pods.
        JobNotDoneError: If the job has not succeeded exactly once.
        JobNoOutputError: If no container left a termination message.
        StoreError: If the store fails for a reason other than absence.

    """
    job = store.get_job(job_name, namespace)

    succeeded = job.status.succeeded if job.status else None
    if succeeded != 1:
        ic(job_name, succeeded)
        raise JobNotDoneError()

    # A job without a selector owns no pods
    if job.spec is None or job.spec.selector is None:
        raise SecretNotFoundError(f'pods for job "{namespace}/{job_name}" not found')

    selector = label_selector_to_string(job.spec.selector)
    pods = store.list_pods(namespace, selector)
    # A job whose pods are gone is reported like a missing job
    if not pods:
        raise SecretNotFoundError(f'pods for job "{namespace}/{job_name}" not found')

    for pod in pods:
        message = _termination_message(pod)
        if message is not None:
            return message

    raise JobNoOutputError()
