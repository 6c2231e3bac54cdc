"""Secrets subpackage.

This package contains modules for key and certificate generation, job
output extraction, per-type secret generators, per-pass resolution and
projection of resolved secrets.
"""

from kube_appsecrets.secrets.crypto import generate_ca, generate_cert, generate_private_key, parse_cert
from kube_appsecrets.secrets.generators import GENERATORS, GeneratorContext
from kube_appsecrets.secrets.jobs import extract_job_output
from kube_appsecrets.secrets.projection import apply_projections, project_secret
from kube_appsecrets.secrets.resolver import PassCache, resolve_secret

__all__ = [
    # crypto
    "generate_private_key",
    "generate_ca",
    "generate_cert",
    "parse_cert",
    # generators
    "GENERATORS",
    "GeneratorContext",
    # jobs
    "extract_job_output",
    # projection
    "project_secret",
    "apply_projections",
    # resolver
    "PassCache",
    "resolve_secret",
]
