"""Key and certificate generation.

Thin layer over the ``cryptography`` package. Everything crosses this
boundary as PEM bytes so secret data can be stored as-is.
"""

import datetime
import ipaddress

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, rsa
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from kube_appsecrets.exceptions import InvalidParamsError
from kube_appsecrets.models import DEFAULT_KEY_ALGORITHM, TLSParams

_RSA_KEY_SIZE = 2048
_CA_VALIDITY = datetime.timedelta(days=3650)
# Tolerate small clock skew between the controller and consumers
_BACKDATE = datetime.timedelta(minutes=5)

_USAGE_OIDS = {
    "server": [ExtendedKeyUsageOID.SERVER_AUTH],
    "client": [ExtendedKeyUsageOID.CLIENT_AUTH],
    "both": [ExtendedKeyUsageOID.SERVER_AUTH, ExtendedKeyUsageOID.CLIENT_AUTH],
}


def _new_key(algorithm: str):
    match algorithm or DEFAULT_KEY_ALGORITHM:
        case "rsa":
            return rsa.generate_private_key(public_exponent=65537, key_size=_RSA_KEY_SIZE)
        case "ecdsa":
            return ec.generate_private_key(ec.SECP256R1())
        case "ed25519":
            return ed25519.Ed25519PrivateKey.generate()
        case _:
            raise InvalidParamsError(f"unsupported key algorithm {algorithm!r}")


def _key_to_pem(key) -> bytes:
    # ed25519 has no traditional OpenSSL encoding
    key_format = (
        serialization.PrivateFormat.PKCS8
        if isinstance(key, ed25519.Ed25519PrivateKey)
        else serialization.PrivateFormat.TraditionalOpenSSL
    )
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=key_format,
        encryption_algorithm=serialization.NoEncryption(),
    )


def _signing_hash(key) -> hashes.HashAlgorithm | None:
    if isinstance(key, ed25519.Ed25519PrivateKey):
        return None
    return hashes.SHA256()


def _now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def generate_private_key(algorithm: str) -> bytes:
    """Generate a private key and return it PEM encoded.

    Args:
        algorithm: One of ``rsa``, ``ecdsa`` or ``ed25519``; empty means the default.

    Raises:
        InvalidParamsError: If the algorithm is unknown.

    """
    return _key_to_pem(_new_key(algorithm))


def generate_ca(algorithm: str) -> tuple[bytes, bytes]:
    """Generate a self-signed certificate authority.

    Args:
        algorithm: Key algorithm for the CA key.

    Returns:
        Tuple of (certificate PEM, private key PEM).

    """
    key = _new_key(algorithm)
    now = _now()
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, f"appsecrets-ca@{int(now.timestamp())}")])

    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - _BACKDATE)
        .not_valid_after(now + _CA_VALIDITY)
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .add_extension(
            x509.KeyUsage(
                digital_signature=True,
                content_commitment=False,
                key_encipherment=False,
                data_encipherment=False,
                key_agreement=False,
                key_cert_sign=True,
                crl_sign=True,
                encipher_only=False,
                decipher_only=False,
            ),
            critical=True,
        )
        .add_extension(x509.SubjectKeyIdentifier.from_public_key(key.public_key()), critical=False)
        .sign(key, _signing_hash(key))
    )

    return cert.public_bytes(serialization.Encoding.PEM), _key_to_pem(key)


def _subject_alt_names(sans: list[str]) -> list[x509.GeneralName]:
    names: list[x509.GeneralName] = []
    for san in sans:
        try:
            names.append(x509.IPAddress(ipaddress.ip_address(san)))
        except ValueError:
            names.append(x509.DNSName(san))
    return names


def generate_cert(ca_cert_pem: bytes, ca_key_pem: bytes, params: TLSParams) -> tuple[bytes, bytes]:
    """Generate a leaf certificate signed by the given CA.

    Args:
        ca_cert_pem: PEM encoded CA certificate.
        ca_key_pem: PEM encoded CA private key.
        params: Subject, alt names, usage, validity and key algorithm of the leaf.

    Returns:
        Tuple of (certificate PEM, private key PEM).

    Raises:
        InvalidParamsError: If the CA material cannot be loaded.

    """
    try:
        ca_cert = x509.load_pem_x509_certificate(ca_cert_pem)
        ca_key = serialization.load_pem_private_key(ca_key_pem, password=None)
    except (TypeError, ValueError) as e:
        raise InvalidParamsError(f"invalid CA material: {e}") from e

    key = _new_key(params.algorithm)
    now = _now()

    attributes = []
    if params.common_name:
        attributes.append(x509.NameAttribute(NameOID.COMMON_NAME, params.common_name))
    attributes.extend(x509.NameAttribute(NameOID.ORGANIZATION_NAME, org) for org in params.organization)

    builder = (
        x509.CertificateBuilder()
        .subject_name(x509.Name(attributes))
        .issuer_name(ca_cert.subject)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - _BACKDATE)
        .not_valid_after(now + datetime.timedelta(days=params.duration_days))
        .add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
        .add_extension(x509.ExtendedKeyUsage(_USAGE_OIDS[params.usage]), critical=False)
        .add_extension(x509.AuthorityKeyIdentifier.from_issuer_public_key(ca_key.public_key()), critical=False)
    )
    if params.sans:
        builder = builder.add_extension(x509.SubjectAlternativeName(_subject_alt_names(params.sans)), critical=False)

    cert = builder.sign(ca_key, _signing_hash(ca_key))
    return cert.public_bytes(serialization.Encoding.PEM), _key_to_pem(key)


def parse_cert(cert_pem: bytes) -> x509.Certificate:
    """Parse a PEM encoded certificate.

    Raises:
        InvalidParamsError: If the data is not a PEM certificate.

    """
    try:
        return x509.load_pem_x509_certificate(cert_pem)
    except ValueError as e:
        raise InvalidParamsError(f"invalid certificate: {e}") from e
