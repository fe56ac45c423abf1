"""Key and certificate used by wazuh-authd for agent enrollment"""

import datetime
import os
from pathlib import Path

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

from wazuh_entrypoint.config.manager import BootstrapConfig
from wazuh_entrypoint.errors import ConfigError, FilesystemError
from wazuh_entrypoint.installer.base import Reporter, StepResult

KEY_SIZE = 4096
VALIDITY_DAYS = 3650


def generate_key(key_size: int = KEY_SIZE) -> rsa.RSAPrivateKey:
    """Generate an RSA private key"""
    return rsa.generate_private_key(public_exponent=65537, key_size=key_size)


def build_certificate(key: rsa.RSAPrivateKey, common_name: str, days: int = VALIDITY_DAYS) -> x509.Certificate:
    """Self-sign a certificate for common_name"""
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    now = datetime.datetime.now(datetime.timezone.utc)

    return (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now)
        .not_valid_after(now + datetime.timedelta(days=days))
        .sign(key, hashes.SHA256())
    )


def _write(path: Path, data: bytes, mode: int):
    path.parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
    with os.fdopen(fd, "wb") as f:
        f.write(data)


def write_credentials(key_path: Path, cert_path: Path, common_name: str) -> None:
    """Generate and store a key/certificate pair"""
    key = generate_key(KEY_SIZE)
    try:
        cert = build_certificate(key, common_name)
    except ValueError as e:
        raise ConfigError(f"create certificate for {common_name!r}", str(e))

    key_pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    )
    cert_pem = cert.public_bytes(serialization.Encoding.PEM)

    # the key is the "already provisioned" marker, so it lands last and atomically
    try:
        _write(cert_path, cert_pem, 0o644)
    except OSError as e:
        raise FilesystemError(f"write {cert_path}", str(e))

    staged = key_path.with_name(key_path.name + ".tmp")
    try:
        _write(staged, key_pem, 0o600)
        os.replace(staged, key_path)
    except OSError as e:
        staged.unlink(missing_ok=True)
        raise FilesystemError(f"write {key_path}", str(e))


def provision_credentials(cfg: BootstrapConfig, log: Reporter) -> StepResult:
    """Create the authd key and cert if enrollment is on and no key exists"""
    result = StepResult("enrollment credentials")

    if not cfg.auto_enrollment:
        log.debug("Auto enrollment disabled, skipping key and cert")
        result.skipped = True
        return result

    if cfg.ssl_key.exists():
        log.debug(f"{cfg.ssl_key} already exists")
        result.skipped = True
        return result

    log.section("Creating wazuh-authd key and cert")
    write_credentials(cfg.ssl_key, cfg.ssl_cert, cfg.hostname)
    result.changed.extend([cfg.ssl_key, cfg.ssl_cert])
    log.success(f"Created {cfg.ssl_key} and {cfg.ssl_cert}")
    return result
