from collections.abc import Mapping
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict

from logforward.core.config import Settings
from logforward.core.logger import get_logger
from logforward.core.models import OutputTLSSpec, Secret

from .resolver import resolve, secret_path, secret_value

logger = get_logger()

SECURE_SCHEMES = frozenset({"https", "tls", "wss"})


class TLSPolicy(BaseModel):
    """Cluster-wide TLS security profile."""

    model_config = ConfigDict(frozen=True)

    min_tls_version: str = ""
    cipher_suites: str = ""

    @classmethod
    def from_settings(cls, settings: Settings) -> "TLSPolicy":
        return cls(
            min_tls_version=settings.TLS_MIN_VERSION,
            cipher_suites=settings.TLS_CIPHERS,
        )


class TLSConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    component: str = "sinks"
    id: str = ""
    enabled: bool | None = None
    needs_rendering: bool = False
    insecure_skip_verify: bool = False
    min_tls_version: str = ""
    cipher_suites: str = ""
    ca_file_path: str = ""
    cert_path: str = ""
    key_path: str = ""
    passphrase: str = ""


def is_secure(url: str) -> bool:
    scheme = urlparse(url).scheme.lower()
    return scheme in SECURE_SCHEMES


def build_tls(
    output_id: str,
    tls_spec: OutputTLSSpec | None,
    url: str | None,
    policy: TLSPolicy,
    secrets: Mapping[str, Secret],
    component: str = "sinks",
    include_enabled: bool = False,
) -> TLSConfig:
    """Builds the TLS settings for one output.

    A plaintext URL yields a config that renders to nothing. An absent URL
    means the default cloud endpoint, which is always TLS.
    """
    if url and not is_secure(url):
        logger.debug(f"Output {output_id} is plaintext, skipping TLS")
        return TLSConfig(component=component, id=output_id)

    conf = TLSConfig(
        component=component,
        id=output_id,
        min_tls_version=policy.min_tls_version,
        cipher_suites=policy.cipher_suites,
        needs_rendering=bool(
            policy.cipher_suites or policy.min_tls_version or tls_spec is not None
        ),
    )
    if tls_spec is None:
        return conf

    return conf.model_copy(
        update={
            "enabled": True if include_enabled else None,
            "insecure_skip_verify": tls_spec.insecure_skip_verify,
            "ca_file_path": resolve(tls_spec.ca),
            "cert_path": resolve(tls_spec.certificate),
            "key_path": secret_path(tls_spec.key),
            "passphrase": secret_value(secrets, tls_spec.key_passphrase),
        }
    )
