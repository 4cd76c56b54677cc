import posixpath
import re
from collections.abc import Mapping

from logforward.core.constants import (
    AWS_CREDENTIALS_KEY,
    AWS_ROLE_ARN_KEY,
    COLLECTOR_CONFIG_DIR,
    COLLECTOR_SECRETS_DIR,
    CREDENTIAL_SHAPE_KEYS,
)
from logforward.core.logger import get_logger
from logforward.core.models import (
    ConfigMapOrSecretKey,
    CredentialShape,
    Secret,
    SecretKeyRef,
)

logger = get_logger()

ROLE_ARN_PATTERN = re.compile(r"arn:aws(?:-[a-z]+)*:iam::\d{12}:role/[\w+=,.@/-]+")


def secret_path(ref: SecretKeyRef | None) -> str:
    if ref is None or not ref.secret_name or not ref.key:
        return ""
    return posixpath.join(COLLECTOR_SECRETS_DIR, ref.secret_name, ref.key)


def config_map_path(name: str, key: str) -> str:
    return posixpath.join(COLLECTOR_CONFIG_DIR, name, key)


def resolve(ref: ConfigMapOrSecretKey | SecretKeyRef | None) -> str:
    """Path at which the collector finds the referenced key.

    Existence of the secret or config map is never checked here: a missing
    resource surfaces when the pod mounts it, not at compile time.
    """
    if ref is None or not ref.key:
        return ""
    if isinstance(ref, SecretKeyRef):
        return secret_path(ref)
    if ref.secret_name:
        return posixpath.join(COLLECTOR_SECRETS_DIR, ref.secret_name, ref.key)
    if ref.config_map_name:
        return config_map_path(ref.config_map_name, ref.key)
    return ""


def find_secret(secrets: Mapping[str, Secret], name: str) -> Secret | None:
    return next((s for s in secrets.values() if s.name == name), None)


def secret_value(secrets: Mapping[str, Secret], ref: SecretKeyRef | None) -> str:
    if ref is None:
        return ""
    secret = find_secret(secrets, ref.secret_name)
    if secret is None:
        return ""
    return secret_text(secret, ref.key)


def secret_text(secret: Secret | None, key: str) -> str:
    """Decoded value of a secret key. Keys that are not UTF-8 count as absent."""
    if secret is None:
        return ""
    try:
        return secret.data.get(key, b"").decode()
    except UnicodeDecodeError:
        logger.warning(f"Key {key} of secret {secret.name} is not UTF-8, ignoring it")
        return ""


def has_keys(secret: Secret | None, *keys: str) -> bool:
    return secret is not None and all(secret_text(secret, k) for k in keys)


def credential_shape(secret: Secret | None) -> CredentialShape:
    if secret is None:
        return CredentialShape.NONE
    for key in CREDENTIAL_SHAPE_KEYS:
        if secret.data.get(key):
            return (
                CredentialShape.BUNDLED
                if key == AWS_CREDENTIALS_KEY
                else CredentialShape.ROLE_ONLY
            )
    return CredentialShape.NONE


def role_arn(secret: Secret | None) -> str:
    """Role ARN from the bundled credentials file, else from the bare role key."""
    if secret is None:
        return ""
    credentials = secret_text(secret, AWS_CREDENTIALS_KEY)
    match = ROLE_ARN_PATTERN.search(credentials)
    if match:
        return match.group(0)
    return secret_text(secret, AWS_ROLE_ARN_KEY).strip()
