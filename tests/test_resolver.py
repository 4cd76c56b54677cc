import pytest
from pydantic import ValidationError

from logforward.core.models import (
    ConfigMapOrSecretKey,
    CredentialShape,
    Secret,
    SecretKeyRef,
)
from logforward.generator import resolver
from logforward.generator.resolver import (
    credential_shape,
    find_secret,
    has_keys,
    resolve,
    secret_path,
    secret_value,
)


def test_secret_path():
    ref = SecretKeyRef(secret_name="es-secret", key="tls.key")
    assert secret_path(ref) == "/var/run/ocp-collector/secrets/es-secret/tls.key"


def test_secret_path_missing_ref():
    assert secret_path(None) == ""
    assert secret_path(SecretKeyRef(secret_name="es-secret", key="")) == ""


def test_resolve_config_map_key():
    ref = ConfigMapOrSecretKey(key="ca-bundle.crt", config_map_name="ca")
    assert resolve(ref) == "/var/run/ocp-collector/config/ca/ca-bundle.crt"


def test_resolve_secret_key():
    ref = ConfigMapOrSecretKey(key="ca-bundle.crt", secret_name="es-secret")
    assert resolve(ref) == "/var/run/ocp-collector/secrets/es-secret/ca-bundle.crt"


def test_resolve_without_source():
    assert resolve(ConfigMapOrSecretKey(key="ca-bundle.crt")) == ""
    assert resolve(None) == ""


def test_key_cannot_come_from_both_sources():
    with pytest.raises(ValidationError):
        ConfigMapOrSecretKey(key="ca", secret_name="s", config_map_name="c")


def test_find_secret_by_name():
    secrets = {
        "es-out": Secret(name="es-secret", data={"passphrase": b"hunter2"}),
        "cw": Secret(name="cw-secret"),
    }
    assert find_secret(secrets, "cw-secret") is secrets["cw"]
    assert find_secret(secrets, "missing") is None
    ref = SecretKeyRef(secret_name="es-secret", key="passphrase")
    assert secret_value(secrets, ref) == "hunter2"
    assert secret_value(secrets, SecretKeyRef(secret_name="x", key="y")) == ""


def test_has_keys_ignores_empty_values():
    secret = Secret(name="s", data={"username": b"elastic", "password": b""})
    assert has_keys(secret, "username")
    assert not has_keys(secret, "username", "password")
    assert not has_keys(None, "username")


@pytest.mark.parametrize(
    "data,expected",
    [
        ({}, CredentialShape.NONE),
        ({"role_arn": b""}, CredentialShape.NONE),
        ({"role_arn": b"arn"}, CredentialShape.ROLE_ONLY),
        ({"credentials": b"[default]"}, CredentialShape.BUNDLED),
        ({"credentials": b"[default]", "role_arn": b"arn"}, CredentialShape.BUNDLED),
    ],
)
def test_credential_shape(data, expected):
    assert credential_shape(Secret(name="s", data=data)) == expected


def test_credential_shape_without_secret():
    assert credential_shape(None) == CredentialShape.NONE


def test_role_arn_from_credentials_file(role_arn):
    credentials = (
        "[default]\n"
        "sts_regional_endpoints = regional\n"
        f"role_arn = {role_arn}\n"
        "web_identity_token_file = /var/run/secrets/token\n"
    )
    secret = Secret(name="s", data={"credentials": credentials.encode()})
    assert resolver.role_arn(secret) == role_arn


def test_role_arn_from_role_key_is_trimmed(role_secret, role_arn):
    assert resolver.role_arn(role_secret) == role_arn


def test_role_arn_prefers_credentials_file(role_arn):
    secret = Secret(
        name="s",
        data={
            "credentials": f"role_arn = {role_arn}".encode(),
            "role_arn": b"arn:aws:iam::999999999999:role/other",
        },
    )
    assert resolver.role_arn(secret) == role_arn


def test_role_arn_missing():
    assert resolver.role_arn(None) == ""
    assert resolver.role_arn(Secret(name="s", data={"credentials": b"[default]"})) == ""

