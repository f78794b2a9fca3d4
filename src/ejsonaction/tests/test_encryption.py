import json
import os
import stat

import mock
import pytest

from ejsonaction import (
    ConfigurationError,
    EjsonCallError,
    FileAccessError,
    MissingBinary,
    UnsupportedFileType,
)
from ejsonaction.config import Inputs
from ejsonaction.encryption import (
    KMSEjsonFile,
    LocalKeyEjsonFile,
    get_ejson_file,
)


@pytest.fixture
def secrets(workspace):
    f = workspace.join("secrets.ejson")
    f.write(json.dumps({"_public_key": "pub1", "environment": {"A": "b"}}))
    return str(f)


def test_encrypt_runs_ejson_and_logs_output(
        runner, fake_binary, secrets, output):
    log = fake_binary("ejson", stdout="Wrote 123 bytes to secrets.ejson\n")
    f = LocalKeyEjsonFile(secrets, "", runner.environ)
    assert f.encrypt() == "Wrote 123 bytes to secrets.ejson\n"
    assert log.read().splitlines()[0] == "encrypt {}".format(secrets)
    assert "Encrypted successfully..." in output.backend.output
    assert "Wrote 123 bytes to secrets.ejson" in output.backend.output


def test_encrypt_fails_on_stderr_even_with_exit_code_zero(
        runner, fake_binary, secrets):
    fake_binary("ejson", stderr="some error\n")
    f = LocalKeyEjsonFile(secrets, "", runner.environ)
    with pytest.raises(EjsonCallError) as e:
        f.encrypt()
    assert str(e.value) == "some error"
    assert e.value.exitcode == "0"
    assert e.value.command == "ejson encrypt {}".format(secrets)


def test_encrypt_fails_on_non_zero_exit(runner, fake_binary, secrets):
    fake_binary("ejson", exitcode=2)
    f = LocalKeyEjsonFile(secrets, "", runner.environ)
    with pytest.raises(EjsonCallError) as e:
        f.encrypt()
    assert e.value.exitcode == "2"
    assert str(e.value) == "Exitcode 2 while calling: ejson encrypt {}".format(
        secrets)


def test_missing_binary_is_reported(runner, secrets):
    runner.environ["PATH"] = "/nonexistent"
    f = LocalKeyEjsonFile(secrets, "KEY", runner.environ)
    with pytest.raises(MissingBinary) as e:
        f.encrypt()
    assert "ejson-action install --tool ejson" in str(e.value)


def test_decrypt_writes_private_key_named_after_public_key(
        runner, fake_binary, secrets):
    log = fake_binary("ejson", stdout='{"environment": {"A": "b"}}')
    f = LocalKeyEjsonFile(secrets, "KEY", runner.environ)
    assert f.decrypt() == '{"environment": {"A": "b"}}'

    key_path = os.path.join(runner.environ["EJSON_KEYDIR"], "pub1")
    with open(key_path) as key:
        assert key.read() == "KEY"
    assert stat.S_IMODE(os.stat(key_path).st_mode) == 0o600

    calls = log.read().splitlines()
    assert calls[0] == "decrypt {}".format(secrets)
    # The key store location is handed to the tool, the key never is.
    assert calls[1] == "EJSON_KEYDIR={}".format(runner.environ["EJSON_KEYDIR"])
    assert "KEY" not in calls[0]


def test_configure_private_key_reads_yaml_files(runner, workspace):
    workspace.join("secrets.eyaml").write(
        "_public_key: pub2\nenvironment: {}\n")
    f = LocalKeyEjsonFile("secrets.eyaml", "KEY", runner.environ)
    key_path = f.configure_private_key()
    assert key_path == os.path.join(runner.environ["EJSON_KEYDIR"], "pub2")


def test_configure_private_key_logs_key_path(runner, secrets, output):
    f = LocalKeyEjsonFile(secrets, "KEY", runner.environ)
    key_path = f.configure_private_key()
    assert "Creating file {}".format(key_path) in output.backend.output
    assert "KEY" not in output.backend.output


def test_configure_private_key_requires_private_key(runner, secrets):
    f = LocalKeyEjsonFile(secrets, "", runner.environ)
    with pytest.raises(ConfigurationError) as e:
        f.configure_private_key()
    assert str(e.value) == "No provided private key for decryption"


def test_configure_private_key_requires_public_key(runner, workspace):
    workspace.join("secrets.ejson").write("{}")
    f = LocalKeyEjsonFile("secrets.ejson", "KEY", runner.environ)
    with pytest.raises(ConfigurationError) as e:
        f.configure_private_key()
    assert str(e.value) == "Not found public key in ejson file"


@pytest.mark.parametrize("public_key", ["../../etc/cron.d/x", "a/b", ".."])
def test_public_key_must_be_a_plain_file_name(
        runner, workspace, public_key):
    workspace.join("secrets.ejson").write(
        json.dumps({"_public_key": public_key}))
    f = LocalKeyEjsonFile("secrets.ejson", "KEY", runner.environ)
    with pytest.raises(ConfigurationError):
        f.configure_private_key()
    assert not os.path.exists(runner.environ["EJSON_KEYDIR"])


def test_keydir_defaults_to_opt_ejson_keys(secrets):
    f = LocalKeyEjsonFile(secrets, "KEY", {"PATH": ""})
    assert f.keydir == "/opt/ejson/keys"


def test_decrypt_with_kms_passes_region(runner, fake_binary, secrets):
    log = fake_binary("ejsonkms", stdout="{}")
    f = KMSEjsonFile(secrets, "eu-west-1", runner.environ)
    assert f.decrypt() == "{}"
    assert log.read().splitlines()[0] == (
        "decrypt {} --aws-region eu-west-1".format(secrets))
    assert not os.path.exists(runner.environ["EJSON_KEYDIR"])


def test_decrypt_with_kms_requires_region(runner, secrets):
    f = KMSEjsonFile(secrets, "", runner.environ)
    with pytest.raises(ConfigurationError):
        f.decrypt()


def test_decrypt_failure_surfaces_stderr(runner, fake_binary, secrets):
    fake_binary("ejsonkms", stderr="AccessDeniedException\n", exitcode=1)
    f = KMSEjsonFile(secrets, "eu-west-1", runner.environ)
    with pytest.raises(EjsonCallError) as e:
        f.decrypt()
    assert str(e.value) == "AccessDeniedException"


def test_debug_file_content_is_opt_in(runner, fake_binary, secrets, output):
    fake_binary("ejson")
    f = LocalKeyEjsonFile(secrets, "", runner.environ)
    f.encrypt()
    assert "File content" not in output.backend.output

    runner.environ["EJSON_DEBUG"] = "true"
    f.encrypt()
    assert "WARNING: EJSON_DEBUG is enabled" in output.backend.output
    assert "[encrypt] File content: {}".format(secrets) in (
        output.backend.output)
    assert '"_public_key": "pub1"' in output.backend.output


def test_debug_file_content_requires_exact_true(runner, secrets, output):
    runner.environ["EJSON_DEBUG"] = "1"
    LocalKeyEjsonFile(secrets, "", runner.environ).debug_file_content(
        "decrypt")
    assert output.backend.output == ""


def test_unsupported_file_type_is_detected_before_running_anything(
        runner, workspace):
    workspace.join("secrets.toml").write("")
    with mock.patch("ejsonaction.encryption.cmd") as cmd:
        with pytest.raises(UnsupportedFileType):
            LocalKeyEjsonFile("secrets.toml", "KEY", runner.environ)
    assert not cmd.called


def test_get_ejson_file_picks_backend(secrets):
    assert isinstance(
        get_ejson_file(secrets, Inputs(aws_region="eu-west-1")),
        KMSEjsonFile)
    assert isinstance(
        get_ejson_file(secrets, Inputs(private_key="KEY")),
        LocalKeyEjsonFile)
    assert isinstance(
        get_ejson_file(secrets, Inputs(backend="ejsonkms")), KMSEjsonFile)


def test_unwritable_key_store_raises_file_access_error(
        runner, secrets, tmpdir):
    tmpdir.join("blocker").write("")
    runner.environ["EJSON_KEYDIR"] = str(tmpdir / "blocker" / "keys")
    f = LocalKeyEjsonFile(secrets, "KEY", runner.environ)
    with pytest.raises(FileAccessError) as e:
        f.configure_private_key()
    assert e.value.path == str(tmpdir / "blocker" / "keys" / "pub1")
    assert "NotADirectoryError" in str(e.value)
