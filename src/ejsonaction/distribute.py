"""Hand decrypted content on to later steps of the job."""

import json
import os
import os.path
import re

import yaml

from ejsonaction import FileAccessError, PayloadParseError, output
from ejsonaction.validation import JSON, validate_environment_key

RESERVED_ENV_VARS = frozenset([
    # process and shell
    "PATH", "HOME", "SHELL", "USER", "PWD", "TMPDIR", "IFS", "ENV",
    "BASH_ENV", "LD_PRELOAD", "LD_LIBRARY_PATH", "DYLD_INSERT_LIBRARIES",
    "NODE_OPTIONS", "PYTHONPATH",
    # workflow control
    "GITHUB_TOKEN", "GITHUB_ENV", "GITHUB_OUTPUT", "GITHUB_PATH",
    "GITHUB_STATE", "GITHUB_STEP_SUMMARY", "GITHUB_WORKSPACE",
    "GITHUB_ACTIONS", "CI", "RUNNER_TEMP", "RUNNER_TOOL_CACHE",
    "ACTIONS_RUNTIME_TOKEN", "ACTIONS_RUNTIME_URL", "ACTIONS_CACHE_URL",
    "ACTIONS_ID_TOKEN_REQUEST_TOKEN", "ACTIONS_ID_TOKEN_REQUEST_URL",
    # credentials
    "AWS_ACCESS_KEY_ID", "AWS_SECRET_ACCESS_KEY", "AWS_SESSION_TOKEN",
    "AWS_REGION", "AWS_DEFAULT_REGION", "AWS_PROFILE",
    # ourselves
    "EJSON_KEYDIR", "EJSON_DEBUG",
])


# Names the runner reads back unambiguously from its file commands.
ENV_VAR_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*\Z")
OUTPUT_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_-]*\Z")


def is_reserved(name):
    return name.upper() in RESERVED_ENV_VARS


def to_string(value):
    if isinstance(value, str):
        return value
    return json.dumps(value, separators=(",", ":"))


class DecryptedPayload(object):
    """The parsed result of a decrypt operation.

    `environment` is a list of (key, value) pairs in document order with
    values converted to strings. It is empty if the document has no
    `environment` mapping.

    """

    def __init__(self, path, data):
        self.path = path
        self.data = data
        environment = data.get("environment") if isinstance(
            data, dict) else None
        if not isinstance(environment, dict):
            environment = {}
        self.environment = [
            (str(key), to_string(value))
            for key, value in environment.items()]


def parse_payload(path, content, file_type):
    try:
        if file_type == JSON:
            data = json.loads(content)
        else:
            data = yaml.safe_load(content)
    except (ValueError, yaml.YAMLError) as e:
        raise PayloadParseError.from_context(path, file_type, e)
    return DecryptedPayload(path, data)


def write_out_file(path, content):
    directory = os.path.dirname(path)
    try:
        if directory:
            os.makedirs(directory, exist_ok=True)
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with open(fd, "w", encoding="utf-8") as f:
            f.write(content)
    except OSError as e:
        raise FileAccessError.from_context(path, e)
    output.annotate("Wrote decrypted content to {}".format(path))


def populate_outputs(payload, prefix, runner):
    validate_environment_key(payload)
    populated = []
    for key, value in payload.environment:
        name = (prefix or "") + key
        if not OUTPUT_NAME.match(name):
            runner.warning("Skipping invalid output name {!r}".format(name))
            continue
        runner.set_secret(value)
        runner.set_output(name, value)
        populated.append((name, value))
    output.annotate("Populated {} output(s)".format(len(populated)))
    return populated


def populate_env_vars(payload, prefix, runner):
    validate_environment_key(payload)
    populated = []
    for key, value in payload.environment:
        name = (prefix or "") + key
        if not ENV_VAR_NAME.match(name):
            runner.warning(
                "Skipping invalid environment variable name {!r}".format(name))
            continue
        if is_reserved(name):
            runner.warning(
                "Skipping reserved environment variable {}".format(name))
            continue
        runner.set_secret(value)
        runner.export_variable(name, value)
        populated.append((name, value))
    output.annotate(
        "Populated {} environment variable(s)".format(len(populated)))
    return populated
