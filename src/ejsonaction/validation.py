import os
import os.path

from ejsonaction import (
    ConfigurationError,
    MissingEnvironmentKey,
    MissingInput,
    PathOutsideWorkspace,
    SecretFileNotFound,
    UnsupportedFileType,
)

JSON = "json"
YAML = "yaml"

FILE_TYPES = {
    ".ejson": JSON,
    ".json": JSON,
    ".eyaml": YAML,
    ".eyml": YAML,
    ".yaml": YAML,
    ".yml": YAML,
}


def validate_file_exists(path):
    if not os.path.exists(path):
        raise SecretFileNotFound.from_context(path)


def validate_path_within_workspace(path, label, workspace=None):
    """Ensure `path` is the workspace root or lies beneath it.

    Both sides are resolved (including symlinks) so neither `..` segments
    nor absolute paths can be used to leave the workspace.

    """
    if workspace is None:
        workspace = os.environ.get("GITHUB_WORKSPACE") or os.getcwd()
    root = os.path.realpath(workspace)
    resolved = os.path.realpath(path)
    if resolved != root and not resolved.startswith(
            root.rstrip(os.sep) + os.sep):
        raise PathOutsideWorkspace.from_context(label, path, root)
    return resolved


def detect_file_type(path):
    _, extension = os.path.splitext(str(path))
    try:
        return FILE_TYPES[extension.lower()]
    except KeyError:
        raise UnsupportedFileType.from_context(
            path, extension, sorted(FILE_TYPES))


def validate_environment_key(payload):
    if not payload.environment:
        raise MissingEnvironmentKey.from_context(payload.path)


def validate_decrypt_parameters(backend, private_key, aws_region):
    if private_key and aws_region:
        raise ConfigurationError.from_context(
            "The inputs `private-key` and `aws-region` are mutually "
            "exclusive")
    if backend == "ejsonkms":
        if not aws_region:
            raise MissingInput.from_context(
                "aws-region", "required to decrypt with ejsonkms")
    elif not private_key:
        raise MissingInput.from_context(
            "private-key", "required to decrypt with ejson")
