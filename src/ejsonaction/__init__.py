import os.path
from typing import List, Optional

from ._output import output

with open(os.path.dirname(__file__) + "/version.txt") as f:
    __version__ = f.read().strip()


def prepare_error(error):
    return f"{error.__class__.__name__}: {error}"


class ReportingException(Exception):
    """Exceptions that support user-readable reporting."""

    def __str__(self):
        raise NotImplementedError()

    def report(self):
        raise NotImplementedError()


# Configuration errors


class ConfigurationError(ReportingException):
    """The run could not be configured from the given inputs."""

    message: str

    @classmethod
    def from_context(cls, message):
        self = cls()
        self.message = message
        return self

    def __str__(self):
        return str(self.message)

    def report(self):
        output.error(self.message)


class MissingInput(ConfigurationError):
    """A required input was not supplied."""

    name: str
    reason: Optional[str]

    @classmethod
    def from_context(cls, name, reason=None):
        self = cls()
        self.name = name
        self.reason = reason
        return self

    def __str__(self):
        message = f"Input required and not supplied: {self.name}"
        if self.reason:
            message += f" ({self.reason})"
        return message

    def report(self):
        output.error("Input required and not supplied")
        output.tabular("Input", self.name, red=True)
        if self.reason:
            output.tabular("Reason", self.reason)


class InvalidInput(ConfigurationError):
    """An input was supplied with a value we can not use."""

    name: str
    value: str
    expected: str

    @classmethod
    def from_context(cls, name, value, expected):
        self = cls()
        self.name = name
        self.value = value
        self.expected = expected
        return self

    def __str__(self):
        return (
            f"Invalid value `{self.value}` for input `{self.name}`,"
            f" expected {self.expected}"
        )

    def report(self):
        output.error("Invalid input value")
        output.tabular("Input", self.name, red=True)
        output.tabular("Value", self.value, red=True)
        output.tabular("Expected", self.expected)


class UnsupportedFileType(ConfigurationError):
    """The secret file has an extension we can not handle."""

    path: str
    extension: str
    supported: List[str]

    @classmethod
    def from_context(cls, path, extension, supported):
        self = cls()
        self.path = path
        self.extension = extension
        self.supported = list(supported)
        return self

    def __str__(self):
        return (
            f"Unsupported file extension `{self.extension or '<none>'}`"
            f" for {self.path}. Supported extensions: "
            + ", ".join(self.supported)
        )

    def report(self):
        output.error("Unsupported file extension")
        output.tabular("File", self.path, red=True)
        output.tabular("Supported", ", ".join(self.supported))


class MissingBinary(ConfigurationError):
    """The external tool could not be found on the search path."""

    binary: str

    @classmethod
    def from_context(cls, binary):
        self = cls()
        self.binary = binary
        return self

    def __str__(self):
        return (
            f"Could not find {self.binary} binary. Is {self.binary}"
            f" installed? Try `ejson-action install --tool {self.binary}`."
        )

    def report(self):
        output.error(f"Could not find {self.binary} binary")
        output.tabular(
            "Hint", f"ejson-action install --tool {self.binary}", red=True
        )


class FileAccessError(ConfigurationError):
    """A file we need to read or write is not accessible."""

    path: str
    error: str

    @classmethod
    def from_context(cls, path, error):
        self = cls()
        self.path = str(path)
        self.error = prepare_error(error)
        return self

    def __str__(self):
        return f"Could not access {self.path}: {self.error}"

    def report(self):
        output.error("Could not access file")
        output.tabular("Path", self.path, red=True)
        output.tabular("Message", self.error, separator=":\n")


# Validation errors


class ValidationError(ReportingException):
    """The inputs are well-formed but do not describe a usable run."""


class SecretFileNotFound(ValidationError):

    path: str

    @classmethod
    def from_context(cls, path):
        self = cls()
        self.path = str(path)
        return self

    def __str__(self):
        return f"JSON file does not exist at path: {self.path}"

    def report(self):
        output.error("Secret file does not exist")
        output.tabular("Path", self.path, red=True)


class PathOutsideWorkspace(ValidationError):
    """A caller-supplied path escapes the workspace root."""

    label: str
    path: str
    workspace: str

    @classmethod
    def from_context(cls, label, path, workspace):
        self = cls()
        self.label = label
        self.path = str(path)
        self.workspace = str(workspace)
        return self

    def __str__(self):
        return (
            f"{self.label} `{self.path}` resolves outside of the workspace"
            f" {self.workspace}"
        )

    def report(self):
        output.error(f"{self.label} resolves outside of the workspace")
        output.tabular("Path", self.path, red=True)
        output.tabular("Workspace", self.workspace)


class MissingEnvironmentKey(ValidationError):
    """Population was requested but there is nothing to populate."""

    path: str

    @classmethod
    def from_context(cls, path):
        self = cls()
        self.path = str(path)
        return self

    def __str__(self):
        return (
            f"No `environment` key with values found in decrypted {self.path}"
        )

    def report(self):
        output.error("Decrypted content has no `environment` values")
        output.tabular("File", self.path, red=True)


class PayloadParseError(ValidationError):
    """The decrypted content is neither valid JSON nor YAML."""

    path: str
    file_type: str
    error: str

    @classmethod
    def from_context(cls, path, file_type, error):
        self = cls()
        self.path = str(path)
        self.file_type = file_type
        # The parser message may quote the offending (secret) text.
        self.error = error.__class__.__name__
        return self

    def __str__(self):
        return (
            f"Could not parse {self.path} as {self.file_type.upper()}"
            f" ({self.error})"
        )

    def report(self):
        output.error(f"Could not parse content as {self.file_type.upper()}")
        output.tabular("File", self.path, red=True)
        output.tabular("Error", self.error)


# Installation errors


class InstallationError(ReportingException):
    """Installing the external binary failed."""


class UnsupportedArchitecture(InstallationError):

    machine: str
    system: str

    @classmethod
    def from_context(cls, machine, system):
        self = cls()
        self.machine = machine
        self.system = system
        return self

    def __str__(self):
        return f"{self.system}/{self.machine} Unsupported platform"

    def report(self):
        output.error("Unsupported platform")
        output.tabular("System", self.system, red=True)
        output.tabular("Machine", self.machine, red=True)


class ReleaseAssetNotFound(InstallationError):
    """The release metadata does not describe the asset we need."""

    repository: str
    version: str
    filename: str
    reason: str

    @classmethod
    def from_context(cls, repository, version, filename, reason):
        self = cls()
        self.repository = repository
        self.version = version
        self.filename = filename
        self.reason = reason
        return self

    def __str__(self):
        return (
            f"Could not determine checksum of {self.filename}"
            f" ({self.repository} v{self.version}): {self.reason}"
        )

    def report(self):
        output.error("Could not determine expected checksum")
        output.tabular("Repository", self.repository, red=True)
        output.tabular("Version", self.version, red=True)
        output.tabular("Asset", self.filename, red=True)
        output.tabular("Reason", self.reason)


class DownloadError(InstallationError):

    url: str
    error: str

    @classmethod
    def from_context(cls, url, error):
        self = cls()
        self.url = url
        self.error = prepare_error(error)
        return self

    def __str__(self):
        return f"Error while downloading {self.url}: {self.error}"

    def report(self):
        output.error("Error while downloading")
        output.tabular("URL", self.url, red=True)
        output.tabular("Message", self.error, separator=":\n")


class ChecksumMismatch(InstallationError):

    filename: str
    expected: str
    got: str

    @classmethod
    def from_context(cls, filename, expected, got):
        self = cls()
        self.filename = filename
        self.expected = expected
        self.got = got
        return self

    def __str__(self):
        return (
            f"Checksum mismatch for {self.filename}!\n"
            f"expected: {self.expected}\ngot: {self.got}"
        )

    def report(self):
        output.error("Checksum mismatch")
        output.tabular("File", self.filename, red=True)
        output.tabular("Expected", self.expected)
        output.tabular("Got", self.got, red=True)


class ExtractionError(InstallationError):

    archive: str
    error: str

    @classmethod
    def from_context(cls, archive, error):
        self = cls()
        self.archive = str(archive)
        self.error = error if isinstance(error, str) else prepare_error(error)
        return self

    def __str__(self):
        return f"Error while extracting {self.archive}: {self.error}"

    def report(self):
        output.error("Error while extracting")
        output.tabular("Archive", self.archive, red=True)
        output.tabular("Message", self.error, separator=":\n")


# External tool errors


class EjsonCallError(ReportingException):
    """There was an error calling ejson (or ejsonkms) on a file."""

    command: str
    exitcode: str
    output: str

    @classmethod
    def from_context(cls, command, exitcode, output):
        self = cls()
        self.command = " ".join(command)
        self.exitcode = str(exitcode)
        if isinstance(output, bytes):
            output = output.decode("utf-8", errors="replace")
        self.output = output.strip()
        return self

    def __str__(self):
        return self.output or (
            f"Exitcode {self.exitcode} while calling: {self.command}"
        )

    def report(self):
        output.error("Error while calling " + self.command.split(" ")[0])
        output.tabular("command", self.command, red=True)
        output.tabular("exit code", self.exitcode)
        output.tabular("message", self.output, separator=":\n")
