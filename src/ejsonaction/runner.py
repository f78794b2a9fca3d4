"""Talk to the CI runner: read inputs, set outputs, export variables.

This follows the conventions of the GitHub Actions runner. Everything that
would normally be process-global (the environment, the files the runner
reads back after the step) is reached through a `Runner` instance so callers
can work on an isolated environment mapping.

"""

import os
import uuid

from ejsonaction import ConfigurationError, InvalidInput, MissingInput, output

TRUE_VALUES = ("true", "True", "TRUE")
FALSE_VALUES = ("false", "False", "FALSE")


def escape_data(value):
    return (value.replace("%", "%25")
                 .replace("\r", "%0D")
                 .replace("\n", "%0A"))


class Runner(object):

    def __init__(self, environ=None):
        if environ is None:
            environ = os.environ
        self.environ = environ
        # What this run handed back to the runner, in order.
        self.outputs = {}
        self.exported = {}
        self.paths = []
        self.secrets = []

    @property
    def workspace(self):
        return self.environ.get("GITHUB_WORKSPACE") or os.getcwd()

    @property
    def debug(self):
        return self.environ.get("RUNNER_DEBUG") == "1"

    def input_name(self, name):
        return "INPUT_" + name.replace(" ", "_").upper()

    def get_input(self, name, required=False):
        value = self.environ.get(self.input_name(name), "").strip()
        if required and not value:
            raise MissingInput.from_context(name)
        return value

    def get_boolean_input(self, name, default=False):
        value = self.get_input(name)
        if not value:
            return default
        if value in TRUE_VALUES:
            return True
        if value in FALSE_VALUES:
            return False
        raise InvalidInput.from_context(
            name, value, "one of true|True|TRUE|false|False|FALSE")

    def _append_file_command(self, variable, content):
        filename = self.environ.get(variable)
        if not filename:
            return False
        with open(filename, "a", encoding="utf-8") as f:
            f.write(content)
        return True

    def _key_value_message(self, name, value):
        if any(c in name for c in "\r\n=<") or not name:
            raise ConfigurationError.from_context(
                "Invalid name {!r} for the runner".format(name))
        delimiter = "ghadelimiter_{}".format(uuid.uuid4())
        if delimiter in value:
            raise ConfigurationError.from_context(
                "Value of {} contains the delimiter".format(name))
        return "{}<<{}\n{}\n{}\n".format(name, delimiter, value, delimiter)

    def set_output(self, name, value):
        message = self._key_value_message(name, value)
        self.outputs[name] = value
        if not self._append_file_command("GITHUB_OUTPUT", message):
            output.annotate("output: {}".format(name), debug=True)

    def export_variable(self, name, value):
        message = self._key_value_message(name, value)
        self.exported[name] = value
        self.environ[name] = value
        self._append_file_command("GITHUB_ENV", message)

    def add_path(self, path):
        path = str(path)
        self.paths.append(path)
        self._append_file_command("GITHUB_PATH", path + "\n")
        self.environ["PATH"] = os.pathsep.join(
            [path] + [p for p in self.environ.get("PATH", "").split(
                os.pathsep) if p])

    def set_secret(self, value):
        if not value:
            return
        self.secrets.append(value)
        for line in value.splitlines():
            if line.strip():
                output.line("::add-mask::{}".format(escape_data(line)))

    def warning(self, message):
        output.line("::warning::{}".format(escape_data(message)))

    def error(self, message):
        output.line("::error::{}".format(escape_data(message)))
