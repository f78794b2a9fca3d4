import os

from ejsonaction import ConfigurationError, InvalidInput

ACTIONS = ("encrypt", "decrypt")
BACKENDS = ("ejson", "ejsonkms")

# Where ejson looks for private keys unless told otherwise.
DEFAULT_KEYDIR = "/opt/ejson/keys"

# (name, required, boolean)
INPUTS = [
    ("action", True, False),
    ("file-path", True, False),
    ("backend", False, False),
    ("private-key", False, False),
    ("aws-region", False, False),
    ("out-file", False, False),
    ("populate-env-vars", False, True),
    ("populate-outputs", False, True),
    ("prefix-env-vars", False, False),
    ("prefix-outputs", False, False),
]


def keydir(environ=None):
    if environ is None:
        environ = os.environ
    return environ.get("EJSON_KEYDIR") or DEFAULT_KEYDIR


def debug_file_content(environ=None):
    if environ is None:
        environ = os.environ
    return environ.get("EJSON_DEBUG") == "true"


class Inputs(object):
    """The configuration of a single encrypt/decrypt run."""

    action = None
    file_path = None
    backend = None
    private_key = ""
    aws_region = ""
    out_file = ""
    populate_env_vars = False
    populate_outputs = False
    prefix_env_vars = ""
    prefix_outputs = ""

    def __init__(self, **kw):
        for key, value in kw.items():
            if not hasattr(self.__class__, key):
                raise TypeError("Unknown input `{}`".format(key))
            setattr(self, key, value)
        if not self.backend:
            self.backend = "ejsonkms" if self.aws_region else "ejson"
        if self.backend not in BACKENDS:
            raise InvalidInput.from_context(
                "backend", self.backend, "one of " + ", ".join(BACKENDS))
        if self.private_key and self.aws_region:
            raise ConfigurationError.from_context(
                "The inputs `private-key` and `aws-region` are mutually "
                "exclusive")

    @classmethod
    def from_runner(cls, runner, **overrides):
        """Read inputs from the runner, giving precedence to `overrides`.

        Overrides that are `None` are ignored so command line flags that
        were not given fall back to the runner's inputs.

        """
        kw = {}
        for name, required, boolean in INPUTS:
            key = name.replace("-", "_")
            if overrides.get(key) is not None:
                kw[key] = overrides[key]
            elif boolean:
                kw[key] = runner.get_boolean_input(name)
            else:
                kw[key] = runner.get_input(name, required=required)
        return cls(**kw)

    @property
    def populate(self):
        return self.populate_env_vars or self.populate_outputs
