import json
import os
import os.path
import shutil
from typing import List, Optional

import yaml

from ejsonaction import (
    ConfigurationError,
    EjsonCallError,
    FileAccessError,
    MissingBinary,
    PayloadParseError,
    config,
    output,
)
from ejsonaction.utils import cmd
from ejsonaction.validation import JSON, detect_file_type


class EjsonFile(object):
    """A secret file handled by one of the ejson command line tools."""

    binary: Optional[str] = None

    def __init__(self, path, environ=None):
        self.path = path
        self.environ = os.environ if environ is None else environ
        self.file_type = detect_file_type(path)

    def executable(self):
        search_path = self.environ.get("PATH")
        executable = shutil.which(self.binary, path=search_path)
        if executable is None:
            raise MissingBinary.from_context(self.binary)
        return executable

    def call(self, args: List[str], env=None) -> str:
        command = [self.executable()] + args
        result = cmd(command, ignore_returncode=True, env=env)
        if result.returncode != 0 or result.stderr.strip():
            raise EjsonCallError.from_context(
                [self.binary] + args, result.returncode, result.stderr)
        return result.stdout

    def read(self):
        try:
            with open(self.path, encoding="utf-8") as f:
                return f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise FileAccessError.from_context(self.path, e)

    def debug_file_content(self, action):
        if not config.debug_file_content(self.environ):
            return
        output.warning(
            "EJSON_DEBUG is enabled, the raw content of {} is printed "
            "to the log".format(self.path))
        output.line("[{}] File content: {}".format(action, self.path))
        output.line(self.read())

    def encrypt(self) -> str:
        self.debug_file_content("encrypt")
        stdout = self.call(["encrypt", str(self.path)])
        output.annotate("Encrypted successfully...")
        output.annotate(stdout)
        return stdout

    def decrypt(self) -> str:
        raise NotImplementedError("decrypt() not implemented")


class LocalKeyEjsonFile(EjsonFile):
    """Decrypt with a private key that is handed to us directly."""

    binary = "ejson"

    def __init__(self, path, private_key, environ=None):
        super().__init__(path, environ)
        self.private_key = private_key
        self.keydir = config.keydir(self.environ)

    def public_key(self):
        content = self.read()
        try:
            if self.file_type == JSON:
                data = json.loads(content)
            else:
                data = yaml.safe_load(content)
        except (ValueError, yaml.YAMLError) as e:
            raise PayloadParseError.from_context(
                self.path, self.file_type, e)
        public_key = data.get("_public_key") if isinstance(
            data, dict) else None
        if not public_key:
            raise ConfigurationError.from_context(
                "Not found public key in ejson file")
        public_key = str(public_key)
        if (os.path.basename(public_key) != public_key
                or public_key in (".", "..")):
            raise ConfigurationError.from_context(
                "Public key in ejson file is not a valid key name")
        return public_key

    def configure_private_key(self):
        if not self.private_key:
            raise ConfigurationError.from_context(
                "No provided private key for decryption")
        key_path = os.path.join(self.keydir, self.public_key())
        output.annotate("Creating file {}".format(key_path))
        try:
            os.makedirs(self.keydir, exist_ok=True)
            fd = os.open(
                key_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with open(fd, "w", encoding="utf-8") as f:
                f.write(self.private_key)
        except OSError as e:
            raise FileAccessError.from_context(key_path, e)
        return key_path

    def decrypt(self) -> str:
        self.debug_file_content("decrypt")
        self.configure_private_key()
        stdout = self.call(
            ["decrypt", str(self.path)],
            env={"EJSON_KEYDIR": self.keydir})
        output.annotate("Decrypted successfully...")
        return stdout


class KMSEjsonFile(EjsonFile):
    """Decrypt with a private key held by AWS KMS, via ejsonkms."""

    binary = "ejsonkms"

    def __init__(self, path, aws_region, environ=None):
        super().__init__(path, environ)
        self.aws_region = aws_region

    def decrypt(self) -> str:
        if not self.aws_region:
            raise ConfigurationError.from_context(
                "No provided AWS region for decryption")
        self.debug_file_content("decrypt")
        stdout = self.call(
            ["decrypt", str(self.path), "--aws-region", self.aws_region])
        output.annotate("Decrypted successfully...")
        return stdout


def get_ejson_file(path, inputs, environ=None):
    if inputs.backend == "ejsonkms":
        return KMSEjsonFile(path, inputs.aws_region, environ)
    return LocalKeyEjsonFile(path, inputs.private_key, environ)
