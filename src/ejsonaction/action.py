from ejsonaction import ConfigurationError, output
from ejsonaction.config import ACTIONS
from ejsonaction.distribute import (
    parse_payload,
    populate_env_vars,
    populate_outputs,
    write_out_file,
)
from ejsonaction.encryption import get_ejson_file
from ejsonaction.validation import (
    validate_decrypt_parameters,
    validate_file_exists,
    validate_path_within_workspace,
)


class Action(object):
    """Encrypt or decrypt one secret file and distribute the result.

    All inputs are validated when the action is created so nothing is
    written and no external command is run for an invalid configuration.

    """

    def __init__(self, inputs, runner):
        self.inputs = inputs
        self.runner = runner
        self.runner.set_secret(inputs.private_key)
        self._validate()

    def _validate(self):
        workspace = self.runner.workspace
        validate_file_exists(self.inputs.file_path)
        self.file_path = validate_path_within_workspace(
            self.inputs.file_path, "file-path", workspace)
        self.out_file = None
        if self.inputs.out_file:
            self.out_file = validate_path_within_workspace(
                self.inputs.out_file, "out-file", workspace)
        self.file = get_ejson_file(
            self.file_path, self.inputs, self.runner.environ)

    def run(self):
        if self.inputs.action not in ACTIONS:
            raise ConfigurationError.from_context(
                "Invalid action '{}'".format(self.inputs.action))
        return getattr(self, self.inputs.action)()

    def encrypt(self):
        output.step(self.file.binary, "Encrypting {}".format(
            self.inputs.file_path))
        return self.file.encrypt()

    def decrypt(self):
        validate_decrypt_parameters(
            self.inputs.backend, self.inputs.private_key,
            self.inputs.aws_region)
        output.step(self.file.binary, "Decrypting {}".format(
            self.inputs.file_path))
        decrypted = self.file.decrypt()
        self.runner.set_secret(decrypted)
        self.runner.set_output("decrypted", decrypted)

        if self.out_file:
            write_out_file(self.out_file, decrypted)

        if self.inputs.populate:
            payload = parse_payload(
                self.inputs.file_path, decrypted, self.file.file_type)
            if self.inputs.populate_outputs:
                populate_outputs(
                    payload, self.inputs.prefix_outputs, self.runner)
            if self.inputs.populate_env_vars:
                populate_env_vars(
                    payload, self.inputs.prefix_env_vars, self.runner)
        return decrypted
