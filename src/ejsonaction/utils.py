import collections
import hashlib
import os
import subprocess

from ejsonaction import ReportingException, output

CmdResult = collections.namedtuple("CmdResult", "stdout stderr returncode")


class CmdExecutionError(ReportingException, RuntimeError):

    def __init__(self, cmd, returncode, stdout, stderr):
        self.cmd = cmd
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.args = (cmd, returncode, stdout, stderr)

    def __str__(self):
        return "Exitcode {} while calling: {}\n{}".format(
            self.returncode, self.cmd, self.stderr.strip())

    def report(self):
        output.error(self.cmd)
        output.tabular("Return code", str(self.returncode), red=True)
        output.line("STDOUT", red=True)
        output.annotate(self.stdout)
        output.line("STDERR", red=True)
        output.annotate(self.stderr)


def cmd(cmd,
        ignore_returncode=False,
        env=None,
        acceptable_returncodes=[0],
        encoding="utf-8"):
    """Run a command to completion and capture its output.

    `cmd` is a list of arguments and is never passed through a shell.
    `env` is added on top of the current process environment.

    """
    if env is not None:
        add_to_env = env
        env = os.environ.copy()
        env.update(add_to_env)
    cmdline = " ".join(cmd)
    output.annotate("cmd: {}".format(cmdline), debug=True)
    process = subprocess.Popen(
        cmd,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        stdin=subprocess.DEVNULL,
        env=env)
    stdout, stderr = process.communicate()
    if encoding is not None:
        stdout = stdout.decode(encoding, errors="replace")
        stderr = stderr.decode(encoding, errors="replace")
    if process.returncode not in acceptable_returncodes:
        if not ignore_returncode:
            raise CmdExecutionError(
                cmdline, process.returncode, stdout, stderr)
    return CmdResult(stdout, stderr, process.returncode)


def hash(path, function="sha256"):
    h = getattr(hashlib, function)()
    with open(path, "rb") as f:
        chunk = f.read(64 * 1024)
        while chunk:
            h.update(chunk)
            chunk = f.read(64 * 1024)
    return h.hexdigest()
