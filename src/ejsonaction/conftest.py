import os
import stat

import pytest

from ejsonaction.runner import Runner

FAKE_BINARY = """\
#!/bin/sh
echo "$@" >> {log}
echo "EJSON_KEYDIR=$EJSON_KEYDIR" >> {log}
cat {stdout}
cat {stderr} >&2
exit {exitcode}
"""


@pytest.fixture(autouse=True)
def output(monkeypatch):
    from ejsonaction import output
    from ejsonaction._output import TestBackend

    backend = TestBackend()
    monkeypatch.setattr(output, "backend", backend)
    monkeypatch.setattr(output, "enable_debug", False)
    return output


@pytest.fixture(autouse=True)
def isolate_runner_environment(monkeypatch):
    # The tests may themselves run inside a CI job.
    for name in list(os.environ):
        if name.startswith(("INPUT_", "GITHUB_", "EJSON_")) or name in (
                "RUNNER_DEBUG", "RUNNER_TOOL_CACHE"):
            monkeypatch.delenv(name)


@pytest.fixture(autouse=True)
def ensure_workingdir():
    working_dir = os.getcwd()
    yield
    os.chdir(working_dir)


@pytest.fixture
def workspace(tmpdir):
    """A checkout directory the way a CI runner provides it."""
    ws = tmpdir.mkdir("workspace")
    os.chdir(str(ws))
    return ws


@pytest.fixture
def runner(workspace, tmpdir):
    files = tmpdir.mkdir("runner")
    environ = {
        "GITHUB_WORKSPACE": str(workspace),
        "GITHUB_OUTPUT": str(files / "output"),
        "GITHUB_ENV": str(files / "env"),
        "GITHUB_PATH": str(files / "path"),
        "EJSON_KEYDIR": str(tmpdir / "keys"),
        "PATH": os.environ.get("PATH", ""),
    }
    return Runner(environ)


@pytest.fixture
def fake_binary(runner, tmpdir):
    """Put a stand-in for an external tool on the runner's PATH.

    Returns a function `(name, stdout="", stderr="", exitcode=0)` that
    creates the script and returns the path of the file recording the
    calls.

    """
    bindir = tmpdir.mkdir("bin")
    runner.environ["PATH"] = str(bindir) + os.pathsep + runner.environ["PATH"]

    def create(name, stdout="", stderr="", exitcode=0):
        log = bindir / (name + ".log")
        (bindir / (name + ".stdout")).write(stdout)
        (bindir / (name + ".stderr")).write(stderr)
        script = bindir / name
        script.write(FAKE_BINARY.format(
            log=log,
            stdout=bindir / (name + ".stdout"),
            stderr=bindir / (name + ".stderr"),
            exitcode=exitcode))
        os.chmod(str(script), stat.S_IRWXU)
        return log

    return create
