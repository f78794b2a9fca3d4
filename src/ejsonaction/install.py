"""Install the ejson/ejsonkms binaries from their GitHub releases.

The expected checksum of every release asset is taken from the release
metadata API, never from the download location itself, and the archive is
only extracted once it matches.

"""

import hashlib
import os
import os.path
import platform
import stat

import requests

from ejsonaction import (
    ChecksumMismatch,
    DownloadError,
    ExtractionError,
    ReleaseAssetNotFound,
    UnsupportedArchitecture,
    output,
)
from ejsonaction.utils import CmdExecutionError, cmd, hash

API_URL = "https://api.github.com"
DOWNLOAD_URL = (
    "https://github.com/{repository}/releases/download/v{version}/{filename}")

ARCHITECTURES = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
}

SYSTEMS = ("linux", "darwin")

CHECKSUM_STAMP = ".checksum"

# Variable-length digests (shake_*) can not be compared by hexdigest alone.
CHECKSUM_FUNCTIONS = frozenset(
    name for name in hashlib.algorithms_guaranteed
    if not name.startswith("shake_"))


class Tool(object):

    def __init__(self, name, repository, version):
        self.name = name
        self.repository = repository
        self.version = version

    def filename(self, version, system, architecture):
        return "{}_{}_{}_{}.tar.gz".format(
            self.name, version, system, architecture)

    def url(self, version, filename):
        return DOWNLOAD_URL.format(
            repository=self.repository, version=version, filename=filename)


TOOLS = {
    "ejson": Tool("ejson", "Shopify/ejson", "1.5.4"),
    "ejsonkms": Tool("ejsonkms", "envato/ejsonkms", "0.2.2"),
}


def resolve_architecture(machine=None, system=None):
    """Return the (system, architecture) fragments of release asset names."""
    if machine is None:
        machine = platform.machine()
    if system is None:
        system = platform.system()
    architecture = ARCHITECTURES.get(machine.lower())
    system = system.lower()
    if architecture is None or system not in SYSTEMS:
        raise UnsupportedArchitecture.from_context(machine, system)
    return system, architecture


def _api_headers(environ):
    headers = {"Accept": "application/vnd.github+json"}
    token = environ.get("GITHUB_TOKEN")
    if token:
        headers["Authorization"] = "Bearer {}".format(token)
    return headers


def fetch_expected_checksum(tool, version, filename, environ=None,
                            timeout=60):
    """Look up the digest the release metadata publishes for `filename`.

    Returns a `<function>:<hexdigest>` string.

    """
    if environ is None:
        environ = os.environ
    url = "{}/repos/{}/releases/tags/v{}".format(
        API_URL, tool.repository, version)
    output.annotate("fetching release metadata {}".format(url), debug=True)
    try:
        r = requests.get(url, headers=_api_headers(environ), timeout=timeout)
    except requests.RequestException as e:
        raise DownloadError.from_context(url, e)
    if r.status_code == 404:
        raise ReleaseAssetNotFound.from_context(
            tool.repository, version, filename, "release tag not found")
    try:
        r.raise_for_status()
    except requests.HTTPError as e:
        raise DownloadError.from_context(url, e)
    try:
        release = r.json()
    except ValueError as e:
        raise DownloadError.from_context(url, e)
    assets = release.get("assets") if isinstance(release, dict) else None

    for asset in assets or []:
        if asset.get("name") != filename:
            continue
        digest = asset.get("digest")
        if not digest or ":" not in digest:
            raise ReleaseAssetNotFound.from_context(
                tool.repository, version, filename,
                "release asset has no digest")
        if digest.split(":", 1)[0] not in CHECKSUM_FUNCTIONS:
            raise ReleaseAssetNotFound.from_context(
                tool.repository, version, filename,
                "unsupported digest \"{}\"".format(digest.split(":", 1)[0]))
        return digest
    raise ReleaseAssetNotFound.from_context(
        tool.repository, version, filename, "release asset not found")


def download_and_verify(url, destination, expected_checksum,
                        requests_kwargs=None):
    checksum_function, checksum = expected_checksum.split(":", 1)
    output.annotate("Downloading {}...".format(url))
    try:
        r = requests.get(
            url, stream=True,
            **(requests_kwargs if requests_kwargs else {"timeout": 60}))
        r.raise_for_status()
        with open(destination, "wb") as fd:
            for chunk in r.iter_content(4 * 1024 ** 2):
                fd.write(chunk)
    except requests.RequestException as e:
        if os.path.exists(destination):
            os.unlink(destination)
        raise DownloadError.from_context(url, e)

    target_checksum = hash(destination, checksum_function)
    if checksum.lower() != target_checksum:
        os.unlink(destination)
        raise ChecksumMismatch.from_context(
            os.path.basename(destination), checksum, target_checksum)
    output.annotate(
        "verified {} {}".format(checksum_function, target_checksum),
        debug=True)


def extract_and_publish(archive, destination_dir, binary, runner):
    os.makedirs(destination_dir, exist_ok=True)
    try:
        cmd(["tar", "xf", str(archive), "-C", str(destination_dir)])
    except CmdExecutionError as e:
        raise ExtractionError.from_context(archive, e.stderr.strip() or e)
    finally:
        if os.path.exists(archive):
            os.unlink(archive)
    executable = os.path.join(destination_dir, binary)
    if not os.path.isfile(executable):
        raise ExtractionError.from_context(
            archive, "archive does not contain `{}`".format(binary))
    mode = os.stat(executable).st_mode
    os.chmod(executable, mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    runner.add_path(destination_dir)
    return executable


def default_install_dir(tool, version, architecture, environ=None):
    if environ is None:
        environ = os.environ
    base = environ.get("RUNNER_TOOL_CACHE") or os.path.expanduser(
        "~/.cache/ejson-action")
    return os.path.join(base, tool.name, version, architecture)


def _is_cached(install_dir, binary, expected_checksum):
    stamp = os.path.join(install_dir, CHECKSUM_STAMP)
    if not os.path.isfile(os.path.join(install_dir, binary)):
        return False
    if not os.path.exists(stamp):
        return False
    with open(stamp) as f:
        return f.read().strip() == expected_checksum


def install(tool_name, runner, version=None, install_dir=None,
            machine=None, system=None):
    tool = TOOLS[tool_name]
    version = version or tool.version
    system, architecture = resolve_architecture(machine, system)
    output.step(tool.name, "Installing {} v{} ({}/{})".format(
        tool.name, version, system, architecture))

    filename = tool.filename(version, system, architecture)
    expected_checksum = fetch_expected_checksum(
        tool, version, filename, runner.environ)

    if install_dir is None:
        install_dir = default_install_dir(
            tool, version, architecture, runner.environ)
    if _is_cached(install_dir, tool.name, expected_checksum):
        output.annotate("Found cached {} in {}".format(
            tool.name, install_dir))
        runner.add_path(install_dir)
        return os.path.join(install_dir, tool.name)

    os.makedirs(install_dir, exist_ok=True)
    archive = os.path.join(install_dir, filename)
    download_and_verify(
        tool.url(version, filename), archive, expected_checksum)
    executable = extract_and_publish(archive, install_dir, tool.name, runner)
    with open(os.path.join(install_dir, CHECKSUM_STAMP), "w") as f:
        f.write(expected_checksum + "\n")
    output.annotate("{} installed successfully.".format(tool.name))
    return executable
