import argparse
import sys
from typing import Optional

import importlib_resources

import ejsonaction
import ejsonaction.install
from ejsonaction._output import TerminalBackend, output
from ejsonaction.action import Action
from ejsonaction.config import ACTIONS, BACKENDS, Inputs
from ejsonaction.runner import Runner


def run(runner, **kw):
    inputs = Inputs.from_runner(runner, **kw)
    action = Action(inputs, runner)
    action.run()


def install(runner, tool, version, install_dir):
    ejsonaction.install.install(
        tool, runner, version=version, install_dir=install_dir)


def main(args: Optional[list] = None) -> None:
    version = (
        importlib_resources.files("ejsonaction")
        .joinpath("version.txt")
        .read_text()
        .strip()
    )
    parser = argparse.ArgumentParser(
        description=(
            "ejson-action v{}: encrypt and decrypt ejson secrets in CI"
        ).format(version),
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.set_defaults(func=parser.print_usage)

    parser.add_argument(
        "-d", "--debug", action="store_true", help="Enable debug mode."
    )

    subparsers = parser.add_subparsers()

    # Run
    p = subparsers.add_parser(
        "run",
        help="Encrypt or decrypt a secret file. Options not given are read "
        "from the INPUT_* environment variables set by the runner.",
    )
    p.add_argument("--action", choices=ACTIONS, default=None)
    p.add_argument("--file-path", default=None)
    p.add_argument("--backend", choices=BACKENDS, default=None)
    p.add_argument("--private-key", default=None)
    p.add_argument("--aws-region", default=None)
    p.add_argument(
        "--out-file", default=None,
        help="Write the decrypted content to this file.")
    p.add_argument(
        "--populate-env-vars", action="store_true", default=None,
        help="Export the `environment` values as environment variables.")
    p.add_argument(
        "--populate-outputs", action="store_true", default=None,
        help="Set the `environment` values as step outputs.")
    p.add_argument("--prefix-env-vars", default=None)
    p.add_argument("--prefix-outputs", default=None)
    p.set_defaults(func=run)

    # Install
    p = subparsers.add_parser(
        "install", help="Install the ejson or ejsonkms binary."
    )
    p.add_argument("--tool", choices=BACKENDS, default="ejson")
    p.add_argument(
        "--version", default=None,
        help="Release to install. Defaults to the known good version.")
    p.add_argument(
        "--install-dir", default=None,
        help="Where to put the binary. Defaults to the runner's tool cache.")
    p.set_defaults(func=install)

    args = parser.parse_args(args)

    # Pass over to function
    if args.func.__name__ == "print_usage":
        args.func()
        sys.exit(1)

    runner = Runner()
    output.backend = TerminalBackend()
    output.enable_debug = args.debug or runner.debug
    output.section("ejson-action v{}".format(version))

    func_args = dict(args._get_kwargs())
    del func_args["func"]
    del func_args["debug"]
    try:
        args.func(runner, **func_args)
    except ejsonaction.ReportingException as e:
        e.report()
        runner.error("[ERROR] Failure on {}: {}".format(
            failure_context(args.func, func_args, runner), e))
        sys.exit(1)
    except Exception as e:
        output.error("Unexpected exception", exc_info=sys.exc_info())
        runner.error("[ERROR] Failure on {}: {}".format(
            failure_context(args.func, func_args, runner),
            ejsonaction.prepare_error(e)))
        sys.exit(1)


def failure_context(func, func_args, runner):
    if func is install:
        return "{} install".format(func_args["tool"])

    def get(name):
        return func_args.get(name.replace("-", "_")) or runner.get_input(name)

    backend = get("backend") or (
        "ejsonkms" if get("aws-region") else "ejson")
    return "{} {}".format(backend, get("action"))
