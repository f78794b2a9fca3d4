# This should be only one line. If it must be multi-line, indent the second
# line onwards to keep the PKG-INFO file format intact.
"""Encrypt and decrypt ejson secrets in CI and hand them to later steps.
"""

from setuptools import find_packages, setup

version = open("src/ejsonaction/version.txt").read().strip()

setup(
    name="ejson-action",
    version=version,
    install_requires=[
        "importlib_resources",
        "py",
        "pyyaml",
        "requests", ],
    extras_require={
        "test": [
            "mock",
            "pytest",
            "pytest-coverage",
            "pytest-instafail",
            "pytest-timeout", ]},
    entry_points="""
        [console_scripts]
            ejson-action = ejsonaction.main:main
    """,
    keywords="ejson ejsonkms secrets ci",
    classifiers="""\
Programming Language :: Python
Programming Language :: Python :: 3
Programming Language :: Python :: 3 :: Only
"""[:-1].split("\n"),
    description=__doc__.strip(),
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    packages=find_packages("src"),
    package_dir={"": "src"},
    package_data={"ejsonaction": ["version.txt"]},
    include_package_data=True,
    zip_safe=False,
    test_suite="ejsonaction.tests",
    python_requires=">=3.8")
