# -*- coding: utf-8 -*-

import os
import subprocess

from setuptools import find_packages, setup

extras_require = {
    "test": [
        "pytest>=6.2.5",
        "pytest-cov>=2.10",
        "pytest-instafail>=0.4",
        "pytest-xdist>=2.5",
        "hypothesis>=5.37.1",
    ],
    "lint": [
        "black==23.12.0",
        "flake8==6.1.0",
        "flake8-bugbear==23.12.2",
        "flake8-use-fstring==1.4",
        "isort==5.13.2",
        "mypy==1.5",
    ],
    "dev": ["ipython", "pre-commit", "twine"],
}

extras_require["dev"] = extras_require["test"] + extras_require["lint"] + extras_require["dev"]

with open("README.md", "r") as f:
    long_description = f.read()


hash_file_rel_path = os.path.join("ballot", "ballot_git_commithash.txt")
hashfile = os.path.relpath(hash_file_rel_path)

# add the commit hash to the package separately from the version, so that
# it shows up in `ballot --version`.
try:
    commithash = subprocess.check_output("git rev-parse --short HEAD".split())
    commithash_str = commithash.decode("utf-8").strip()
    with open(hashfile, "w") as fh:
        fh.write(commithash_str)
except (subprocess.CalledProcessError, FileNotFoundError):
    pass


setup(
    name="ballot",
    version="0.1.0",
    description="Ballot: a delegated voting state machine",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="Ballot Team",
    author_email="",
    license="Apache License 2.0",
    keywords="voting ballot delegation smart contract",
    include_package_data=True,
    packages=find_packages(include=["ballot", "ballot.*"]),
    python_requires=">=3.10,<4",
    install_requires=["cbor2>=5.4.6", "pycryptodome>=3.5.1,<4", "packaging>=23.1"],
    tests_require=extras_require["test"],
    extras_require=extras_require,
    entry_points={
        "console_scripts": [
            "ballot=ballot.cli.ballot_cli:_parse_cli_args",
            "ballot-serve=ballot.cli.ballot_serve:_parse_cli_args",
        ]
    },
    classifiers=[
        "Intended Audience :: Developers",
        "License :: OSI Approved :: Apache Software License",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
    package_data={"ballot": ["ballot_git_commithash.txt"]},
)
