[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "limavm"
version = "0.1.0"
description = "Building blocks for provisioning Lima virtual machines and the container runtimes inside them"
requires-python = ">=3.10"
keywords = ["lima", "virtual machine", "containers", "docker", "qemu", "provisioning"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: MacOS",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Systems Administration",
]
dependencies = [
    "pyyaml",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["limavm"]

[tool.pytest.ini_options]
addopts = "-ra"
