[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "capstan"
version = "0.4.0"
description = "Build, configure and run OSv unikernel images: manifests, run configurations, image probing and hypervisor command lines."
requires-python = ">=3.10"
dependencies = [
    "pyyaml",
]
keywords = [
    "osv",
    "unikernel",
    "qemu",
    "hyperkit",
    "virtual-machine",
    "image",
    "openstack",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Operating System :: MacOS",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Emulators",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["capstan"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
ignore_missing_imports = true
