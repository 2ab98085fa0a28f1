[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "dcaf"
version = "0.2.0"
description = "Delegated CoAP authorization support: AIF handling, authorization manager configuration, rule database and command-line parsing"
requires-python = ">=3.10"
keywords = ["dcaf", "ace", "coap", "authorization", "aif", "cbor"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Security",
    "Topic :: Internet",
]
dependencies = [
    "cbor2",
    "pyyaml",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
dcaf-am = "dcaf.am:main"

[tool.hatch.build.targets.wheel]
packages = ["dcaf"]

[tool.pytest.ini_options]
addopts = "-ra"
