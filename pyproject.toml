[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "kmsguard"
version = "0.1.0"
description = "Key management service core for validator nodes with double-signing protection"
requires-python = ">=3.11"
dependencies = []
keywords = ["validator", "consensus", "double-sign", "key-management", "signing"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Security :: Cryptography",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
kmsguard = "kmsguard.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["kmsguard"]

[tool.pytest.ini_options]
addopts = "-ra"
