[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "mrjsystem"
version = "0.1.0"
description = "Fleck client and Arkham logger for a frame-based file distortion network"
requires-python = ">=3.10"
dependencies = []
keywords = ["distortion", "file-transfer", "frames", "tcp", "client", "logging"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: File Sharing",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
fleck = "mrjsystem.fleck:main"
arkham = "mrjsystem.arkham:main"

[tool.hatch.build.targets.wheel]
packages = ["mrjsystem"]

[tool.pytest.ini_options]
addopts = "-ra"
