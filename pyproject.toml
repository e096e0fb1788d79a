[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "loadshear"
version = "1.0.0"
description = "Sharded scheduling of timed load-generation actions, with dry-run and metrics text output"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "load-testing",
    "traffic-generation",
    "orchestration",
    "sharding",
    "histogram",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Testing :: Traffic Generation",
    "Topic :: System :: Benchmark",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["loadshear"]

[tool.hatch.build.targets.sdist]
include = ["loadshear", "tests", "pyproject.toml"]

[tool.pytest.ini_options]
addopts = "-ra"
