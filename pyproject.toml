[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "execkit"
version = "0.1.0"
description = "Run and control commands locally, in containers, over SSH or through sudo, with streamed process events"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "subprocess",
    "process",
    "launcher",
    "ssh",
    "sudo",
    "docker",
    "docker-compose",
    "asyncio",
    "service management",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Framework :: AsyncIO",
    "Topic :: System :: Systems Administration",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[tool.hatch.build.targets.wheel]
packages = ["execkit"]

[tool.hatch.build.targets.sdist]
include = ["execkit", "tests", "README.md"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
