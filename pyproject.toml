[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "apptoolkit"
version = "0.1.0"
description = "Building blocks for database-backed services: field masks, migration version checks, per-request transactions, health checks, resource identifiers and integration-test utilities."
requires-python = ">=3.10"
dependencies = []
keywords = [
    "transactions",
    "health-check",
    "wsgi",
    "field-mask",
    "migrations",
    "resource-identifier",
    "integration-testing",
    "postgresql",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database",
    "Topic :: Software Development :: Libraries :: Application Frameworks",
    "Topic :: Software Development :: Testing",
    "Topic :: System :: Monitoring",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["apptoolkit"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
