[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "cfkit"
version = "0.1.0"
description = "Client for the Cloud Foundry v2 API: apps, app events, usage events and buildpacks"
requires-python = ">=3.10"
dependencies = [
    "requests",
]
keywords = ["cloudfoundry", "cloud-controller", "paas", "api-client"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP",
]

[project.optional-dependencies]
test = [
    "pytest",
    "responses",
]

[tool.hatch.build.targets.wheel]
packages = ["cfkit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
