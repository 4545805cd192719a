[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "bpjam"
version = "2.0.0"
description = "Tools for buildpack authors: dependency constraints, offline caching, buildpackage inspection and config rewriting."
requires-python = ">=3.11"
keywords = ["buildpacks", "cloud-native-buildpacks", "toml", "oci", "semver"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Build Tools",
    "Typing :: Typed",
]
dependencies = [
    "tomli-w",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
bpjam = "bpjam.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["bpjam"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py311"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.11"
warn_unused_ignores = true
