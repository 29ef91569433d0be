[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "kotool"
version = "0.1.0"
description = "Name container images for Go import paths, load build configuration, and resolve and publish image references."
requires-python = ">=3.10"
keywords = ["containers", "kubernetes", "image-reference", "build-info", "go", "images"]
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
    "Topic :: Software Development :: Build Tools",
]
dependencies = [
    "pyyaml",
    "watchdog",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["kotool"]

[tool.pytest.ini_options]
addopts = "-ra"
