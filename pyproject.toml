[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "fueltools"
version = "0.1.0"
description = "Library and release commands for Fuel toolchains: component manifests, channels, downloads and version comparison"
requires-python = ">=3.11"
keywords = ["toolchain", "channel", "fuel", "forc", "release", "download"]
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
]
dependencies = [
    "requests",
    "tomlkit",
    "tqdm",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
build-channel = "fueltools.build_channel:main"
compare-versions = "fueltools.compare_versions:main"

[tool.hatch.build.targets.wheel]
packages = ["fueltools"]

[tool.pytest.ini_options]
addopts = "-ra"
