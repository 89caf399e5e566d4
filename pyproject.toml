[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "bashcord-installer"
version = "0.1.0"
description = "Command-line installer that patches Discord desktop installs to load Bashcord"
requires-python = ">=3.10"
keywords = ["discord", "installer", "asar", "patcher", "openasar", "flatpak"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: End Users/Desktop",
    "Natural Language :: French",
    "Operating System :: Microsoft :: Windows",
    "Operating System :: MacOS",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Installation/Setup",
]
dependencies = [
    "requests",
    "platformdirs",
    "termcolor",
    "psutil",
]

[project.optional-dependencies]
test = [
    "pytest",
    "responses",
]

[project.scripts]
bashcord-installer = "bashcord_installer.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["bashcord_installer"]

[tool.pytest.ini_options]
addopts = "-ra"
