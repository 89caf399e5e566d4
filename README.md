# bashcord-installer

A command-line installer that finds the Discord desktop installs on your
machine and patches them so that they load Bashcord. It can also repair or
remove a patch, and install or remove OpenAsar. Its messages are in French.

## Installation

```
pip install .
```

## Usage

Run with no action option, it shows a banner and a numbered menu. Answer with
the number of an entry or with its full text:

```
bashcord-installer
```

The menu offers the five actions below, the help text, a self-update and
quitting. When it needs to know which Discord to change, it shows another
numbered list of the installs it found, plus a choice to type a custom
location.

You can also run an action directly:

```
bashcord-installer --install
bashcord-installer --repair
bashcord-installer --uninstall
bashcord-installer --install-openasar
bashcord-installer --uninstall-openasar
```

- `--install` downloads the latest build if the local one is missing or
  outdated, then patches the chosen Discord (unpatching it first if it was
  already patched).
- `--repair` always downloads the latest build, then patches.
- `--uninstall` puts Discord's original `app.asar` back.
- `--install-openasar` backs up Discord's asar as `app.asar.backup` and
  replaces it with the OpenAsar nightly. It refuses if OpenAsar is already
  installed.
- `--uninstall-openasar` restores `app.asar.backup` (or the older
  `app.asar.original`). It refuses if OpenAsar is not installed.

To choose which Discord to change without the menu, pass either `--branch` or
`--location`. You cannot pass both.

```
bashcord-installer --install --branch canary
bashcord-installer --install --location /opt/discord
```

`--branch` takes one of `auto`, `stable`, `ptb` or `canary`. With `auto`,
the first install found is used, checked in the order stable, canary, ptb.

Other options:

- `--debug` shows debug logging.
- `--help` prints the usage text.
- `--version` prints the installer version.
- `--update-self` replaces the installer executable with its latest release.
  It does not work on macOS. It needs a release build with a known version
  tag; otherwise the update check is skipped and the command reports that it
  failed.

Every option may also be written with a single dash, such as `-install`.
The command exits with status 0 on success and 1 on failure.

On Windows, a running Discord of the chosen branch is closed before it is
changed.

## Where files go

The Bashcord build is downloaded to `bashcord.asar`, inside a data directory.
That directory is chosen as follows:

1. `BASHCORD_USER_DATA_DIR`, if it is set.
2. Otherwise `BashcordData`, next to `DISCORD_USER_DATA_DIR`, if that is set.
3. Otherwise the user configuration directory for `Bashcord`.

The directory is created if it does not exist. Set `BASHCORD_DIRECTORY` to
use a different path for the build file itself. Set `EQUICORD_DEV_INSTALL=1`
to skip downloads and use a build that is already in place.

## Linux notes

Do not run the installer as root. If you need elevated rights, use `sudo` or
`doas`. The installer then uses the home directory of the user who started
it, and gives the files it creates back to that user. Flatpak installs are
supported: after patching, the installer runs `flatpak override` so that the
Flatpak can read the Bashcord build. Snap installs are not supported.

## Using it from Python

The pieces can be used on their own, for example:

- `bashcord_installer.discovery.find_discords()` lists the installs found,
  and `parse_discord(path)` inspects one directory.
- `bashcord_installer.patcher.patch(install, builds)` and
  `unpatch(install)` patch and unpatch one install.
- `bashcord_installer.asar.build_app_asar(path)` returns the bytes of the
  small loader `app.asar` that points at `path`.

## What it does not do

There is no graphical interface; everything is done from the command line.

## Development

```
pip install -e ".[test]"
pytest
```