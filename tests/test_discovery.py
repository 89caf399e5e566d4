import os
import pwd
from unittest.mock import MagicMock, patch

import pytest

from bashcord_installer.discovery import (
    DiscordInstall,
    RootUserError,
    check_scuffed_install,
    find_discords,
    fix_ownership,
    linux_discord_dirs,
    parse_discord,
    parse_discord_darwin,
    parse_discord_linux,
    parse_discord_windows,
    prepare_patch,
    resolve_real_home,
)

UNKNOWN_USER = "nosuchuser-for-tests"


def _current_user():
    return pwd.getpwuid(os.getuid()).pw_name


# resolve_real_home


def test_sudo_root_refused():
    with pytest.raises(RootUserError):
        resolve_real_home({"SUDO_USER": "root"})


def test_doas_user_copied_to_sudo_user():
    env = {"DOAS_USER": UNKNOWN_USER, "HOME": "/home/placeholder"}
    home = resolve_real_home(env)
    assert env["SUDO_USER"] == UNKNOWN_USER
    assert home == "/home/placeholder"


def test_sudo_user_home_looked_up():
    name = _current_user()
    env = {"SUDO_USER": name, "HOME": "/root"}
    assert resolve_real_home(env) == pwd.getpwnam(name).pw_dir
    assert env["HOME"] == pwd.getpwnam(name).pw_dir


@patch("os.getuid", return_value=0)
def test_root_without_sudo_refused(_getuid):
    with pytest.raises(RootUserError):
        resolve_real_home({"HOME": "/root"})


@patch("os.getuid", return_value=1000)
def test_normal_user_home(_getuid, tmp_path):
    assert resolve_real_home({"HOME": str(tmp_path)}) == str(tmp_path)


def test_linux_dirs(tmp_path):
    dirs = linux_discord_dirs(str(tmp_path))
    assert "/opt" in dirs
    assert "/var/lib/flatpak/app" in dirs
    assert os.path.join(str(tmp_path), ".local", "share") in dirs
    assert os.path.join(str(tmp_path), ".local", "share", "flatpak", "app") in dirs


# linux


def test_linux_normal_install(tmp_path):
    base = tmp_path / "DiscordCanary"
    (base / "resources").mkdir(parents=True)
    install = parse_discord_linux(str(base))
    assert install.branch == "canary"
    assert install.app_path == os.path.join(str(base), "resources", "app")
    assert not install.is_patched
    assert not install.is_system_electron
    assert not install.is_flatpak


def test_linux_patched_install(tmp_path):
    base = tmp_path / "Discord"
    (base / "resources").mkdir(parents=True)
    (base / "resources" / "_app.asar").write_bytes(b"")
    install = parse_discord_linux(str(base))
    assert install.is_patched
    assert install.branch == "stable"


def test_linux_system_electron(tmp_path):
    base = tmp_path / "discord"
    base.mkdir()
    (base / "app.asar").write_bytes(b"")
    install = parse_discord_linux(str(base))
    assert install.is_system_electron
    assert not install.is_patched
    (base / "_app.asar.unpacked").mkdir()
    assert parse_discord_linux(str(base)).is_patched


def test_linux_invalid(tmp_path):
    assert parse_discord_linux(str(tmp_path / "Discord")) is None


@pytest.mark.parametrize(
    "name, resolved, branch",
    [
        ("com.discordapp.DiscordCanary", "discord-canary", "canary"),
        ("com.discordapp.Discord", "discord", "stable"),
    ],
)
def test_linux_flatpak(tmp_path, name, resolved, branch):
    base = tmp_path / "flatpak" / "app" / name
    files = base / "current" / "active" / "files" / resolved
    (files / "resources").mkdir(parents=True)
    install = parse_discord_linux(str(base))
    assert install.is_flatpak
    assert install.path == str(files)
    assert install.branch == branch


# darwin


def test_darwin_infers_branch(tmp_path):
    app = tmp_path / "Discord Canary.app"
    resources = app / "Contents" / "Resources"
    resources.mkdir(parents=True)
    install = parse_discord_darwin(str(app), "")
    assert install.branch == "canary"
    assert install.app_path == os.path.join(str(resources), "app")
    assert not install.is_patched


def test_darwin_explicit_branch_and_patched(tmp_path):
    app = tmp_path / "Discord.app"
    resources = app / "Contents" / "Resources"
    resources.mkdir(parents=True)
    (resources / "_app.asar").write_bytes(b"")
    install = parse_discord_darwin(str(app), "ptb")
    assert install.branch == "ptb"
    assert install.is_patched


def test_darwin_missing_resources(tmp_path):
    app = tmp_path / "Discord.app"
    app.mkdir()
    assert parse_discord_darwin(str(app), "") is None
    assert parse_discord_darwin(str(tmp_path / "absent.app"), "") is None


# windows


def test_windows_picks_newest_version(tmp_path):
    base = tmp_path / "DiscordPTB"
    (base / "app-1.0.1" / "resources").mkdir(parents=True)
    (base / "app-1.0.1" / "resources" / "_app.asar").write_bytes(b"")
    (base / "app-1.0.2" / "resources").mkdir(parents=True)
    (base / "app-1.0.3").mkdir()
    (base / "packages").mkdir()
    install = parse_discord_windows(str(base), "")
    assert install.app_path == os.path.join(str(base), "app-1.0.2", "resources", "app")
    assert not install.is_patched
    assert install.branch == "ptb"


def test_windows_no_versions(tmp_path):
    base = tmp_path / "Discord"
    (base / "packages").mkdir(parents=True)
    assert parse_discord_windows(str(base), "") is None
    assert parse_discord_windows(str(tmp_path / "missing"), "") is None


@patch("sys.platform", "win32")
def test_parse_discord_dispatches_windows(tmp_path):
    base = tmp_path / "Discord"
    (base / "app-1.0.0" / "resources").mkdir(parents=True)
    install = parse_discord(str(base), "stable")
    assert isinstance(install, DiscordInstall)
    assert install.path == str(base)


# find_discords


@patch("sys.platform", "linux")
def test_find_discords_linux(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.delenv("DOAS_USER", raising=False)
    monkeypatch.setenv("SUDO_USER", UNKNOWN_USER)
    share = tmp_path / ".local" / "share"
    (share / "discord-canary" / "resources").mkdir(parents=True)
    (share / "not-discord" / "resources").mkdir(parents=True)
    found = [d for d in find_discords() if d.path.startswith(str(tmp_path))]
    assert [d.path for d in found] == [str(share / "discord-canary")]
    assert found[0].branch == "canary"


@patch("sys.platform", "darwin")
def test_find_discords_darwin(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    (tmp_path / "Applications" / "Discord.app" / "Contents" / "Resources").mkdir(parents=True)
    found = [d for d in find_discords() if d.path.startswith(str(tmp_path))]
    assert len(found) == 1
    assert found[0].branch == "stable"


@patch("sys.platform", "win32")
def test_find_discords_windows(tmp_path, monkeypatch):
    monkeypatch.setenv("LOCALAPPDATA", str(tmp_path))
    (tmp_path / "DiscordCanary" / "app-1.0.0" / "resources").mkdir(parents=True)
    found = find_discords()
    assert [d.branch for d in found] == ["canary"]


@patch("sys.platform", "win32")
def test_find_discords_windows_without_appdata(monkeypatch):
    monkeypatch.delenv("LOCALAPPDATA", raising=False)
    assert find_discords() == []


# prepare_patch


def _fake_process(name):
    proc = MagicMock()
    proc.info = {"name": name}
    return proc


@patch("sys.platform", "win32")
def test_prepare_patch_kills_matching_process(tmp_path):
    other = _fake_process("notepad.exe")
    target = _fake_process("DiscordCanary.exe")
    with patch("psutil.process_iter", return_value=[other, target]):
        result = prepare_patch(
            DiscordInstall(path=str(tmp_path), branch="canary", app_path="")
        )
    assert result is None
    assert target.kill.call_count == 1
    assert target.wait.call_count == 1
    assert other.kill.call_count == 0


@patch("sys.platform", "linux")
def test_prepare_patch_noop_off_windows(tmp_path):
    with patch("psutil.process_iter") as process_iter:
        result = prepare_patch(
            DiscordInstall(path=str(tmp_path), branch="stable", app_path="")
        )
    assert result is None
    assert process_iter.call_count == 0


# fix_ownership


@patch("sys.platform", "linux")
@patch("os.geteuid", return_value=0)
def test_fix_ownership_requires_sudo_user(_geteuid, tmp_path, monkeypatch):
    monkeypatch.delenv("SUDO_USER", raising=False)
    with pytest.raises(RuntimeError):
        fix_ownership(str(tmp_path))


@patch("sys.platform", "linux")
@patch("os.geteuid", return_value=0)
def test_fix_ownership_unknown_user(_geteuid, tmp_path, monkeypatch):
    monkeypatch.setenv("SUDO_USER", UNKNOWN_USER)
    with pytest.raises(KeyError):
        fix_ownership(str(tmp_path))


@patch("sys.platform", "linux")
@patch("os.geteuid", return_value=0)
def test_fix_ownership_chowns_tree(_geteuid, tmp_path, monkeypatch):
    name = _current_user()
    monkeypatch.setenv("SUDO_USER", name)
    (tmp_path / "sub").mkdir()
    (tmp_path / "sub" / "file.txt").write_text("x")
    user = pwd.getpwnam(name)
    with patch("os.chown") as chown:
        fix_ownership(str(tmp_path))
    paths = [c.args[0] for c in chown.call_args_list]
    assert paths[0] == str(tmp_path)
    assert set(paths) == {
        str(tmp_path),
        str(tmp_path / "sub"),
        str(tmp_path / "sub" / "file.txt"),
    }
    assert all(c.args[1:] == (user.pw_uid, user.pw_gid) for c in chown.call_args_list)


@patch("sys.platform", "linux")
@patch("os.geteuid", return_value=1000)
def test_fix_ownership_skipped_when_not_root(_geteuid, tmp_path):
    with patch("os.chown") as chown:
        result = fix_ownership(str(tmp_path))
    assert result is None
    assert chown.call_args_list == []


# check_scuffed_install


@patch("sys.platform", "win32")
def test_scuffed_install_detected(tmp_path, monkeypatch):
    monkeypatch.setenv("PROGRAMDATA", str(tmp_path))
    monkeypatch.setenv("USERNAME", "someone")
    assert check_scuffed_install() is False
    (tmp_path / "someone" / "DiscordPTB").mkdir(parents=True)
    assert check_scuffed_install() is True


@patch("sys.platform", "linux")
def test_scuffed_install_only_on_windows(tmp_path, monkeypatch):
    monkeypatch.setenv("PROGRAMDATA", str(tmp_path))
    monkeypatch.setenv("USERNAME", "someone")
    (tmp_path / "someone" / "Discord").mkdir(parents=True)
    assert check_scuffed_install() is False