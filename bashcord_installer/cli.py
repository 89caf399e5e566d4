"""Command-line front end: flags, interactive menus and the install actions."""

from __future__ import annotations

import argparse
import os
import sys
import threading
from enum import Enum
from typing import Sequence

from termcolor import colored

from .constants import INSTALLER_GIT_HASH, INSTALLER_TAG
from .discovery import DiscordInstall, RootUserError, find_discords, parse_discord
from .github import BuildManager
from .log import Level, log
from .openasar import install_open_asar, is_open_asar, uninstall_open_asar
from .paths import ensure_base_dir, resolve_base_dir, resolve_equicord_directory
from .patcher import patch, unpatch
from .self_updater import SelfUpdater

VALID_BRANCHES = ("", "stable", "ptb", "canary", "auto")
AUTO_BRANCH_ORDER = ("stable", "canary", "ptb")
CUSTOM_LOCATION = "Emplacement personnalisé (pour les rebelles)"

_BANNER = r"""
  ____    _    ____  _   _  ____ ___  ____  ____
 | __ )  / \  / ___|| | | |/ ___/ _ \|  _ \|  _ \
 |  _ \ / _ \ \___ \| |_| | |  | | | | |_) | | | |
 | |_) / ___ \ ___) |  _  | |__| |_| |  _ <| |_| |
 |____/_/   \_\____/|_| |_|\____\___/|_| \_\____/
"""


class _Action(Enum):
    INSTALL = "Installer BASHCORD"
    REPAIR = "Réparer BASHCORD"
    UNINSTALL = "Désinstaller BASHCORD"
    INSTALL_OPENASAR = "Installer OpenAsar (pour les connaisseurs)"
    UNINSTALL_OPENASAR = "Désinstaller OpenAsar (retour en arrière)"


_MENU_HELP = "Voir le menu d'aide (RTFM)"
_MENU_UPDATE_SELF = "Mettre à jour Bashcord_CLI (fais-le !)"
_MENU_QUIT = "Quitter (fuyaaaaard !)"
_MENU = [*(a.value for a in _Action), _MENU_HELP, _MENU_UPDATE_SELF, _MENU_QUIT]


class CliExit(Exception):
    """Ends the command with the given exit status."""

    def __init__(self, status: int, message: str = "") -> None:
        super().__init__(message or f"exit status {status}")
        self.status = status


def is_valid_branch(branch: str) -> bool:
    """Return True if ``branch`` is accepted by the --branch flag."""
    return branch in VALID_BRANCHES


def build_parser() -> argparse.ArgumentParser:
    """Command-line parser; every flag takes one or two leading dashes."""
    parser = argparse.ArgumentParser(prog="bashcord", add_help=False, allow_abbrev=False)

    def flag(name: str, help_text: str) -> None:
        parser.add_argument(
            "-" + name, "--" + name, dest=name.replace("-", "_"),
            action="store_true", help=help_text,
        )

    flag("debug", "Activer les infos de debug (pour les masochistes)")
    parser.add_argument(
        "-h", "-help", "--help", dest="help", action="store_true",
        help="Afficher les instructions d'usage (si tu sais pas lire)",
    )
    flag("version", "Voir la version du programme (passionnant)")
    flag("update-self", "Me mettre à jour (j'en ai besoin)")
    flag("install", "Installer BASHCORD (enfin !)")
    flag("repair", "Réparer BASHCORD (encore cassé ?)")
    flag("uninstall", "Désinstaller BASHCORD (tu abandonnes déjà ?)")
    flag("install-openasar", "Installer OpenAsar (pour les vrais)")
    flag("uninstall-openasar", "Désinstaller OpenAsar (retour aux basiques)")
    parser.add_argument(
        "-location", "--location", dest="location", default="",
        help="L'emplacement de Discord à modifier",
    )
    parser.add_argument(
        "-branch", "--branch", dest="branch", default="",
        help="La branche Discord à modifier [auto|stable|ptb|canary]",
    )
    return parser


def _success() -> int:
    print(colored("✔ Succès ! (incroyable)", "light_green"))
    return 0


def _failure() -> int:
    print(colored("❌ Échec ! (comme d'habitude)", "light_red"))
    return 1


def _die(message: str) -> None:
    log.error(message)
    raise CliExit(_failure(), message)


def _read(prompt: str) -> str:
    try:
        return input(prompt)
    except KeyboardInterrupt:
        print()
        raise CliExit(0, "interrupted") from None
    except EOFError as err:
        log.log(Level.FATAL, "EOF", err)
        raise CliExit(1, "end of input") from None


def _select(label: str, items: Sequence[str]) -> str:
    """Show a numbered menu and return the chosen item."""
    while True:
        print(label)
        for number, item in enumerate(items, 1):
            print(f"  {number}) {item}")
        answer = _read("> ").strip()
        if answer.isdigit() and 1 <= int(answer) <= len(items):
            return items[int(answer) - 1]
        if answer in items:
            return answer
        print("Choix invalide, recommence.")


def prompt_discord(
    discords: Sequence[DiscordInstall], action: str, location: str = "", branch: str = ""
) -> DiscordInstall:
    """Pick the install to work on from the flags, or ask the user."""
    if branch == "auto":
        for wanted in AUTO_BRANCH_ORDER:
            found = next((d for d in discords if d.branch == wanted), None)
            if found is not None:
                return found
        _die(
            "Aucune installation Discord trouvée. Essaie de la spécifier manuellement avec le "
            "flag --location. Indice : snap n'est pas supporté (évidemment)"
        )

    if branch:
        found = next((d for d in discords if d.branch == branch), None)
        if found is None:
            _die("Discord " + branch + " introuvable (tu es sûr qu'il existe ?)")
        return found

    if location:
        install = parse_discord(location, branch)
        if install is None:
            _die(
                location + " n'est pas une installation Discord valide. "
                "Indice : snap n'est pas supporté (on t'avait prévenu)"
            )
        return install

    items = [
        f"{d.branch.title()} - {d.path}{' [PATCHÉ]' if d.is_patched else ''}" for d in discords
    ]
    items.append(CUSTOM_LOCATION)
    choice = _select(
        "Sélectionne l'installation Discord à " + action
        + " (Appuie sur Entrée pour confirmer, courage !)",
        items,
    )
    if choice != CUSTOM_LOCATION:
        return discords[items.index(choice)]

    while True:
        custom = _read(
            "Emplacement Discord personnalisé (j'espère que tu sais ce que tu fais) : "
        ).strip()
        install = parse_discord(custom, "")
        if install is not None:
            return install
        log.error("Installation Discord invalide ! (surprise)")


def _init_builds() -> BuildManager:
    base_dir = resolve_base_dir()
    equicord = resolve_equicord_directory(None, base_dir)
    if not os.environ.get("BASHCORD_DIRECTORY", ""):
        try:
            ensure_base_dir(base_dir)
        except (OSError, KeyError, RuntimeError) as err:
            log.debug("Base directory is not usable:", err)
    return BuildManager(equicord, os.environ.get("EQUICORD_DEV_INSTALL") == "1")


def _find() -> list[DiscordInstall]:
    try:
        return find_discords()
    except RootUserError as err:
        _die(str(err))
        raise


def _update_self(updater: SelfUpdater) -> int:
    try:
        updater.update()
    except (OSError, RuntimeError) as err:
        log.error("Échec de la mise à jour automatique :", err)
        return _failure()
    return _success()


def _warn_if_outdated(updater: SelfUpdater) -> None:
    if updater.check() and updater.is_outdated:
        log.warn("Ton installateur est obsolète (comme ton PC probablement).")
        log.warn(
            "Pour mettre à jour, sélectionne l'option 'Mettre à jour Bashcord_CLI' "
            "ou lance avec --update-self"
        )


def _action_from_args(args: argparse.Namespace) -> _Action | None:
    chosen = {
        _Action.INSTALL: args.install,
        _Action.REPAIR: args.repair,
        _Action.UNINSTALL: args.uninstall,
        _Action.INSTALL_OPENASAR: args.install_openasar,
        _Action.UNINSTALL_OPENASAR: args.uninstall_openasar,
    }
    return next((action for action, on in chosen.items() if on), None)


def _perform(action: _Action, args: argparse.Namespace, builds: BuildManager) -> int:
    discords = _find()

    def pick(verb: str) -> DiscordInstall:
        return prompt_discord(discords, verb, args.location, args.branch)

    ok = True
    try:
        if action is _Action.INSTALL:
            ok = patch(pick("patcher"), builds)
        elif action is _Action.UNINSTALL:
            unpatch(pick("dépatcher"))
        elif action is _Action.REPAIR:
            log.info("Téléchargement des derniers fichiers Bashcord... (patience, petit scarabée)")
            try:
                builds.install_latest()
            except (OSError, RuntimeError):
                ok = False
            log.info("Terminé ! (miracle)")
            if ok:
                ok = patch(pick("réparer"), builds)
        elif action is _Action.INSTALL_OPENASAR:
            discord = pick("patcher")
            if is_open_asar(discord):
                _die("OpenAsar déjà installé (tu dors ou quoi ?)")
            install_open_asar(discord)
        else:
            discord = pick("patcher")
            if not is_open_asar(discord):
                _die("OpenAsar pas installé (logique, non ?)")
            uninstall_open_asar(discord)
    except (OSError, RuntimeError) as err:
        log.error(err)
        return _failure()
    return _success() if ok else _failure()


def _run(args: argparse.Namespace, parser: argparse.ArgumentParser) -> int:
    if args.help:
        parser.print_help()
        return 0

    if args.version:
        print("Equilotl Cli", INSTALLER_TAG, f"({INSTALLER_GIT_HASH})")
        return 0

    updater = SelfUpdater()
    if args.update_self:
        if not updater.check():
            _die(
                "Impossible de me mettre à jour car la vérification des mises à jour "
                "a échoué (bravo)"
            )
        return _update_self(updater)

    if args.location and args.branch:
        _die(
            "Les flags 'location' et 'branch' sont mutuellement exclusifs "
            "(choisis-en un, génie)."
        )
    if not is_valid_branch(args.branch):
        _die(
            "Le flag 'branch' doit être l'un des suivants : [auto|stable|ptb|canary] "
            "(pas si compliqué)"
        )

    builds = _init_builds()
    if args.install or args.repair:
        if not builds.fetch_latest():
            what = "installation" if args.install else "mise à jour"
            _die(
                "Pas d'" + what + " car la récupération des données de release a échoué "
                "(GitHub nous boude)"
            )

    action = _action_from_args(args)
    if action is None:
        print(colored(_BANNER, "light_red"))
        checker = threading.Thread(target=_warn_if_outdated, args=(updater,), daemon=True)
        checker.start()

        choice = _select("Que veux-tu faire ? (Appuie sur Entrée sois pas con)", _MENU)
        if choice == _MENU_HELP:
            parser.print_help()
            return 0
        if choice == _MENU_QUIT:
            return 0
        if choice == _MENU_UPDATE_SELF:
            checker.join()
            return _update_self(updater)
        action = _Action(choice)
        if action in (_Action.INSTALL, _Action.REPAIR):
            builds.fetch_latest()

    return _perform(action, args, builds)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the installer's command line and return its exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.debug:
        log.level = Level.DEBUG
    try:
        return _run(args, parser)
    except CliExit as stop:
        return stop.status


if __name__ == "__main__":
    sys.exit(main())