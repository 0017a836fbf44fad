"""Coloured status output. Status lines go to stdout, problems to stderr."""

import sys

from colorama import Fore, Style, just_fix_windows_console

just_fix_windows_console()


def status(msg: str, colour: str = Fore.CYAN) -> None:
    print(f"{colour}==> {msg}{Style.RESET_ALL}", flush=True)


def success(msg: str) -> None:
    status(msg, Fore.GREEN)


def error(msg: str) -> None:
    print(f"{Fore.RED}{msg}{Style.RESET_ALL}", file=sys.stderr, flush=True)


def hint(msg: str) -> None:
    print(f"{Fore.YELLOW}{msg}{Style.RESET_ALL}", file=sys.stderr, flush=True)
