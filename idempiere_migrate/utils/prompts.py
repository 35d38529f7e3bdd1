"""Interactive prompts read from standard input."""

import getpass
import re
from typing import Optional


def ask_question(prompt: str, default: Optional[str] = None, required: bool = True) -> str:
    """Ask user a question and return their answer."""
    if default:
        prompt = f"{prompt} [{default}]: "
    else:
        prompt = f"{prompt}: "

    while True:
        answer = input(prompt).strip()
        if answer:
            return answer
        if default:
            return default
        if not required:
            return ''
        print("This field is required. Please enter a value.")


def ask_optional(prompt: str) -> str:
    """Ask a question where an empty answer is meaningful."""
    return ask_question(prompt, required=False)


def ask_yes_no(prompt: str, default: bool = False) -> bool:
    """
    Ask a Y/N question.

    Only a single 'n'/'N' declines a default-yes question and only a single
    'y'/'Y' accepts a default-no question; anything else keeps the default.
    """
    suffix = "(Y/n)" if default else "(y/N)"
    answer = input(f"{prompt} {suffix}: ").strip()
    if default:
        return not re.fullmatch(r'[Nn]', answer)
    return bool(re.fullmatch(r'[Yy]', answer))


def ask_secret(prompt: str) -> str:
    """Read a secret without echoing it to the terminal."""
    return getpass.getpass(f"{prompt}: ")
