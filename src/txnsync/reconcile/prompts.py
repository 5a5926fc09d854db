"""User-decision seam for the reconciliation workflow."""

import sys
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import TextIO

from txnsync.exceptions import UserCanceledError


class Prompter(ABC):
    """Strategy interface for asking the user to pick an item or type a value.

    Implementations raise UserCanceledError when the user aborts; that ends the whole run.
    """

    @abstractmethod
    def select(self, label: str, items: list[str]) -> int:
        """Return the index of the chosen item."""

    @abstractmethod
    def ask(self, label: str, default: str = "") -> str:
        """Return the typed value, or `default` when the user just presses enter."""


class ConsolePrompter(Prompter):
    """Numbered-menu prompts on a terminal. Ctrl-C / Ctrl-D cancel the run."""

    def __init__(self, input_func: Callable[[str], str] = input, output: TextIO | None = None) -> None:
        self._input = input_func
        self._output = output

    @property
    def _out(self) -> TextIO:
        return self._output or sys.stdout

    def _read(self, prompt: str) -> str:
        try:
            return self._input(prompt)
        except (KeyboardInterrupt, EOFError) as exc:
            raise UserCanceledError() from exc

    def select(self, label: str, items: list[str]) -> int:
        if not items:
            raise ValueError("select() needs at least one item")

        print(label, file=self._out)
        for number, item in enumerate(items, start=1):
            print(f"  {number}) {item}", file=self._out)

        while True:
            answer = self._read(f"Select [1-{len(items)}]: ").strip()
            if answer.isdigit() and 1 <= int(answer) <= len(items):
                return int(answer) - 1
            print(f"Please enter a number between 1 and {len(items)}", file=self._out)

    def ask(self, label: str, default: str = "") -> str:
        suffix = f" [{default}]" if default else ""
        answer = self._read(f"{label}{suffix}: ").strip()
        return answer or default
