"""Parsing of shell command lines into command trees."""

from __future__ import annotations

import re
from dataclasses import dataclass

from xvkit.constants import OpenFlag

MAXARGS = 10
WORD = "word"
WHITESPACE = " \t\r\n\v"
SYMBOLS = "<|>&;()"

_LEXEME_PATTERN = re.compile(r">>|[<|>&;()]|[^ \t\r\n\v<|>&;()]+")
_REDIRECTIONS = frozenset({"<", ">", ">>"})
_EXEC_STOPPERS = frozenset({"|", ")", "&", ";"})


class ShellSyntaxError(ValueError):
    """Raised when a command line cannot be parsed."""


class Command:
    """Base of all parsed command nodes."""


@dataclass(frozen=True)
class ExecCommand(Command):
    """Run a program with arguments; argv may be empty."""

    argv: tuple[str, ...] = ()


@dataclass(frozen=True)
class RedirCommand(Command):
    """Run cmd with file descriptor fd opened on file in the given mode."""

    cmd: Command
    file: str
    mode: OpenFlag
    fd: int


@dataclass(frozen=True)
class PipeCommand(Command):
    """Connect the output of left to the input of right."""

    left: Command
    right: Command


@dataclass(frozen=True)
class ListCommand(Command):
    """Run left to completion, then right."""

    left: Command
    right: Command


@dataclass(frozen=True)
class BackCommand(Command):
    """Run cmd without waiting for it."""

    cmd: Command


def tokenize(text: str) -> list[tuple[str, str]]:
    """Split a command line into (kind, text) pairs.

    The kind of a symbol is the symbol itself ('>>' for append);
    every other run of characters is a WORD.
    """
    text = text.split("\0", 1)[0]
    items = []
    for match in _LEXEME_PATTERN.finditer(text):
        lexeme = match.group()
        kind = lexeme if lexeme == ">>" or lexeme in SYMBOLS else WORD
        items.append((kind, lexeme))
    return items


class _Parser:
    def __init__(self, items: list[tuple[str, str]]) -> None:
        self._items = items
        self._pos = 0

    def peek(self, kinds) -> bool:
        return self._pos < len(self._items) and self._items[self._pos][0] in kinds

    def take(self) -> tuple[str, str] | None:
        if self._pos >= len(self._items):
            return None
        item = self._items[self._pos]
        self._pos += 1
        return item

    def leftovers(self) -> list[str]:
        return [text for _, text in self._items[self._pos :]]

    def line(self) -> Command:
        cmd = self.pipe()
        while self.peek({"&"}):
            self.take()
            cmd = BackCommand(cmd)
        if self.peek({";"}):
            self.take()
            cmd = ListCommand(cmd, self.line())
        return cmd

    def pipe(self) -> Command:
        cmd = self.exec_()
        if self.peek({"|"}):
            self.take()
            cmd = PipeCommand(cmd, self.pipe())
        return cmd

    def redirs(self, cmd: Command) -> Command:
        while self.peek(_REDIRECTIONS):
            kind, _ = self.take()
            target = self.take()
            if target is None or target[0] != WORD:
                raise ShellSyntaxError("missing file for redirection")
            if kind == "<":
                cmd = RedirCommand(cmd, target[1], OpenFlag.RDONLY, 0)
            else:
                cmd = RedirCommand(cmd, target[1], OpenFlag.WRONLY | OpenFlag.CREATE, 1)
        return cmd

    def block(self) -> Command:
        self.take()
        cmd = self.line()
        if not self.peek({")"}):
            raise ShellSyntaxError("syntax - missing )")
        self.take()
        return self.redirs(cmd)

    def exec_(self) -> Command:
        if self.peek({"("}):
            return self.block()
        argv: list[str] = []
        # Redirections wrap the command in the order they appear, while
        # arguments keep going to the innermost program.
        wrappers: list[Command] = [self.redirs(ExecCommand())]
        while not self.peek(_EXEC_STOPPERS):
            item = self.take()
            if item is None:
                break
            if item[0] != WORD:
                raise ShellSyntaxError("syntax")
            argv.append(item[1])
            if len(argv) >= MAXARGS:
                raise ShellSyntaxError("too many args")
            wrappers.append(self.redirs(ExecCommand()))
        cmd: Command = ExecCommand(tuple(argv))
        for wrapper in wrappers:
            cmd = _rewrap(wrapper, cmd)
        return cmd


def _rewrap(wrapper: Command, inner: Command) -> Command:
    """Replace the empty program at the bottom of a redirection chain."""
    if isinstance(wrapper, RedirCommand):
        return RedirCommand(_rewrap(wrapper.cmd, inner), wrapper.file, wrapper.mode, wrapper.fd)
    return inner


def parse_command(text: str) -> Command:
    """Parse a whole command line; anything left unparsed is a syntax error."""
    parser = _Parser(tokenize(text))
    cmd = parser.line()
    rest = parser.leftovers()
    if rest:
        raise ShellSyntaxError("syntax: leftovers: " + " ".join(rest))
    return cmd