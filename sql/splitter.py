"""
==========================================
Setup script batch splitting per engine.
==========================================

Converts one schema-setup script into the ordered list of batches that are
sent to the server one at a time. Batch separation is a client-side
convention, not portable SQL, so every engine has its own splitter:

    - SQL Server: a line holding only ``GO`` (optionally ``GO <count>``)
    - MySQL: the current delimiter, switched with ``DELIMITER <token>`` lines
    - PostgreSQL: ``;`` outside quotes, comments and dollar-quoted bodies

All splitters share the same contract:

    1. ``[DATABASENAME]`` is replaced with the target database name
    2. Batches keep source order and are stripped of surrounding whitespace
    3. Blank and comment-only batches are dropped
    4. Empty or untokenizable scripts raise ScriptParseError

Example:
    >>> from sql.splitter import PostgreSqlBatchSplitter
    >>>
    >>> PostgreSqlBatchSplitter().split("CREATE TABLE a (id int);\\nCREATE TABLE b (id int);", 'TestDb')
    ['CREATE TABLE a (id int);', 'CREATE TABLE b (id int);']
"""

import re
from typing import List, Optional

DATABASE_NAME_PLACEHOLDER = '[DATABASENAME]'


class ScriptParseError(Exception):
    """Exception raised when a setup script cannot be split into batches.

    Raised for empty scripts, non-text input and unterminated literals or
    comments. Usually indicates a packaging problem with the setup script.
    """
    pass


def _prepare(script: str, database_name: Optional[str]) -> str:
    if not isinstance(script, str):
        raise ScriptParseError(f"Setup script must be text, got {type(script).__name__}")
    if not script.strip():
        raise ScriptParseError("Setup script is empty")
    if database_name:
        script = script.replace(DATABASE_NAME_PLACEHOLDER, database_name)
    return script.replace('\r\n', '\n')


def _line_of(text: str, pos: int) -> int:
    return text.count('\n', 0, pos) + 1


def _is_word_char(ch: str) -> bool:
    return ch.isalnum() or ch == '_'


def _skip_delimited(text: str, pos: int, closing: str, backslash_escapes: bool = False) -> int:
    """Return the index just past the quoted literal or identifier opened at pos.

    A doubled closing character is an escaped one.
    """
    length = len(text)
    i = pos + 1
    while i < length:
        ch = text[i]
        if backslash_escapes and ch == '\\':
            i += 2
            continue
        if ch == closing:
            if i + 1 < length and text[i + 1] == closing:
                i += 2
                continue
            return i + 1
        i += 1
    raise ScriptParseError(f"Unterminated {text[pos]} literal starting at line {_line_of(text, pos)}")


def _skip_line_comment(text: str, pos: int) -> int:
    """Return the index of the newline ending the comment (not consumed)."""
    end = text.find('\n', pos)
    return len(text) if end == -1 else end


def _skip_block_comment(text: str, pos: int, nested: bool) -> int:
    depth = 0
    i = pos
    length = len(text)
    while i < length:
        if text.startswith('/*', i) and (nested or depth == 0):
            depth += 1
            i += 2
        elif text.startswith('*/', i):
            depth -= 1
            i += 2
            if depth == 0:
                return i
        else:
            i += 1
    raise ScriptParseError(f"Unterminated block comment starting at line {_line_of(text, pos)}")


class SqlServerBatchSplitter:
    """Split T-SQL scripts on ``GO`` separator lines.

    ``GO`` is recognized only on a line of its own (case-insensitive,
    surrounding whitespace and a trailing ``--`` comment allowed).
    ``GO <count>`` emits the preceding batch count times. Semicolons never
    split a batch.
    """

    GO_SEPARATOR = re.compile(r'[ \t]*GO(?:[ \t]+(\d+))?[ \t]*(?:--[^\n]*)?(?=\n|$)', re.IGNORECASE)

    def split(self, script: str, database_name: Optional[str] = None) -> List[str]:
        text = _prepare(script, database_name)
        batches = []
        length = len(text)
        start = 0
        pos = 0
        has_code = False

        while pos < length:
            if pos == 0 or text[pos - 1] == '\n':
                match = self.GO_SEPARATOR.match(text, pos)
                if match:
                    count = int(match.group(1)) if match.group(1) else 1
                    if has_code:
                        batches.extend([text[start:pos].strip()] * count)
                    pos = match.end()
                    start = pos
                    has_code = False
                    continue

            ch = text[pos]
            if text.startswith('--', pos):
                pos = _skip_line_comment(text, pos)
            elif text.startswith('/*', pos):
                pos = _skip_block_comment(text, pos, nested=True)
            elif ch == "'":
                pos = _skip_delimited(text, pos, "'")
                has_code = True
            elif ch == '[':
                pos = _skip_delimited(text, pos, ']')
                has_code = True
            elif ch == '"':
                pos = _skip_delimited(text, pos, '"')
                has_code = True
            else:
                has_code = has_code or not ch.isspace()
                pos += 1

        if has_code:
            batches.append(text[start:].strip())
        return batches


class MySqlBatchSplitter:
    """Split MySQL scripts on the current statement delimiter.

    The delimiter starts as ``;`` and is changed by ``DELIMITER <token>``
    lines, which are client commands and are never emitted. A custom
    delimiter is removed from the statement it ends; ``;`` is kept.
    Executable comments (``/*! ... */``) count as statement text.
    """

    DELIMITER_COMMAND = re.compile(r'[ \t]*DELIMITER[ \t]+(\S+)[ \t]*(?=\n|$)', re.IGNORECASE)
    DEFAULT_DELIMITER = ';'

    def split(self, script: str, database_name: Optional[str] = None) -> List[str]:
        text = _prepare(script, database_name)
        batches = []
        length = len(text)
        delimiter = self.DEFAULT_DELIMITER
        start = 0
        pos = 0
        has_code = False

        while pos < length:
            if pos == 0 or text[pos - 1] == '\n':
                match = self.DELIMITER_COMMAND.match(text, pos)
                if match:
                    if has_code:
                        batches.append(text[start:pos].strip())
                    delimiter = match.group(1)
                    pos = match.end()
                    start = pos
                    has_code = False
                    continue

            if text.startswith(delimiter, pos):
                end = pos + len(delimiter)
                if has_code:
                    statement = text[start:end] if delimiter == self.DEFAULT_DELIMITER else text[start:pos]
                    batches.append(statement.strip())
                pos = end
                start = pos
                has_code = False
                continue

            ch = text[pos]
            if text.startswith('--', pos) and (pos + 2 >= length or text[pos + 2].isspace()):
                pos = _skip_line_comment(text, pos)
            elif ch == '#':
                pos = _skip_line_comment(text, pos)
            elif text.startswith('/*', pos):
                has_code = has_code or text.startswith('/*!', pos)
                pos = _skip_block_comment(text, pos, nested=False)
            elif ch in ("'", '"'):
                pos = _skip_delimited(text, pos, ch, backslash_escapes=True)
                has_code = True
            elif ch == '`':
                pos = _skip_delimited(text, pos, '`')
                has_code = True
            else:
                has_code = has_code or not ch.isspace()
                pos += 1

        if has_code:
            batches.append(text[start:].strip())
        return batches


class PostgreSqlBatchSplitter:
    """Split PostgreSQL scripts on ``;`` statement terminators.

    Terminators inside string literals, quoted identifiers, (nested) block
    comments, line comments and dollar-quoted bodies do not split. Each
    emitted statement keeps its ``;``.
    """

    DOLLAR_TAG = re.compile(r'\$(?:[A-Za-z_][A-Za-z0-9_]*)?\$')

    def split(self, script: str, database_name: Optional[str] = None) -> List[str]:
        text = _prepare(script, database_name)
        batches = []
        length = len(text)
        start = 0
        pos = 0
        has_code = False

        while pos < length:
            ch = text[pos]
            if text.startswith('--', pos):
                pos = _skip_line_comment(text, pos)
            elif text.startswith('/*', pos):
                pos = _skip_block_comment(text, pos, nested=True)
            elif ch == "'":
                # E'...' strings allow backslash escapes
                escaped = (
                    pos > 0 and text[pos - 1] in 'eE'
                    and (pos < 2 or not _is_word_char(text[pos - 2]))
                )
                pos = _skip_delimited(text, pos, "'", backslash_escapes=escaped)
                has_code = True
            elif ch == '"':
                pos = _skip_delimited(text, pos, '"')
                has_code = True
            elif ch == '$':
                match = self.DOLLAR_TAG.match(text, pos)
                if match and not (pos > 0 and _is_word_char(text[pos - 1])):
                    tag = match.group(0)
                    end = text.find(tag, match.end())
                    if end == -1:
                        raise ScriptParseError(
                            f"Unterminated {tag} quoted body starting at line {_line_of(text, pos)}"
                        )
                    pos = end + len(tag)
                else:
                    pos += 1
                has_code = True
            elif ch == ';':
                pos += 1
                if has_code:
                    batches.append(text[start:pos].strip())
                start = pos
                has_code = False
            else:
                has_code = has_code or not ch.isspace()
                pos += 1

        if has_code:
            batches.append(text[start:].strip())
        return batches

