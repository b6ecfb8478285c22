"""Inline rule-control comments.

Recognized forms (``markdownlint-`` and ``lintmark-`` prefixes are
interchangeable)::

    <!-- markdownlint-disable MD051 MD063 -->
    <!-- markdownlint-enable -->
    <!-- markdownlint-disable-line MD051 -->
    <!-- markdownlint-disable-next-line -->
    <!-- markdownlint-disable-file MD063 -->
    <!-- markdownlint-enable-file MD063 -->
    <!-- markdownlint-capture -->
    <!-- markdownlint-restore -->
    <!-- markdownlint-configure-file { "MD063": false } -->
    <!-- prettier-ignore -->

An empty rule list means every rule. Persistent directives start on the line
after the comment; the comment's own line keeps the state it had before.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any

from ..core.model import ALL_RULES, DirectiveSource, InlineConfig, InlineConfigRegion
from ..core.utils import normalize_rule_name

logger = logging.getLogger(__name__)

_DIRECTIVE = re.compile(
    r"^\s*(?:markdownlint|lintmark)-"
    r"(disable-next-line|disable-line|disable-file|enable-file|configure-file"
    r"|disable|enable|capture|restore)(?![\w-])(.*)$",
    re.DOTALL,
)
_PRETTIER_IGNORE = "prettier-ignore"


@dataclass(frozen=True)
class Directive:
    action: str
    rules: tuple[str, ...]
    payload: str = ""


def parse_directive(comment_body: str) -> Directive | None:
    """
    Parse the inside of an HTML comment into a directive.

    Args:
        comment_body: Text between ``<!--`` and ``-->``

    Returns:
        The directive, or None when the comment is not a rule-control comment
    """
    if comment_body.strip() == _PRETTIER_IGNORE:
        return Directive("disable-next-line", (ALL_RULES,))
    m = _DIRECTIVE.match(comment_body)
    if not m:
        return None
    action, rest = m.group(1), m.group(2)
    if action == "configure-file":
        return Directive(action, (), rest.strip())
    names = [normalize_rule_name(n) for n in re.split(r"[\s,]+", rest) if n.strip()]
    return Directive(action, tuple(names) or (ALL_RULES,))


@dataclass
class _State:
    disabled: set[str] = field(default_factory=set)
    # rules re-enabled while "*" is disabled
    enabled: set[str] = field(default_factory=set)

    def copy(self) -> "_State":
        return _State(set(self.disabled), set(self.enabled))

    def disable(self, rules: tuple[str, ...]) -> None:
        if ALL_RULES in rules:
            self.disabled = {ALL_RULES}
            self.enabled = set()
        elif ALL_RULES in self.disabled:
            self.enabled.difference_update(rules)
        else:
            self.disabled.update(rules)

    def enable(self, rules: tuple[str, ...]) -> None:
        if ALL_RULES in rules:
            self.disabled = set()
            self.enabled = set()
        elif ALL_RULES in self.disabled:
            self.enabled.update(rules)
        else:
            self.disabled.difference_update(rules)

    def keys(self) -> set[tuple[str, DirectiveSource]]:
        out = {(r, DirectiveSource.DISABLE) for r in self.disabled}
        if ALL_RULES in self.disabled:
            out |= {(r, DirectiveSource.ENABLE) for r in self.enabled}
        return out


class InlineConfigBuilder:
    """
    Turns directives, fed in document order, into InlineConfigRegions.

    Spanning regions are opened and closed as the running state changes, so
    the output size is proportional to the number of directives rather than
    the number of lines.
    """

    def __init__(self) -> None:
        self._state = _State()
        self._file = _State()
        self._stack: list[_State] = []
        self._open: dict[tuple[str, DirectiveSource], int] = {}
        self._regions: list[InlineConfigRegion] = []
        self.file_config: dict[str, Any] = {}

    def feed(self, line: int, directive: Directive) -> None:
        before = self._state.keys()
        action = directive.action
        if action == "disable":
            self._state.disable(directive.rules)
        elif action == "enable":
            self._state.enable(directive.rules)
        elif action == "capture":
            self._stack.append(self._state.copy())
        elif action == "restore":
            self._state = self._stack.pop() if self._stack else _State()
        elif action == "disable-line":
            for rule in directive.rules:
                self._regions.append(
                    InlineConfigRegion(rule, line, line, DirectiveSource.DISABLE_LINE)
                )
        elif action == "disable-next-line":
            for rule in directive.rules:
                self._regions.append(
                    InlineConfigRegion(rule, line + 1, line + 1, DirectiveSource.DISABLE_NEXT_LINE)
                )
        elif action == "disable-file":
            self._file.disable(directive.rules)
        elif action == "enable-file":
            self._file.enable(directive.rules)
        elif action == "configure-file":
            self._configure(line, directive.payload)
        self._transition(line, before, self._state.keys())

    def _configure(self, line: int, payload: str) -> None:
        try:
            data = json.loads(payload) if payload else {}
        except json.JSONDecodeError as e:
            logger.debug("Ignoring malformed configure-file payload on line %d: %s", line, e)
            return
        if not isinstance(data, dict):
            logger.debug("Ignoring non-object configure-file payload on line %d", line)
            return
        for key, value in data.items():
            self.file_config[normalize_rule_name(key)] = value

    def _transition(
        self,
        line: int,
        before: set[tuple[str, DirectiveSource]],
        after: set[tuple[str, DirectiveSource]],
    ) -> None:
        for key in sorted(before - after):
            start = self._open.pop(key)
            if start <= line:
                self._regions.append(InlineConfigRegion(key[0], start, line, key[1]))
        for key in sorted(after - before):
            self._open[key] = line + 1

    def build(self) -> InlineConfig:
        regions = list(self._regions)
        for (rule, source), start in sorted(self._open.items()):
            regions.append(InlineConfigRegion(rule, start, None, source))
        for rule, source in sorted(self._file.keys()):
            file_source = (
                DirectiveSource.DISABLE_FILE
                if source is DirectiveSource.DISABLE
                else DirectiveSource.ENABLE_FILE
            )
            regions.append(InlineConfigRegion(rule, 1, None, file_source))
        for rule, value in self.file_config.items():
            if value is False:
                regions.append(InlineConfigRegion(rule, 1, None, DirectiveSource.DISABLE_FILE))
        return InlineConfig(tuple(regions))
