"""Extraction rules that scrape values out of Meadow CLI output.

The Meadow CLI has no machine-readable output mode for these commands, so the
rules match the human-readable text. They are versioned on their own: when the
CLI output changes, bump :data:`RULESET_VERSION` together with the rules.
"""

from __future__ import annotations

from collections.abc import AsyncIterable, Iterable
from dataclasses import dataclass
from typing import Protocol, TypeVar

from meadow_deploy.orchestrator.tasks.logs import LogLine

RULESET_VERSION = "1"

R = TypeVar("R", covariant=True)
V = TypeVar("V")


class ExtractionMissingError(LookupError):
    """An expected value was not present in a task's output."""

    def __init__(self, what: str, *, task_name: str = "") -> None:
        source = f" in the output of '{task_name}'" if task_name else ""
        super().__init__(f"Could not find {what}{source}.")
        self.what = what
        self.task_name = task_name


class ExtractionRule(Protocol[R]):
    def extract(self, lines: Iterable[str]) -> R: ...


@dataclass(frozen=True, slots=True)
class DelimitedPairsRule:
    """``<words...> <id> | <name>`` lines become ``{id: name}``.

    The identifier is the last whitespace-separated token left of the
    separator, so leading words (verbs, timestamps) are ignored. A later line
    with the same identifier replaces the earlier name.
    """

    separator: str = "|"

    def extract(self, lines: Iterable[str]) -> dict[str, str]:
        pairs: dict[str, str] = {}
        for line in lines:
            if self.separator not in line:
                continue
            left, right = line.split(self.separator, 1)
            tokens = left.split()
            name = right.strip()
            if not tokens or not name:
                continue
            pairs[tokens[-1]] = name
        return pairs


@dataclass(frozen=True, slots=True)
class LabeledValueRule:
    """Everything after ``label`` on a line, trimmed. The last occurrence wins."""

    label: str

    def extract(self, lines: Iterable[str]) -> str | None:
        found: str | None = None
        for line in lines:
            _, marker, rest = line.rpartition(self.label)
            if not marker:
                continue
            value = rest.strip()
            if value:
                found = value
        return found


COLLECTION_RULE = DelimitedPairsRule(separator="|")
PACKAGE_ID_RULE = LabeledValueRule(label="Package Id:")


async def collect(rule: ExtractionRule[V], lines: AsyncIterable[LogLine]) -> V:
    """Drain a log line sequence and apply ``rule`` to its contents."""

    contents = [line.content async for line in lines]
    return rule.extract(contents)
