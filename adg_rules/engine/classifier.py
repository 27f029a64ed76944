"""Rule line classification.

The pipeline only needs ``classify(line) -> frozenset[RuleCategory]``; anything
implementing :class:`Classifier` can be injected. :class:`RuleClassifier` is the
default, recognising AdGuard / Adblock Plus syntax and ``/etc/hosts`` entries.
"""

from __future__ import annotations

import ipaddress
import re
from typing import Protocol

from ..config import RuleCategory

COMMENT_MARKERS = ("!", "#")
# "##" style markers open element-hiding rules, not comments
COSMETIC_MARKERS = ("##", "#@#", "#?#", "#@?#", "#$#", "#@$#", "#$?#", "#@$?#", "#%#", "#@%#")
EXCEPTION_PREFIX = "@@"
DOMAIN_PREFIX = "||"
DOMAIN_SEPARATOR = "^"

_DOMAIN_RE = re.compile(
    r"^(?=.{1,255}$)(?:\*\.)?[0-9A-Za-z_]"
    r"(?:(?:[0-9A-Za-z_]|-){0,61}[0-9A-Za-z_])?"
    r"(?:\.[0-9A-Za-z_](?:(?:[0-9A-Za-z_]|-){0,61}[0-9A-Za-z_])?)+\.?$",
    flags=re.ASCII,
)
_ETC_HOSTS_RE = re.compile(r"^([0-9A-Fa-f:\.\[\]]+)(?:%[a-zA-Z0-9]+)?\s+([^#]+)(?:#.*)?$")

LOCAL_ONLY_HOSTNAMES = frozenset(
    {
        "localhost",
        "localhost.localdomain",
        "localhost4",
        "localhost4.localdomain4",
        "localhost6",
        "localhost6.localdomain6",
        "localdomain",
        "local",
        "ip6-localhost",
        "ip6-loopback",
        "ip6-localnet",
        "ip6-mcastprefix",
        "ip6-allnodes",
        "ip6-allrouters",
        "ip6-allhosts",
        "broadcasthost",
    }
)

_NONE: frozenset[RuleCategory] = frozenset()


class Classifier(Protocol):
    def classify(self, line: str) -> frozenset[RuleCategory]:
        ...


def is_comment_line(line: str) -> bool:
    """True for list comments and ``[Adblock Plus 2.0]`` style headers."""

    if not line:
        return False
    if line.startswith(COSMETIC_MARKERS):
        return False
    if line.startswith(COMMENT_MARKERS):
        return True
    return line.startswith("[") and line.endswith("]")


def is_domain(token: str) -> bool:
    return bool(_DOMAIN_RE.fullmatch(token))


class RuleClassifier:
    """Assign AdGuard-style categories to a stripped, non-comment line."""

    def classify(self, line: str) -> frozenset[RuleCategory]:
        if not line or is_comment_line(line):
            return _NONE
        if any(marker in line for marker in COSMETIC_MARKERS):
            return frozenset({RuleCategory.MODIFY})

        hosts = self._classify_hosts(line)
        if hosts is not None:
            return hosts

        exception = line.startswith(EXCEPTION_PREFIX)
        body = line[len(EXCEPTION_PREFIX):] if exception else line
        if len(body) > 2 and body.startswith("/"):
            if body.endswith("/"):
                return frozenset({RuleCategory.REGEX})
            if "/$" in body:
                return frozenset({RuleCategory.MODIFY})
        if body.startswith(DOMAIN_PREFIX):
            pattern, modifiers = self._split_modifiers(body)
            if modifiers:
                return frozenset({RuleCategory.MODIFY})
            hostname = pattern[len(DOMAIN_PREFIX):]
            if hostname.endswith(DOMAIN_SEPARATOR):
                hostname = hostname[:-1]
            if is_domain(hostname):
                return frozenset({RuleCategory.DOMAIN})
            return frozenset({RuleCategory.MODIFY})
        if is_domain(body):
            return frozenset({RuleCategory.DOMAIN})
        if exception or body.startswith("|") or "$" in body:
            return frozenset({RuleCategory.MODIFY})
        return _NONE

    @staticmethod
    def _classify_hosts(line: str) -> frozenset[RuleCategory] | None:
        match = _ETC_HOSTS_RE.match(line)
        if not match:
            return None
        address = match.group(1).strip("[]")
        try:
            ipaddress.ip_address(address)
        except ValueError:
            return None
        hostnames = [name.lower() for name in match.group(2).split()]
        if not hostnames or all(name in LOCAL_ONLY_HOSTNAMES for name in hostnames):
            return _NONE
        return frozenset({RuleCategory.HOSTS})

    @staticmethod
    def _split_modifiers(rule: str) -> tuple[str, str]:
        index = rule.rfind("$")
        while index > 0 and rule[index - 1] == "\\":
            index = rule.rfind("$", 0, index - 1)
        if index <= 0:
            return rule, ""
        return rule[:index], rule[index + 1:]


__all__ = [
    "COMMENT_MARKERS",
    "COSMETIC_MARKERS",
    "Classifier",
    "RuleClassifier",
    "is_comment_line",
    "is_domain",
]
