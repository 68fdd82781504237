"""Sender exclusion rules.

A rule is a plain string whose shape selects how it matches a sender address:

- ``jobs@example.com``  exact address
- ``@example.com``      address ends with the domain suffix
- ``*@example.com``     address is at exactly that domain
- ``noreply``           rule appears anywhere in the address

A sender is excluded when any rule matches.
"""

import re
from typing import Iterable, List

_BRACKETED_ADDRESS = re.compile(r"<(.+)>")


def normalize_rule(rule: str) -> str:
    return (rule or "").strip().lower()


def extract_address(sender: str) -> str:
    """Return the lower-cased address of a ``From`` header value."""
    normalized = (sender or "").strip().lower()
    match = _BRACKETED_ADDRESS.search(normalized)
    return match.group(1) if match else normalized


def matches_rule(address: str, rule: str) -> bool:
    """Check a single normalized address against a single rule."""
    rule = normalize_rule(rule)
    if not rule:
        return False
    if address == rule:
        return True
    if rule.startswith("@") and address.endswith(rule):
        return True
    if rule.startswith("*@") and address.endswith("@" + rule[2:]):
        return True
    return rule in address


def is_excluded(sender: str, rules: Iterable[str]) -> bool:
    """Return True if any rule matches the sender."""
    address = extract_address(sender)
    return any(matches_rule(address, rule) for rule in rules or [])


def normalize_rules(rules: Iterable[str]) -> List[str]:
    """Lower-case and trim rules, dropping blanks and duplicates in order."""
    seen = []
    for rule in rules or []:
        normalized = normalize_rule(rule)
        if normalized and normalized not in seen:
            seen.append(normalized)
    return seen
