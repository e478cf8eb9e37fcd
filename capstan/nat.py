"""Port forwarding rules for NAT networking."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass


@dataclass(frozen=True)
class Rule:
    host_port: str
    guest_port: str


def parse_rules(rules: Iterable[str]) -> list[Rule]:
    """Parse 'host:guest' strings into forwarding rules."""
    parsed = []
    for rule in rules:
        ports = rule.split(":")
        if len(ports) < 2:
            raise ValueError(f"invalid port forwarding rule '{rule}': expected host:guest")
        parsed.append(Rule(host_port=ports[0], guest_port=ports[1]))
    return parsed