import pytest

from capstan.nat import Rule, parse_rules


def test_single_rule():
    assert parse_rules(["8080:80"]) == [Rule(host_port="8080", guest_port="80")]


def test_order_preserved():
    rules = parse_rules(["1:2", "3:4", "5:6"])
    assert [(r.host_port, r.guest_port) for r in rules] == [("1", "2"), ("3", "4"), ("5", "6")]


def test_empty():
    assert parse_rules([]) == []


def test_missing_colon():
    with pytest.raises(ValueError):
        parse_rules(["8080"])