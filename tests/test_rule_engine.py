"""Tests for the rule engine and configuration snapshots."""

import pytest

from tenantguard.models.enums import Severity
from tenantguard.models.finding import SeverityCounts, actionable
from tenantguard.models.snapshot import ConfigurationSnapshot
from tenantguard.rules.catalogs.sharing import SHARING_RULES
from tenantguard.rules.engine import Rule, evaluate


def _rule(rule_id, severity, predicate=lambda s: True):
    return Rule(id=rule_id, predicate=predicate, severity=severity, title=rule_id, description=rule_id)


def test_anonymous_sharing_is_error():
    findings = evaluate(SHARING_RULES, {"sharingCapability": "externalUserAndGuestSharing"})
    assert findings[0].severity == Severity.ERROR
    assert findings[0].rule_id == "anonymous-sharing"
    assert "Anonymous Sharing" in findings[0].title


def test_no_match_returns_empty():
    assert evaluate(SHARING_RULES, {"sharingCapability": "disabled"}) == []


def test_sorted_by_severity_with_catalog_order_for_ties():
    rules = [
        _rule("info-1", Severity.INFO),
        _rule("warn-1", Severity.WARNING),
        _rule("err-1", Severity.ERROR),
        _rule("warn-2", Severity.WARNING),
        _rule("err-2", Severity.ERROR),
    ]
    ids = [f.rule_id for f in evaluate(rules, {})]
    assert ids == ["err-1", "err-2", "warn-1", "warn-2", "info-1"]


def test_evaluation_is_deterministic():
    snapshot = {
        "sharingCapability": "externalUserAndGuestSharing",
        "fileAnonymousLinkType": "edit",
        "isResharingByExternalUsersEnabled": True,
    }
    assert evaluate(SHARING_RULES, snapshot) == evaluate(SHARING_RULES, snapshot)


def test_raising_predicate_is_isolated():
    def _boom(s):
        raise KeyError("missing")

    rules = [_rule("broken", Severity.INFO, _boom), _rule("ok", Severity.WARNING)]
    findings = evaluate(rules, {})

    assert [f.rule_id for f in findings] == ["broken", "ok"]
    assert findings[0].severity == Severity.ERROR
    assert findings[0].evidence["rule_id"] == "broken"
    assert "KeyError" in findings[0].evidence["error"]


def test_actionable_and_counts():
    rules = [_rule("e", Severity.ERROR), _rule("w", Severity.WARNING), _rule("i", Severity.INFO)]
    findings = evaluate(rules, {})
    assert [f.rule_id for f in actionable(findings)] == ["e", "w"]
    counts = SeverityCounts.of(findings)
    assert counts.to_dict() == {"error": 1, "warning": 1, "info": 1}
    assert counts.actionable == 2


def test_snapshot_is_read_only():
    snap = ConfigurationSnapshot({"domainRestrictions": {"BlockedDomains": ["a.com"]}})
    with pytest.raises(TypeError):
        snap["x"] = 1
    with pytest.raises(TypeError):
        snap["domainRestrictions"]["BlockedDomains"] = []
    assert snap["domainRestrictions"]["BlockedDomains"] == ("a.com",)


def test_snapshot_dig_and_to_dict():
    data = {"inboundTrust": {"isMfaAccepted": True}, "list": [1, {"a": 2}]}
    snap = ConfigurationSnapshot(data)
    assert snap.dig("inboundTrust", "isMfaAccepted") is True
    assert snap.dig("inboundTrust", "missing", default="x") == "x"
    assert snap.to_dict() == data


def test_snapshot_fingerprint_ignores_key_order():
    a = ConfigurationSnapshot({"a": 1, "b": [1, 2]})
    b = ConfigurationSnapshot({"b": [1, 2], "a": 1})
    assert a.fingerprint() == b.fingerprint()
    assert a.fingerprint() != ConfigurationSnapshot({"a": 2, "b": [1, 2]}).fingerprint()
