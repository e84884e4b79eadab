"""
Test cases for per-service hardening rules
"""

import pytest

from composeaudit.config import DEFAULT_PROFILE, STRICT_PROFILE
from composeaudit.parsing import parse
from composeaudit.rules.models import Severity
from composeaudit.rules.service_rules import ServiceRuleEvaluator, SERVICE_RULES

HARDENED = """
services:
  api:
    image: node:20-alpine
    user: "1000:1000"
    read_only: true
    cap_drop: [ALL]
    security_opt:
      - no-new-privileges:true
      - seccomp:default
    deploy:
      resources:
        limits:
          memory: 256M
"""


def rules_for(text, evaluator=None):
    evaluator = evaluator or ServiceRuleEvaluator()
    return [f.rule for f in evaluator.evaluate(parse(text))]


class TestServiceRules:
    """Test service rule evaluation"""

    def setup_method(self):
        """Set up test fixtures"""
        self.evaluator = ServiceRuleEvaluator()

    def test_hardened_service_is_clean(self):
        """Test a fully hardened service has no findings"""
        assert rules_for(HARDENED) == []

    def test_privileged(self):
        """Test privileged mode is critical"""
        findings = self.evaluator.evaluate(parse("services:\n  app:\n    privileged: true\n"))
        privileged = [f for f in findings if f.rule == "no-privileged"]
        assert len(privileged) == 1
        assert privileged[0].severity == Severity.CRITICAL
        assert privileged[0].scope == "app"

    def test_bare_service_findings_in_registry_order(self):
        """Test an unhardened service triggers recommendations in registry order"""
        assert rules_for("services:\n  app:\n    image: nginx:1.25\n") == [
            "require-cap-drop-all",
            "recommend-read-only",
            "recommend-user",
            "recommend-no-new-privileges",
            "recommend-seccomp",
            "recommend-resource-limits",
        ]

    def test_dangerous_capabilities(self):
        """Test dangerous capabilities are listed in the message"""
        findings = self.evaluator.evaluate(parse("""
services:
  app:
    cap_add: [SYS_ADMIN, NET_BIND_SERVICE, NET_ADMIN]
"""))
        dangerous = [f for f in findings if f.rule == "dangerous-capabilities"]
        assert len(dangerous) == 1
        assert "NET_ADMIN, SYS_ADMIN" in dangerous[0].message
        assert "NET_BIND_SERVICE" not in dangerous[0].message

    def test_strict_profile_extends_capabilities(self):
        """Test the strict profile treats more capabilities as dangerous"""
        text = "services:\n  app:\n    cap_add: [SYS_NICE]\n"
        assert "dangerous-capabilities" not in rules_for(text)
        assert "dangerous-capabilities" in rules_for(text, ServiceRuleEvaluator(STRICT_PROFILE))

    def test_host_network(self):
        """Test host networking is flagged"""
        assert "no-host-network" in rules_for("services:\n  app:\n    network_mode: host\n")

    @pytest.mark.parametrize("user", ["root", "0", "0:0"])
    def test_root_user(self, user):
        """Test explicit root users"""
        rules = rules_for(f"services:\n  app:\n    user: \"{user}\"\n")
        assert "no-root-user" in rules
        assert "recommend-user" not in rules

    def test_database_skips_read_only(self):
        """Test databases are not asked for a read-only root filesystem"""
        assert "recommend-read-only" not in rules_for("services:\n  db:\n    image: postgres:16\n")
        assert "recommend-read-only" not in rules_for("services:\n  store:\n    image: redis:7\n")

    def test_mem_limit_counts_as_limit(self):
        """Test legacy mem_limit satisfies the resource limit rule"""
        assert "recommend-resource-limits" not in rules_for("services:\n  app:\n    mem_limit: 512m\n")

    def test_disabled_rule(self):
        """Test a rule switched off in the profile does not run"""
        profile = DEFAULT_PROFILE.with_rules({"recommend-seccomp": "off", "recommend-user": False})
        rules = rules_for("services:\n  app: {}\n", ServiceRuleEvaluator(profile))
        assert "recommend-seccomp" not in rules
        assert "recommend-user" not in rules
        assert "require-cap-drop-all" in rules

    def test_rule_info(self):
        """Test registry metadata"""
        info = self.evaluator.rule_info()
        assert [r.id for r in info] == [r.id for r in SERVICE_RULES]
        assert all(r.evaluator == "service" for r in info)

    def test_deterministic(self):
        """Test repeated evaluation yields identical findings"""
        manifest = parse("services:\n  a:\n    privileged: true\n  b:\n    user: root\n")
        assert self.evaluator.evaluate(manifest) == self.evaluator.evaluate(manifest)


if __name__ == "__main__":
    pytest.main([__file__])
