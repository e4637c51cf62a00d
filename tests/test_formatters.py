from __future__ import annotations

import unittest

from qpdash.config.constants import GuidanceState, LinkPhase, Plan, Role
from qpdash.domain.accounts import AccountSnapshot, BrokerInfo, PlanInfo
from qpdash.ui.shared.utils.formatters import (
    format_broker_text,
    format_engine_status,
    format_funds,
    format_guidance,
    format_link_phase,
    format_plan_text,
)


class FormattersTest(unittest.TestCase):
    def test_broker_text(self) -> None:
        self.assertEqual(format_broker_text(None), "Broker: Not Connected")
        self.assertEqual(format_broker_text(AccountSnapshot()), "Broker: Not Connected")
        snapshot = AccountSnapshot(broker=BrokerInfo(connected=True, broker_name="ANGEL"))
        self.assertEqual(format_broker_text(snapshot), "Broker: ANGEL")

    def test_plan_text(self) -> None:
        self.assertEqual(format_plan_text(None), "Plan: --")
        self.assertEqual(format_plan_text(PlanInfo(Plan.FREE, Role.USER)), "Plan: Free (Upgrade Available)")
        self.assertEqual(format_plan_text(PlanInfo(Plan.FREE, Role.ADMIN)), "Plan: Free (Admin)")
        self.assertEqual(format_plan_text(PlanInfo(Plan.QUARTERLY, Role.USER)), "Plan: Quarterly")

    def test_funds(self) -> None:
        self.assertEqual(format_funds(None), "Available margin: --")
        self.assertEqual(format_funds(1234.5), "Available margin: ₹1,234.50")

    def test_guidance_messages(self) -> None:
        self.assertEqual(format_guidance(GuidanceState.ELIGIBLE), "")
        self.assertIn("Upgrade your plan", format_guidance(GuidanceState.NEED_ACCESS))
        self.assertIn("connect your Angel account", format_guidance(GuidanceState.NEED_ACCESS_AND_CONNECTION))
        self.assertNotIn("Upgrade", format_guidance(GuidanceState.NEED_CONNECTION))

    def test_engine_and_link_status(self) -> None:
        self.assertEqual(format_engine_status(True), "Trading Engine: 🟢 ON")
        self.assertEqual(format_engine_status(False), "Trading Engine: ⛔ OFF")
        self.assertEqual(format_link_phase(None), "Angel Link: ⛔ Idle")
        self.assertEqual(format_link_phase(LinkPhase.LINKED), "Angel Link: ✅ Linked")


class PlanParsingTest(unittest.TestCase):
    def test_plan_names_are_case_insensitive(self) -> None:
        self.assertIs(Plan.parse("YEARLY"), Plan.YEARLY)
        self.assertIs(Plan.parse("paid"), Plan.MONTHLY)
        self.assertIs(Plan.parse("trial"), Plan.FREE)
        self.assertIs(Plan.parse(None), Plan.FREE)

    def test_role_defaults_to_user(self) -> None:
        self.assertIs(Role.parse("ADMIN"), Role.ADMIN)
        self.assertIs(Role.parse("superuser"), Role.USER)
        self.assertIs(Role.parse(None), Role.USER)


if __name__ == "__main__":
    unittest.main()
