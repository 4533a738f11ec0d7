"""Tests for leadership classification and identity matching."""

import pytest

from shiftlead.calculators.leader_detector import (
    GENERAL_MANAGER,
    TEAM_LEADER,
    classify_title,
    detect_leaders,
    determine_shift_ownership,
    has_co_leadership,
)
from shiftlead.calculators.name_matching import match_identity, match_name
from shiftlead.calculators.types import UserRole
from tests.conftest import at, make_attendance, make_identity


class TestClassifyTitle:
    """Test exact and pattern-based title classification."""

    @pytest.mark.parametrize(
        "title, priority, display",
        [
            ("GM", GENERAL_MANAGER, "GM"),
            ("  general manager ", GENERAL_MANAGER, "General Manager"),
            ("GM (on bar)", GENERAL_MANAGER, "GM (on bar)"),
            ("Store Manager", GENERAL_MANAGER, "Store Manager"),
            ("Team Leader", TEAM_LEADER, "Team Leader"),
            ("shift lead", TEAM_LEADER, "Shift Lead"),
            ("Shift Manager", TEAM_LEADER, "Shift Manager"),
        ],
    )
    def test_exact_titles(self, title, priority, display):
        match = classify_title(title)

        assert match.priority == priority
        assert match.display_title == display
        assert match.exact

    def test_shift_lead_variant_uses_pattern(self):
        """Test a decorated title still resolves to team leader."""
        match = classify_title("Shift Lead (Morning)")

        assert match.priority == TEAM_LEADER
        assert not match.exact

    def test_manager_patterns_before_lead_patterns(self):
        assert classify_title("Assistant Manager").priority == GENERAL_MANAGER
        assert classify_title("Night Supervisor").priority == TEAM_LEADER

    @pytest.mark.parametrize("title", ["Server", "Cook", "Staff", "Cashier", ""])
    def test_non_leadership_titles(self, title):
        assert classify_title(title) is None


class TestDetectLeaders:
    """Test leader candidate detection among on-duty staff."""

    def test_sorted_by_priority(self):
        """Test the general manager comes before the team leader."""
        attendance = [
            make_attendance("e-tl", "Riley Chen", "Team Leader", at(8)),
            make_attendance("e-srv", "Sam Patel", "Server", at(8)),
            make_attendance("e-gm", "Kendall Matthews", "GM", at(8)),
        ]

        leaders = detect_leaders(attendance, [])

        assert [leader.employee_id for leader in leaders] == ["e-gm", "e-tl"]
        assert [leader.priority for leader in leaders] == [GENERAL_MANAGER, TEAM_LEADER]

    def test_no_leaders_returns_empty(self):
        attendance = [make_attendance("e-srv", "Sam Patel", "Server", at(8))]

        assert detect_leaders(attendance, []) == []
        assert detect_leaders([], []) == []

    def test_identity_resolved_by_pos_employee_id(self):
        identities = [make_identity("u-1", "Someone Else Entirely", pos_employee_id="e-gm")]
        attendance = [make_attendance("e-gm", "Kendall Matthews", "GM", at(8))]

        (leader,) = detect_leaders(attendance, identities)

        assert leader.user_id == "u-1"
        assert leader.resolved

    def test_identity_resolved_by_name(self):
        identities = [
            make_identity("u-km", "Kendall Matthews"),
            make_identity("u-kj", "Kendall Jones"),
        ]
        attendance = [make_attendance("e-gm", "Kendall M", "GM", at(8))]

        (leader,) = detect_leaders(attendance, identities)

        assert leader.user_id == "u-km"

    def test_unmatched_leader_gets_placeholder_id(self):
        """Test a leader with no account still counts as a candidate."""
        attendance = [make_attendance("e-gm", "Unknown", "GM", at(8))]
        identities = [make_identity("u-1", "Unknown Person")]

        (leader,) = detect_leaders(attendance, identities)

        assert leader.user_id == "unknown-e-gm"
        assert not leader.resolved

    def test_employee_listed_once_at_best_priority(self):
        attendance = [
            make_attendance("e-1", "Kendall Matthews", "Team Leader", at(8), at(10)),
            make_attendance("e-1", "Kendall Matthews", "GM", at(10), at(14)),
        ]

        leaders = detect_leaders(attendance, [])

        assert len(leaders) == 1
        assert leaders[0].priority == GENERAL_MANAGER

    def test_co_leadership_keeps_input_order(self):
        attendance = [
            make_attendance("e-b", "Blair Fox", "GM", at(8)),
            make_attendance("e-a", "Avery Lin", "Manager", at(8)),
            make_attendance("e-c", "Casey Ng", "Shift Lead", at(8)),
        ]

        leaders = detect_leaders(attendance, [])

        assert [leader.employee_id for leader in leaders] == ["e-b", "e-a", "e-c"]
        assert has_co_leadership(leaders)
        assert not has_co_leadership(leaders[1:])
        assert not has_co_leadership([])


class TestShiftOwnership:
    """Test splitting on-duty staff into leaders and team members."""

    def test_ownership_flags(self):
        on_duty = [
            make_attendance("e-gm", "Kendall Matthews", "GM", at(8)),
            make_attendance("e-srv", "Sam Patel", "Server", at(8)),
        ]

        ownership = determine_shift_ownership(on_duty, [])

        assert [leader.employee_id for leader in ownership.leaders] == ["e-gm"]
        assert [member.employee_id for member in ownership.team_members] == ["e-srv"]
        assert not ownership.multiple_leaders_on_duty
        assert not ownership.no_leader_on_duty

    def test_no_leader_on_duty(self):
        on_duty = [make_attendance("e-srv", "Sam Patel", "Server", at(8))]

        assert determine_shift_ownership(on_duty, []).no_leader_on_duty


class TestNameMatching:
    """Test fuzzy name matching against identities."""

    def test_exact_match_ignores_case(self):
        identities = [make_identity("u-1", "Kendall Matthews")]

        assert match_identity("KENDALL matthews", identities).id == "u-1"

    def test_short_form_disambiguates_shared_first_name(self):
        identities = [
            make_identity("u-km", "Kendall Matthews"),
            make_identity("u-kj", "Kendall Jones"),
        ]

        assert match_name("Kendall M", identities, key=lambda i: i.name) == (
            identities[0],
            "short_form",
        )

    def test_first_name_match_when_unique(self):
        identities = [
            make_identity("u-km", "Kendall Matthews"),
            make_identity("u-rc", "Riley Chen"),
        ]

        assert match_name("Kendall", identities, key=lambda i: i.name)[1] == "first_name"

    def test_short_first_names_do_not_match_on_first_name(self):
        identities = [make_identity("u-1", "Al Smith"), make_identity("u-2", "Al Jones")]

        assert match_identity("Al Brown", identities) is None

    def test_ambiguous_match_returns_none(self):
        identities = [
            make_identity("u-1", "Chris Adams"),
            make_identity("u-2", "Chris Brown"),
        ]

        assert match_identity("Chris", identities) is None

    def test_blank_name_returns_none(self):
        assert match_identity("   ", [make_identity("u-1", "Kendall Matthews")]) is None

    def test_role_does_not_affect_matching(self):
        identities = [make_identity("u-1", "Riley Chen", role=UserRole.STAFF)]

        assert match_identity("Riley Chen", identities).id == "u-1"
