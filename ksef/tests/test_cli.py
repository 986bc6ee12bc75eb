"""
CLI Test Suite

Tests for argument parsing and command dispatch.
"""
from unittest.mock import AsyncMock, patch

import pytest

from ksef.cli import actor_for_scope, create_parser, main
from ksef.orm.user import UserRole
from ksef.services.promotion_service import TerminalLevelError


# =============================================================================
# CLI Parser Tests
# =============================================================================

class TestCLIParser:
    """Test CLI argument parsing."""

    def test_rankings_parsing(self):
        args = create_parser().parse_args(["rankings", "--level", "County", "--region", "Coast"])
        assert args.command == "rankings"
        assert args.level == "County"
        assert args.region == "Coast"
        assert args.county is None

    def test_promote_requires_level_and_category(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["promote", "--level", "County"])

    def test_unknown_level_rejected(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["rankings", "--level", "Village"])


class TestActorForScope:

    def test_county_scope(self):
        actor = actor_for_scope("Coast", "Mombasa")
        assert actor.role == UserRole.COUNTY_ADMIN
        assert actor.scope() == {"region": "Coast", "county": "Mombasa"}

    def test_region_scope(self):
        assert actor_for_scope("Coast", None).role == UserRole.REGIONAL_ADMIN

    def test_nationwide(self):
        assert actor_for_scope(None, None).scope() == {}


# =============================================================================
# Dispatch Tests
# =============================================================================

class TestMain:

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 1
        assert "usage" in capsys.readouterr().out

    def test_county_needs_region(self, capsys):
        assert main(["rankings", "--county", "Mombasa"]) == 1
        assert "--county requires --region" in capsys.readouterr().out

    def test_promote_reports_service_error(self, capsys):
        with patch(
            "ksef.services.promotion_service.apply_promotions",
            new=AsyncMock(side_effect=TerminalLevelError()),
        ):
            code = main(["promote", "--level", "National", "--category", "Physics"])
        assert code == 1
        assert "Error:" in capsys.readouterr().out
