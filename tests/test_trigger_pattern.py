"""
Tests for the prevention rule trigger pattern language.
"""

import pytest

from claimshield.models.exceptions import RulePatternError
from claimshield.scoring.trigger_pattern import Clause, parse_pattern, pattern_matches


CONTEXT = {
    "payer": "Aetna",
    "cptCode": ["90834", "H0015"],
    "amount": 2500.0,
    "priorAuthRequired": True,
    "networkStatus": "in_network",
    "policyStatus": "Active",
}


class TestParsePattern:

    @pytest.mark.parametrize("pattern", [None, "", "  ", "*"])
    def test_empty_patterns(self, pattern):
        assert parse_pattern(pattern) == []

    def test_conjunction(self):
        clauses = parse_pattern("payer=Blue Cross AND cptCode=9083* AND amount>=2500")
        assert clauses == [
            Clause("payer", "=", "Blue Cross"),
            Clause("cptCode", "=", "9083*"),
            Clause("amount", ">=", "2500"),
        ]

    def test_quoted_value(self):
        assert parse_pattern("payer='Aetna'") == [Clause("payer", "=", "Aetna")]

    @pytest.mark.parametrize("pattern", [
        "payer",
        "color=blue",
        "payer>Aetna",
        "amount=lots",
        "priorAuthRequired=maybe",
    ])
    def test_invalid_patterns(self, pattern):
        with pytest.raises(RulePatternError):
            parse_pattern(pattern)


class TestPatternMatches:

    @pytest.mark.parametrize("pattern,expected", [
        ("*", True),
        ("payer=aetna", True),
        ("payer!=Aetna", False),
        ("cptCode=H00*", True),
        ("cptCode!=H00*", False),
        ("cptCode=97*", False),
        ("amount>2500", False),
        ("amount>=2500", True),
        ("amount<3000 AND amount>1000", True),
        ("priorAuthRequired=true", True),
        ("priorAuthRequired=false", False),
        ("networkStatus=out_of_network", False),
        ("policyStatus=active", True),
        ("payer=Aetna AND networkStatus=in_network", True),
    ])
    def test_against_context(self, pattern, expected):
        assert pattern_matches(parse_pattern(pattern), CONTEXT) is expected

    def test_unknown_value_never_holds(self):
        context = dict(CONTEXT, networkStatus=None)
        assert not pattern_matches(parse_pattern("networkStatus=in_network"), context)
        assert not pattern_matches(parse_pattern("networkStatus!=in_network"), context)
