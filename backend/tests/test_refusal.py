"""Tests for refusal detection."""

import sys
from pathlib import Path

import pytest

backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

from graph.refusal import is_refusal  # noqa: E402


class TestIsRefusal:
    """Tests for is_refusal."""

    @pytest.mark.parametrize(
        "text",
        [
            "I cannot help with that.",
            "I can't argue for this claim.",
            "I'm sorry, but I won't take that position.",
            "I’m unable to write this argument.",
            "As an AI, I cannot take sides on this.",
            "As an AI language model, I must decline.",
            "Sorry, but I can't do that.",
            "Unfortunately I am not able to help.",
            "This request violates my guidelines.",
            "  i do not feel comfortable arguing this.",
        ],
    )
    def test_declinations_are_refusals(self, text):
        assert is_refusal(text)

    @pytest.mark.parametrize(
        "text",
        [
            "The data cannot support this conclusion.",
            "Critics say I cannot ignore the confounders, and they are right.",
            "Remote work boosts output: https://nih.gov/study1 shows it.",
            "While some argue I can't prove causation, the trend is clear.",
            "Sorryville is a fictional town used in the survey.",
            "This claim violates basic labour economics: output per hour fell.",
            "Unfortunately, I see no controlled trial that backs this claim.",
            "Sorry, but I think the cohort data says otherwise.",
        ],
    )
    def test_arguments_are_not_refusals(self, text):
        assert not is_refusal(text)

    @pytest.mark.parametrize("text", [None, "", "   \n\t "])
    def test_empty_output_is_refusal(self, text):
        assert is_refusal(text)
